"""Preparation of rendered HTML for inference calls.

Each stage only ever sees a bounded prefix of the page. In ``condensed``
mode, markup that carries no product information is removed first so the
prefix reaches further into the page body.
"""

import re

from bs4 import BeautifulSoup, Comment

__all__ = ["truncate", "condense_html", "prepare_content"]

# Tags whose contents never describe the product
STRIP_TAGS = ["script", "style", "noscript", "svg", "iframe", "template", "link"]

_WHITESPACE_RE = re.compile(r"\s{2,}")


def truncate(content: str, max_chars: int) -> str:
    """Return at most the first ``max_chars`` characters of ``content``."""
    if max_chars <= 0:
        return ""
    return content[:max_chars]


def condense_html(html: str) -> str:
    """Strip scripts, styles, comments and redundant whitespace from HTML.

    Head metadata (title, meta tags) and JSON-LD blocks are kept, since they
    often carry the product name, price and brand.
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(STRIP_TAGS):
        # nested inside an already removed tag
        if tag.decomposed:
            continue
        if tag.name == "script" and "ld+json" in (tag.get("type") or ""):
            continue
        tag.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    return _WHITESPACE_RE.sub(" ", str(soup)).strip()


def prepare_content(html: str, max_chars: int, mode: str = "html") -> str:
    """Apply the content mode and prefix truncation for one inference stage.

    Args:
        html: Rendered page HTML
        max_chars: Prefix length sent to the model
        mode: "html" (raw) or "condensed"

    Returns:
        Content prefix
    """
    if mode == "condensed":
        html = condense_html(html)
    return truncate(html, max_chars)
