"""URL validation and sanitization utilities.

Page URLs come from user input; image URLs come from arbitrary rendered
pages. Both are cleaned before they reach the browser or a prompt.
"""

import re
from typing import Iterable, List, Optional
from urllib.parse import urlparse

__all__ = [
    "URLValidationError",
    "sanitize_url",
    "validate_url",
    "is_http_url",
    "clean_image_urls",
]


class URLValidationError(Exception):
    """Raised when URL validation fails."""
    pass


# Dangerous URL schemes to reject
DANGEROUS_SCHEMES = {"javascript", "data", "vbscript", "file"}


def sanitize_url(url: str) -> str:
    """Sanitize a URL by stripping whitespace and control characters.

    Args:
        url: Raw URL string

    Returns:
        Sanitized URL string
    """
    if not url:
        return ""

    url = url.strip()
    url = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", url)
    url = url.replace("%00", "")

    return url


def validate_url(url: Optional[str]) -> str:
    """Validate a page URL before handing it to the browser.

    Args:
        url: URL to validate

    Returns:
        Sanitized URL

    Raises:
        URLValidationError: If the URL is empty, has no host, or is not http(s)
    """
    if not url:
        raise URLValidationError("URL is empty")

    url = sanitize_url(url)
    if not url:
        raise URLValidationError("URL is empty")

    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise URLValidationError(f"Failed to parse URL: {e}") from e

    scheme = parsed.scheme.lower()
    if scheme in DANGEROUS_SCHEMES:
        raise URLValidationError(f"Dangerous URL scheme: {scheme}")
    if scheme not in ("http", "https"):
        raise URLValidationError(f"Invalid URL scheme: {scheme or '(none)'}")

    if not parsed.netloc:
        raise URLValidationError("URL has no domain")

    return url


def is_http_url(url: str) -> bool:
    """True if ``url`` parses as an absolute http(s) URL with a host."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.netloc)


def clean_image_urls(urls: Iterable[Optional[str]]) -> List[str]:
    """Sanitize image sources, dropping empty, non-http and duplicate entries.

    Order of first appearance is kept.
    """
    seen = set()
    cleaned: List[str] = []
    for raw in urls:
        if not raw or not isinstance(raw, str):
            continue
        url = sanitize_url(raw)
        if not url or url in seen or not is_http_url(url):
            continue
        seen.add(url)
        cleaned.append(url)
    return cleaned
