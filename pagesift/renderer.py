"""Page rendering with a headless Chromium browser (Playwright).

Each call launches its own browser, so a render owns every resource it
touches and releases them before returning, whatever the outcome.
"""

import logging
import random
import time
from typing import List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from pagesift.config import RENDER_RETRIES, RENDER_RETRY_BACKOFF, RENDER_TIMEOUT_MS
from pagesift.errors import RenderError
from pagesift.logging_config import get_logger, log_pipeline_event
from pagesift.models import RenderedPage
from pagesift.url_validation import URLValidationError, validate_url

__all__ = ["PageRenderer", "MAX_RETRY_BACKOFF"]

logger = get_logger("renderer")

# Upper bound for a single backoff sleep (seconds)
MAX_RETRY_BACKOFF = 30.0

# Resolved src of every <img> element, in DOM order
IMAGE_SOURCES_JS = "els => els.map(el => el.currentSrc || el.src || '')"


def _unique_sources(sources: List[Optional[str]]) -> List[str]:
    seen = set()
    unique: List[str] = []
    for src in sources:
        if not src or not isinstance(src, str):
            continue
        src = src.strip()
        if src and src not in seen:
            seen.add(src)
            unique.append(src)
    return unique


class PageRenderer:
    """Render a URL to its final HTML and the image sources present in the DOM."""

    def __init__(
        self,
        timeout_ms: int = RENDER_TIMEOUT_MS,
        headless: bool = True,
        retries: int = RENDER_RETRIES,
        retry_backoff: float = RENDER_RETRY_BACKOFF,
        user_agent: Optional[str] = None,
    ):
        """Initialize the renderer.

        Args:
            timeout_ms: Navigation timeout, including the wait for network idle
            headless: Run the browser headless
            retries: Extra attempts after a failed render (0 = fail immediately)
            retry_backoff: Base for exponential backoff between attempts
            user_agent: Optional user agent override
        """
        self.timeout_ms = timeout_ms
        self.headless = headless
        self.retries = retries
        self.retry_backoff = retry_backoff
        self.user_agent = user_agent

    def render(self, url: str) -> RenderedPage:
        """Load a page and snapshot it once the network is idle.

        Args:
            url: Page URL

        Returns:
            RenderedPage with HTML and image URLs

        Raises:
            RenderError: On invalid URL, navigation timeout, network or browser failure
        """
        try:
            url = validate_url(url)
        except URLValidationError as e:
            raise RenderError(f"Invalid URL: {e}") from e

        last_error: Optional[RenderError] = None
        for attempt in range(self.retries + 1):
            log_pipeline_event(
                "render_start",
                {"message": f"Rendering {url}", "url": url, "attempt": attempt + 1},
                level=logging.DEBUG,
            )
            try:
                page = self._render_once(url)
            except RenderError as e:
                last_error = e
                if attempt < self.retries:
                    backoff = min(self.retry_backoff ** attempt, MAX_RETRY_BACKOFF) + random.uniform(0, 1)
                    logger.warning(
                        f"{e}, retrying in {backoff:.1f}s (attempt {attempt + 1}/{self.retries})"
                    )
                    time.sleep(backoff)
                    continue
                break

            log_pipeline_event(
                "render_complete",
                {
                    "message": f"Rendered {url} ({len(page.html)} chars, {len(page.image_urls)} images)",
                    "url": url,
                    "html_chars": len(page.html),
                    "image_count": len(page.image_urls),
                },
                level=logging.DEBUG,
            )
            return page

        log_pipeline_event(
            "render_failed",
            {"message": f"Render failed for {url}: {last_error}", "url": url, "error": str(last_error)},
            level=logging.WARNING,
        )
        raise last_error  # type: ignore[misc]

    def _render_once(self, url: str) -> RenderedPage:
        try:
            with sync_playwright() as p:
                try:
                    browser = p.chromium.launch(headless=self.headless)
                except PlaywrightError as e:
                    raise RenderError(f"Browser failed to start: {e}") from e

                try:
                    page = browser.new_page(user_agent=self.user_agent) if self.user_agent else browser.new_page()
                    try:
                        page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                        html = page.content()
                        sources = page.eval_on_selector_all("img", IMAGE_SOURCES_JS)
                    finally:
                        page.close()
                except PlaywrightTimeoutError as e:
                    raise RenderError(f"Timed out after {self.timeout_ms}ms loading {url}") from e
                except PlaywrightError as e:
                    raise RenderError(f"Navigation failed for {url}: {e}") from e
                finally:
                    browser.close()
        except RenderError:
            raise
        except PlaywrightError as e:
            raise RenderError(f"Browser error: {e}") from e

        return RenderedPage(url=url, html=html, image_urls=tuple(_unique_sources(sources)))
