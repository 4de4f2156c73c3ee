"""Configuration and defaults for the extraction pipeline.

Module-level constants hold the defaults. ``Settings.from_env()`` builds the
single configuration object used for a run, reading overrides from the
environment (and a ``.env`` file, if present).
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from pagesift.prompts import (
    CLASSIFIER_SYSTEM_PROMPT,
    EXTRACTOR_SYSTEM_PROMPT,
    IMAGE_FILTER_SYSTEM_PROMPT,
)

__all__ = [
    "DEFAULT_MODEL",
    "CLASSIFIER_MODES",
    "CONTENT_MODES",
    "CLASSIFIER_MAX_CHARS",
    "EXTRACTOR_MAX_CHARS",
    "MAX_IMAGE_CANDIDATES",
    "RENDER_TIMEOUT_MS",
    "RENDER_RETRIES",
    "RENDER_RETRY_BACKOFF",
    "LLM_TIMEOUT",
    "OUTPUT_PATH",
    "EXAMPLE_URLS",
    "Settings",
]

logger = logging.getLogger(__name__)

# LLM Configuration
DEFAULT_MODEL = "gpt-4o-mini"
LLM_TIMEOUT = 120.0  # seconds per inference request

# "llm" asks the model; "passthrough" treats every page as a product page
CLASSIFIER_MODES = ("llm", "passthrough")
CLASSIFIER_MIN_CONFIDENCE = 0.0

# "html" sends raw rendered HTML; "condensed" strips scripts/styles first
CONTENT_MODES = ("html", "condensed")

# Content prefix limits (characters) sent to each inference stage
CLASSIFIER_MAX_CHARS = 4000
EXTRACTOR_MAX_CHARS = 4000

# Upper bound on image URLs offered to the image filter
MAX_IMAGE_CANDIDATES = 150

# Browser rendering
RENDER_TIMEOUT_MS = 60000
RENDER_RETRIES = 0  # failures are terminal unless raised
RENDER_RETRY_BACKOFF = 2.0  # base for exponential backoff (2^attempt seconds)

# Output
OUTPUT_PATH = "products.csv"
DEFAULT_WORKERS = 1

# Sample pages for a quick end-to-end run (--examples)
EXAMPLE_URLS: List[str] = [
    "https://books.apple.com/us/book/the-backyard-bird-chronicles/id6452501953",
    "https://au.shein.com/100pcs-Striped-Pattern-Straw-Kitchen-Christmas-Gift-p-17756189.html",
    "https://www.uniqlo.com/au/en/products/E453151-000?colorCode=COL11&sizeCode=SMA001",
    "https://www.tumi.com.au/tumi/tegra-lite%C2%AE/international-exp-carry-on/tu-144791-4482.html",
    "https://www.cartier.com.au/en-au/collections/jewellery/collections/grain-de-caf%C3%A9/b8301524-grain-de-caf%C3%A9-earrings.html",
    "https://www.abc.net.au/news",
]


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid integer for {name}: {raw!r} (using {default})")
        return default
    if value < minimum:
        logger.warning(f"{name}={value} is below {minimum}, using {default}")
        return default
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid number for {name}: {raw!r} (using {default})")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_choice(name: str, default: str, choices) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {list(choices)}, got {value!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed explicitly.

    Prompt text and model identifiers live here rather than in the stage
    classes, so prompt variants can be tried without touching code.
    """

    classifier_model: str = DEFAULT_MODEL
    extractor_model: str = DEFAULT_MODEL
    image_filter_model: str = DEFAULT_MODEL

    classifier_prompt: str = CLASSIFIER_SYSTEM_PROMPT
    extractor_prompt: str = EXTRACTOR_SYSTEM_PROMPT
    image_filter_prompt: str = IMAGE_FILTER_SYSTEM_PROMPT

    classifier_mode: str = "llm"
    classifier_min_confidence: float = CLASSIFIER_MIN_CONFIDENCE
    classifier_max_chars: int = CLASSIFIER_MAX_CHARS
    extractor_max_chars: int = EXTRACTOR_MAX_CHARS
    max_image_candidates: int = MAX_IMAGE_CANDIDATES
    content_mode: str = "html"

    render_timeout_ms: int = RENDER_TIMEOUT_MS
    render_retries: int = RENDER_RETRIES
    render_retry_backoff: float = RENDER_RETRY_BACKOFF
    headless: bool = True
    user_agent: Optional[str] = None

    llm_timeout: float = LLM_TIMEOUT
    openai_api_key: Optional[str] = field(default=None, repr=False)

    output_path: str = OUTPUT_PATH
    workers: int = DEFAULT_WORKERS

    def __post_init__(self) -> None:
        if self.classifier_mode not in CLASSIFIER_MODES:
            raise ValueError(
                f"classifier_mode must be one of {list(CLASSIFIER_MODES)}, got {self.classifier_mode!r}"
            )
        if self.content_mode not in CONTENT_MODES:
            raise ValueError(
                f"content_mode must be one of {list(CONTENT_MODES)}, got {self.content_mode!r}"
            )
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Build settings from environment variables (after loading .env).

        Args:
            dotenv_path: Optional explicit .env path (default: search upwards from cwd)

        Returns:
            Settings instance

        Raises:
            ValueError: If an enumerated setting has an unknown value
        """
        load_dotenv(dotenv_path=dotenv_path)

        return cls(
            classifier_model=os.getenv("PAGESIFT_CLASSIFIER_MODEL", DEFAULT_MODEL),
            extractor_model=os.getenv("PAGESIFT_EXTRACTOR_MODEL", DEFAULT_MODEL),
            image_filter_model=os.getenv("PAGESIFT_IMAGE_FILTER_MODEL", DEFAULT_MODEL),
            classifier_mode=_env_choice("PAGESIFT_CLASSIFIER_MODE", "llm", CLASSIFIER_MODES),
            classifier_min_confidence=_env_float(
                "PAGESIFT_CLASSIFIER_MIN_CONFIDENCE", CLASSIFIER_MIN_CONFIDENCE
            ),
            classifier_max_chars=_env_int("PAGESIFT_CLASSIFIER_MAX_CHARS", CLASSIFIER_MAX_CHARS, 1),
            extractor_max_chars=_env_int("PAGESIFT_EXTRACTOR_MAX_CHARS", EXTRACTOR_MAX_CHARS, 1),
            max_image_candidates=_env_int("PAGESIFT_MAX_IMAGE_CANDIDATES", MAX_IMAGE_CANDIDATES, 1),
            content_mode=_env_choice("PAGESIFT_CONTENT_MODE", "html", CONTENT_MODES),
            render_timeout_ms=_env_int("PAGESIFT_RENDER_TIMEOUT_MS", RENDER_TIMEOUT_MS, 1),
            render_retries=_env_int("PAGESIFT_RENDER_RETRIES", RENDER_RETRIES),
            headless=_env_bool("PAGESIFT_HEADLESS", True),
            user_agent=os.getenv("PAGESIFT_USER_AGENT") or None,
            llm_timeout=_env_float("PAGESIFT_LLM_TIMEOUT", LLM_TIMEOUT),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            output_path=os.getenv("PAGESIFT_OUTPUT_PATH", OUTPUT_PATH),
            workers=_env_int("PAGESIFT_WORKERS", DEFAULT_WORKERS, 1),
        )
