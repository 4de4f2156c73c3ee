"""Product page classification.

Decides from a prefix of the rendered HTML whether a page represents a
single purchasable product. The pipeline skips extraction entirely when the
answer is negative.
"""

import logging
from typing import Any, Optional

from pagesift.config import CLASSIFIER_MAX_CHARS, DEFAULT_MODEL
from pagesift.content import truncate
from pagesift.llm import parse_json_object
from pagesift.logging_config import get_logger, log_pipeline_event
from pagesift.models import ClassificationResult
from pagesift.prompts import CLASSIFIER_SYSTEM_PROMPT

__all__ = ["PageClassifier"]

logger = get_logger("classifier")

PASSTHROUGH_RESULT = ClassificationResult(
    is_product_page=True,
    confidence=1.0,
    page_type="unchecked",
    reason="classification disabled (passthrough mode)",
)


def _to_confidence(value: Any, default: float) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return default
    return min(max(confidence, 0.0), 1.0)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return False


class PageClassifier:
    """Classify rendered pages as product / not product."""

    def __init__(
        self,
        client: Any,
        model: str = DEFAULT_MODEL,
        prompt: str = CLASSIFIER_SYSTEM_PROMPT,
        max_chars: int = CLASSIFIER_MAX_CHARS,
        mode: str = "llm",
        min_confidence: float = 0.0,
    ):
        """Initialize the classifier.

        Args:
            client: Inference client exposing ``infer(system_prompt, user_payload, model)``
            model: Model identifier
            prompt: System prompt
            max_chars: Content prefix length sent to the model
            mode: "llm" to ask the model, "passthrough" to accept every page
            min_confidence: Minimum confidence for a positive decision
        """
        self.client = client
        self.model = model
        self.prompt = prompt
        self.max_chars = max_chars
        self.mode = mode
        self.min_confidence = min_confidence

    def classify(self, content: str, url: Optional[str] = None) -> ClassificationResult:
        """Classify a page from its rendered content.

        Args:
            content: Rendered HTML (already prepared; truncated here)
            url: Page URL, for logging only

        Returns:
            ClassificationResult; truthy when the page is a product page
        """
        if self.mode == "passthrough":
            return PASSTHROUGH_RESULT

        raw = self.client.infer(self.prompt, truncate(content, self.max_chars), self.model)
        result = self._parse(raw)

        if result.is_product_page and result.confidence < self.min_confidence:
            result = ClassificationResult(
                is_product_page=False,
                confidence=result.confidence,
                page_type=result.page_type,
                reason=f"confidence {result.confidence:.2f} below threshold {self.min_confidence:.2f}",
            )

        log_pipeline_event(
            "classification",
            {
                "message": f"Classified {url or 'page'} as "
                           f"{'product' if result else 'not product'} ({result.page_type or 'unknown'})",
                "url": url,
                "is_product_page": result.is_product_page,
                "confidence": result.confidence,
                "page_type": result.page_type,
                "reason": result.reason,
            },
            level=logging.DEBUG,
        )
        return result

    def _parse(self, raw: str) -> ClassificationResult:
        parsed = parse_json_object(raw)
        if parsed.ok and "is_product_page" in parsed.data:
            data = parsed.data
            is_product = _to_bool(data.get("is_product_page"))
            return ClassificationResult(
                is_product_page=is_product,
                confidence=_to_confidence(data.get("confidence"), 1.0 if is_product else 0.0),
                page_type=str(data.get("page_type") or ""),
                reason=str(data.get("reason") or ""),
            )

        # Plain-text answers of the form "true" / "false: category page"
        text = (raw or "").strip().lower()
        logger.debug(f"Classifier returned unstructured answer: {text[:100]!r}")
        is_product = text.startswith("true") or (
            "true" in text and "false" not in text
        )
        return ClassificationResult(
            is_product_page=is_product,
            confidence=0.5 if text else 0.0,
            page_type="",
            reason=(raw or "").strip()[:200] or "empty classifier response",
        )
