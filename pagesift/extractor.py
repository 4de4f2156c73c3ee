"""Structured product field extraction.

Asks the model for exactly four fields (name, price, description, brand)
from a prefix of the rendered page. A missing or malformed response is not
an error for the record: every field then defaults to an empty string.
"""

import logging
from typing import Any, Dict, Optional

from pagesift.config import DEFAULT_MODEL, EXTRACTOR_MAX_CHARS
from pagesift.content import truncate
from pagesift.errors import ExtractionParseError
from pagesift.llm import parse_json_object
from pagesift.logging_config import get_logger, log_pipeline_event
from pagesift.models import ExtractedFields
from pagesift.prompts import EXTRACTOR_SYSTEM_PROMPT

__all__ = ["FieldExtractor", "FIELD_NAMES", "EXTRACTED_FIELDS_SCHEMA", "parse_extracted_fields"]

logger = get_logger("extractor")

FIELD_NAMES = ("name", "price", "description", "brand")

# Strict schema: the backend returns exactly these four string fields
EXTRACTED_FIELDS_SCHEMA = {
    "name": "product_fields",
    "schema": {
        "type": "object",
        "properties": {key: {"type": "string"} for key in FIELD_NAMES},
        "required": list(FIELD_NAMES),
        "additionalProperties": False,
    },
}


def _field_to_str(value: Any) -> str:
    """Normalize one field value; anything that is not text or a number is dropped."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return ""


def parse_extracted_fields(raw: Optional[str]) -> ExtractedFields:
    """Parse a field extraction response.

    Keys the model left out are filled with "" explicitly.

    Raises:
        ExtractionParseError: If the body is empty, not JSON, not an object, or
            carries none of the expected fields
    """
    parsed = parse_json_object(raw)
    if not parsed.ok:
        raise ExtractionParseError(parsed.error)

    data: Dict[str, Any] = parsed.data
    if not any(key in data for key in FIELD_NAMES):
        raise ExtractionParseError(f"no product fields in response (keys: {sorted(data)[:10]})")

    values = {key: _field_to_str(data.get(key, "")) for key in FIELD_NAMES}
    return ExtractedFields(**values)


class FieldExtractor:
    """Extract name, price, description and brand from a product page."""

    def __init__(
        self,
        client: Any,
        model: str = DEFAULT_MODEL,
        prompt: str = EXTRACTOR_SYSTEM_PROMPT,
        max_chars: int = EXTRACTOR_MAX_CHARS,
    ):
        self.client = client
        self.model = model
        self.prompt = prompt
        self.max_chars = max_chars

    def extract(self, url: str, content: str) -> ExtractedFields:
        """Extract product fields from page content.

        Args:
            url: Page URL (logging context)
            content: Rendered HTML (already prepared; truncated here)

        Returns:
            ExtractedFields; all empty strings if the response was unusable
        """
        raw = self.client.infer(
            self.prompt,
            truncate(content, self.max_chars),
            self.model,
            schema=EXTRACTED_FIELDS_SCHEMA,
        )

        try:
            fields = parse_extracted_fields(raw)
        except ExtractionParseError as e:
            log_pipeline_event(
                "extraction_parse_error",
                {
                    "message": f"Could not parse extracted fields for {url}: {e}",
                    "url": url,
                    "error": str(e),
                    "raw": (raw or "")[:500],
                },
                level=logging.WARNING,
            )
            return ExtractedFields()

        if fields.is_empty():
            logger.info(f"No product fields found on {url}")
        return fields
