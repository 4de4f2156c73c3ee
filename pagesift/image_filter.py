"""Selection of product images from a page's image candidates.

The extracted product identity is put into the prompt so the model judges
relevance against this specific product. Failure here never fails the
record; it only leaves the image list empty.
"""

import json
import logging
from typing import Any, List, Optional, Sequence, Tuple

from pagesift.config import DEFAULT_MODEL, MAX_IMAGE_CANDIDATES
from pagesift.errors import ImageFilterParseError
from pagesift.llm import parse_json_object
from pagesift.logging_config import get_logger, log_pipeline_event
from pagesift.models import ExtractedFields
from pagesift.prompts import IMAGE_FILTER_SYSTEM_PROMPT, format_image_filter_prompt
from pagesift.url_validation import clean_image_urls

__all__ = ["ImageFilter", "parse_relevant_images"]

logger = get_logger("image_filter")


def parse_relevant_images(raw: Optional[str], candidates: Sequence[str]) -> Tuple[str, ...]:
    """Parse the ``relevantImages`` array from an image filter response.

    Only URLs present in ``candidates`` are kept, in the order the model
    returned them, without duplicates.

    Raises:
        ImageFilterParseError: If the body is unusable or lacks a relevantImages list
    """
    parsed = parse_json_object(raw)
    if not parsed.ok:
        raise ImageFilterParseError(parsed.error)

    relevant = parsed.data.get("relevantImages")
    if relevant is None:
        raise ImageFilterParseError("response has no relevantImages field")
    if not isinstance(relevant, list):
        raise ImageFilterParseError(
            f"relevantImages should be a list, got {type(relevant).__name__}"
        )

    allowed = set(candidates)
    selected: List[str] = []
    for url in relevant:
        if not isinstance(url, str):
            continue
        url = url.strip()
        if url in allowed and url not in selected:
            selected.append(url)
    return tuple(selected)


class ImageFilter:
    """Keep only the images that depict the extracted product."""

    def __init__(
        self,
        client: Any,
        model: str = DEFAULT_MODEL,
        prompt: str = IMAGE_FILTER_SYSTEM_PROMPT,
        max_candidates: int = MAX_IMAGE_CANDIDATES,
    ):
        self.client = client
        self.model = model
        self.prompt = prompt
        self.max_candidates = max_candidates

    def filter_images(
        self,
        fields: ExtractedFields,
        candidate_urls: Sequence[str],
        url: Optional[str] = None,
    ) -> Tuple[str, ...]:
        """Select product images from candidate URLs.

        Args:
            fields: Extracted product identity
            candidate_urls: Image URLs found on the page, in DOM order
            url: Page URL, for logging only

        Returns:
            Relevant image URLs; empty if there are no candidates or the
            response could not be used
        """
        candidates = clean_image_urls(candidate_urls)
        if not candidates:
            logger.debug(f"No image candidates for {url or 'page'}, skipping image filter")
            return ()

        if len(candidates) > self.max_candidates:
            logger.debug(
                f"Offering {self.max_candidates} of {len(candidates)} image candidates for {url or 'page'}"
            )
            candidates = candidates[: self.max_candidates]

        system_prompt = format_image_filter_prompt(
            self.prompt,
            name=fields.name,
            description=fields.description,
            brand=fields.brand,
        )
        payload = json.dumps({"availableImages": candidates}, ensure_ascii=False)
        raw = self.client.infer(system_prompt, payload, self.model)

        try:
            images = parse_relevant_images(raw, candidates)
        except ImageFilterParseError as e:
            log_pipeline_event(
                "image_filter_parse_error",
                {
                    "message": f"Could not parse image selection for {url or 'page'}: {e}",
                    "url": url,
                    "error": str(e),
                    "raw": (raw or "")[:500],
                },
                level=logging.WARNING,
            )
            return ()

        logger.debug(f"Selected {len(images)} of {len(candidates)} images for {url or 'page'}")
        return images
