"""Per-URL extraction pipeline and batch runner.

Each URL goes through Rendering → Classifying → (Extracting → Filtering)
and ends with exactly one ProductRecord. Nothing raised inside a run
escapes ``process_url``: failures become records with ``error`` set, so a
batch always produces one row per input URL.
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from pagesift.classifier import PageClassifier
from pagesift.config import Settings
from pagesift.content import prepare_content
from pagesift.errors import RenderError
from pagesift.extractor import FieldExtractor
from pagesift.image_filter import ImageFilter
from pagesift.llm import InferenceClient
from pagesift.logging_config import get_logger, log_pipeline_event
from pagesift.models import NOT_PRODUCT_PAGE_ERROR, ExtractedFields, PipelineState, ProductRecord
from pagesift.renderer import PageRenderer
from pagesift.timing import TimingTracker

__all__ = ["ExtractionPipeline", "summarize_records"]

logger = get_logger("pipeline")


def summarize_records(records: Iterable[ProductRecord]) -> Counter:
    """Count records by outcome: products, not_product, failed."""
    counts: Counter = Counter(products=0, not_product=0, failed=0)
    for record in records:
        if record.is_product_page:
            counts["products"] += 1
        elif record.error == NOT_PRODUCT_PAGE_ERROR:
            counts["not_product"] += 1
        else:
            counts["failed"] += 1
    return counts


class ExtractionPipeline:
    """Sequence render, classify, extract and filter for each URL."""

    def __init__(
        self,
        renderer: PageRenderer,
        classifier: PageClassifier,
        extractor: FieldExtractor,
        image_filter: ImageFilter,
        content_mode: str = "html",
    ):
        self.renderer = renderer
        self.classifier = classifier
        self.extractor = extractor
        self.image_filter = image_filter
        self.content_mode = content_mode

    @classmethod
    def from_settings(cls, settings: Settings, client: Any = None) -> "ExtractionPipeline":
        """Wire all stages from one Settings object.

        Args:
            settings: Run configuration
            client: Inference client to share between stages (default: OpenAI-backed)
        """
        if client is None:
            client = InferenceClient(
                api_key=settings.openai_api_key,
                default_model=settings.extractor_model,
                timeout=settings.llm_timeout,
            )

        return cls(
            renderer=PageRenderer(
                timeout_ms=settings.render_timeout_ms,
                headless=settings.headless,
                retries=settings.render_retries,
                retry_backoff=settings.render_retry_backoff,
                user_agent=settings.user_agent,
            ),
            classifier=PageClassifier(
                client,
                model=settings.classifier_model,
                prompt=settings.classifier_prompt,
                max_chars=settings.classifier_max_chars,
                mode=settings.classifier_mode,
                min_confidence=settings.classifier_min_confidence,
            ),
            extractor=FieldExtractor(
                client,
                model=settings.extractor_model,
                prompt=settings.extractor_prompt,
                max_chars=settings.extractor_max_chars,
            ),
            image_filter=ImageFilter(
                client,
                model=settings.image_filter_model,
                prompt=settings.image_filter_prompt,
                max_candidates=settings.max_image_candidates,
            ),
            content_mode=settings.content_mode,
        )

    def process_url(self, url: str) -> ProductRecord:
        """Run all stages for one URL.

        Returns:
            ProductRecord; never raises for failures inside the run
        """
        timer = TimingTracker()
        state = PipelineState.RENDERING

        try:
            with timer.measure("render"):
                page = self.renderer.render(url)
        except RenderError as e:
            return self._failed(url, f"Render error: {e}", state, timer)
        except Exception as e:
            logger.exception(f"Unexpected error rendering {url}")
            return self._failed(url, f"Render error: {e}", state, timer)

        try:
            content = prepare_content(
                page.html,
                max(self.classifier.max_chars, self.extractor.max_chars),
                self.content_mode,
            )

            state = PipelineState.CLASSIFYING
            with timer.measure("classify"):
                classification = self.classifier.classify(content, url=url)

            if not classification:
                record = ProductRecord.not_product(url)
                self._complete(record, timer, page_type=classification.page_type)
                return record

            state = PipelineState.EXTRACTING
            with timer.measure("extract"):
                fields = self.extractor.extract(url, content)

            state = PipelineState.FILTERING
            with timer.measure("filter_images"):
                images = self._filter_images(url, fields, page.image_urls)

            record = ProductRecord.from_fields(url, fields, images)
            self._complete(record, timer, page_type=classification.page_type)
            return record

        except Exception as e:
            logger.debug(f"Pipeline failure for {url}", exc_info=True)
            return self._failed(url, f"Error: {e}", state, timer)

    def run(self, urls: Iterable[str], workers: int = 1) -> List[ProductRecord]:
        """Process a batch of URLs.

        Args:
            urls: Input URLs, in output order
            workers: Number of URLs processed concurrently (1 = sequential)

        Returns:
            One ProductRecord per input URL, in input order
        """
        url_list = list(urls)
        logger.info(f"Processing {len(url_list)} URL(s) with {workers} worker(s)")

        if workers <= 1 or len(url_list) <= 1:
            records = []
            for i, url in enumerate(url_list, 1):
                logger.info(f"[{i}/{len(url_list)}] {url}")
                records.append(self.process_url(url))
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                # map() yields results in submission order
                records = list(executor.map(self.process_url, url_list))

        counts = summarize_records(records)
        log_pipeline_event(
            "batch_complete",
            {
                "message": f"Batch complete: {counts['products']} product(s), "
                           f"{counts['not_product']} non-product page(s), {counts['failed']} failure(s)",
                "total": len(records),
                **counts,
            },
        )
        return records

    def _filter_images(self, url: str, fields: ExtractedFields, candidates: Sequence[str]) -> Tuple[str, ...]:
        """Select product images; a backend failure here keeps the extracted fields."""
        try:
            return self.image_filter.filter_images(fields, candidates, url=url)
        except Exception as e:
            log_pipeline_event(
                "image_filter_failed",
                {
                    "message": f"Image selection failed for {url}, keeping fields without images: {e}",
                    "url": url,
                    "error": str(e),
                },
                level=logging.WARNING,
            )
            return ()

    def _complete(self, record: ProductRecord, timer: TimingTracker, page_type: str = "") -> None:
        log_pipeline_event(
            "url_complete",
            {
                "message": f"{record.url}: "
                           + (f"product '{record.name}' ({len(record.images)} images)"
                              if record.is_product_page else (record.error or "not a product page")),
                "url": record.url,
                "state": PipelineState.COMPLETE.value,
                "is_product_page": record.is_product_page,
                "page_type": page_type,
                "image_count": len(record.images),
                "timings": timer.get_all(),
                "total_seconds": timer.total(),
            },
        )

    def _failed(
        self,
        url: str,
        error: str,
        state: PipelineState,
        timer: Optional[TimingTracker] = None,
    ) -> ProductRecord:
        log_pipeline_event(
            "url_failed",
            {
                "message": f"{url}: failed while {state.value}: {error}",
                "url": url,
                "state": PipelineState.FAILED.value,
                "failed_stage": state.value,
                "error": error,
                "timings": timer.get_all() if timer else {},
                "total_seconds": timer.total() if timer else 0.0,
            },
            level=logging.WARNING,
        )
        return ProductRecord.failed(url, error)
