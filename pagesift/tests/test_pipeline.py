"""Tests for the per-URL state machine and the batch runner."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from pagesift.classifier import PageClassifier
from pagesift.config import Settings
from pagesift.errors import RenderError
from pagesift.extractor import FieldExtractor
from pagesift.image_filter import ImageFilter
from pagesift.llm import InferenceClient
from pagesift.models import NOT_PRODUCT_PAGE_ERROR, ProductRecord, RenderedPage
from pagesift.pipeline import ExtractionPipeline, summarize_records
from pagesift.tests.conftest import (
    WIDGET_FIELDS_JSON,
    FakeInferenceClient,
    FakeRenderer,
    classifier_json,
    stage_for_prompt,
)

PRODUCT_URL = "https://example.com/product/42"
CATEGORY_URL = "https://example.com/category"


class TestScenarios:
    """End-to-end behavior for the two reference scenarios."""

    def test_category_page_is_not_a_product(self, make_pipeline, category_page):
        pipeline, client, _ = make_pipeline(
            {CATEGORY_URL: category_page},
            {"classifier": classifier_json(False, page_type="category")},
        )

        records = pipeline.run([CATEGORY_URL])

        assert records == [
            ProductRecord(
                url=CATEGORY_URL,
                name="",
                price="",
                description="",
                brand="",
                images=(),
                is_product_page=False,
                error="Not a product page",
            )
        ]
        # Short-circuit: no extraction or image calls
        assert [call[0] for call in client.calls] == ["classifier"]

    def test_product_page_merges_fields_and_images(self, make_pipeline, product_page):
        pipeline, client, _ = make_pipeline(
            {PRODUCT_URL: product_page},
            {
                "classifier": classifier_json(True),
                "extractor": WIDGET_FIELDS_JSON,
                "image_filter": json.dumps({"relevantImages": ["https://example.com/img1.jpg"]}),
            },
        )

        records = pipeline.run([PRODUCT_URL])

        assert records == [
            ProductRecord(
                url=PRODUCT_URL,
                name="Widget",
                price="$9.99",
                description="A widget.",
                brand="Acme",
                images=("https://example.com/img1.jpg",),
                is_product_page=True,
                error=None,
            )
        ]
        assert [call[0] for call in client.calls] == ["classifier", "extractor", "image_filter"]


class TestFailurePolicy:
    """Failures become records; the batch keeps going."""

    def test_render_failure_produces_failed_record(self, make_pipeline, product_page):
        pipeline, client, _ = make_pipeline(
            {PRODUCT_URL: product_page, "https://example.com/down": RenderError("net::ERR_NAME_NOT_RESOLVED")},
            {
                "classifier": classifier_json(True),
                "extractor": WIDGET_FIELDS_JSON,
                "image_filter": json.dumps({"relevantImages": []}),
            },
        )

        records = pipeline.run(["https://example.com/down", PRODUCT_URL])

        failed, ok = records
        assert failed.url == "https://example.com/down"
        assert failed.is_product_page is False
        assert failed.error.startswith("Render error")
        assert "ERR_NAME_NOT_RESOLVED" in failed.error
        assert (failed.name, failed.price, failed.description, failed.brand) == ("", "", "", "")
        assert failed.images == ()

        assert ok.is_product_page is True
        assert ok.name == "Widget"

    def test_unexpected_exception_after_render_is_caught(self, make_pipeline, product_page):
        pipeline, _, _ = make_pipeline(
            {PRODUCT_URL: product_page},
            {
                "classifier": classifier_json(True),
                "extractor": RuntimeError("rate limit exceeded"),
            },
        )

        record = pipeline.process_url(PRODUCT_URL)

        assert record == ProductRecord.failed(PRODUCT_URL, "Error: rate limit exceeded")
        assert record.is_product_page is False
        assert record.images == ()

    def test_unexpected_renderer_exception_is_caught(self, make_pipeline):
        pipeline, _, _ = make_pipeline({PRODUCT_URL: ValueError("boom")}, {})

        record = pipeline.process_url(PRODUCT_URL)

        assert record.is_product_page is False
        assert record.error == "Render error: boom"

    def test_invalid_extraction_body_defaults_to_empty_fields(self, make_pipeline, product_page):
        pipeline, _, _ = make_pipeline(
            {PRODUCT_URL: product_page},
            {
                "classifier": classifier_json(True),
                "extractor": "not json at all",
                "image_filter": json.dumps({"relevantImages": ["https://example.com/img1.jpg"]}),
            },
        )

        record = pipeline.process_url(PRODUCT_URL)

        assert record.is_product_page is True
        assert record.error is None
        assert (record.name, record.price, record.description, record.brand) == ("", "", "", "")
        assert record.images == ("https://example.com/img1.jpg",)

    def test_invalid_image_filter_body_leaves_images_empty(self, make_pipeline, product_page):
        pipeline, _, _ = make_pipeline(
            {PRODUCT_URL: product_page},
            {
                "classifier": classifier_json(True),
                "extractor": WIDGET_FIELDS_JSON,
                "image_filter": "{broken",
            },
        )

        record = pipeline.process_url(PRODUCT_URL)

        assert record.is_product_page is True
        assert record.error is None
        assert record.name == "Widget"
        assert record.images == ()

    def test_image_filter_backend_error_keeps_fields(self, make_pipeline, product_page):
        pipeline, _, _ = make_pipeline(
            {PRODUCT_URL: product_page},
            {
                "classifier": classifier_json(True),
                "extractor": WIDGET_FIELDS_JSON,
                "image_filter": TimeoutError("request timed out"),
            },
        )

        record = pipeline.process_url(PRODUCT_URL)

        assert record.is_product_page is True
        assert record.error is None
        assert (record.name, record.brand) == ("Widget", "Acme")
        assert record.images == ()

    def test_image_filter_refusal_keeps_fields(self, product_page):
        def create(model, instructions, input, text):
            stage = stage_for_prompt(instructions)
            if stage == "image_filter":
                part = SimpleNamespace(type="refusal", refusal="I can't help with that.")
            else:
                body = classifier_json(True) if stage == "classifier" else WIDGET_FIELDS_JSON
                part = SimpleNamespace(type="output_text", text=body)
            return SimpleNamespace(output=[SimpleNamespace(type="message", content=[part])])

        openai_client = MagicMock()
        openai_client.responses.create.side_effect = create
        client = InferenceClient(client=openai_client)
        pipeline = ExtractionPipeline(
            renderer=FakeRenderer({PRODUCT_URL: product_page}),
            classifier=PageClassifier(client),
            extractor=FieldExtractor(client),
            image_filter=ImageFilter(client),
        )

        record = pipeline.process_url(PRODUCT_URL)

        assert record == ProductRecord(
            url=PRODUCT_URL,
            name="Widget",
            price="$9.99",
            description="A widget.",
            brand="Acme",
            images=(),
            is_product_page=True,
        )
        assert openai_client.responses.create.call_count == 3

    def test_keyboard_interrupt_is_not_swallowed(self, make_pipeline, product_page):
        pipeline, _, _ = make_pipeline(
            {PRODUCT_URL: product_page},
            {"classifier": KeyboardInterrupt()},
        )

        with pytest.raises(KeyboardInterrupt):
            pipeline.process_url(PRODUCT_URL)


class TestBatch:
    """Batch-level properties."""

    URLS = [
        "https://example.com/product/1",
        "https://example.com/missing",
        "https://example.com/category",
        "https://example.com/product/2",
        "https://example.com/product/1",
    ]

    def _pages(self, product_page, category_page):
        return {
            "https://example.com/product/1": RenderedPage("https://example.com/product/1", product_page.html, product_page.image_urls),
            "https://example.com/product/2": RenderedPage("https://example.com/product/2", product_page.html, product_page.image_urls),
            "https://example.com/category": category_page,
        }

    def _classify(self, system_prompt, payload):
        return classifier_json("All widgets" not in payload)

    @pytest.mark.parametrize("workers", [1, 3])
    def test_one_record_per_url_in_input_order(self, make_pipeline, product_page, category_page, workers):
        pipeline, _, _ = make_pipeline(
            self._pages(product_page, category_page),
            {
                "classifier": self._classify,
                "extractor": WIDGET_FIELDS_JSON,
                "image_filter": json.dumps({"relevantImages": ["https://example.com/img1.jpg"]}),
            },
        )

        records = pipeline.run(self.URLS, workers=workers)

        assert len(records) == len(self.URLS)
        assert [r.url for r in records] == self.URLS
        assert [r.is_product_page for r in records] == [True, False, False, True, True]
        assert records[1].error.startswith("Render error")
        assert records[2].error == NOT_PRODUCT_PAGE_ERROR

    def test_empty_batch(self, make_pipeline):
        pipeline, _, renderer = make_pipeline({}, {})
        assert pipeline.run([]) == []
        assert renderer.rendered == []

    def test_rerun_with_deterministic_backend_is_identical(self, make_pipeline, product_page, category_page):
        pipeline, _, _ = make_pipeline(
            self._pages(product_page, category_page),
            {
                "classifier": self._classify,
                "extractor": WIDGET_FIELDS_JSON,
                "image_filter": json.dumps({"relevantImages": ["https://example.com/img1.jpg"]}),
            },
        )

        assert pipeline.run(self.URLS) == pipeline.run(self.URLS)

    def test_passthrough_mode_skips_classifier_call(self, make_pipeline, category_page):
        pipeline, client, _ = make_pipeline(
            {CATEGORY_URL: category_page},
            {
                "extractor": json.dumps({"name": "", "price": "", "description": "", "brand": ""}),
                "image_filter": json.dumps({"relevantImages": []}),
            },
            classifier_mode="passthrough",
        )

        record = pipeline.process_url(CATEGORY_URL)

        assert record.is_product_page is True
        assert client.calls_for("classifier") == []
        assert len(client.calls_for("extractor")) == 1


class TestSummarizeRecords:
    def test_counts_by_outcome(self):
        records = [
            ProductRecord(url="a", name="x", is_product_page=True),
            ProductRecord.not_product("b"),
            ProductRecord.failed("c", "Render error: timeout"),
            ProductRecord.failed("d", "Error: boom"),
        ]

        counts = summarize_records(records)

        assert counts["products"] == 1
        assert counts["not_product"] == 1
        assert counts["failed"] == 2


class TestFromSettings:
    def test_stages_are_configured_from_settings(self):
        settings = Settings(
            classifier_model="gpt-classify",
            render_timeout_ms=5000,
            user_agent="pagesift-test/3.0",
            max_image_candidates=20,
        )
        client = FakeInferenceClient()

        pipeline = ExtractionPipeline.from_settings(settings, client=client)

        assert pipeline.renderer.user_agent == "pagesift-test/3.0"
        assert pipeline.renderer.timeout_ms == 5000
        assert pipeline.classifier.model == "gpt-classify"
        assert pipeline.classifier.client is client
        assert pipeline.image_filter.max_candidates == 20


class TestCompletionEvents:
    def test_url_complete_carries_total_time(self, make_pipeline, category_page):
        pipeline, _, _ = make_pipeline(
            {CATEGORY_URL: category_page},
            {"classifier": classifier_json(False, page_type="category")},
        )

        with patch("pagesift.pipeline.log_pipeline_event") as log_event:
            pipeline.process_url(CATEGORY_URL)

        event_type, data = log_event.call_args.args[:2]
        assert event_type == "url_complete"
        assert set(data["timings"]) == {"render", "classify"}
        assert data["total_seconds"] >= 0
