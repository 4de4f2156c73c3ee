"""Shared test fixtures: scripted inference backend and renderer fakes."""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from pagesift.classifier import PageClassifier
from pagesift.errors import RenderError
from pagesift.extractor import FieldExtractor
from pagesift.image_filter import ImageFilter
from pagesift.models import RenderedPage
from pagesift.pipeline import ExtractionPipeline

Response = Union[str, BaseException, Callable[[str, str], str]]


def stage_for_prompt(system_prompt: str) -> str:
    """Tell which stage issued a call from its system prompt."""
    if "relevantImages" in system_prompt:
        return "image_filter"
    if "is_product_page" in system_prompt:
        return "classifier"
    return "extractor"


class FakeInferenceClient:
    """Stands in for InferenceClient; returns scripted responses per stage."""

    def __init__(self, responses: Optional[Dict[str, Response]] = None):
        self.responses: Dict[str, Response] = dict(responses or {})
        self.calls: List[Tuple[str, str, str, Optional[str]]] = []
        self.schemas: Dict[str, Optional[Dict[str, Any]]] = {}

    def infer(
        self,
        system_prompt: str,
        user_payload: str,
        model: Optional[str] = None,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        stage = stage_for_prompt(system_prompt)
        self.calls.append((stage, system_prompt, user_payload, model))
        self.schemas[stage] = schema

        response = self.responses.get(stage, "")
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(system_prompt, user_payload)
        return response

    def calls_for(self, stage: str) -> List[Tuple[str, str, str, Optional[str]]]:
        return [call for call in self.calls if call[0] == stage]


class FakeRenderer:
    """Stands in for PageRenderer; maps URLs to pages or errors."""

    def __init__(self, pages: Optional[Dict[str, Union[RenderedPage, Exception]]] = None):
        self.pages = dict(pages or {})
        self.rendered: List[str] = []

    def render(self, url: str) -> RenderedPage:
        self.rendered.append(url)
        page = self.pages.get(url)
        if page is None:
            raise RenderError(f"Timed out after 60000ms loading {url}")
        if isinstance(page, Exception):
            raise page
        return page


PRODUCT_HTML = """<html><head><title>Widget | Acme Store</title>
<meta property="og:type" content="product"></head>
<body><h1>Widget</h1><span class="price">$9.99</span>
<p>A widget.</p><img src="https://example.com/img1.jpg"><img src="https://example.com/logo.png">
</body></html>"""

CATEGORY_HTML = """<html><head><title>All widgets</title></head>
<body><ul><li>Widget $9.99</li><li>Gadget $19.99</li></ul></body></html>"""


def classifier_json(is_product: bool, page_type: str = "product", confidence: float = 0.95) -> str:
    return json.dumps({
        "is_product_page": is_product,
        "page_type": page_type,
        "confidence": confidence,
        "reason": "test",
    })


WIDGET_FIELDS_JSON = json.dumps({
    "name": "Widget",
    "price": "$9.99",
    "description": "A widget.",
    "brand": "Acme",
})


@pytest.fixture
def product_page():
    return RenderedPage(
        url="https://example.com/product/42",
        html=PRODUCT_HTML,
        image_urls=("https://example.com/img1.jpg", "https://example.com/logo.png"),
    )


@pytest.fixture
def category_page():
    return RenderedPage(
        url="https://example.com/category",
        html=CATEGORY_HTML,
        image_urls=("https://example.com/banner.jpg",),
    )


@pytest.fixture
def fake_client():
    return FakeInferenceClient()


@pytest.fixture
def make_pipeline():
    """Build a pipeline from real stages wired to fakes."""

    def _make(
        pages: Dict[str, Any],
        responses: Dict[str, Response],
        classifier_mode: str = "llm",
    ) -> Tuple[ExtractionPipeline, FakeInferenceClient, FakeRenderer]:
        client = FakeInferenceClient(responses)
        renderer = FakeRenderer(pages)
        pipeline = ExtractionPipeline(
            renderer=renderer,
            classifier=PageClassifier(client, mode=classifier_mode),
            extractor=FieldExtractor(client),
            image_filter=ImageFilter(client),
        )
        return pipeline, client, renderer

    return _make
