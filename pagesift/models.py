"""Data models for the extraction pipeline."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

__all__ = [
    "NOT_PRODUCT_PAGE_ERROR",
    "PipelineState",
    "RenderedPage",
    "ClassificationResult",
    "ExtractedFields",
    "ProductRecord",
]

NOT_PRODUCT_PAGE_ERROR = "Not a product page"


class PipelineState(Enum):
    """Stages a single URL passes through."""

    RENDERING = "rendering"
    CLASSIFYING = "classifying"
    EXTRACTING = "extracting"
    FILTERING = "filtering"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderedPage:
    """Snapshot of a rendered page: full HTML plus <img> sources in DOM order."""

    url: str
    html: str
    image_urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of page classification.

    Truthiness follows ``is_product_page``, so callers that only care about
    the decision can use the result as a boolean.
    """

    is_product_page: bool
    confidence: float = 0.0
    page_type: str = ""
    reason: str = ""

    def __bool__(self) -> bool:
        return self.is_product_page


@dataclass(frozen=True)
class ExtractedFields:
    """Product attributes pulled from a page. Missing values are empty strings."""

    name: str = ""
    price: str = ""
    description: str = ""
    brand: str = ""

    def is_empty(self) -> bool:
        return not any((self.name, self.price, self.description, self.brand))


@dataclass(frozen=True)
class ProductRecord:
    """One output row. Exactly one record is produced per input URL."""

    url: str
    name: str = ""
    price: str = ""
    description: str = ""
    brand: str = ""
    images: Tuple[str, ...] = field(default_factory=tuple)
    is_product_page: bool = False
    error: Optional[str] = None

    @classmethod
    def failed(cls, url: str, error: str) -> "ProductRecord":
        """Fallback shape for any URL whose run could not complete."""
        return cls(url=url, is_product_page=False, error=error)

    @classmethod
    def not_product(cls, url: str) -> "ProductRecord":
        return cls(url=url, is_product_page=False, error=NOT_PRODUCT_PAGE_ERROR)

    @classmethod
    def from_fields(
        cls,
        url: str,
        fields: ExtractedFields,
        images: Iterable[str] = (),
    ) -> "ProductRecord":
        return cls(
            url=url,
            name=fields.name,
            price=fields.price,
            description=fields.description,
            brand=fields.brand,
            images=tuple(images),
            is_product_page=True,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dict (images as a list) for JSON serialization."""
        data = asdict(self)
        data["images"] = list(self.images)
        return data
