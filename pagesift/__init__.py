"""Product page classification and extraction pipeline."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from pagesift.classifier import PageClassifier
from pagesift.config import Settings
from pagesift.csv_utils import CSV_COLUMNS, load_urls, write_records_to_csv
from pagesift.errors import (
    ExtractionParseError,
    ImageFilterParseError,
    PipelineError,
    RenderError,
)
from pagesift.extractor import FieldExtractor
from pagesift.image_filter import ImageFilter
from pagesift.llm import InferenceClient
from pagesift.models import (
    ClassificationResult,
    ExtractedFields,
    PipelineState,
    ProductRecord,
    RenderedPage,
)
from pagesift.pipeline import ExtractionPipeline
from pagesift.renderer import PageRenderer

__all__ = [
    # Version
    "__version__",
    # Config
    "Settings",
    # Models
    "ClassificationResult",
    "ExtractedFields",
    "PipelineState",
    "ProductRecord",
    "RenderedPage",
    # Errors
    "PipelineError",
    "RenderError",
    "ExtractionParseError",
    "ImageFilterParseError",
    # Components
    "InferenceClient",
    "PageRenderer",
    "PageClassifier",
    "FieldExtractor",
    "ImageFilter",
    "ExtractionPipeline",
    # Output
    "CSV_COLUMNS",
    "write_records_to_csv",
    "load_urls",
]
