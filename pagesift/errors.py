"""Exceptions raised inside the extraction pipeline.

Only ``RenderError`` and unexpected exceptions reach a record as a visible
error. The two parse errors are raised and absorbed inside their stage.
"""

__all__ = [
    "PipelineError",
    "RenderError",
    "ExtractionParseError",
    "ImageFilterParseError",
]


class PipelineError(Exception):
    """Base class for pipeline errors."""
    pass


class RenderError(PipelineError):
    """Raised when a page cannot be loaded (timeout, navigation, browser failure)."""
    pass


class ExtractionParseError(PipelineError):
    """Raised when the field extraction response is empty or malformed."""
    pass


class ImageFilterParseError(PipelineError):
    """Raised when the image filter response is empty or malformed."""
    pass
