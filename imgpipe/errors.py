"""Exception hierarchy for the image pipeline.

ImageProcessingError subclasses are retried and then caught per image, so one
bad file never stops the batch. FatalError subclasses abort the whole run.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by imgpipe."""


class ImageProcessingError(PipelineError):
    """A failure scoped to a single source image."""


class AnalysisError(ImageProcessingError):
    """The image could not be read or decoded."""


class OptimizationError(ImageProcessingError):
    """A transform or encode step failed while building a variant."""


class UploadError(ImageProcessingError):
    """The media host rejected the upload or returned no URL."""


class FatalError(PipelineError):
    """A failure that aborts the run."""


class StateIOError(FatalError):
    """The mapping store or a report could not be read or written."""
