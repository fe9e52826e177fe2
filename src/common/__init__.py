"""
Common types and utilities shared across all modules.

This module provides the raster image wrapper, error taxonomy, image decoding
and cancellation/progress primitives used by every pipeline stage.
"""

from src.common.cancellation import (
    CancellationToken,
    ProgressEvent,
    ProgressReporter,
    check_cancelled,
)
from src.common.errors import (
    AllPassesFailedError,
    CertificateOCRError,
    EnhancementSkipped,
    ImageDecodeError,
    LowYieldWarning,
    OCRPassFailed,
    PipelineCancelledError,
    RecognitionTimeoutError,
)
from src.common.image_io import decode_image
from src.common.types import RasterImage

__all__ = [
    "RasterImage",
    "decode_image",
    "CancellationToken",
    "ProgressEvent",
    "ProgressReporter",
    "check_cancelled",
    "CertificateOCRError",
    "ImageDecodeError",
    "EnhancementSkipped",
    "OCRPassFailed",
    "AllPassesFailedError",
    "RecognitionTimeoutError",
    "PipelineCancelledError",
    "LowYieldWarning",
]
