"""
Error taxonomy for the certificate OCR pipeline.

Fatal errors (ImageDecodeError, AllPassesFailedError, RecognitionTimeoutError,
PipelineCancelledError) propagate to the caller. Non-fatal conditions
(EnhancementSkipped, OCRPassFailed) are absorbed by the stage that raises them
and recorded in the result's diagnostic trail. LowYieldWarning is a warning
category issued through the ``warnings`` module.
"""

from typing import List, Optional, Sequence

DEFAULT_IMAGE_SUGGESTIONS = [
    "Use a higher resolution photo or scan (at least 1000 px on the short side)",
    "Make sure the certificate is evenly lit without glare or shadows",
    "Frame the whole certificate flat and straight, filling most of the image",
]


class CertificateOCRError(Exception):
    """
    Base class for all pipeline errors.

    Attributes:
        code: Stable error code (e.g., "CERT-E001")
        message: Technical description for logs
        user_message: Short message safe to show to end users
        suggestions: Actionable hints for the end user
    """

    code = "CERT-E000"
    default_user_message = "The certificate could not be processed."

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        suggestions: Optional[Sequence[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.user_message = user_message or self.default_user_message
        self.suggestions: List[str] = list(suggestions or [])

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "userMessage": self.user_message,
            "suggestions": list(self.suggestions),
        }


class ImageDecodeError(CertificateOCRError):
    """Input is missing, empty, corrupt or not a raster image."""

    code = "CERT-E001"
    default_user_message = "Could not read this image."

    def __init__(self, message: str, suggestions: Optional[Sequence[str]] = None):
        super().__init__(
            message,
            suggestions=suggestions
            if suggestions is not None
            else ["Upload a JPEG or PNG file that opens in an image viewer"]
            + DEFAULT_IMAGE_SUGGESTIONS,
        )


class EnhancementSkipped(CertificateOCRError):
    """An enhancement step was omitted; the pipeline continues without it."""

    code = "CERT-W001"

    def __init__(self, step: str, reason: str):
        super().__init__(f"{step} skipped: {reason}")
        self.step = step
        self.reason = reason


class OCRPassFailed(CertificateOCRError):
    """A single recognition pass raised or produced no text."""

    code = "CERT-W002"

    def __init__(self, config_name: str, reason: str):
        super().__init__(f"OCR pass '{config_name}' failed: {reason}")
        self.config_name = config_name
        self.reason = reason


class AllPassesFailedError(CertificateOCRError):
    """No recognition configuration produced usable text."""

    code = "CERT-E002"
    default_user_message = "Could not read any text in this image."

    def __init__(self, message: str, passes: Sequence = ()):
        super().__init__(message, suggestions=DEFAULT_IMAGE_SUGGESTIONS)
        self.passes = tuple(passes)


class RecognitionTimeoutError(CertificateOCRError):
    """The recognition wall-clock budget ran out before any pass succeeded."""

    code = "CERT-E003"
    default_user_message = "Reading this image took too long."

    def __init__(self, message: str, passes: Sequence = ()):
        super().__init__(
            message,
            suggestions=["Try a smaller or cleaner image"] + DEFAULT_IMAGE_SUGGESTIONS,
        )
        self.passes = tuple(passes)


class PipelineCancelledError(CertificateOCRError):
    """The caller cancelled the run; no partial result is produced."""

    code = "CERT-E004"
    default_user_message = "Processing was cancelled."

    def __init__(self, stage: str):
        super().__init__(f"Pipeline cancelled before stage: {stage}")
        self.stage = stage


class LowYieldWarning(UserWarning):
    """Recognized text is too short or lacks expected characters to be trusted."""
