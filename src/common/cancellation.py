"""
Cooperative cancellation and progress reporting.

A CancellationToken is threaded through every stage and checked at stage
boundaries (quality analysis, each enhancement step, each OCR pass).
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from src.common.errors import PipelineCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and one pipeline run."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        """
        Abort the run if cancellation was requested.

        Args:
            stage: Name of the stage about to start (for diagnostics)

        Raises:
            PipelineCancelledError: If cancel() has been called
        """
        if self._event.is_set():
            logger.info(f"Cancellation requested, stopping before {stage}")
            raise PipelineCancelledError(stage)


def check_cancelled(token: Optional[CancellationToken], stage: str) -> None:
    """Checkpoint helper accepting an optional token."""
    if token is not None:
        token.raise_if_cancelled(stage)


@dataclass(frozen=True)
class ProgressEvent:
    """Single progress emission: human-readable status plus fraction done."""

    status: str
    progress: float


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressReporter:
    """
    Wraps a progress callback and keeps emitted progress monotonic.

    Values are clamped to [0, 1] and never go below the previous emission.
    A missing callback turns every report into a no-op.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._last = 0.0

    @property
    def last_progress(self) -> float:
        return self._last

    def report(self, status: str, progress: float) -> None:
        value = max(self._last, min(1.0, max(0.0, float(progress))))
        self._last = value
        logger.debug(f"Progress {value:.2f}: {status}")
        if self._callback is not None:
            self._callback(ProgressEvent(status=status, progress=value))
