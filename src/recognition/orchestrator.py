"""Multi-pass recognition orchestrator.

Runs the OCR engine once per configured pass, strictly sequentially, and
selects the best result:

    score = engine_confidence + (long_text_bonus if len(text) > long_text_length)

The highest score wins; ties go to the earliest pass. A pass that raises or
returns blank text is recorded and skipped. The orchestrator fails only when
no pass produced text (AllPassesFailedError) or the wall-clock budget ran out
before any pass succeeded (RecognitionTimeoutError).

Example:
    >>> orchestrator = RecognitionOrchestrator(engine, config.recognition)
    >>> result = orchestrator.run(enhanced)
    >>> print(result.selected.config_name, result.selected.merged_confidence)
"""

import asyncio
import inspect
import logging
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from src.common.cancellation import (
    CancellationToken,
    ProgressReporter,
    check_cancelled,
)
from src.common.errors import (
    AllPassesFailedError,
    OCRPassFailed,
    RecognitionTimeoutError,
)
from src.common.types import RasterImage
from src.pipeline.config_loader import RecognitionConfig
from src.recognition.engine import OCREngine
from src.recognition.types import (
    EngineOutput,
    OCRPassResult,
    PassConfig,
    RecognitionResult,
    SelectedText,
)

logger = logging.getLogger(__name__)


def _normalize_for_agreement(text: str) -> str:
    return " ".join(text.split()).lower()


def select_best(
    passes: Sequence[OCRPassResult],
    long_text_length: int = 50,
    long_text_bonus: float = 10.0,
    agreement_bonus: float = 5.0,
) -> Optional[SelectedText]:
    """Pick the best successful pass.

    Args:
        passes: Pass results in configuration order
        long_text_length: Length above which the bonus applies
        long_text_bonus: Bonus added to the score of long texts
        agreement_bonus: Added to the merged confidence when another
            successful pass produced the same normalized text

    Returns:
        SelectedText, or None if no pass succeeded
    """
    best: Optional[OCRPassResult] = None
    best_score = float("-inf")

    for result in passes:
        if not result.success:
            continue
        bonus = long_text_bonus if len(result.raw_text) > long_text_length else 0.0
        score = result.engine_confidence + bonus
        # Strict comparison keeps the earliest pass on ties
        if score > best_score:
            best, best_score = result, score

    if best is None:
        return None

    normalized = _normalize_for_agreement(best.raw_text)
    agreeing = any(
        p is not best and p.success and _normalize_for_agreement(p.raw_text) == normalized
        for p in passes
    )
    merged = best.engine_confidence + (agreement_bonus if agreeing else 0.0)

    return SelectedText(
        config_name=best.config_name,
        text=best.raw_text,
        engine_confidence=best.engine_confidence,
        score=best_score,
        merged_confidence=min(100.0, max(0.0, merged)),
    )


class RecognitionOrchestrator:
    """Runs every configured OCR pass and selects the best text.

    Attributes:
        engine: OCR engine (sync, or async for run_async)
        config: Recognition configuration
        passes: Ordered pass configurations
    """

    def __init__(
        self,
        engine: OCREngine,
        config: Optional[RecognitionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.config = config or RecognitionConfig()
        self._clock = clock
        self.passes: List[PassConfig] = [
            PassConfig(
                name=p.name,
                psm=p.psm,
                oem=p.oem,
                whitelist=p.whitelist,
                preserve_interword_spaces=p.preserve_interword_spaces,
                languages=self.config.languages,
            )
            for p in self.config.passes
        ]
        if not self.passes:
            raise ValueError("Recognition requires at least one pass configuration")

    def run(
        self,
        image: RasterImage,
        token: Optional[CancellationToken] = None,
        reporter: Optional[ProgressReporter] = None,
        progress_start: float = 0.2,
        progress_span: float = 0.6,
    ) -> RecognitionResult:
        """Run all passes against an enhanced image.

        Args:
            image: Enhanced image
            token: Optional cancellation token checked between passes
            reporter: Optional progress reporter
            progress_start: Progress value reported before the first pass
            progress_span: Progress range covered by all passes

        Returns:
            RecognitionResult with every pass and the selected text

        Raises:
            AllPassesFailedError: If no pass produced text
            RecognitionTimeoutError: If the budget ran out with no success
            PipelineCancelledError: If the token was cancelled
        """
        state = _RunState(self, image, reporter, progress_start, progress_span)

        for index, pass_config in enumerate(self.passes):
            if not state.begin_pass(index, pass_config, token):
                break
            started = time.perf_counter()
            try:
                output = self.engine.recognize(state.pixels, pass_config)
            except Exception as e:
                state.record_failure(pass_config, e, started)
                continue
            if inspect.isawaitable(output):
                if hasattr(output, "close"):
                    output.close()
                raise TypeError(
                    "Engine is asynchronous; use RecognitionOrchestrator.run_async"
                )
            state.record_output(pass_config, output, started)

        return state.finish()

    async def run_async(
        self,
        image: RasterImage,
        token: Optional[CancellationToken] = None,
        reporter: Optional[ProgressReporter] = None,
        progress_start: float = 0.2,
        progress_span: float = 0.6,
    ) -> RecognitionResult:
        """Async variant of run(); suspends only inside the engine call.

        Each awaited engine call is bounded by the budget left, so a slow
        pass is cut off at the deadline, recorded as failed, and marks the
        budget exhausted. A ThreadedEngine worker thread cannot be interrupted;
        its result is discarded.
        """
        state = _RunState(self, image, reporter, progress_start, progress_span)

        for index, pass_config in enumerate(self.passes):
            if not state.begin_pass(index, pass_config, token):
                break
            started = time.perf_counter()
            try:
                output = self.engine.recognize(state.pixels, pass_config)
                if inspect.isawaitable(output):
                    output = await asyncio.wait_for(output, timeout=state.remaining())
            except asyncio.TimeoutError:
                state.record_timeout(pass_config, started)
                continue
            except Exception as e:
                state.record_failure(pass_config, e, started)
                continue
            state.record_output(pass_config, output, started)

        return state.finish()


class _RunState:
    """Bookkeeping shared by the sync and async pass loops."""

    def __init__(
        self,
        orchestrator: RecognitionOrchestrator,
        image: RasterImage,
        reporter: Optional[ProgressReporter],
        progress_start: float,
        progress_span: float,
    ):
        self.orchestrator = orchestrator
        self.config = orchestrator.config
        self.pixels: np.ndarray = image.to_numpy()
        self.reporter = reporter
        self.progress_start = progress_start
        self.progress_span = progress_span
        self.results: List[OCRPassResult] = []
        self.budget_exhausted = False
        self.start = orchestrator._clock()
        self.wall_start = time.perf_counter()

    def remaining(self) -> float:
        """Seconds left in the recognition budget."""
        elapsed = self.orchestrator._clock() - self.start
        return max(0.0, self.config.max_total_seconds - elapsed)

    def begin_pass(
        self, index: int, pass_config: PassConfig, token: Optional[CancellationToken]
    ) -> bool:
        """Checkpoint before a pass. Returns False when the budget is spent."""
        check_cancelled(token, f"ocr pass {pass_config.name}")

        elapsed = self.orchestrator._clock() - self.start
        if self.budget_exhausted or elapsed >= self.config.max_total_seconds:
            if not any(r.success for r in self.results):
                raise RecognitionTimeoutError(
                    f"Recognition budget of {self.config.max_total_seconds:g}s "
                    f"exhausted after {len(self.results)} pass(es) without text",
                    passes=self.results,
                )
            self._skip_remaining(index)
            return False

        total = len(self.orchestrator.passes)
        if self.reporter is not None:
            self.reporter.report(
                f"Recognizing text ({pass_config.name}, pass {index + 1}/{total})",
                self.progress_start + index / total * self.progress_span,
            )
        return True

    def record_failure(
        self, pass_config: PassConfig, error: Exception, started: float
    ) -> None:
        failure = OCRPassFailed(pass_config.name, str(error) or type(error).__name__)
        logger.warning(failure.message, exc_info=True)
        self.results.append(
            OCRPassResult(
                config_name=pass_config.name,
                raw_text="",
                engine_confidence=0.0,
                success=False,
                error_message=failure.reason,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        )

    def record_timeout(self, pass_config: PassConfig, started: float) -> None:
        self.budget_exhausted = True
        failure = OCRPassFailed(
            pass_config.name,
            f"timed out at the {self.config.max_total_seconds:g}s recognition budget",
        )
        logger.warning(failure.message)
        self.results.append(
            OCRPassResult(
                config_name=pass_config.name,
                raw_text="",
                engine_confidence=0.0,
                success=False,
                error_message=failure.reason,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        )

    def record_output(
        self, pass_config: PassConfig, output: EngineOutput, started: float
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        text = (output.text or "").strip()
        confidence = min(100.0, max(0.0, float(output.confidence or 0.0)))

        if not text:
            failure = OCRPassFailed(pass_config.name, "engine returned no text")
            logger.warning(failure.message)
            self.results.append(
                OCRPassResult(
                    config_name=pass_config.name,
                    raw_text="",
                    engine_confidence=confidence,
                    success=False,
                    error_message=failure.reason,
                    duration_ms=duration_ms,
                )
            )
            return

        logger.info(
            f"OCR pass '{pass_config.name}': {len(text)} chars, "
            f"confidence={confidence:.1f} ({duration_ms:.0f}ms)"
        )
        self.results.append(
            OCRPassResult(
                config_name=pass_config.name,
                raw_text=text,
                engine_confidence=confidence,
                duration_ms=duration_ms,
            )
        )

    def finish(self) -> RecognitionResult:
        passes = tuple(self.results)
        selected = select_best(
            passes,
            long_text_length=self.config.long_text_length,
            long_text_bonus=self.config.long_text_bonus,
            agreement_bonus=self.config.agreement_bonus,
        )
        if selected is None and self.budget_exhausted:
            raise RecognitionTimeoutError(
                f"Recognition budget of {self.config.max_total_seconds:g}s "
                "exhausted without text",
                passes=passes,
            )
        if selected is None:
            raise AllPassesFailedError(
                f"All {len(passes)} OCR passes failed to produce text", passes=passes
            )

        if self.reporter is not None:
            self.reporter.report(
                "Text recognition complete", self.progress_start + self.progress_span
            )

        elapsed_ms = (time.perf_counter() - self.wall_start) * 1000
        logger.info(
            f"Selected OCR pass '{selected.config_name}' "
            f"(score={selected.score:.1f}, confidence={selected.merged_confidence:.1f})"
        )
        return RecognitionResult(
            passes=passes,
            selected=selected,
            elapsed_ms=elapsed_ms,
            budget_exhausted=self.budget_exhausted,
        )

    def _skip_remaining(self, index: int) -> None:
        self.budget_exhausted = True
        remaining = self.orchestrator.passes[index:]
        logger.warning(
            f"Recognition budget exhausted, skipping {len(remaining)} remaining pass(es)"
        )
        for pass_config in remaining:
            self.results.append(
                OCRPassResult(
                    config_name=pass_config.name,
                    raw_text="",
                    engine_confidence=0.0,
                    success=False,
                    error_message="skipped: recognition budget exhausted",
                )
            )
