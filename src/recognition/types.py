"""Data structures for the Recognition Orchestrator."""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class PassConfig:
    """
    One OCR configuration variant.

    Attributes:
        name: Pass identifier (e.g., "automatic-segmentation")
        psm: Page segmentation mode: how the engine partitions the image
        oem: Engine mode (None = engine default)
        whitelist: Optional character whitelist
        preserve_interword_spaces: Keep runs of spaces between words
        languages: Language packs joined with '+'
    """

    name: str
    psm: int
    oem: Optional[int] = None
    whitelist: Optional[str] = None
    preserve_interword_spaces: bool = False
    languages: str = "eng+vie"


@dataclass(frozen=True)
class EngineOutput:
    """Raw engine answer: recognized text and engine confidence (0-100)."""

    text: str
    confidence: float


@dataclass(frozen=True)
class OCRPassResult:
    """
    Outcome of one recognition pass.

    Attributes:
        config_name: Name of the PassConfig used
        raw_text: Recognized text ("" when the pass failed)
        engine_confidence: Engine-reported confidence clamped to [0, 100]
        success: False if the engine raised, returned blank text or was skipped
        error_message: Failure reason for unsuccessful passes
        duration_ms: Wall-clock time spent in the engine call
    """

    config_name: str
    raw_text: str
    engine_confidence: float
    success: bool = True
    error_message: Optional[str] = None
    duration_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "configName": self.config_name,
            "rawText": self.raw_text,
            "engineConfidence": round(self.engine_confidence, 2),
            "success": self.success,
            "error": self.error_message,
            "durationMs": round(self.duration_ms, 1),
        }


@dataclass(frozen=True)
class SelectedText:
    """
    Best pass chosen by the selection rule.

    Attributes:
        config_name: Winning pass
        text: Winning raw text
        engine_confidence: Winning pass's engine confidence
        score: Selection score (confidence + long-text bonus)
        merged_confidence: Confidence after cross-pass agreement bonus
    """

    config_name: str
    text: str
    engine_confidence: float
    score: float
    merged_confidence: float


@dataclass(frozen=True)
class RecognitionResult:
    """All passes plus the selected text; the pass list is never pruned."""

    passes: Tuple[OCRPassResult, ...]
    selected: SelectedText
    elapsed_ms: float
    budget_exhausted: bool = False

    @property
    def successful_passes(self) -> Tuple[OCRPassResult, ...]:
        return tuple(p for p in self.passes if p.success)
