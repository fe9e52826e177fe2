"""Merged pipeline output."""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from src.enhancement.types import EnhancementRecord
from src.extraction.types import ExtractionResult
from src.quality.types import QualityProfile
from src.recognition.types import RecognitionResult
from src.validation.types import ValidationReport


@dataclass(frozen=True)
class CertificateResult:
    """
    Extraction merged with validation plus the diagnostic trail.

    Attributes:
        extraction: Extracted fields (extraction-stage confidence)
        validation: Validation report for ``extraction``
        quality: Quality profile of the input image
        enhancement: Enhancement audit trail
        recognition: Every OCR pass and the selected text
        confidence: Final confidence in [0, 100]
        warnings: Non-fatal diagnostics (low yield, document likeness, ...)
        processing_time_ms: End-to-end wall-clock time
    """

    extraction: ExtractionResult
    validation: ValidationReport
    quality: QualityProfile
    enhancement: EnhancementRecord
    recognition: RecognitionResult
    confidence: float
    warnings: Tuple[str, ...] = field(default_factory=tuple)
    processing_time_ms: float = 0.0

    @property
    def image_quality(self) -> str:
        return self.quality.tier.value

    @property
    def enhancement_applied(self) -> Tuple[str, ...]:
        return self.enhancement.applied

    def to_dict(self, include_diagnostics: bool = True) -> Dict[str, Any]:
        """Serialize to the external output shape (camelCase keys)."""
        data = self.extraction.to_dict()
        data["confidence"] = round(self.confidence)
        data["imageQuality"] = self.image_quality
        data["enhancementApplied"] = list(self.enhancement_applied)
        data["validation"] = self.validation.to_dict()

        if include_diagnostics:
            selected = self.recognition.selected
            data["diagnostics"] = {
                "quality": self.quality.to_dict(),
                "enhancementSkipped": list(self.enhancement.skipped),
                "ocrPasses": [p.to_dict() for p in self.recognition.passes],
                "selectedPass": selected.config_name,
                "ocrConfidence": round(selected.merged_confidence, 2),
                "extractionConfidence": round(self.extraction.confidence),
                "budgetExhausted": self.recognition.budget_exhausted,
                "warnings": list(self.warnings),
                "processingTimeMs": round(self.processing_time_ms, 1),
            }
        return data
