"""Data structures for the Validation & Correction Engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from src.extraction.types import FIELD_KEYS


class FieldStatus(Enum):
    """
    Per-field validation state.

    Unchecked → Valid | Invalid → [CorrectionProposed]. Accepting or
    rejecting a proposed correction is the caller's decision.
    """

    UNCHECKED = "unchecked"
    VALID = "valid"
    INVALID = "invalid"
    CORRECTION_PROPOSED = "correction_proposed"


@dataclass(frozen=True)
class FieldCheck:
    """
    Validation outcome for one field.

    Attributes:
        status: Final state of the field
        reason: Why the field is invalid (None when valid)
        proposed_value: Suggested replacement when a correction exists
    """

    status: FieldStatus
    reason: Optional[str] = None
    proposed_value: Any = None


@dataclass(frozen=True)
class ValidationReport:
    """
    Result of validating an ExtractionResult.

    Attributes:
        is_valid: True iff there are no errors and confidence >= threshold
        confidence: Validation confidence in [0, 100]
        errors: Hard errors
        suggestions: Soft findings and hints
        corrected_fields: Patch of proposed values keyed by attribute name;
            ``scores`` holds only the corrected skills
        field_checks: Per-field state
    """

    is_valid: bool
    confidence: float
    errors: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()
    corrected_fields: Dict[str, Any] = field(default_factory=dict)
    field_checks: Dict[str, FieldCheck] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys."""
        corrected = {
            FIELD_KEYS.get(attr, attr): value
            for attr, value in self.corrected_fields.items()
        }
        return {
            "isValid": self.is_valid,
            "confidence": round(self.confidence),
            "errors": list(self.errors),
            "suggestions": list(self.suggestions),
            "correctedFields": corrected,
        }


@dataclass
class ReportBuilder:
    """Mutable accumulator used while a report is being built."""

    confidence: float = 100.0
    errors: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    corrected_fields: Dict[str, Any] = field(default_factory=dict)
    field_checks: Dict[str, FieldCheck] = field(default_factory=dict)

    def error(self, message: str, penalty: float = 0.0) -> None:
        self.errors.append(message)
        self.confidence -= penalty

    def suggest(self, message: str, penalty: float = 0.0) -> None:
        self.suggestions.append(message)
        self.confidence -= penalty

    def mark(
        self,
        field_name: str,
        status: FieldStatus,
        reason: Optional[str] = None,
        proposed_value: Any = None,
    ) -> None:
        self.field_checks[field_name] = FieldCheck(status, reason, proposed_value)

    def propose(self, field_name: str, value: Any, reason: str) -> None:
        self.corrected_fields[field_name] = value
        self.mark(field_name, FieldStatus.CORRECTION_PROPOSED, reason, value)

    def propose_score(self, skill: str, value: float, reason: str) -> None:
        scores = self.corrected_fields.setdefault("scores", {})
        scores[skill] = value
        self.mark(f"scores.{skill}", FieldStatus.CORRECTION_PROPOSED, reason, value)
