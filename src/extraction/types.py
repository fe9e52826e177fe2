"""Data structures for the Field Extraction Engine."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from src.extraction.rules import CertificateType

# Attribute name → external (camelCase) key
FIELD_KEYS = {
    "full_name": "fullName",
    "date_of_birth": "dateOfBirth",
    "certificate_number": "certificateNumber",
    "exam_date": "examDate",
    "issue_date": "issueDate",
    "issuing_organization": "issuingOrganization",
    "certificate_type": "certificateType",
    "scores": "scores",
    "raw_text": "rawText",
    "confidence": "confidence",
}


@dataclass(frozen=True)
class ExtractionResult:
    """
    Structured fields extracted from recognized text.

    Absent fields are None, never a placeholder string.

    Attributes:
        full_name: Candidate name
        date_of_birth: DD/MM/YYYY when parseable, raw text otherwise
        certificate_number: Upper-cased certificate / form number
        exam_date: DD/MM/YYYY when parseable, raw text otherwise
        issue_date: DD/MM/YYYY when parseable, raw text otherwise
        issuing_organization: Canonical organization name
        certificate_type: Detected (or hinted) type, None if unknown
        scores: skill → value, clamped to the type's valid range
        raw_text: Recognized text before cleaning
        confidence: Extraction confidence in [0, 100]
    """

    full_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    certificate_number: Optional[str] = None
    exam_date: Optional[str] = None
    issue_date: Optional[str] = None
    issuing_organization: Optional[str] = None
    certificate_type: Optional[CertificateType] = None
    scores: Dict[str, float] = field(default_factory=dict)
    raw_text: str = ""
    confidence: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "confidence", min(100.0, max(0.0, float(self.confidence))))
        object.__setattr__(self, "scores", dict(self.scores))

    @property
    def type_name(self) -> str:
        """Certificate type as a string ("" when unknown)."""
        return self.certificate_type.value if self.certificate_type else ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys; absent optional fields are omitted."""
        data: Dict[str, Any] = {}
        for attr, key in FIELD_KEYS.items():
            value = getattr(self, attr)
            if attr == "certificate_type":
                data[key] = self.type_name
            elif attr == "scores":
                data[key] = dict(value)
            elif attr == "confidence":
                data[key] = round(value)
            elif value is not None:
                data[key] = value
        return data


@dataclass(frozen=True)
class TypeDetection:
    """Certificate type detection outcome with per-type keyword scores."""

    certificate_type: Optional[CertificateType]
    score: float
    scores: Dict[CertificateType, float] = field(default_factory=dict)
    matched_keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NameCandidate:
    """A name proposed by one extraction strategy."""

    name: str
    strategy: str
    strategy_confidence: float
    quality: int

    @property
    def combined_score(self) -> float:
        return self.strategy_confidence * 100 + self.quality


@dataclass(frozen=True)
class ExtractedDates:
    """Dates assigned to their roles (DD/MM/YYYY when parseable)."""

    date_of_birth: Optional[str] = None
    exam_date: Optional[str] = None
    issue_date: Optional[str] = None
