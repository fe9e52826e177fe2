"""
Validation & Correction Engine.

Checks extracted fields against per-certificate-type rules, proposes
corrections and recomputes confidence without mutating its input.
"""

from src.validation.corrections import (
    apply_corrections,
    correct_certificate_number,
    correct_name,
)
from src.validation.types import FieldCheck, FieldStatus, ValidationReport
from src.validation.validator import CertificateValidator

__all__ = [
    "CertificateValidator",
    "ValidationReport",
    "FieldCheck",
    "FieldStatus",
    "apply_corrections",
    "correct_certificate_number",
    "correct_name",
]
