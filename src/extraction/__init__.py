"""
Field Extraction Engine.

Cleans recognized text and extracts certificate type, name, dates,
certificate number, per-skill scores and issuing organization, driven by a
single rule table keyed by certificate type.
"""

from src.extraction.detector import detect_certificate_type
from src.extraction.extractor import FieldExtractor, calculate_confidence
from src.extraction.fields import (
    derive_aggregate,
    extract_certificate_number,
    extract_dates,
    extract_name,
    extract_organization,
    extract_scores,
    name_quality,
    round_half,
)
from src.extraction.rules import RULES, CertificateRule, CertificateType, ScoreSpec
from src.extraction.text_cleaner import clean_text, find_dates, normalize_date, parse_date
from src.extraction.types import ExtractionResult, TypeDetection

__all__ = [
    "FieldExtractor",
    "ExtractionResult",
    "TypeDetection",
    "CertificateType",
    "CertificateRule",
    "ScoreSpec",
    "RULES",
    "calculate_confidence",
    "clean_text",
    "normalize_date",
    "parse_date",
    "find_dates",
    "detect_certificate_type",
    "extract_name",
    "extract_dates",
    "extract_certificate_number",
    "extract_scores",
    "extract_organization",
    "derive_aggregate",
    "name_quality",
    "round_half",
]
