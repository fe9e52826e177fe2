"""
Field Extraction Engine.

Turns raw recognized text into an ExtractionResult:

1. Clean the text (idempotent normalization)
2. Detect the certificate type (a valid caller hint takes precedence)
3. Extract name, dates, certificate number, scores, organization
4. Score extraction confidence from the fields found

Example:
    >>> extractor = FieldExtractor()
    >>> result = extractor.extract(ocr_text)
    >>> print(result.certificate_type, result.scores, result.confidence)
"""

import logging
from dataclasses import replace
from typing import Optional, Union

from src.extraction.detector import detect_certificate_type
from src.extraction.fields import (
    extract_certificate_number,
    extract_dates,
    extract_name,
    extract_organization,
    extract_scores,
)
from src.extraction.rules import RULES, CertificateType
from src.extraction.text_cleaner import clean_text
from src.extraction.types import ExtractionResult
from src.pipeline.config_loader import ExtractionConfig

logger = logging.getLogger(__name__)

# Points per present field; they add up to 100
FIELD_WEIGHTS = {
    "certificate_type": 20,
    "full_name": 25,
    "certificate_number": 20,
    "exam_date": 10,
    "date_of_birth": 10,
    "scores": 15,
}
NAME_WORD_COUNT_BONUS = 5
MANY_SCORES_BONUS = 10
SOME_SCORES_BONUS = 5
KNOWN_TYPE_BONUS = 5


def calculate_confidence(
    result: ExtractionResult, cap: float = 95.0, unknown_type_cap: float = 20.0
) -> float:
    """
    Extraction confidence from the fields present.

    Weighted sum of present fields (type 20, name 25, certificate number 20,
    exam date 10, date of birth 10, scores 15) plus plausibility bonuses:
    +5 for a 2-4 word name, +10 for four or more scores (+5 for two or
    three), +5 for a supported type. Capped at ``cap``, or at
    ``unknown_type_cap`` when no certificate type is known: names, digit
    runs and dates alone also turn up in ordinary photos.
    """
    score = 0.0
    for attr, weight in FIELD_WEIGHTS.items():
        value = getattr(result, attr)
        if value:
            score += weight

    if result.full_name and 2 <= len(result.full_name.split()) <= 4:
        score += NAME_WORD_COUNT_BONUS

    if len(result.scores) >= 4:
        score += MANY_SCORES_BONUS
    elif len(result.scores) >= 2:
        score += SOME_SCORES_BONUS

    if result.certificate_type in RULES:
        score += KNOWN_TYPE_BONUS

    if not result.certificate_type:
        cap = min(cap, unknown_type_cap)

    return float(min(cap, max(0.0, score)))


class FieldExtractor:
    """Extracts structured certificate fields from recognized text."""

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()

    def extract(
        self,
        raw_text: str,
        type_hint: Optional[Union[str, CertificateType]] = None,
    ) -> ExtractionResult:
        """
        Extract all fields from raw OCR text.

        Args:
            raw_text: Text as returned by the recognition stage
            type_hint: Optional certificate type supplied by the caller;
                unknown values are ignored and detection runs instead

        Returns:
            ExtractionResult (fields absent from the text are None)
        """
        cfg = self.config
        text = clean_text(raw_text)

        certificate_type = CertificateType.parse(type_hint)
        if certificate_type is None:
            if type_hint:
                logger.warning(f"Ignoring unknown certificate type hint '{type_hint}'")
            detection = detect_certificate_type(
                text, threshold=cfg.type_threshold, similarity=cfg.fuzzy_similarity
            )
            certificate_type = detection.certificate_type
        else:
            logger.info(f"Using certificate type hint {certificate_type.value}")

        rule = RULES.get(certificate_type) if certificate_type else None

        name = extract_name(text, rule, min_quality=cfg.min_name_quality)
        dates = extract_dates(text, context_chars=cfg.date_context_chars)
        number = extract_certificate_number(text, rule)
        scores, _ = extract_scores(text, certificate_type)
        organization = extract_organization(text, certificate_type)

        result = ExtractionResult(
            full_name=name.name if name else None,
            date_of_birth=dates.date_of_birth,
            certificate_number=number,
            exam_date=dates.exam_date,
            issue_date=dates.issue_date,
            issuing_organization=organization,
            certificate_type=certificate_type,
            scores=scores,
            raw_text=raw_text or "",
        )
        confidence = calculate_confidence(
            result, cap=cfg.confidence_cap, unknown_type_cap=cfg.unknown_type_cap
        )

        logger.info(
            f"Extracted {result.type_name or 'unknown type'}: "
            f"name={'yes' if result.full_name else 'no'}, "
            f"number={'yes' if number else 'no'}, scores={len(scores)}, "
            f"confidence={confidence:.0f}"
        )
        return replace(result, confidence=confidence)
