"""
Certificate type detection.

Every type in the rule table scores the cleaned text against its weighted
keywords. Short keywords (acronyms such as "HSK") must match as whole words;
longer phrases also count when rapidfuzz finds a close partial match, so
OCR-mangled phrases like "Internatlonal Engllsh Language" still contribute.
The best type above the threshold wins; ties follow TYPE_PRIORITY.
"""

import logging
import re
from typing import Dict, List, Optional

from rapidfuzz import fuzz

from src.extraction.rules import (
    RULES,
    TYPE_PRIORITY,
    CertificateType,
    Keyword,
)
from src.extraction.types import TypeDetection

logger = logging.getLogger(__name__)

EXACT_ONLY_LENGTH = 4
MULTI_MATCH_BONUS = 2.0


def keyword_matches(keyword: Keyword, text: str, lowered: str, similarity: float) -> bool:
    """Check one keyword against text (``lowered`` is ``text.lower()``)."""
    if keyword.regex:
        return re.search(keyword.text, text, re.IGNORECASE) is not None

    phrase = keyword.text.lower()
    if len(phrase) <= EXACT_ONLY_LENGTH:
        return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", lowered) is not None

    if phrase in lowered:
        return True
    # partial_ratio would match a short text inside a long phrase
    if len(lowered) < len(phrase):
        return False
    return fuzz.partial_ratio(phrase, lowered) >= similarity


def detect_certificate_type(
    text: str,
    threshold: float = 10.0,
    similarity: float = 80.0,
) -> TypeDetection:
    """
    Detect the certificate type of cleaned text.

    Score per type = sum of matched keyword weights, plus 2 points per match
    when more than one keyword matched.

    Args:
        text: Cleaned recognized text
        threshold: Minimum score for a type to be reported
        similarity: rapidfuzz partial_ratio required for a fuzzy phrase hit

    Returns:
        TypeDetection; certificate_type is None when nothing clears the
        threshold (not an error)

    Example:
        >>> detect_certificate_type("IELTS Test Report Form").certificate_type
        <CertificateType.IELTS: 'IELTS'>
    """
    lowered = text.lower()
    scores: Dict[CertificateType, float] = {}
    matched: Dict[CertificateType, List[str]] = {}

    for certificate_type in TYPE_PRIORITY:
        rule = RULES[certificate_type]
        hits = [
            kw for kw in rule.keywords if keyword_matches(kw, text, lowered, similarity)
        ]
        score = sum(kw.weight for kw in hits)
        if len(hits) > 1:
            score += MULTI_MATCH_BONUS * len(hits)
        scores[certificate_type] = score
        matched[certificate_type] = [kw.text for kw in hits]

    best: Optional[CertificateType] = None
    best_score = 0.0
    for certificate_type in TYPE_PRIORITY:
        # Strict comparison keeps the higher-priority type on ties
        if scores[certificate_type] > best_score:
            best, best_score = certificate_type, scores[certificate_type]

    if best is None or best_score < threshold:
        logger.debug(f"No certificate type detected (best score {best_score:.0f})")
        return TypeDetection(certificate_type=None, score=best_score, scores=scores)

    logger.info(f"Detected certificate type {best.value} (score {best_score:.0f})")
    return TypeDetection(
        certificate_type=best,
        score=best_score,
        scores=scores,
        matched_keywords=tuple(matched[best]),
    )
