"""Format corrections for names and certificate numbers, and patch merging.

Corrections are proposals. apply_corrections() is the explicit step in which
a caller accepts some or all of them.
"""

import logging
import re
from dataclasses import replace
from typing import Iterable, Optional

from src.extraction.types import ExtractionResult
from src.validation.types import ValidationReport

logger = logging.getLogger(__name__)

# Letter → digit confusions inside digit runs of certificate numbers
NUMBER_DIGIT_RULES = {"O": "0", "Q": "0", "D": "0", "I": "1", "L": "1", "Z": "2", "S": "5", "B": "8"}


def correct_name(name: str) -> str:
    """
    Reformat a name: drop digits and OCR artifacts, collapse spaces,
    upper-case every word.

    Example:
        >>> correct_name("nguyen  van| an1")
        'NGUYEN VAN AN'
    """
    cleaned = re.sub(r"[\d|_@#$%^&*()+=\[\]{}<>/\\~`\"]", " ", name)
    cleaned = " ".join(cleaned.split())
    return cleaned.upper()


def correct_certificate_number(number: str) -> str:
    """
    Reformat a certificate number: upper-case, drop separators and spaces
    (hyphens kept), and fix letter/digit confusions that sit between digits.

    Example:
        >>> correct_certificate_number(" 23vn 0l2345 ")
        '23VN012345'
    """
    value = re.sub(r"[^A-Za-z0-9\-]", "", number).upper()
    chars = list(value)
    for i, char in enumerate(chars):
        if char not in NUMBER_DIGIT_RULES:
            continue
        prev_digit = i > 0 and chars[i - 1].isdigit()
        next_digit = i + 1 < len(chars) and chars[i + 1].isdigit()
        if prev_digit and next_digit:
            chars[i] = NUMBER_DIGIT_RULES[char]
    return "".join(chars).strip("-")


def apply_corrections(
    result: ExtractionResult,
    report: ValidationReport,
    fields: Optional[Iterable[str]] = None,
) -> ExtractionResult:
    """
    Merge accepted corrections into a new ExtractionResult.

    Args:
        result: Original extraction (left untouched)
        report: Validation report holding the proposed corrections
        fields: Attribute names to accept (e.g., ["full_name", "scores"]);
            None accepts every proposal

    Returns:
        New ExtractionResult with accepted corrections applied
    """
    accepted = set(report.corrected_fields) if fields is None else set(fields)
    changes = {}
    for name, value in report.corrected_fields.items():
        if name not in accepted:
            continue
        if name == "scores":
            changes["scores"] = {**result.scores, **value}
        else:
            changes[name] = value

    if changes:
        logger.info(f"Applying corrections to: {', '.join(sorted(changes))}")
    return replace(result, **changes)
