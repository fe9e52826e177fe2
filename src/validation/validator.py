"""Validation & Correction Engine for extracted certificate fields.

This module checks an ExtractionResult against the rules of its certificate
type and produces a ValidationReport. The input is never modified;
corrections come back as a separate patch (``corrected_fields``).

Checks:
1. Certificate type present and supported
2. Name and certificate number format (with a correction attempt)
3. Date validity, accepted formats and cross-date plausibility
4. Score ranges, increments, completeness and aggregate consistency
5. Required fields

Confidence starts at 100 and loses a fixed penalty per finding. A report is
valid iff it has no errors and confidence >= the configured threshold.
"""

import logging
import math
import re
from datetime import date
from typing import Callable, Dict, Optional

from src.extraction.fields import derive_aggregate
from src.extraction.rules import (
    DEFAULT_REQUIRED_FIELDS,
    RULES,
    AggregateMethod,
    CertificateRule,
    CertificateType,
)
from src.extraction.text_cleaner import normalize_date, parse_date
from src.extraction.types import ExtractionResult
from src.pipeline.config_loader import ValidationConfig
from src.validation.corrections import correct_certificate_number, correct_name
from src.validation.types import FieldStatus, ValidationReport, ReportBuilder

logger = logging.getLogger(__name__)

# Penalties per finding
PENALTY_MISSING_TYPE = 30
PENALTY_UNSUPPORTED_TYPE = 20
PENALTY_MISSING_NAME = 25
PENALTY_NAME_FORMAT = 15
PENALTY_NAME_LENGTH = 10
PENALTY_NAME_WORDS = 5
PENALTY_MISSING_NUMBER = 20
PENALTY_NUMBER_FORMAT = 15
CORRECTION_CREDIT = 5
PENALTY_INVALID_DATE = 8
PENALTY_IMPLAUSIBLE_AGE = 5
PENALTY_ISSUE_BEFORE_EXAM = 10
PENALTY_LATE_ISSUE = 3
PENALTY_MISSING_SCORES = 20
PENALTY_NON_NUMERIC_SCORE = 8
PENALTY_SCORE_RANGE = 10
PENALTY_SCORE_STEP = 2
PENALTY_LOW_COMPLETENESS = 15
PENALTY_PARTIAL_COMPLETENESS = 8
PENALTY_AGGREGATE = 8
PENALTY_MISSING_REQUIRED = 15

AGGREGATE_PENALTIES = {CertificateType.TOEIC: 10}

DATE_FIELDS = {
    "date_of_birth": "date of birth",
    "exam_date": "exam date",
    "issue_date": "issue date",
}
DATE_FORMAT_PATTERNS = {
    "DD/MM/YYYY": r"^\d{2}/\d{2}/\d{4}$",
    "YYYY-MM-DD": r"^\d{4}-\d{2}-\d{2}$",
}
MIN_YEAR = 1900


def _is_number(value) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _snap_to_step(value: float, step: float) -> float:
    return math.floor(value / step + 0.5) * step


class CertificateValidator:
    """Validates extracted certificate data against per-type rules.

    Example:
        >>> validator = CertificateValidator()
        >>> report = validator.validate(extraction)
        >>> if not report.is_valid:
        ...     print(report.errors)
    """

    def __init__(
        self,
        config: Optional[ValidationConfig] = None,
        today: Callable[[], date] = date.today,
    ):
        self.config = config or ValidationConfig()
        self._today = today

    def validate(self, result: ExtractionResult) -> ValidationReport:
        """Validate an extraction result.

        Args:
            result: Extraction to check (not modified)

        Returns:
            ValidationReport with errors, suggestions and proposed corrections
        """
        report = ReportBuilder()

        certificate_type = CertificateType.parse(result.certificate_type)
        if result.certificate_type is None or result.certificate_type == "":
            report.error("Certificate type could not be determined", PENALTY_MISSING_TYPE)
            report.mark("certificate_type", FieldStatus.INVALID, "missing")
            return self._finish(report)
        if certificate_type is None or certificate_type not in RULES:
            report.error(
                f"Unsupported certificate type: {result.certificate_type}",
                PENALTY_UNSUPPORTED_TYPE,
            )
            report.mark("certificate_type", FieldStatus.INVALID, "unsupported")
            return self._finish(report)
        report.mark("certificate_type", FieldStatus.VALID)

        rule = RULES[certificate_type]
        self._check_name(result, rule, report)
        self._check_number(result, rule, report)
        self._check_dates(result, rule, report)
        self._check_scores(result, rule, report)
        self._check_required(result, rule, report)

        return self._finish(report)

    # ═══════════════════════════════════════════════════════════════════
    # Field checks
    # ═══════════════════════════════════════════════════════════════════

    def _check_name(
        self, result: ExtractionResult, rule: CertificateRule, report: ReportBuilder
    ) -> None:
        name = result.full_name
        if not name:
            report.error("Full name is missing", PENALTY_MISSING_NAME)
            report.mark("full_name", FieldStatus.INVALID, "missing")
            return

        problems = False
        if not re.fullmatch(rule.name_pattern, name):
            problems = True
            report.error(f"Full name has an invalid format: '{name}'", PENALTY_NAME_FORMAT)
            corrected = correct_name(name)
            if corrected != name and re.fullmatch(rule.name_pattern, corrected):
                report.confidence += CORRECTION_CREDIT
                report.suggest(f"Full name corrected to '{corrected}'")
                report.propose("full_name", corrected, "invalid format")
            else:
                report.mark("full_name", FieldStatus.INVALID, "invalid format")

        if len(name) > 50 or len(name.strip()) < 3:
            problems = True
            report.error("Full name length is implausible", PENALTY_NAME_LENGTH)
            if "full_name" not in report.corrected_fields:
                report.mark("full_name", FieldStatus.INVALID, "implausible length")

        word_count = len(name.split())
        if not 2 <= word_count <= 4:
            report.suggest(
                f"Full name has {word_count} word(s); most names have 2-4",
                PENALTY_NAME_WORDS,
            )

        if not problems:
            report.mark("full_name", FieldStatus.VALID)

    def _check_number(
        self, result: ExtractionResult, rule: CertificateRule, report: ReportBuilder
    ) -> None:
        number = result.certificate_number
        if not number:
            report.error("Certificate number is missing", PENALTY_MISSING_NUMBER)
            report.mark("certificate_number", FieldStatus.INVALID, "missing")
            return

        if re.fullmatch(rule.number_pattern, number):
            report.mark("certificate_number", FieldStatus.VALID)
            return

        report.error(
            f"Certificate number has an invalid format: '{number}'", PENALTY_NUMBER_FORMAT
        )
        corrected = correct_certificate_number(number)
        if corrected != number and re.fullmatch(rule.number_pattern, corrected):
            report.confidence += CORRECTION_CREDIT
            report.suggest(f"Certificate number corrected to '{corrected}'")
            report.propose("certificate_number", corrected, "invalid format")
        else:
            report.mark("certificate_number", FieldStatus.INVALID, "invalid format")

    def _check_dates(
        self, result: ExtractionResult, rule: CertificateRule, report: ReportBuilder
    ) -> None:
        parsed: Dict[str, date] = {}
        max_year = self._today().year + 1

        for attr, label in DATE_FIELDS.items():
            value = getattr(result, attr)
            if not value:
                continue

            parsed_date = parse_date(value)
            if parsed_date is None:
                report.error(f"Invalid {label}: '{value}'", PENALTY_INVALID_DATE)
                report.mark(attr, FieldStatus.INVALID, "unparseable")
                continue
            if not MIN_YEAR <= parsed_date.year <= max_year:
                report.error(
                    f"Invalid {label}: year {parsed_date.year} out of range",
                    PENALTY_INVALID_DATE,
                )
                report.mark(attr, FieldStatus.INVALID, "year out of range")
                continue

            parsed[attr] = parsed_date
            accepted = any(
                re.fullmatch(DATE_FORMAT_PATTERNS[fmt], value)
                for fmt in rule.date_formats
                if fmt in DATE_FORMAT_PATTERNS
            )
            if accepted:
                report.mark(attr, FieldStatus.VALID)
            else:
                normalized = normalize_date(value)
                report.suggest(f"Normalize {label} '{value}' to '{normalized}'")
                report.propose(attr, normalized, "non-standard format")

        birth = parsed.get("date_of_birth")
        exam = parsed.get("exam_date")
        issue = parsed.get("issue_date")

        if birth and exam:
            age = exam.year - birth.year - ((exam.month, exam.day) < (birth.month, birth.day))
            if not self.config.min_age <= age <= self.config.max_age:
                report.suggest(
                    f"Candidate age at exam ({age}) looks implausible; check the date of birth",
                    PENALTY_IMPLAUSIBLE_AGE,
                )

        if exam and issue:
            if issue < exam:
                report.error("Issue date is before the exam date", PENALTY_ISSUE_BEFORE_EXAM)
                report.mark("issue_date", FieldStatus.INVALID, "before exam date")
            elif (issue - exam).days > self.config.max_issue_gap_days:
                report.suggest(
                    f"Issue date is more than {self.config.max_issue_gap_days} days "
                    "after the exam date",
                    PENALTY_LATE_ISSUE,
                )

    def _check_scores(
        self, result: ExtractionResult, rule: CertificateRule, report: ReportBuilder
    ) -> None:
        scores = result.scores or {}
        if not scores:
            report.error("No scores were found", PENALTY_MISSING_SCORES)
            report.mark("scores", FieldStatus.INVALID, "missing")
            return

        usable: Dict[str, float] = {}
        for skill, value in scores.items():
            spec = rule.spec_for(skill)
            key = f"scores.{skill}"
            if spec is None:
                report.suggest(f"Unexpected score field '{skill}' for {rule.certificate_type.value}")
                continue
            if not _is_number(value):
                report.error(f"Score '{skill}' is not a number: {value!r}", PENALTY_NON_NUMERIC_SCORE)
                report.mark(key, FieldStatus.INVALID, "not a number")
                continue
            if not spec.in_range(value):
                report.error(
                    f"Score '{skill}' = {value:g} is outside {spec.minimum:g}-{spec.maximum:g}",
                    PENALTY_SCORE_RANGE,
                )
                report.propose_score(skill, spec.clamp(value), "out of range")
                usable[skill] = spec.clamp(value)
                continue
            if spec.step and not math.isclose(_snap_to_step(value, spec.step), value):
                snapped = spec.clamp(_snap_to_step(value, spec.step))
                report.suggest(
                    f"Score '{skill}' = {value:g} is not a multiple of {spec.step:g}; "
                    f"did you mean {snapped:g}?",
                    PENALTY_SCORE_STEP,
                )
                report.propose_score(skill, snapped, "off increment")
                usable[skill] = value
                continue
            report.mark(key, FieldStatus.VALID)
            usable[skill] = float(value)

        expected = [s.skill for s in rule.skills]
        if rule.aggregate is not None:
            expected.append(rule.aggregate.skill)
        completeness = sum(1 for s in expected if s in usable) / len(expected)
        if completeness < 0.5:
            report.suggest(
                f"Only {completeness:.0%} of the expected scores were found",
                PENALTY_LOW_COMPLETENESS,
            )
        elif completeness < 0.8:
            report.suggest(
                f"Some scores are missing ({completeness:.0%} found)",
                PENALTY_PARTIAL_COMPLETENESS,
            )

        self._check_aggregate(rule, usable, report)

    def _check_aggregate(
        self, rule: CertificateRule, scores: Dict[str, float], report: ReportBuilder
    ) -> None:
        if rule.aggregate is None:
            return

        expected = derive_aggregate(scores, rule)
        if expected is None:
            return

        skill = rule.aggregate.skill
        actual = scores.get(skill)
        if actual is None:
            report.suggest(f"Missing '{skill}' score can be derived as {expected:g}")
            report.propose_score(skill, expected, "derived from skills")
            return

        if rule.aggregate_method == AggregateMethod.MEAN_HALF:
            tolerance = self.config.mean_tolerance
        else:
            tolerance = self.config.sum_tolerance

        if abs(actual - expected) > tolerance:
            penalty = AGGREGATE_PENALTIES.get(rule.certificate_type, PENALTY_AGGREGATE)
            report.suggest(
                f"'{skill}' = {actual:g} is inconsistent with the individual skills "
                f"(expected {expected:g})",
                penalty,
            )
            report.propose_score(skill, expected, "inconsistent aggregate")

    def _check_required(
        self, result: ExtractionResult, rule: CertificateRule, report: ReportBuilder
    ) -> None:
        # Name, number and scores carry their own penalties above
        for attr in rule.required_fields:
            if attr in DEFAULT_REQUIRED_FIELDS:
                continue
            if not getattr(result, attr, None):
                report.error(
                    f"Required field '{attr}' is missing", PENALTY_MISSING_REQUIRED
                )
                report.mark(attr, FieldStatus.INVALID, "missing")

    def _finish(self, report: ReportBuilder) -> ValidationReport:
        confidence = float(min(100.0, max(0.0, report.confidence)))
        is_valid = not report.errors and confidence >= self.config.valid_confidence

        logger.info(
            f"Validation {'PASSED' if is_valid else 'FAILED'}: "
            f"confidence={confidence:.0f}, errors={len(report.errors)}, "
            f"suggestions={len(report.suggestions)}"
        )
        return ValidationReport(
            is_valid=is_valid,
            confidence=confidence,
            errors=tuple(report.errors),
            suggestions=tuple(report.suggestions),
            corrected_fields=dict(report.corrected_fields),
            field_checks=dict(report.field_checks),
        )
