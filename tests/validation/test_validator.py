"""Unit tests for the validation & correction engine."""

from dataclasses import replace
from datetime import date

import pytest

from src.extraction.rules import CertificateType
from src.extraction.types import ExtractionResult
from src.pipeline.config_loader import ValidationConfig
from src.validation.types import FieldStatus
from src.validation.validator import CertificateValidator


@pytest.fixture
def validator():
    """Create CertificateValidator with a fixed current date."""
    return CertificateValidator(today=lambda: date(2025, 1, 1))


@pytest.fixture
def ielts_result():
    """Fixture providing a fully valid IELTS extraction."""
    return ExtractionResult(
        full_name="VAN AN NGUYEN",
        date_of_birth="20/05/1998",
        certificate_number="23VN012345NGUA001A",
        exam_date="15/03/2023",
        issuing_organization="British Council",
        certificate_type=CertificateType.IELTS,
        scores={
            "listening": 7.5,
            "reading": 8.0,
            "writing": 6.5,
            "speaking": 7.0,
            "overall": 7.5,
        },
        confidence=95.0,
    )


@pytest.fixture
def toeic_result():
    """Fixture providing a fully valid TOEIC extraction."""
    return ExtractionResult(
        full_name="THI MAI TRAN",
        certificate_number="1234567890",
        exam_date="10/06/2023",
        certificate_type=CertificateType.TOEIC,
        scores={"listening": 450.0, "reading": 400.0, "total": 850.0},
    )


class TestTypeChecks:
    """Test certificate type checks."""

    def test_valid_result(self, validator, ielts_result):
        """Test a complete, consistent IELTS result."""
        report = validator.validate(ielts_result)

        assert report.is_valid
        assert report.confidence == 100.0
        assert report.errors == ()
        assert report.corrected_fields == {}
        assert report.field_checks["full_name"].status == FieldStatus.VALID

    def test_missing_type(self, validator):
        """Test a missing type stops validation with a 30 point penalty."""
        report = validator.validate(ExtractionResult(full_name="NGUYEN VAN AN"))

        assert not report.is_valid
        assert report.confidence == 70.0
        assert report.errors == ("Certificate type could not be determined",)

    def test_unsupported_type(self, validator, ielts_result):
        """Test an unsupported type string."""
        report = validator.validate(replace(ielts_result, certificate_type="GRE"))

        assert not report.is_valid
        assert report.confidence == 80.0
        assert "Unsupported certificate type" in report.errors[0]

    def test_input_not_modified(self, validator, ielts_result):
        """Test validation never changes the extraction."""
        result = replace(ielts_result, full_name="nguyen van an1")

        validator.validate(result)

        assert result.full_name == "nguyen van an1"


class TestNameAndNumber:
    """Test name and certificate number checks."""

    def test_missing_name(self, validator, ielts_result):
        """Test a missing name costs 25 points."""
        report = validator.validate(replace(ielts_result, full_name=None))

        assert report.confidence == 75.0
        assert not report.is_valid

    def test_name_correction_proposed(self, validator, ielts_result):
        """Test a fixable name gets a correction and partial credit."""
        report = validator.validate(replace(ielts_result, full_name="nguyen van an1"))

        assert report.confidence == 90.0
        assert report.corrected_fields["full_name"] == "NGUYEN VAN AN"
        check = report.field_checks["full_name"]
        assert check.status == FieldStatus.CORRECTION_PROPOSED
        assert check.proposed_value == "NGUYEN VAN AN"
        assert not report.is_valid

    def test_single_word_name(self, validator, ielts_result):
        """Test unusual word counts are only a suggestion."""
        report = validator.validate(replace(ielts_result, full_name="NGUYEN"))

        assert report.is_valid
        assert report.confidence == 95.0
        assert report.suggestions

    def test_missing_number(self, validator, ielts_result):
        """Test a missing certificate number costs 20 points."""
        report = validator.validate(replace(ielts_result, certificate_number=None))

        assert report.confidence == 80.0

    def test_number_correction_proposed(self, validator, ielts_result):
        """Test letter/digit confusions in the number are corrected."""
        report = validator.validate(replace(ielts_result, certificate_number="23vn0l2345"))

        assert report.confidence == 90.0
        assert report.corrected_fields["certificate_number"] == "23VN012345"

    def test_unfixable_number(self, validator, ielts_result):
        """Test a number that cannot be corrected is marked invalid."""
        report = validator.validate(replace(ielts_result, certificate_number="AB-1"))

        assert report.confidence == 85.0
        assert report.field_checks["certificate_number"].status == FieldStatus.INVALID


class TestDates:
    """Test date checks."""

    def test_invalid_date(self, validator, ielts_result):
        """Test an impossible date is an error."""
        report = validator.validate(replace(ielts_result, exam_date="31/02/2023"))

        assert report.confidence == 92.0
        assert not report.is_valid

    def test_year_out_of_range(self, validator, ielts_result):
        """Test years before 1900 or after next year are errors."""
        report = validator.validate(replace(ielts_result, date_of_birth="01/01/1850"))

        assert report.confidence == 92.0
        assert "year 1850 out of range" in report.errors[0]

    def test_non_standard_format_proposes_normalized(self, validator, ielts_result):
        """Test a valid date in another format gets a normalized proposal."""
        report = validator.validate(replace(ielts_result, date_of_birth="20.5.1998"))

        assert report.is_valid
        assert report.confidence == 100.0
        assert report.corrected_fields["date_of_birth"] == "20/05/1998"

    def test_implausible_age(self, validator, ielts_result):
        """Test a candidate younger than the minimum age is flagged."""
        report = validator.validate(replace(ielts_result, date_of_birth="01/01/2020"))

        assert report.confidence == 95.0
        assert report.is_valid
        assert any("age" in s for s in report.suggestions)

    def test_issue_before_exam(self, validator, ielts_result):
        """Test an issue date before the exam is an error."""
        report = validator.validate(replace(ielts_result, issue_date="01/03/2023"))

        assert report.confidence == 90.0
        assert report.errors == ("Issue date is before the exam date",)

    def test_late_issue(self, validator, ielts_result):
        """Test a long gap between exam and issue is a suggestion."""
        report = validator.validate(replace(ielts_result, issue_date="01/12/2023"))

        assert report.confidence == 97.0
        assert report.is_valid


class TestScores:
    """Test score checks."""

    def test_missing_scores(self, validator, ielts_result):
        """Test no scores costs 20 points."""
        report = validator.validate(replace(ielts_result, scores={}))

        assert report.confidence == 80.0
        assert not report.is_valid

    def test_out_of_range(self, validator, ielts_result):
        """Test an out-of-range score is an error with a clamped proposal."""
        scores = {**ielts_result.scores, "listening": 9.5}

        report = validator.validate(replace(ielts_result, scores=scores))

        assert report.confidence == 90.0
        assert report.corrected_fields["scores"] == {"listening": 9.0}

    def test_off_increment(self, validator, ielts_result):
        """Test a band that is not a multiple of 0.5 is snapped."""
        scores = {**ielts_result.scores, "listening": 7.3}

        report = validator.validate(replace(ielts_result, scores=scores))

        assert report.confidence == 98.0
        assert report.is_valid
        assert report.corrected_fields["scores"] == {"listening": 7.5}

    def test_non_numeric(self, validator, ielts_result):
        """Test non-numeric scores are errors."""
        scores = {**ielts_result.scores, "writing": "abc"}

        report = validator.validate(replace(ielts_result, scores=scores))

        assert report.confidence <= 92.0
        assert not report.is_valid

    def test_low_completeness(self, validator, ielts_result):
        """Test fewer than half the expected scores costs 15 points."""
        report = validator.validate(
            replace(ielts_result, scores={"listening": 7.5, "reading": 8.0})
        )

        assert report.confidence == 85.0

    def test_aggregate_derivation_proposed(self, validator, ielts_result):
        """Test a missing overall is proposed from the skills."""
        scores = {k: v for k, v in ielts_result.scores.items() if k != "overall"}

        report = validator.validate(replace(ielts_result, scores=scores))

        assert report.confidence == 100.0
        assert report.corrected_fields["scores"] == {"overall": 7.5}

    def test_ielts_aggregate_mismatch(self, validator, ielts_result):
        """Test an overall far from the skill mean."""
        scores = {**ielts_result.scores, "overall": 9.0}

        report = validator.validate(replace(ielts_result, scores=scores))

        assert report.confidence == 92.0
        assert report.corrected_fields["scores"] == {"overall": 7.5}

    def test_toeic_valid(self, validator, toeic_result):
        """Test a consistent TOEIC result."""
        report = validator.validate(toeic_result)

        assert report.is_valid
        assert report.confidence == 100.0

    def test_toeic_total_mismatch(self, validator, toeic_result):
        """Test the TOEIC total must be the section sum."""
        scores = {**toeic_result.scores, "total": 900.0}

        report = validator.validate(replace(toeic_result, scores=scores))

        assert report.confidence == 90.0
        assert report.corrected_fields["scores"] == {"total": 850.0}

    def test_toeic_increment(self, validator, toeic_result):
        """Test TOEIC scores move in steps of five."""
        scores = {"listening": 452.0, "reading": 400.0, "total": 852.0}

        report = validator.validate(replace(toeic_result, scores=scores))

        assert report.corrected_fields["scores"]["listening"] == 450.0


class TestReport:
    """Test report thresholds and serialization."""

    def test_threshold_from_config(self, ielts_result):
        """Test is_valid uses the configured confidence threshold."""
        validator = CertificateValidator(
            ValidationConfig(valid_confidence=99.0), today=lambda: date(2025, 1, 1)
        )

        report = validator.validate(replace(ielts_result, full_name="NGUYEN"))

        assert not report.is_valid
        assert report.errors == ()

    def test_to_dict(self, validator, ielts_result):
        """Test camelCase serialization of corrections."""
        report = validator.validate(replace(ielts_result, full_name="nguyen van an1"))

        data = report.to_dict()

        assert data["isValid"] is False
        assert data["correctedFields"]["fullName"] == "NGUYEN VAN AN"
        assert data["confidence"] == 90
