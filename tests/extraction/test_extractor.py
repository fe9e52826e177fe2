"""Unit tests for the FieldExtractor and extraction confidence."""

import pytest

from src.extraction.extractor import FieldExtractor, calculate_confidence
from src.extraction.rules import CertificateType
from src.extraction.types import ExtractionResult
from src.pipeline.config_loader import ExtractionConfig


@pytest.fixture
def extractor():
    """Create FieldExtractor with default configuration."""
    return FieldExtractor()


class TestFieldExtractor:
    """Test end-to-end field extraction from text."""

    def test_ielts(self, extractor, ielts_text):
        """Test every IELTS field is extracted."""
        result = extractor.extract(ielts_text)

        assert result.certificate_type == CertificateType.IELTS
        assert result.full_name == "VAN AN NGUYEN"
        assert result.date_of_birth == "20/05/1998"
        assert result.exam_date == "15/03/2023"
        assert result.issue_date is None
        assert result.certificate_number == "23VN012345NGUA001A"
        assert result.issuing_organization == "British Council"
        assert result.scores["overall"] == 7.5
        assert result.raw_text == ielts_text
        assert result.confidence == 95.0

    def test_toeic(self, extractor, toeic_text):
        """Test TOEIC fields."""
        result = extractor.extract(toeic_text)

        assert result.certificate_type == CertificateType.TOEIC
        assert result.full_name == "THI MAI TRAN"
        assert result.exam_date == "10/06/2023"
        assert result.date_of_birth == "02/09/2000"
        assert result.certificate_number == "1234567890"
        assert result.scores == {"listening": 450.0, "reading": 400.0, "total": 850.0}

    def test_cleans_before_extracting(self, extractor):
        """Test OCR confusions are repaired before matching."""
        text = "IELTS Test Report Form\nListening 7,5\nReading 8 . 0\nWriting 6,5\nSpeaking 7,0"

        result = extractor.extract(text)

        assert result.scores["listening"] == 7.5
        assert result.scores["reading"] == 8.0
        assert result.scores["overall"] == 7.5

    def test_type_hint_overrides_detection(self, extractor):
        """Test a valid hint is used even without type keywords."""
        result = extractor.extract("Listening 400\nReading 350", type_hint="toeic")

        assert result.certificate_type == CertificateType.TOEIC
        assert result.scores["total"] == 750.0

    def test_unknown_hint_ignored(self, extractor, ielts_text, caplog):
        """Test an unknown hint falls back to detection with a warning."""
        result = extractor.extract(ielts_text, type_hint="GRE")

        assert result.certificate_type == CertificateType.IELTS
        assert "Ignoring unknown certificate type hint" in caplog.text

    def test_unrelated_text(self, extractor):
        """Test text without a certificate gives an empty, low-confidence result."""
        result = extractor.extract("a cat sitting on a sofa")

        assert result.certificate_type is None
        assert result.full_name is None
        assert result.confidence < 30

    def test_empty_text(self, extractor):
        """Test empty text never raises."""
        result = extractor.extract("")

        assert result.certificate_type is None
        assert result.scores == {}
        assert result.confidence == 0.0

    def test_confidence_cap_from_config(self, ielts_text):
        """Test the confidence cap is configurable."""
        extractor = FieldExtractor(ExtractionConfig(confidence_cap=80.0))

        assert extractor.extract(ielts_text).confidence == 80.0


class TestCalculateConfidence:
    """Test the field-weight confidence model."""

    def test_type_only(self):
        """Test a supported type alone."""
        result = ExtractionResult(certificate_type=CertificateType.IELTS)

        assert calculate_confidence(result) == 25.0

    def test_name_and_scores(self):
        """Test name and score bonuses."""
        result = ExtractionResult(
            full_name="NGUYEN VAN AN",
            certificate_type=CertificateType.IELTS,
            scores={"listening": 7.5, "reading": 8.0},
        )

        # type 20 + name 25 + word count 5 + scores 15 + two scores 5 + known type 5
        assert calculate_confidence(result) == 75.0

    def test_unknown_type_capped(self):
        """Test fields without a certificate type stay below the cap."""
        result = ExtractionResult(
            full_name="HAPPY BIRTHDAY MISSY",
            certificate_number="20210312",
            date_of_birth="12/03/2021",
        )

        assert calculate_confidence(result) == 20.0
        assert calculate_confidence(result, unknown_type_cap=40.0) == 40.0

    def test_empty(self):
        """Test an empty result scores zero."""
        assert calculate_confidence(ExtractionResult()) == 0.0


class TestExtractionResult:
    """Test ExtractionResult serialization."""

    def test_to_dict_omits_absent_fields(self):
        """Test None fields are omitted and the type is always present."""
        data = ExtractionResult(full_name="NGUYEN VAN AN", confidence=42.4).to_dict()

        assert data["fullName"] == "NGUYEN VAN AN"
        assert data["certificateType"] == ""
        assert data["confidence"] == 42
        assert "dateOfBirth" not in data
        assert data["scores"] == {}

    def test_confidence_clamped(self):
        """Test confidence is clamped to 0-100."""
        assert ExtractionResult(confidence=140).confidence == 100.0
        assert ExtractionResult(confidence=-5).confidence == 0.0

    def test_scores_copied(self):
        """Test the scores mapping is owned by the result."""
        scores = {"total": 650.0}
        result = ExtractionResult(scores=scores)

        scores["total"] = 0.0

        assert result.scores["total"] == 650.0
