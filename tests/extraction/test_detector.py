"""Unit tests for certificate type detection."""

import pytest

from src.extraction.detector import detect_certificate_type, keyword_matches
from src.extraction.rules import CertificateType, Keyword


class TestKeywordMatches:
    """Test exact, regex and fuzzy keyword matching."""

    def test_short_keyword_needs_whole_word(self):
        """Test acronyms do not match inside other words."""
        keyword = Keyword("HSK", 10)

        assert keyword_matches(keyword, "HSK 4", "hsk 4", 80)
        assert not keyword_matches(keyword, "HSKX", "hskx", 80)

    def test_regex_keyword(self):
        """Test regex keywords."""
        keyword = Keyword(r"\bN[1-5]\b", 5, regex=True)

        assert keyword_matches(keyword, "Level N2", "level n2", 80)
        assert not keyword_matches(keyword, "Level N7", "level n7", 80)

    def test_fuzzy_phrase(self):
        """Test OCR-mangled long phrases still match."""
        keyword = Keyword("International English Language Testing System", 15)
        text = "INTERNATIONAL ENGLlSH LANGUAGE TESTlNG SYSTEM"

        assert keyword_matches(keyword, text, text.lower(), 80)

    def test_fuzzy_needs_enough_text(self):
        """Test a short text is never a fuzzy hit for a long phrase."""
        keyword = Keyword("Test Report Form", 10)

        assert not keyword_matches(keyword, "Test", "test", 80)


class TestDetectCertificateType:
    """Test detect_certificate_type."""

    def test_ielts(self, ielts_text):
        """Test a full IELTS form is detected."""
        detection = detect_certificate_type(ielts_text)

        assert detection.certificate_type == CertificateType.IELTS
        assert "IELTS" in detection.matched_keywords
        assert detection.score >= 50

    def test_toeic(self, toeic_text):
        """Test a TOEIC certificate is detected."""
        assert detect_certificate_type(toeic_text).certificate_type == CertificateType.TOEIC

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("HSK 4 Chinese Proficiency Test", CertificateType.HSK),
            ("JLPT N2", CertificateType.JLPT),
            ("TOEFL iBT Test Taker Score Report", CertificateType.TOEFL),
            ("CHỨNG CHỈ VSTEP Bộ Giáo dục và Đào tạo", CertificateType.VSTEP),
            ("INTERNATIONAL ENGLlSH LANGUAGE TESTlNG SYSTEM", CertificateType.IELTS),
        ],
    )
    def test_types(self, text, expected):
        """Test each supported type from its characteristic keywords."""
        assert detect_certificate_type(text).certificate_type == expected

    def test_priority_breaks_ties(self):
        """Test equal scores follow the priority order."""
        assert detect_certificate_type("IELTS TOEFL").certificate_type == CertificateType.IELTS

    def test_below_threshold(self):
        """Test a weak match is not reported."""
        detection = detect_certificate_type("IDP")

        assert detection.certificate_type is None
        assert detection.score == 5

    def test_no_certificate(self):
        """Test unrelated text gives no type."""
        detection = detect_certificate_type("a cat sitting on a sofa")

        assert detection.certificate_type is None

    def test_custom_threshold(self):
        """Test the threshold is configurable."""
        assert detect_certificate_type("IDP", threshold=5).certificate_type == CertificateType.IELTS
