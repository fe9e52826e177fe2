"""Unit tests for the document-likeness heuristic."""

import numpy as np

from src.common.types import RasterImage
from src.quality.document_likeness import (
    ACCEPT_SCORE,
    MAX_SCORE,
    assess_document_likeness,
)


class TestDocumentLikeness:
    """Test assess_document_likeness."""

    def test_white_landscape_page_is_document(self, certificate_image):
        """Test a bright, grey-scale A4-landscape image scores as a document."""
        result = assess_document_likeness(RasterImage(data=certificate_image))

        assert result.is_likely_document
        assert result.score == MAX_SCORE

    def test_colorful_photo_is_not_document(self):
        """Test a saturated, dark, tiny image is flagged."""
        image = np.zeros((200, 200, 3), dtype=np.uint8)
        image[:, :, 2] = 200  # strong red

        result = assess_document_likeness(RasterImage(data=image))

        assert not result.is_likely_document
        assert result.score == 0.0
        assert "Image resolution is very small" in result.warnings

    def test_grayscale_input(self):
        """Test single-channel images are accepted."""
        image = np.full((900, 1200), 250, dtype=np.uint8)

        result = assess_document_likeness(RasterImage(data=image))

        assert result.is_likely_document

    def test_score_uses_full_percent_scale(self):
        """Test a clean white landscape page reaches 100."""
        image = np.full((900, 1200), 250, dtype=np.uint8)

        result = assess_document_likeness(RasterImage(data=image))

        assert MAX_SCORE == 100.0
        assert result.score == 100.0

    def test_portrait_page_scores_lower(self):
        """Test an A4-portrait page scores below landscape but is accepted."""
        image = np.full((1200, 900), 250, dtype=np.uint8)

        result = assess_document_likeness(RasterImage(data=image))

        assert result.score == 90.0
        assert result.score >= ACCEPT_SCORE
        assert result.is_likely_document
