"""Unit tests for the RasterImage wrapper."""

import numpy as np
import pytest
from pydantic import ValidationError

from src.common.types import RasterImage


class TestRasterImage:
    """Test RasterImage validation and ownership."""

    def test_grayscale_properties(self):
        """Test shape helpers on a grayscale image."""
        image = RasterImage(data=np.zeros((40, 60), dtype=np.uint8))

        assert image.height == 40
        assert image.width == 60
        assert image.channels == 1
        assert image.pixel_count == 2400
        assert image.is_grayscale

    def test_color_properties(self):
        """Test shape helpers on a BGR image."""
        image = RasterImage(data=np.zeros((40, 60, 3), dtype=np.uint8))

        assert image.channels == 3
        assert not image.is_grayscale

    def test_copies_input(self):
        """Test the wrapped array is an owned copy."""
        array = np.zeros((10, 10), dtype=np.uint8)
        image = RasterImage(data=array)

        array[0, 0] = 255

        assert image.data[0, 0] == 0

    def test_data_is_read_only(self):
        """Test the wrapped array cannot be modified in place."""
        image = RasterImage(data=np.zeros((10, 10), dtype=np.uint8))

        with pytest.raises(ValueError):
            image.data[0, 0] = 1

    def test_to_numpy_is_writable_copy(self):
        """Test to_numpy returns an independent writable array."""
        image = RasterImage(data=np.zeros((10, 10), dtype=np.uint8))

        copy = image.to_numpy()
        copy[0, 0] = 9

        assert image.data[0, 0] == 0

    def test_to_gray_from_bgr(self):
        """Test BGR to grayscale conversion keeps size."""
        bgr = np.zeros((20, 30, 3), dtype=np.uint8)
        bgr[:, :] = (255, 255, 255)

        gray = RasterImage(data=bgr).to_gray()

        assert gray.is_grayscale
        assert gray.shape == (20, 30)
        assert int(gray.data[0, 0]) == 255

    def test_to_gray_from_bgra(self):
        """Test BGRA images convert to grayscale."""
        bgra = np.zeros((20, 30, 4), dtype=np.uint8)

        assert RasterImage(data=bgra).to_gray().shape == (20, 30)

    @pytest.mark.parametrize(
        "array",
        [
            np.zeros((0, 10), dtype=np.uint8),
            np.zeros((10, 10, 2), dtype=np.uint8),
            np.zeros((10,), dtype=np.uint8),
            np.zeros((10, 10), dtype=np.float32),
        ],
    )
    def test_rejects_invalid_arrays(self, array):
        """Test invalid shapes and dtypes are rejected."""
        with pytest.raises(ValidationError):
            RasterImage(data=array)
