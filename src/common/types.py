"""
Common type definitions for the certificate OCR pipeline.

This module provides the Pydantic-based raster image wrapper shared by the
quality, enhancement and recognition stages.

RasterImage guarantees:
- Validated shape and dtype (uint8 gray, BGR or BGRA)
- Exclusive ownership: the wrapped array is copied on construction
- Immutability: the copy is flagged read-only, so a stage can never
  modify a buffer handed to it and must produce a new one instead
"""

from typing import Tuple

import cv2
import numpy as np
from pydantic import BaseModel, Field, field_validator


class RasterImage(BaseModel):
    """
    Type-safe, read-only wrapper for decoded image arrays (numpy.ndarray).

    Attributes:
        data: The underlying numpy array containing image data.
            Shape: (H, W, C) for color images, (H, W) for grayscale.
            Dtype: uint8 (0-255). Channel order follows OpenCV (BGR/BGRA).

    Example:
        >>> import cv2
        >>> image = RasterImage(data=cv2.imread("certificate.jpg"))
        >>> print(image.height, image.width)  # 1200, 1600
        >>> gray = image.to_gray()  # new RasterImage, original untouched
    """

    data: np.ndarray = Field(..., description="Image data as numpy array")

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate the array and take an owned, read-only copy of it.

        Args:
            v: Numpy array to validate.

        Returns:
            Read-only copy of the array.

        Raises:
            ValueError: If array is not a valid image format.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if len(v.shape) not in (2, 3):
            raise ValueError(
                f"Expected 2D (grayscale) or 3D (color) image, got shape {v.shape}"
            )

        if len(v.shape) == 3 and v.shape[2] not in (1, 3, 4):
            raise ValueError(
                f"Expected 1, 3, or 4 channels for color image, got {v.shape[2]}"
            )

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        owned = np.array(v, copy=True)
        owned.flags.writeable = False
        return owned

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W) or (H, W, C)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    @property
    def channels(self) -> int:
        """Get number of channels (1 for grayscale, 3 for BGR, 4 for BGRA)."""
        if len(self.data.shape) == 2:
            return 1
        return int(self.data.shape[2])

    @property
    def pixel_count(self) -> int:
        """Get total number of pixels (width * height)."""
        return self.width * self.height

    @property
    def is_grayscale(self) -> bool:
        """Check if image is single channel."""
        return self.channels == 1

    def to_gray(self) -> "RasterImage":
        """
        Convert to a single-channel grayscale image.

        Uses OpenCV's luma weights (0.299 R + 0.587 G + 0.114 B). Returns a
        new RasterImage even when the image is already grayscale.
        """
        if len(self.data.shape) == 2:
            return RasterImage(data=self.data)
        if self.channels == 1:
            return RasterImage(data=self.data[:, :, 0])
        if self.channels == 4:
            return RasterImage(data=cv2.cvtColor(self.to_numpy(), cv2.COLOR_BGRA2GRAY))
        return RasterImage(data=cv2.cvtColor(self.to_numpy(), cv2.COLOR_BGR2GRAY))

    def to_numpy(self) -> np.ndarray:
        """Get a writable copy of the underlying array."""
        return self.data.copy()

    def __repr__(self) -> str:
        """String representation of RasterImage."""
        return f"RasterImage(shape={self.shape}, dtype={self.data.dtype})"
