"""
Image decoding.

Turns raw JPEG/PNG bytes, a file path or an in-memory array into a
RasterImage. Anything that cannot be decoded raises ImageDecodeError so the
pipeline aborts before the OCR engine is ever invoked.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from src.common.errors import ImageDecodeError
from src.common.types import RasterImage

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, str, Path, np.ndarray, RasterImage]


def decode_image(source: ImageSource) -> RasterImage:
    """
    Decode an image source into a RasterImage.

    Args:
        source: Encoded image bytes, path to an image file, decoded
            numpy array, or an existing RasterImage

    Returns:
        Owned, read-only RasterImage (gray, BGR or BGRA)

    Raises:
        ImageDecodeError: If the source is empty, missing or undecodable
    """
    if isinstance(source, RasterImage):
        return source

    if isinstance(source, np.ndarray):
        return _wrap(source, "array input")

    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.is_file():
            raise ImageDecodeError(f"Image file not found: {path}")
        source = path.read_bytes()
        label = str(path)
    else:
        label = "byte input"

    if not source:
        raise ImageDecodeError(f"Empty image data ({label})")

    buffer = np.frombuffer(bytes(source), dtype=np.uint8)
    decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    if decoded is None:
        raise ImageDecodeError(f"Unsupported or corrupt image data ({label})")

    # 16-bit PNGs decode as uint16
    if decoded.dtype != np.uint8:
        decoded = cv2.convertScaleAbs(decoded, alpha=255.0 / max(1, decoded.max()))

    image = _wrap(decoded, label)
    logger.debug(f"Decoded {label}: {image.width}x{image.height}, {image.channels} ch")
    return image


def _wrap(array: np.ndarray, label: str) -> RasterImage:
    try:
        return RasterImage(data=array)
    except ValueError as e:
        raise ImageDecodeError(f"Invalid image ({label}): {e}") from e
