"""
Image-only heuristic estimating whether a photo shows a printed certificate.

Certificates are mostly bright paper with little color and a landscape or
portrait A4-like aspect ratio. The score is advisory: the pipeline only turns
a low score into a warning, it never rejects an image on this basis.
"""

import logging

import cv2
import numpy as np

from src.common.types import RasterImage
from src.quality.types import DocumentLikeness

logger = logging.getLogger(__name__)

# Best case: size 20 + aspect 30 + brightness 15 + white paper 20 + low color 15
MAX_SCORE = 100.0
ACCEPT_SCORE = 30.0
SAMPLE_MAX_WIDTH = 400
SAMPLE_MAX_HEIGHT = 300


def _size_and_aspect_score(width: int, height: int, warnings: list) -> float:
    score = 0.0
    aspect_ratio = width / height

    if width < 400 or height < 300:
        score -= 15
        warnings.append("Image resolution is very small")
    elif width >= 800 and height >= 600:
        score += 20

    if 1.2 <= aspect_ratio <= 1.8:
        score += 30  # A4 landscape
    elif 0.7 <= aspect_ratio <= 0.9:
        score += 20  # A4 portrait
    elif aspect_ratio < 0.5 or aspect_ratio > 2.5:
        score -= 20
        warnings.append("Unusual aspect ratio for a certificate")

    return score


def _color_score(bgr: np.ndarray, warnings: list) -> float:
    score = 0.0
    b, g, r = [c.astype(np.int32) for c in cv2.split(bgr)]

    brightness = float(((r + g + b) / 3.0).mean())
    white_ratio = float(((r > 240) & (g > 240) & (b > 240)).mean())
    color_diff = np.abs(r - g) + np.abs(g - b) + np.abs(b - r)
    color_ratio = float((color_diff > 50).mean())

    if brightness > 200:
        score += 15
    elif brightness < 100:
        score -= 15
        warnings.append("Image is too dark to be a scanned certificate")

    if white_ratio > 0.4:
        score += 20
    elif white_ratio < 0.1:
        score -= 15

    if color_ratio < 0.3:
        score += 15
    elif color_ratio > 0.6:
        score -= 20
        warnings.append("Image is very colorful, it may not be a certificate")

    return score


def assess_document_likeness(image: RasterImage) -> DocumentLikeness:
    """
    Score how much an image looks like a printed certificate.

    Colour statistics are computed on a copy downscaled to at most 400x300.

    Args:
        image: Decoded raster image

    Returns:
        DocumentLikeness with score clamped to [0, 100]
    """
    warnings: list = []
    score = _size_and_aspect_score(image.width, image.height, warnings)

    data = image.to_numpy()
    if image.channels == 1:
        bgr = cv2.cvtColor(data.reshape(image.height, image.width), cv2.COLOR_GRAY2BGR)
    elif image.channels == 4:
        bgr = cv2.cvtColor(data, cv2.COLOR_BGRA2BGR)
    else:
        bgr = data

    sample_w = min(image.width, SAMPLE_MAX_WIDTH)
    sample_h = min(image.height, SAMPLE_MAX_HEIGHT)
    sample = cv2.resize(bgr, (sample_w, sample_h), interpolation=cv2.INTER_AREA)
    score += _color_score(sample, warnings)

    score = float(min(MAX_SCORE, max(0.0, score)))
    likely = score >= ACCEPT_SCORE

    logger.debug(f"Document likeness score={score:.0f} likely={likely}")
    return DocumentLikeness(
        score=score, is_likely_document=likely, warnings=tuple(warnings)
    )
