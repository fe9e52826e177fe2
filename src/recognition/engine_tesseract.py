"""Tesseract OCR engine adapter for certificate recognition.

This module wraps pytesseract behind the ``recognize(image, config)``
contract used by the recognition orchestrator. Each PassConfig maps onto a
Tesseract command line (page segmentation mode, engine mode, whitelist,
language packs).

Example:
    >>> engine = TesseractEngine()
    >>> output = engine.recognize(image, PassConfig(name="uniform-block", psm=6))
    >>> print(output.text, output.confidence)
    'IELTS Test Report Form ...' 87.4
"""

import logging
from collections import OrderedDict
from typing import Dict, List, Tuple

import cv2
import numpy as np
import pytesseract

from src.recognition.types import EngineOutput, PassConfig

logger = logging.getLogger(__name__)


def build_tesseract_config(config: PassConfig) -> str:
    """Translate a PassConfig into a Tesseract config string.

    Example:
        >>> build_tesseract_config(PassConfig(name="auto", psm=1, oem=1))
        '--psm 1 --oem 1'
    """
    parts = [f"--psm {config.psm}"]
    if config.oem is not None:
        parts.append(f"--oem {config.oem}")
    if config.whitelist:
        parts.append(f"-c tessedit_char_whitelist={config.whitelist}")
    if config.preserve_interword_spaces:
        parts.append("-c preserve_interword_spaces=1")
    return " ".join(parts)


class TesseractEngine:
    """Wrapper for Tesseract OCR.

    Raises on failure instead of returning an empty result; the orchestrator
    records the exception as a failed pass.

    Example:
        >>> engine = TesseractEngine()
        >>> output = engine.recognize(gray, PassConfig(name="raw-line", psm=13))
    """

    def __init__(self):
        """Initialize Tesseract engine wrapper.

        Raises:
            RuntimeError: If the Tesseract binary cannot be found
        """
        try:
            version = pytesseract.get_tesseract_version()
            logger.info(f"Tesseract engine initialized: version {version}")
        except Exception as e:
            logger.error(f"Tesseract not found or not properly configured: {e}")
            raise RuntimeError(
                "Tesseract not available. Please install Tesseract OCR.\n"
                "Windows: choco install tesseract\n"
                "Linux: sudo apt-get install tesseract-ocr tesseract-ocr-vie\n"
                "MacOS: brew install tesseract tesseract-lang"
            ) from e

    def recognize(self, image: np.ndarray, config: PassConfig) -> EngineOutput:
        """Recognize text in an image with one configuration.

        Args:
            image: Grayscale (H, W) or BGR (H, W, 3) uint8 array
            config: Pass configuration

        Returns:
            EngineOutput with line-joined text and mean word confidence (0-100)

        Raises:
            ValueError: If the image is empty or has an unsupported shape
            pytesseract.TesseractError: If Tesseract fails
        """
        if image is None or image.size == 0:
            raise ValueError("Invalid image: empty or None")

        if image.ndim == 3:
            if image.shape[2] == 3:
                image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            elif image.shape[2] == 1:
                image = image[:, :, 0]
            else:
                raise ValueError(f"Invalid image shape: {image.shape}")
        elif image.ndim != 2:
            raise ValueError(f"Invalid image shape: {image.shape}")

        tesseract_config = build_tesseract_config(config)
        logger.debug(
            f"Running Tesseract pass '{config.name}' "
            f"(lang={config.languages}, config: {tesseract_config})"
        )

        data = pytesseract.image_to_data(
            image,
            lang=config.languages,
            config=tesseract_config,
            output_type=pytesseract.Output.DICT,
        )

        text, confidences = self._assemble(data)
        confidence = float(np.mean(confidences)) if confidences else 0.0

        logger.debug(
            f"Tesseract pass '{config.name}': {len(confidences)} words, "
            f"confidence={confidence:.1f}"
        )
        return EngineOutput(text=text, confidence=confidence)

    @staticmethod
    def _assemble(data: Dict[str, list]) -> Tuple[str, List[float]]:
        """Join word detections into lines, keeping Tesseract's reading order."""
        lines: "OrderedDict[Tuple[int, int, int], List[str]]" = OrderedDict()
        confidences: List[float] = []

        for i in range(len(data["text"])):
            word = str(data["text"][i]).strip()
            conf = float(data["conf"][i])

            # conf < 0 marks layout rows without recognized text
            if not word or conf < 0:
                continue

            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(word)
            confidences.append(conf)

        text = "\n".join(" ".join(words) for words in lines.values())
        return text, confidences
