"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

from typing import Dict, List, Optional

import pytest

from src.recognition.types import EngineOutput, PassConfig

IELTS_TEXT = """IELTS
INTERNATIONAL ENGLISH LANGUAGE TESTING SYSTEM
Test Report Form
ACADEMIC
Centre Number VN029
Date 15/03/2023
Family Name NGUYEN
First Name VAN AN
Date of Birth 20/05/1998
Listening 7.5 Reading 8.0 Writing 6.5 Speaking 7.0
Overall Band Score 7.5
Test Report Form Number 23VN012345NGUA001A
British Council"""

TOEIC_TEXT = """TOEIC
Listening and Reading Test
Official Score Certificate
Last Name TRAN
First Name THI MAI
Test Date 10/06/2023
Date of Birth 02/09/2000
Listening 450 Reading 400
Total Score 850
Registration Number 1234567890
IIG Vietnam"""


class FakeEngine:
    """Scripted OCR engine recording every call.

    Args:
        outputs: pass name → EngineOutput, or an Exception to raise
        default: Output for passes not listed in ``outputs``
    """

    def __init__(
        self,
        outputs: Optional[Dict[str, object]] = None,
        default: object = None,
    ):
        self.outputs = outputs or {}
        self.default = default if default is not None else EngineOutput(IELTS_TEXT, 90.0)
        self.calls: List[PassConfig] = []

    def recognize(self, image, config: PassConfig) -> EngineOutput:
        self.calls.append(config)
        output = self.outputs.get(config.name, self.default)
        if isinstance(output, Exception):
            raise output
        return output


@pytest.fixture
def ielts_text():
    """Fixture providing clean IELTS test report form text."""
    return IELTS_TEXT


@pytest.fixture
def toeic_text():
    """Fixture providing clean TOEIC score certificate text."""
    return TOEIC_TEXT


@pytest.fixture
def fake_engine():
    """Fixture providing an engine that always returns the IELTS text."""
    return FakeEngine()


@pytest.fixture
def certificate_image():
    """Fixture providing a sharp, high-contrast synthetic certificate (BGR)."""
    import cv2
    import numpy as np

    # White A4-landscape page with a dark frame and black text rows
    image = np.full((1200, 1700, 3), 255, dtype=np.uint8)
    image[:40, :] = 0
    image[-40:, :] = 0
    image[:, :40] = 0
    image[:, -40:] = 0
    lines = [
        "IELTS TEST REPORT FORM",
        "Family Name NGUYEN",
        "First Name VAN AN",
        "Date of Birth 20/05/1998",
        "Listening 7.5 Reading 8.0",
        "Writing 6.5 Speaking 7.0",
        "Overall Band Score 7.5",
    ]
    for i, line in enumerate(lines):
        cv2.putText(
            image,
            line,
            (80, 150 + i * 140),
            cv2.FONT_HERSHEY_SIMPLEX,
            2.2,
            (0, 0, 0),
            4,
        )
    return image


@pytest.fixture
def blurry_image():
    """Fixture providing a small, blurred, low-contrast grayscale image."""
    import cv2
    import numpy as np

    image = np.full((300, 300), 150, dtype=np.uint8)
    cv2.putText(image, "IELTS 7.5", (20, 150), cv2.FONT_HERSHEY_SIMPLEX, 1.2, 120, 2)
    return cv2.GaussianBlur(image, (9, 9), 3)


@pytest.fixture
def png_bytes(certificate_image):
    """Fixture providing the synthetic certificate encoded as PNG bytes."""
    import cv2

    ok, buffer = cv2.imencode(".png", certificate_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def engine_factory():
    """Fixture providing the FakeEngine class for scripted outputs."""
    return FakeEngine
