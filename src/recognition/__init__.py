"""
Recognition Orchestrator.

Drives the external OCR engine across several segmentation configurations
and selects the best recognized text.
"""

from src.recognition.engine import OCREngine, ThreadedEngine, create_engine
from src.recognition.orchestrator import RecognitionOrchestrator, select_best
from src.recognition.types import (
    EngineOutput,
    OCRPassResult,
    PassConfig,
    RecognitionResult,
    SelectedText,
)

__all__ = [
    "OCREngine",
    "ThreadedEngine",
    "create_engine",
    "RecognitionOrchestrator",
    "select_best",
    "EngineOutput",
    "OCRPassResult",
    "PassConfig",
    "RecognitionResult",
    "SelectedText",
]
