"""OCR engine contract and factory.

The OCR engine is a black box: given a pixel buffer and a pass
configuration it returns recognized text plus a confidence, and it may raise.
Engines may be synchronous or expose ``recognize`` as a coroutine function.
"""

import asyncio
import logging
from typing import Awaitable, Protocol, Union, runtime_checkable

import numpy as np

from src.pipeline.config_loader import RecognitionConfig
from src.recognition.types import EngineOutput, PassConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class OCREngine(Protocol):
    """Anything with ``recognize(image, config) -> EngineOutput``."""

    def recognize(
        self, image: np.ndarray, config: PassConfig
    ) -> Union[EngineOutput, Awaitable[EngineOutput]]:
        ...


class ThreadedEngine:
    """Runs a synchronous engine in a worker thread for async callers.

    Lets an event loop serve other pipeline invocations while one OCR call is
    in flight; the wrapped engine is still called once at a time per run.

    Example:
        >>> engine = ThreadedEngine(TesseractEngine())
        >>> result = await orchestrator.run_async(image)
    """

    def __init__(self, engine: OCREngine):
        self.engine = engine

    async def recognize(self, image: np.ndarray, config: PassConfig) -> EngineOutput:
        return await asyncio.to_thread(self.engine.recognize, image, config)


def create_engine(config: RecognitionConfig) -> OCREngine:
    """Create the engine named in the recognition configuration.

    Args:
        config: Recognition configuration

    Returns:
        Engine instance

    Raises:
        ValueError: If the engine type is unknown
        RuntimeError: If the engine binary is not installed
    """
    engine_type = config.engine.lower()
    if engine_type == "tesseract":
        from src.recognition.engine_tesseract import TesseractEngine

        return TesseractEngine()

    raise ValueError(f"Unknown OCR engine type: {config.engine}")
