"""Certificate processor: the end-to-end extraction pipeline.

This module chains the five stages for a single image:
    1. QUALITY ANALYSIS: resolution, sharpness, contrast → tier
    2. ENHANCEMENT: tier-driven pixel transforms
    3. RECOGNITION: multi-pass OCR and best-text selection
    4. FIELD EXTRACTION: structured fields + extraction confidence
    5. VALIDATION: per-type rules, corrections, validation confidence

Only undecodable input and zero usable OCR passes are fatal. Everything else
(skipped enhancement steps, failed passes, low-yield text) is recorded in the
result.

Example:
    >>> processor = CertificateProcessor()
    >>> result = processor.process(Path("ielts.jpg"))
    >>> print(result.to_dict()["certificateType"], result.confidence)
    IELTS 95.0
"""

import logging
import time
import warnings
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from src.common.cancellation import (
    CancellationToken,
    ProgressCallback,
    ProgressReporter,
    check_cancelled,
)
from src.common.errors import DEFAULT_IMAGE_SUGGESTIONS, LowYieldWarning
from src.common.image_io import ImageSource, decode_image
from src.common.types import RasterImage
from src.enhancement.pipeline import EnhancementPipeline
from src.enhancement.types import EnhancementRecord
from src.extraction.extractor import FieldExtractor
from src.pipeline.config_loader import Config, get_default_config, load_config
from src.pipeline.types import CertificateResult
from src.quality.analyzer import analyze_quality
from src.quality.document_likeness import assess_document_likeness
from src.quality.types import QualityProfile
from src.recognition.engine import OCREngine, create_engine
from src.recognition.orchestrator import RecognitionOrchestrator
from src.recognition.types import RecognitionResult
from src.validation.validator import CertificateValidator

logger = logging.getLogger(__name__)

PROGRESS_QUALITY = 0.05
PROGRESS_ENHANCE = 0.1
PROGRESS_ENHANCE_STEP = 0.02
PROGRESS_RECOGNITION = 0.2
PROGRESS_RECOGNITION_SPAN = 0.6
PROGRESS_EXTRACTION = 0.85
PROGRESS_VALIDATION = 0.95


class CertificateProcessor:
    """End-to-end certificate extraction.

    Instances hold configuration and stage objects but no per-run state,
    so one processor may serve many invocations.

    Args:
        config_path: Optional path to config YAML. If None, uses defaults.
        engine: Optional OCR engine; created from configuration if None.
        config: Optional already-loaded configuration (overrides config_path).

    Attributes:
        config: Full configuration object
        engine: OCR engine
        enhancer: Enhancement pipeline
        orchestrator: Recognition orchestrator
        extractor: Field extractor
        validator: Certificate validator
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        engine: Optional[OCREngine] = None,
        config: Optional[Config] = None,
    ):
        if config is not None:
            self.config: Config = config
        elif config_path is None:
            self.config = get_default_config()
        else:
            self.config = load_config(config_path)

        module = self.config.certificate
        self.engine = engine if engine is not None else create_engine(module.recognition)
        self.enhancer = EnhancementPipeline(module.enhancement)
        self.orchestrator = RecognitionOrchestrator(self.engine, module.recognition)
        self.extractor = FieldExtractor(module.extraction)
        self.validator = CertificateValidator(module.validation)

        logger.info(
            f"Initialized certificate processor with {type(self.engine).__name__} "
            f"({len(self.orchestrator.passes)} OCR passes)"
        )

    def process(
        self,
        source: ImageSource,
        type_hint: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
    ) -> CertificateResult:
        """Run the full pipeline on one image.

        Args:
            source: Encoded bytes, file path, decoded array or RasterImage
            type_hint: Optional certificate type (e.g., "IELTS")
            on_progress: Optional callback receiving ProgressEvent objects
            token: Optional cancellation token

        Returns:
            CertificateResult

        Raises:
            ImageDecodeError: Input could not be decoded (no OCR call is made)
            AllPassesFailedError: No OCR pass produced text
            RecognitionTimeoutError: OCR budget ran out without any text
            PipelineCancelledError: The token was cancelled
        """
        start_time = time.perf_counter()
        reporter = ProgressReporter(on_progress)

        image, profile, enhanced, record, notes = self._prepare(source, token, reporter)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 3: RECOGNITION
        # ═══════════════════════════════════════════════════════════════
        recognition = self.orchestrator.run(
            enhanced,
            token=token,
            reporter=reporter,
            progress_start=PROGRESS_RECOGNITION,
            progress_span=PROGRESS_RECOGNITION_SPAN,
        )

        return self._complete(
            recognition, profile, record, notes, type_hint, token, reporter, start_time
        )

    async def process_async(
        self,
        source: ImageSource,
        type_hint: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
    ) -> CertificateResult:
        """Async variant of process(); suspends only inside OCR engine calls."""
        start_time = time.perf_counter()
        reporter = ProgressReporter(on_progress)

        image, profile, enhanced, record, notes = self._prepare(source, token, reporter)

        recognition = await self.orchestrator.run_async(
            enhanced,
            token=token,
            reporter=reporter,
            progress_start=PROGRESS_RECOGNITION,
            progress_span=PROGRESS_RECOGNITION_SPAN,
        )

        return self._complete(
            recognition, profile, record, notes, type_hint, token, reporter, start_time
        )

    # ═══════════════════════════════════════════════════════════════════
    # Stages
    # ═══════════════════════════════════════════════════════════════════

    def _prepare(
        self,
        source: ImageSource,
        token: Optional[CancellationToken],
        reporter: ProgressReporter,
    ) -> Tuple[RasterImage, QualityProfile, RasterImage, EnhancementRecord, List[str]]:
        notes: List[str] = []

        # ═══════════════════════════════════════════════════════════════
        # STAGE 0: DECODE
        # ═══════════════════════════════════════════════════════════════
        reporter.report("Reading image", 0.0)
        image = decode_image(source)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 1: QUALITY ANALYSIS
        # ═══════════════════════════════════════════════════════════════
        check_cancelled(token, "quality analysis")
        reporter.report("Analyzing image quality", PROGRESS_QUALITY)
        profile = analyze_quality(image, self.config.certificate.quality)

        if self.config.certificate.pipeline.check_document_likeness:
            likeness = assess_document_likeness(image)
            if not likeness.is_likely_document:
                notes.append("Image may not be a certificate")
                notes.extend(likeness.warnings)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 2: ENHANCEMENT
        # ═══════════════════════════════════════════════════════════════
        reporter.report(f"Enhancing {profile.tier.value.lower()} quality image", PROGRESS_ENHANCE)
        step_count = 0

        def on_step(name: str) -> None:
            nonlocal step_count
            step_count += 1
            reporter.report(
                f"Enhancing: {name}",
                min(
                    PROGRESS_RECOGNITION,
                    PROGRESS_ENHANCE + step_count * PROGRESS_ENHANCE_STEP,
                ),
            )

        enhanced, record = self.enhancer.enhance(image, profile, token=token, on_step=on_step)
        return image, profile, enhanced, record, notes

    def _complete(
        self,
        recognition: RecognitionResult,
        profile: QualityProfile,
        record: EnhancementRecord,
        notes: List[str],
        type_hint: Optional[str],
        token: Optional[CancellationToken],
        reporter: ProgressReporter,
        start_time: float,
    ) -> CertificateResult:
        settings = self.config.certificate.pipeline
        text = recognition.selected.text

        # ═══════════════════════════════════════════════════════════════
        # STAGE 4: FIELD EXTRACTION
        # ═══════════════════════════════════════════════════════════════
        check_cancelled(token, "field extraction")
        reporter.report("Extracting certificate fields", PROGRESS_EXTRACTION)
        extraction = self.extractor.extract(text, type_hint=type_hint)

        # ═══════════════════════════════════════════════════════════════
        # STAGE 5: VALIDATION
        # ═══════════════════════════════════════════════════════════════
        check_cancelled(token, "validation")
        reporter.report("Validating extracted data", PROGRESS_VALIDATION)
        validation = self.validator.validate(extraction)

        confidence = extraction.confidence * validation.confidence / 100.0

        low_yield = self._low_yield_reason(text)
        if low_yield:
            message = f"Low text yield: {low_yield}"
            warnings.warn(message, LowYieldWarning, stacklevel=3)
            logger.warning(message)
            notes.append(message)
            confidence *= settings.low_yield_confidence_factor
            validation = replace(
                validation,
                suggestions=validation.suggestions
                + tuple(s for s in DEFAULT_IMAGE_SUGGESTIONS if s not in validation.suggestions),
            )

        confidence = float(min(100.0, max(0.0, round(confidence))))
        processing_time_ms = (time.perf_counter() - start_time) * 1000
        reporter.report("Done", 1.0)

        logger.info(
            f"Processed certificate: type={extraction.type_name or 'unknown'}, "
            f"quality={profile.tier.value}, confidence={confidence:.0f}, "
            f"valid={validation.is_valid} ({processing_time_ms:.0f}ms)"
        )

        return CertificateResult(
            extraction=extraction,
            validation=validation,
            quality=profile,
            enhancement=record,
            recognition=recognition,
            confidence=confidence,
            warnings=tuple(notes),
            processing_time_ms=processing_time_ms,
        )

    def _low_yield_reason(self, text: str) -> Optional[str]:
        settings = self.config.certificate.pipeline
        stripped = "".join(text.split())
        letters = sum(1 for c in stripped if c.isalpha())
        digits = sum(1 for c in stripped if c.isdigit())

        if len(stripped) < settings.min_text_length:
            return f"only {len(stripped)} characters recognized"
        if letters < settings.min_letters:
            return f"only {letters} letters recognized"
        if settings.require_digits and not digits:
            return "no digits recognized"
        return None
