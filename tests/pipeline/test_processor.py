"""
Integration tests for the end-to-end CertificateProcessor.

The OCR engine is scripted so the tests exercise the real quality,
enhancement, extraction and validation stages without Tesseract.
"""

import asyncio

import pytest

from src.common.cancellation import CancellationToken
from src.common.errors import (
    AllPassesFailedError,
    ImageDecodeError,
    LowYieldWarning,
    PipelineCancelledError,
)
from src.enhancement.types import STEP_BINARIZATION
from src.extraction.rules import CertificateType
from src.pipeline.config_loader import CertificateModuleConfig, Config, PipelineConfig
from src.pipeline.processor import CertificateProcessor
from src.recognition.types import EngineOutput

# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def processor(fake_engine):
    """Create CertificateProcessor backed by the scripted engine."""
    return CertificateProcessor(engine=fake_engine)


# ═══════════════════════════════════════════════════════════════════════════
# TESTS
# ═══════════════════════════════════════════════════════════════════════════


class TestProcess:
    """Test the synchronous pipeline."""

    def test_sharp_ielts_certificate(self, processor, certificate_image):
        """Test a clean scan yields a high-confidence IELTS result."""
        result = processor.process(certificate_image)

        assert result.extraction.certificate_type == CertificateType.IELTS
        assert result.extraction.full_name == "VAN AN NGUYEN"
        assert result.image_quality == "High"
        assert result.enhancement_applied == (STEP_BINARIZATION,)
        assert result.confidence >= 80
        assert result.validation.is_valid
        assert result.processing_time_ms > 0

    def test_output_shape(self, processor, certificate_image):
        """Test the serialized result carries every documented key."""
        data = processor.process(certificate_image).to_dict()

        assert data["certificateType"] == "IELTS"
        assert data["fullName"] == "VAN AN NGUYEN"
        assert data["scores"]["overall"] == 7.5
        assert data["imageQuality"] == "High"
        assert data["enhancementApplied"] == [STEP_BINARIZATION]
        assert set(data["validation"]) == {
            "isValid",
            "confidence",
            "errors",
            "suggestions",
            "correctedFields",
        }
        assert data["diagnostics"]["selectedPass"] == "automatic-segmentation"
        assert len(data["diagnostics"]["ocrPasses"]) == 4

    def test_without_diagnostics(self, processor, certificate_image):
        """Test diagnostics can be omitted."""
        data = processor.process(certificate_image).to_dict(include_diagnostics=False)

        assert "diagnostics" not in data

    def test_encoded_bytes(self, processor, png_bytes):
        """Test encoded PNG bytes are accepted."""
        result = processor.process(png_bytes)

        assert result.extraction.certificate_type == CertificateType.IELTS

    def test_blurry_image_enhanced(self, processor, blurry_image):
        """Test a small blurred image is Low tier and heavily enhanced."""
        result = processor.process(blurry_image)

        assert result.image_quality == "Low"
        assert len(result.enhancement_applied) >= 3

    def test_final_confidence_combines_stages(self, processor, certificate_image):
        """Test final confidence is extraction × validation confidence."""
        result = processor.process(certificate_image)

        expected = round(result.extraction.confidence * result.validation.confidence / 100)
        assert result.confidence == expected

    def test_type_hint(self, engine_factory, certificate_image, toeic_text):
        """Test a type hint is forwarded to extraction."""
        processor = CertificateProcessor(
            engine=engine_factory(default=EngineOutput(toeic_text, 88.0))
        )

        result = processor.process(certificate_image, type_hint="TOEIC")

        assert result.extraction.certificate_type == CertificateType.TOEIC
        assert result.extraction.scores["total"] == 850.0

    def test_non_certificate_text(self, engine_factory, certificate_image):
        """Test unrelated text gives a low-yield, low-confidence result."""
        processor = CertificateProcessor(
            engine=engine_factory(default=EngineOutput("cat photo 2021", 60.0))
        )

        with pytest.warns(LowYieldWarning):
            result = processor.process(certificate_image)

        data = result.to_dict()
        assert data["certificateType"] == ""
        assert result.confidence < 30
        assert not result.validation.is_valid
        assert any("Low text yield" in w for w in result.warnings)
        assert any("evenly lit" in s for s in result.validation.suggestions)

    def test_photo_caption_stays_low_confidence(self, engine_factory, certificate_image):
        """Test a non-certificate caption with a name, number and date scores below 30."""
        caption = "HAPPY BIRTHDAY MISSY\nIMG 20210312\n12/03/2021 10:45"
        processor = CertificateProcessor(
            engine=engine_factory(default=EngineOutput(caption, 85.0))
        )

        result = processor.process(certificate_image)

        assert result.to_dict()["certificateType"] == ""
        assert result.extraction.confidence <= 20
        assert result.confidence < 30
        assert not result.validation.is_valid

    def test_text_without_digits_is_low_yield(self, engine_factory, certificate_image):
        """Test long digit-free text is low yield and its confidence halved."""
        text = "WELCOME TO THE ANNUAL COMPANY PICNIC\nFOOD AND DRINKS FOR EVERYONE"
        processor = CertificateProcessor(
            engine=engine_factory(default=EngineOutput(text, 85.0))
        )

        with pytest.warns(LowYieldWarning, match="no digits"):
            result = processor.process(certificate_image)

        expected = round(
            result.extraction.confidence * result.validation.confidence / 100 * 0.5
        )
        assert result.confidence == expected
        assert any("no digits" in w for w in result.warnings)

    def test_digit_check_can_be_disabled(self, engine_factory, certificate_image):
        """Test require_digits=False accepts digit-free text."""
        text = "WELCOME TO THE ANNUAL COMPANY PICNIC\nFOOD AND DRINKS FOR EVERYONE"
        config = Config(
            certificate=CertificateModuleConfig(
                pipeline=PipelineConfig(require_digits=False)
            )
        )
        processor = CertificateProcessor(
            engine=engine_factory(default=EngineOutput(text, 85.0)), config=config
        )

        result = processor.process(certificate_image)

        assert not any("Low text yield" in w for w in result.warnings)

    def test_corrupt_bytes(self, fake_engine):
        """Test undecodable input fails before any OCR call."""
        processor = CertificateProcessor(engine=fake_engine)

        with pytest.raises(ImageDecodeError):
            processor.process(b"definitely not an image")

        assert fake_engine.calls == []

    def test_all_passes_failed(self, engine_factory, certificate_image):
        """Test zero usable passes is fatal."""
        processor = CertificateProcessor(engine=engine_factory(default=RuntimeError("boom")))

        with pytest.raises(AllPassesFailedError):
            processor.process(certificate_image)

    def test_custom_config(self, fake_engine, certificate_image):
        """Test an explicit Config object is honoured."""
        config = Config(
            certificate=CertificateModuleConfig(
                pipeline=PipelineConfig(check_document_likeness=False)
            )
        )
        processor = CertificateProcessor(engine=fake_engine, config=config)

        result = processor.process(certificate_image)

        assert not any("may not be a certificate" in w for w in result.warnings)

    def test_processor_reusable(self, processor, certificate_image, blurry_image):
        """Test one processor serves several runs without shared state."""
        first = processor.process(certificate_image)
        processor.process(blurry_image)
        again = processor.process(certificate_image)

        assert first.to_dict(include_diagnostics=False) == again.to_dict(
            include_diagnostics=False
        )


class TestProgressAndCancellation:
    """Test progress reporting and cooperative cancellation."""

    def test_progress_monotonic(self, processor, blurry_image):
        """Test progress never decreases and ends at 1.0."""
        events = []

        processor.process(blurry_image, on_progress=events.append)

        values = [e.progress for e in events]
        assert values[0] == 0.0
        assert values == sorted(values)
        assert values[-1] == 1.0
        assert events[-1].status == "Done"

    def test_cancelled_before_start(self, processor, certificate_image, fake_engine):
        """Test a pre-cancelled token stops the run before OCR."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(PipelineCancelledError):
            processor.process(certificate_image, token=token)

        assert fake_engine.calls == []

    def test_cancelled_from_progress_callback(self, processor, certificate_image):
        """Test cancelling mid-run stops at the next checkpoint."""
        token = CancellationToken()

        def on_progress(event):
            if event.progress >= 0.85:
                token.cancel()

        with pytest.raises(PipelineCancelledError) as exc_info:
            processor.process(certificate_image, on_progress=on_progress, token=token)

        assert exc_info.value.stage == "validation"


class TestProcessAsync:
    """Test the async pipeline variant."""

    def test_async_matches_sync(self, processor, certificate_image):
        """Test process_async gives the same fields as process."""
        sync_result = processor.process(certificate_image)
        async_result = asyncio.run(processor.process_async(certificate_image))

        assert async_result.extraction == sync_result.extraction
        assert async_result.confidence == sync_result.confidence

    def test_async_engine(self, certificate_image, ielts_text):
        """Test an engine with a coroutine recognize method."""

        class AsyncEngine:
            async def recognize(self, image, config):
                await asyncio.sleep(0)
                return EngineOutput(ielts_text, 85.0)

        processor = CertificateProcessor(engine=AsyncEngine())

        result = asyncio.run(processor.process_async(certificate_image))

        assert result.extraction.certificate_type == CertificateType.IELTS
