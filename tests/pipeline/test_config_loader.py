"""
Unit tests for the pipeline config_loader module.
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.pipeline.config_loader import (
    Config,
    EnhancementConfig,
    QualityThresholdsConfig,
    RecognitionConfig,
    get_default_config,
    load_config,
)


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_default_config(self):
        """Test the bundled configuration carries the documented thresholds."""
        config = get_default_config()

        assert isinstance(config, Config)
        quality = config.certificate.quality
        assert quality.low_pixel_density == 500_000
        assert quality.high_sharpness == 100.0
        assert quality.high_contrast == 60.0
        assert config.certificate.recognition.languages == "eng+vie"
        assert [p.name for p in config.certificate.recognition.passes] == [
            "automatic-segmentation",
            "uniform-block",
            "single-line",
            "raw-line",
        ]

    def test_bundled_matches_code_defaults(self):
        """Test config.yaml and the model defaults agree."""
        assert get_default_config() == Config()

    def test_load_custom_config(self, tmp_path):
        """Test flat YAML sections override defaults section by section."""
        custom_config = {
            "quality": {"low_sharpness": 40.0},
            "recognition": {
                "languages": "eng",
                "passes": [{"name": "block", "psm": 6}],
            },
            "validation": {"valid_confidence": 70.0},
        }
        config_path = tmp_path / "custom.yaml"
        config_path.write_text(yaml.dump(custom_config), encoding="utf-8")

        config = load_config(config_path)

        assert config.certificate.quality.low_sharpness == 40.0
        # Unspecified keys keep their defaults
        assert config.certificate.quality.low_contrast == 30.0
        assert config.certificate.recognition.languages == "eng"
        assert len(config.certificate.recognition.passes) == 1
        assert config.certificate.recognition.passes[0].oem is None
        assert config.certificate.validation.valid_confidence == 70.0
        assert config.certificate.extraction.confidence_cap == 95.0

    def test_empty_file_gives_defaults(self, tmp_path):
        """Test an empty YAML document falls back to defaults."""
        config_path = tmp_path / "empty.yaml"
        config_path.write_text("", encoding="utf-8")

        assert load_config(config_path) == Config()

    def test_missing_file(self):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Configuration file not found"):
            load_config(Path("does/not/exist.yaml"))

    def test_invalid_values_rejected(self, tmp_path):
        """Test pydantic rejects out-of-range values."""
        config_path = tmp_path / "bad.yaml"
        config_path.write_text(
            yaml.dump({"validation": {"valid_confidence": 150}}), encoding="utf-8"
        )

        with pytest.raises(ValidationError):
            load_config(config_path)


class TestConfigModels:
    """Tests for individual configuration models."""

    def test_quality_thresholds_positive(self):
        """Test pixel-density thresholds must be positive."""
        with pytest.raises(ValidationError):
            QualityThresholdsConfig(low_pixel_density=0)

    def test_upscale_factor_bounds(self):
        """Test upscale factors are limited to 2-4."""
        with pytest.raises(ValidationError):
            EnhancementConfig(upscale_steps=[{"max_pixels": 1000, "factor": 8}])

    def test_default_upscale_steps(self):
        """Test the default upscale ladder."""
        steps = EnhancementConfig().upscale_steps
        assert [(s.max_pixels, s.factor) for s in steps] == [
            (200_000, 4),
            (500_000, 3),
            (1_000_000, 2),
        ]

    def test_psm_bounds(self):
        """Test page segmentation modes outside 0-13 are rejected."""
        with pytest.raises(ValidationError):
            RecognitionConfig(passes=[{"name": "bad", "psm": 14}])

    def test_budget_positive(self):
        """Test the recognition budget must be positive."""
        with pytest.raises(ValidationError):
            RecognitionConfig(max_total_seconds=0)
