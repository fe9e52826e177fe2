"""Configuration loader with Pydantic validation for the certificate pipeline.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values. The empirical thresholds
used by the quality analyzer, the tier-driven enhancement policy and the OCR
pass list all live here as data rather than in code.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field


class QualityThresholdsConfig(BaseModel):
    """Quality tier thresholds.

    An image is Low tier if ANY low threshold is missed and High tier only if
    ALL high thresholds are exceeded; everything else is Medium.

    Attributes:
        low_pixel_density: Pixel count below which the image is Low tier
        low_sharpness: Laplacian variance below which the image is Low tier
        low_contrast: Intensity std-dev below which the image is Low tier
        high_pixel_density: Pixel count required for High tier
        high_sharpness: Laplacian variance required for High tier
        high_contrast: Intensity std-dev required for High tier
    """

    low_pixel_density: int = Field(default=500_000, gt=0)
    low_sharpness: float = Field(default=50.0, ge=0.0)
    low_contrast: float = Field(default=30.0, ge=0.0)
    high_pixel_density: int = Field(default=2_000_000, gt=0)
    high_sharpness: float = Field(default=100.0, ge=0.0)
    high_contrast: float = Field(default=60.0, ge=0.0)


class UpscaleStepConfig(BaseModel):
    """One upscaling sub-threshold: images below max_pixels get factor×."""

    max_pixels: int = Field(..., gt=0)
    factor: int = Field(..., ge=2, le=4)


class EnhancementConfig(BaseModel):
    """Tier-driven enhancement policy.

    Attributes:
        bilateral_diameter: Neighbourhood diameter for edge-preserving smoothing
        bilateral_sigma_color: Intensity-similarity sigma
        bilateral_sigma_space: Spatial-distance sigma
        clahe_clip_limit: Histogram clip limit for adaptive equalization
        clahe_min_tile: Minimum tile edge in pixels
        clahe_max_tile: Maximum tile edge in pixels
        unsharp_sigma: Gaussian sigma of the unsharp blur
        unsharp_threshold: Residual magnitude below which pixels are left alone
        low_tier_sharpen_amount: Unsharp amount for Low tier images
        medium_tier_sharpen_amount: Unsharp amount for Medium tier images
        medium_contrast_threshold: Medium tier gets equalization below this contrast
        medium_sharpness_threshold: Medium tier gets sharpening below this sharpness
        upscale_steps: Ordered sub-thresholds for Low tier upscaling
        max_pixels: Ceiling on the upscaled pixel count
        binarize_block_size: Block edge for local threshold refinement
        binarize_low_factor: Lower clip of the local threshold (× global)
        binarize_high_factor: Upper clip of the local threshold (× global)
    """

    bilateral_diameter: int = Field(default=5, ge=1)
    bilateral_sigma_color: float = Field(default=30.0, gt=0.0)
    bilateral_sigma_space: float = Field(default=30.0, gt=0.0)
    clahe_clip_limit: float = Field(default=3.0, gt=0.0)
    clahe_min_tile: int = Field(default=32, ge=2)
    clahe_max_tile: int = Field(default=64, ge=2)
    unsharp_sigma: float = Field(default=1.0, gt=0.0)
    unsharp_threshold: float = Field(default=10.0, ge=0.0)
    low_tier_sharpen_amount: float = Field(default=1.5, ge=0.0)
    medium_tier_sharpen_amount: float = Field(default=1.0, ge=0.0)
    medium_contrast_threshold: float = Field(default=50.0, ge=0.0)
    medium_sharpness_threshold: float = Field(default=80.0, ge=0.0)
    upscale_steps: List[UpscaleStepConfig] = Field(
        default_factory=lambda: [
            UpscaleStepConfig(max_pixels=200_000, factor=4),
            UpscaleStepConfig(max_pixels=500_000, factor=3),
            UpscaleStepConfig(max_pixels=1_000_000, factor=2),
        ]
    )
    max_pixels: int = Field(default=16_000_000, gt=0)
    binarize_block_size: int = Field(default=16, ge=2)
    binarize_low_factor: float = Field(default=0.7, gt=0.0, le=1.0)
    binarize_high_factor: float = Field(default=1.3, ge=1.0)


class PassConfigModel(BaseModel):
    """One OCR configuration variant.

    Attributes:
        name: Pass identifier reported in diagnostics
        psm: Tesseract page segmentation mode
        oem: Tesseract engine mode (None = engine default)
        whitelist: Optional character whitelist
        preserve_interword_spaces: Keep runs of spaces between words
    """

    name: str
    psm: int = Field(..., ge=0, le=13)
    oem: Optional[int] = Field(default=None, ge=0, le=3)
    whitelist: Optional[str] = None
    preserve_interword_spaces: bool = False


def _default_passes() -> List[PassConfigModel]:
    return [
        PassConfigModel(name="automatic-segmentation", psm=1, oem=1),
        PassConfigModel(name="uniform-block", psm=6),
        PassConfigModel(name="single-line", psm=7, preserve_interword_spaces=True),
        PassConfigModel(name="raw-line", psm=13),
    ]


class RecognitionConfig(BaseModel):
    """Recognition orchestrator configuration.

    Attributes:
        engine: Engine backend ("tesseract")
        languages: Tesseract language packs joined with '+'
        passes: Ordered pass list; order breaks selection ties
        max_total_seconds: Wall-clock budget across all passes
        long_text_length: Text longer than this earns the selection bonus
        long_text_bonus: Score bonus for long text
        agreement_bonus: Confidence bonus when two passes agree
    """

    engine: str = "tesseract"
    languages: str = "eng+vie"
    passes: List[PassConfigModel] = Field(default_factory=_default_passes)
    max_total_seconds: float = Field(default=60.0, gt=0.0)
    long_text_length: int = Field(default=50, ge=0)
    long_text_bonus: float = Field(default=10.0, ge=0.0)
    agreement_bonus: float = Field(default=5.0, ge=0.0)


class ExtractionConfig(BaseModel):
    """Field extraction configuration.

    Attributes:
        type_threshold: Minimum keyword score for a certificate type to win
        fuzzy_similarity: rapidfuzz partial_ratio needed for a loose keyword hit
        min_name_quality: Name candidates below this quality are discarded
        date_context_chars: Characters before a date inspected for role keywords
        confidence_cap: Upper bound of extraction confidence
        unknown_type_cap: Upper bound when no certificate type was found
    """

    type_threshold: float = Field(default=10.0, ge=0.0)
    fuzzy_similarity: float = Field(default=80.0, ge=0.0, le=100.0)
    min_name_quality: int = Field(default=30, ge=0)
    date_context_chars: int = Field(default=30, ge=1)
    confidence_cap: float = Field(default=95.0, ge=0.0, le=100.0)
    unknown_type_cap: float = Field(default=20.0, ge=0.0, le=100.0)


class ValidationConfig(BaseModel):
    """Validation engine configuration.

    Attributes:
        valid_confidence: Minimum confidence for is_valid
        min_age: Youngest plausible candidate age at exam
        max_age: Oldest plausible candidate age at exam
        max_issue_gap_days: Issue date later than this after exam is flagged
        mean_tolerance: Allowed gap between a mean-based aggregate and its skills
        sum_tolerance: Allowed gap between a sum-based aggregate and its skills
    """

    valid_confidence: float = Field(default=60.0, ge=0.0, le=100.0)
    min_age: int = Field(default=10, ge=0)
    max_age: int = Field(default=100, ge=1)
    max_issue_gap_days: int = Field(default=90, ge=0)
    mean_tolerance: float = Field(default=0.5, ge=0.0)
    sum_tolerance: float = Field(default=5.0, ge=0.0)


class PipelineConfig(BaseModel):
    """End-to-end pipeline settings.

    Attributes:
        min_text_length: Selected text shorter than this is low yield
        min_letters: Selected text with fewer letters is low yield
        require_digits: Selected text without any digit is low yield
        low_yield_confidence_factor: Multiplier applied to low-yield confidence
        check_document_likeness: Run the certificate-likeness heuristic
    """

    min_text_length: int = Field(default=20, ge=0)
    min_letters: int = Field(default=5, ge=0)
    require_digits: bool = True
    low_yield_confidence_factor: float = Field(default=0.5, ge=0.0, le=1.0)
    check_document_likeness: bool = True


class CertificateModuleConfig(BaseModel):
    """Complete certificate pipeline configuration.

    Attributes:
        quality: Quality tier thresholds
        enhancement: Enhancement policy
        recognition: OCR orchestration
        extraction: Field extraction
        validation: Validation engine
        pipeline: End-to-end settings
    """

    quality: QualityThresholdsConfig = QualityThresholdsConfig()
    enhancement: EnhancementConfig = Field(default_factory=EnhancementConfig)
    recognition: RecognitionConfig = Field(default_factory=RecognitionConfig)
    extraction: ExtractionConfig = ExtractionConfig()
    validation: ValidationConfig = ValidationConfig()
    pipeline: PipelineConfig = PipelineConfig()


class Config(BaseModel):
    """Root configuration container.

    Attributes:
        certificate: Certificate pipeline configuration
    """

    certificate: CertificateModuleConfig = CertificateModuleConfig()


def load_config(config_path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("src/pipeline/config.yaml"))
        >>> print(config.certificate.quality.low_sharpness)
        50.0
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    # Flat YAML sections are wrapped in the 'certificate' key
    return Config(certificate=CertificateModuleConfig(**config_dict))


def get_default_config() -> Config:
    """Get default configuration from bundled config.yaml file.

    Returns:
        Config object loaded from src/pipeline/config.yaml

    Example:
        >>> config = get_default_config()
        >>> print(config.certificate.recognition.languages)
        eng+vie
    """
    default_config_path = Path(__file__).parent / "config.yaml"
    if default_config_path.exists():
        return load_config(default_config_path)
    else:
        # Fallback to hardcoded defaults if config file is missing
        return Config()
