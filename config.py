"""
Configuration settings for the UAPS prediction engine.

Uses Pydantic Settings for environment variable management with .env file support.
Runtime code never reads these settings directly inside the scoring functions;
they are folded into an immutable ``EngineConfig`` (see ``uaps.core.config``)
that is passed through each call.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Model variants tried in order when none are configured
DEFAULT_INFERENCE_MODELS: tuple[str, ...] = ("gemini-2.5-flash", "gemini-2.5-flash-lite")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Inference Service
    # ========================================
    inference_backend: Literal["gemini", "http"] = Field(
        default="gemini",
        description="External inference backend: Gemini API or a self-hosted HTTP endpoint",
    )
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Generative AI (Gemini) API key",
    )
    inference_models: str = Field(
        default=",".join(DEFAULT_INFERENCE_MODELS),
        description="Comma-separated model variants, tried in order",
    )
    inference_timeout_seconds: float = Field(
        default=30.0,
        description="Per-attempt timeout for one model variant",
    )
    inference_base_url: str = Field(
        default="http://127.0.0.1:11434",
        description="Base URL of the self-hosted generation endpoint (http backend)",
    )

    # ========================================
    # Physical Environment Defaults
    # ========================================
    ocean_temp_c: float = Field(default=4.0, description="Undersea storage temperature (°C)")
    cellar_temp_c: float = Field(default=12.0, description="Reference cellar temperature (°C)")
    activation_energy_j_mol: float = Field(
        default=47000.0,
        description="Activation energy of the oxidative reaction (J/mol)",
    )
    default_depth_m: float = Field(default=30.0, description="Default aging depth (m)")

    # ========================================
    # Thresholds
    # ========================================
    risk_threshold_off_flavor: float = Field(
        default=70.0,
        description="Off-flavor risk at or above which a month is disqualified / a warning is raised",
    )
    quality_threshold_optimal: float = Field(
        default=80.0,
        description="Minimum texture maturity for a month to enter the harvest window",
    )
    aroma_threshold_min: float = Field(
        default=70.0,
        description="Minimum aroma freshness for a month to enter the harvest window",
    )
    stage_threshold_youthful: float = Field(default=3.0, description="Max aging years for 'youthful'")
    stage_threshold_developing: float = Field(default=7.0, description="Max aging years for 'developing'")
    stage_threshold_mature: float = Field(default=15.0, description="Max aging years for 'mature'")

    # ========================================
    # Matching & Training
    # ========================================
    top_k_clusters: int = Field(default=5, description="Number of clusters kept after matching")
    min_group_size: int = Field(default=5, description="Minimum records for a trained group")

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    def get_inference_models(self) -> list[str]:
        """Model variants in fallback order."""
        return [m.strip() for m in self.inference_models.split(",") if m.strip()]

    def has_ai_configured(self) -> bool:
        """Check if an external inference backend can be used."""
        if self.inference_backend == "http":
            return bool(self.inference_base_url)
        return bool(self.gemini_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
