"""
Immutable engine configuration.

``EngineConfig`` is built once from ``Settings`` (environment / .env) and
optionally refined with key-value rows from the persistence layer. It is a
frozen dataclass passed explicitly to every engine function, so two calls
with the same config and inputs always compute the same result.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

from config import DEFAULT_INFERENCE_MODELS, Settings, get_settings

# Persistence keys understood by ``with_overrides``
_FLOAT_KEYS: dict[str, str] = {
    "tci_coefficient": "tci_override",
    "fri_coefficient": "fri_override",
    "bri_coefficient": "bri_override",
    "stage_threshold_youthful": "stage_threshold_youthful",
    "stage_threshold_developing": "stage_threshold_developing",
    "stage_threshold_mature": "stage_threshold_mature",
    "risk_threshold_off_flavor": "off_flavor_threshold",
    "quality_threshold_optimal": "optimal_quality_threshold",
}


@dataclass(frozen=True)
class EngineConfig:
    """All tunables of the prediction engine."""

    # Environment
    ocean_temp_c: float = 4.0
    cellar_temp_c: float = 12.0
    activation_energy_j_mol: float = 47000.0
    default_depth_m: float = 30.0

    # Stored coefficient overrides (None = derive from physics)
    tci_override: float | None = None
    fri_override: float | None = None
    bri_override: float | None = None

    # Aging stage boundaries (years, inclusive upper bounds)
    stage_threshold_youthful: float = 3.0
    stage_threshold_developing: float = 7.0
    stage_threshold_mature: float = 15.0

    # Harvest window
    off_flavor_threshold: float = 70.0
    optimal_quality_threshold: float = 80.0
    aroma_threshold: float = 70.0
    scan_start_month: int = 6
    scan_end_month: int = 36
    default_window: tuple[int, int] = (12, 18)

    # Matching / training
    top_k: int = 5
    min_group_size: int = 5

    # Inference
    inference_models: tuple[str, ...] = DEFAULT_INFERENCE_MODELS
    inference_timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> EngineConfig:
        """Build a config from application settings."""
        settings = settings or get_settings()
        return cls(
            ocean_temp_c=settings.ocean_temp_c,
            cellar_temp_c=settings.cellar_temp_c,
            activation_energy_j_mol=settings.activation_energy_j_mol,
            default_depth_m=settings.default_depth_m,
            stage_threshold_youthful=settings.stage_threshold_youthful,
            stage_threshold_developing=settings.stage_threshold_developing,
            stage_threshold_mature=settings.stage_threshold_mature,
            off_flavor_threshold=settings.risk_threshold_off_flavor,
            optimal_quality_threshold=settings.quality_threshold_optimal,
            aroma_threshold=settings.aroma_threshold_min,
            top_k=settings.top_k_clusters,
            min_group_size=settings.min_group_size,
            inference_models=tuple(settings.get_inference_models()),
            inference_timeout_seconds=settings.inference_timeout_seconds,
        )

    def with_overrides(
        self,
        rows: Mapping[str, Any] | Iterable[Mapping[str, Any]],
    ) -> EngineConfig:
        """
        Apply stored configuration values.

        Accepts either a plain ``{key: value}`` mapping or an iterable of
        ``{"config_key": ..., "config_value": ...}`` rows. Unknown keys are
        skipped; unparseable or non-positive values are ignored with a
        warning and the current value is kept.
        """
        if isinstance(rows, Mapping):
            pairs = list(rows.items())
        else:
            pairs = [(row.get("config_key"), row.get("config_value")) for row in rows]

        changes: dict[str, float] = {}
        for key, raw in pairs:
            attr = _FLOAT_KEYS.get(str(key))
            if attr is None or raw is None or raw == "":
                continue
            try:
                value = float(raw)
            except (TypeError, ValueError):
                logger.warning(f"Ignoring config '{key}': not a number ({raw!r})")
                continue
            if value <= 0:
                logger.warning(f"Ignoring config '{key}': must be positive ({value})")
                continue
            changes[attr] = value

        return replace(self, **changes) if changes else self
