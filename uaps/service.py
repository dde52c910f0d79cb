"""
UAPS Engine service layer.

The three operations callers use:

    train(records)                                       -> list[TrainedClusterModel]
    predict(candidate, duration_months, models, coeffs)  -> AgingPrediction   (async)
    timeline(candidate, coeffs)                          -> list[TimelinePoint]

``UAPSEngine`` bundles them with a ``ModelRegistry``, the inference client
and one ``EngineConfig`` for long-lived callers (CLI, web handlers).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence

from loguru import logger

from config import Settings, get_settings
from uaps.core.config import EngineConfig
from uaps.core.models import (
    AgingPrediction,
    CandidateProduct,
    CoefficientSet,
    FlavorAxis,
    TerrestrialRecord,
    TimelinePoint,
    TrainedClusterModel,
)
from uaps.ensemble.blender import EnsembleBlender
from uaps.ensemble.inference import InferenceClient, build_inference_client
from uaps.physics.coefficients import compute_coefficients
from uaps.prediction.matcher import find_similar_clusters
from uaps.prediction.timeline import generate_timeline
from uaps.training.trainer import ModelRegistry, train_models


def train(
    records: Iterable[TerrestrialRecord],
    config: EngineConfig | None = None,
) -> list[TrainedClusterModel]:
    """Train cluster models from terrestrial records."""
    return train_models(records, config)


async def predict(
    candidate: CandidateProduct,
    duration_months: int,
    models: Sequence[TrainedClusterModel],
    coefficients: CoefficientSet,
    *,
    config: EngineConfig | None = None,
    client: InferenceClient | None = None,
    expert_profile: dict[FlavorAxis, float] | None = None,
) -> AgingPrediction:
    """
    Predict the state of ``candidate`` after ``duration_months`` undersea.

    Without a client the result is the deterministic statistical fallback.
    """
    config = config or EngineConfig()
    matches = find_similar_clusters(candidate, models, config.top_k)
    blender = EnsembleBlender(client=client, config=config)
    return await blender.predict(candidate, duration_months, matches, coefficients, expert_profile)


def predict_sync(
    candidate: CandidateProduct,
    duration_months: int,
    models: Sequence[TrainedClusterModel],
    coefficients: CoefficientSet,
    **kwargs,
) -> AgingPrediction:
    """Blocking wrapper around ``predict`` for callers without an event loop."""
    return asyncio.run(predict(candidate, duration_months, models, coefficients, **kwargs))


def timeline(
    candidate: CandidateProduct,
    coefficients: CoefficientSet,
    config: EngineConfig | None = None,
) -> list[TimelinePoint]:
    """Monthly score series for charts."""
    return generate_timeline(candidate, coefficients, config)


class UAPSEngine:
    """Long-lived engine: configuration, current models and inference client."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        client: InferenceClient | None = None,
        models: Iterable[TrainedClusterModel] = (),
    ):
        self.config = config or EngineConfig()
        self.client = client
        self.registry = ModelRegistry(models)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> UAPSEngine:
        settings = settings or get_settings()
        return cls(
            config=EngineConfig.from_settings(settings),
            client=build_inference_client(settings),
        )

    @property
    def models(self) -> tuple[TrainedClusterModel, ...]:
        return self.registry.snapshot()

    def train(self, records: Iterable[TerrestrialRecord]) -> tuple[TrainedClusterModel, ...]:
        """Retrain and publish a new model set."""
        return self.registry.retrain(records, self.config)

    def coefficients(self, depth_m: float | None = None) -> CoefficientSet:
        return compute_coefficients(self.config, depth_m)

    async def predict(
        self,
        candidate: CandidateProduct,
        duration_months: int | None = None,
        expert_profile: dict[FlavorAxis, float] | None = None,
    ) -> AgingPrediction:
        """Predict against the current model snapshot with site coefficients for the candidate's depth."""
        months = duration_months if duration_months is not None else candidate.planned_duration_months
        if months is None:
            # No duration anywhere: aim for the middle of the default window
            months = sum(self.config.default_window) // 2
            logger.debug(f"No duration for '{candidate.name}', using {months} months")
        return await predict(
            candidate,
            months,
            self.models,
            self.coefficients(candidate.aging_depth_m),
            config=self.config,
            client=self.client,
            expert_profile=expert_profile,
        )

    def timeline(self, candidate: CandidateProduct) -> list[TimelinePoint]:
        return timeline(candidate, self.coefficients(candidate.aging_depth_m), self.config)
