"""
Ensemble Blender.

Top-level entry point for a single prediction. The statistical baseline
(flavor profile, quality curves, harvest window) is always computed first;
then an ordered chain of strategies is tried:

    ExternalInferenceStrategy(model_1)
    ExternalInferenceStrategy(model_2)
    ...
    StatisticalStrategy            terminal, cannot fail

The first external strategy that returns a schema-valid response wins and
its flavor axes are blended 0.7 external / 0.3 statistical. Timeouts, rate
limits, transport errors and malformed responses all advance the chain.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from uaps.core.config import EngineConfig
from uaps.core.models import (
    DEFAULT_AGING_FACTORS,
    DEFAULT_QUALITY_WEIGHTS,
    FLAVOR_AXES,
    AgingFactors,
    AgingPrediction,
    CandidateProduct,
    ClusterMatch,
    CoefficientSet,
    FlavorAxis,
    HarvestWindow,
    QualityScores,
    QualityWeights,
)
from uaps.core.numeric import clamp, clamp_score, normalize_weights, round_half_up
from uaps.ensemble.inference import InferenceClient, strip_code_fences
from uaps.ensemble.prompts import build_prediction_prompt
from uaps.exceptions import MalformedResponseError
from uaps.prediction.harvest import harvest_recommendation, optimal_harvest_window
from uaps.prediction.quality import MonthScores, predict_flavor_profile, score_month

EXTERNAL_WEIGHT = 0.7
STATISTICAL_WEIGHT = 0.3

MIN_WINDOW_MONTH = 1
MAX_WINDOW_MONTH = 60
CONFIDENCE_FULL_MATCHES = 5

FACTOR_RANGES: dict[str, tuple[float, float]] = {
    "texture_mult": (0.3, 1.5),
    "aroma_decay": (0.3, 1.5),
    "risk_mult": (0.3, 2.0),
    "base_aging_years": (0.0, 30.0),
}


# =============================================================================
# RESPONSE SCHEMA
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExternalFlavorProfile(_CamelModel):
    citrus: float | None = None
    brioche: float | None = None
    honey: float | None = None
    nutty: float | None = None
    toast: float | None = None
    oxidation: float | None = None


class ExternalQualityScores(_CamelModel):
    texture_maturity: float | None = Field(default=None, alias="textureMaturity")
    aroma_freshness: float | None = Field(default=None, alias="aromaFreshness")
    off_flavor_risk: float | None = Field(default=None, alias="offFlavorRisk")
    overall_quality: float | None = Field(default=None, alias="overallQuality")


class ExternalHarvestWindow(_CamelModel):
    start_months: float = Field(alias="startMonths")
    end_months: float = Field(alias="endMonths")


class ExternalAgingFactors(_CamelModel):
    texture_mult: float | None = Field(default=None, alias="textureMult")
    aroma_decay: float | None = Field(default=None, alias="aromaDecay")
    risk_mult: float | None = Field(default=None, alias="riskMult")
    base_aging_years: float | None = Field(default=None, alias="baseAgingYears")


class ExternalQualityWeights(_CamelModel):
    texture: float | None = None
    aroma: float | None = None
    bubble: float | None = None
    risk: float | None = None


class ExternalPredictionResponse(_CamelModel):
    """Structured answer expected from the inference service."""

    flavor_profile: ExternalFlavorProfile = Field(alias="flavorProfile")
    quality_scores: ExternalQualityScores = Field(default_factory=ExternalQualityScores, alias="qualityScores")
    harvest_window: ExternalHarvestWindow | None = Field(default=None, alias="harvestWindow")
    insight: str | None = None
    risk_warning: str | None = Field(default=None, alias="riskWarning")
    aging_factors: ExternalAgingFactors | None = Field(default=None, alias="agingFactors")
    quality_weights: ExternalQualityWeights | None = Field(default=None, alias="qualityWeights")


def parse_external_response(text: str, model: str | None = None) -> ExternalPredictionResponse:
    """Strip fences, decode JSON and validate; raises ``MalformedResponseError``."""
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Response is not JSON: {e}", model=model) from e
    if not isinstance(data, dict):
        raise MalformedResponseError("Response JSON is not an object", model=model)
    try:
        return ExternalPredictionResponse.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Response failed validation: {e.error_count()} errors", model=model) from e


# =============================================================================
# SANITISING
# =============================================================================


def resolve_aging_factors(raw: ExternalAgingFactors | None) -> AgingFactors:
    """Clamp provided factors into their ranges; missing ones take defaults."""
    values = {}
    for name, (lower, upper) in FACTOR_RANGES.items():
        value = getattr(raw, name) if raw is not None else None
        if value is None:
            value = getattr(DEFAULT_AGING_FACTORS, name)
        values[name] = clamp(value, lower, upper)
    return AgingFactors(**values)


def resolve_quality_weights(raw: ExternalQualityWeights | None) -> QualityWeights:
    """Fill missing weights with defaults and normalize to sum 1.0."""
    defaults = DEFAULT_QUALITY_WEIGHTS.to_dict()
    provided = raw.model_dump() if raw is not None else {}
    merged = {key: provided.get(key) if provided.get(key) is not None else defaults[key] for key in defaults}
    return QualityWeights(**normalize_weights(merged, fallback=defaults))


def resolve_window(raw: ExternalHarvestWindow, candidate: CandidateProduct) -> HarvestWindow:
    start = round_half_up(clamp(raw.start_months, MIN_WINDOW_MONTH, MAX_WINDOW_MONTH))
    end = round_half_up(clamp(raw.end_months, MIN_WINDOW_MONTH, MAX_WINDOW_MONTH))
    if start > end:
        start, end = end, start
    return HarvestWindow(
        start_months=start,
        end_months=end,
        recommendation=harvest_recommendation(start, end, candidate.reduction_potential),
    )


def blend_profiles(
    external: ExternalFlavorProfile,
    statistical: dict[FlavorAxis, float],
) -> dict[FlavorAxis, float]:
    """0.7 external + 0.3 statistical per axis; an axis the service omitted keeps the statistical value."""
    blended = {}
    for axis in FLAVOR_AXES:
        stat = statistical[axis]
        ext = getattr(external, axis.value)
        ext = stat if ext is None else clamp(ext)
        blended[axis] = clamp_score(EXTERNAL_WEIGHT * ext + STATISTICAL_WEIGHT * stat, 1)
    return blended


# =============================================================================
# STRATEGIES
# =============================================================================


@dataclass(frozen=True)
class PredictionRequest:
    """Everything one prediction needs; owned by a single call."""

    candidate: CandidateProduct
    duration_months: int
    matches: tuple[ClusterMatch, ...]
    coefficients: CoefficientSet
    config: EngineConfig
    expert_profile: dict[FlavorAxis, float] | None = None


@dataclass(frozen=True)
class StatisticalBaseline:
    flavor: dict[FlavorAxis, float]
    scores: MonthScores
    window: HarvestWindow

    @classmethod
    def compute(cls, request: PredictionRequest) -> StatisticalBaseline:
        candidate = request.candidate
        return cls(
            flavor=predict_flavor_profile(request.matches, request.duration_months, request.coefficients),
            scores=score_month(
                request.duration_months,
                request.coefficients,
                candidate.aging_depth_m,
                candidate.reduction_potential,
            ),
            window=optimal_harvest_window(candidate, request.coefficients, request.config),
        )


def _build_prediction(
    request: PredictionRequest,
    *,
    flavor: dict[FlavorAxis, float],
    quality: QualityScores,
    bubble: float,
    window: HarvestWindow,
    insight: str,
    risk_warning: str | None,
    aging_factors: AgingFactors,
    quality_weights: QualityWeights,
    strategy: str,
) -> AgingPrediction:
    candidate = request.candidate
    coefficients = request.coefficients
    return AgingPrediction(
        product_name=candidate.name,
        category=candidate.category,
        input_ph=candidate.ph,
        input_dosage=candidate.dosage,
        input_reduction_potential=candidate.reduction_potential,
        undersea_duration_months=request.duration_months,
        aging_depth_m=candidate.aging_depth_m,
        immersion_date=candidate.immersion_date,
        flavor=flavor,
        quality=quality,
        bubble_refinement=bubble,
        harvest_window=window,
        insight=insight,
        risk_warning=risk_warning,
        tci_applied=coefficients.tci.value,
        fri_applied=coefficients.fri.value,
        bri_applied=coefficients.bri.value,
        prediction_confidence=round(min(len(request.matches) / CONFIDENCE_FULL_MATCHES, 1.0), 2),
        aging_factors=aging_factors,
        quality_weights=quality_weights,
        strategy=strategy,
        expert_profile=request.expert_profile,
    )


class PredictionStrategy(ABC):
    """One link in the prediction chain."""

    name: ClassVar[str] = "strategy"

    @abstractmethod
    async def predict(self, request: PredictionRequest, baseline: StatisticalBaseline) -> AgingPrediction:
        """Produce a prediction or raise to hand over to the next strategy."""


class ExternalInferenceStrategy(PredictionStrategy):
    """Ask one model variant of the inference service."""

    name: ClassVar[str] = "external"

    def __init__(self, client: InferenceClient, model: str, timeout: float = 30.0):
        self.client = client
        self.model = model
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"ExternalInferenceStrategy(model={self.model!r})"

    async def predict(self, request: PredictionRequest, baseline: StatisticalBaseline) -> AgingPrediction:
        prompt = build_prediction_prompt(
            request.candidate,
            request.duration_months,
            request.matches,
            request.coefficients,
            request.expert_profile,
        )
        text = await self.client.generate(prompt, self.model, self.timeout)
        response = parse_external_response(text, self.model)
        return self._merge(request, baseline, response)

    def _merge(
        self,
        request: PredictionRequest,
        baseline: StatisticalBaseline,
        response: ExternalPredictionResponse,
    ) -> AgingPrediction:
        candidate = request.candidate
        factors = resolve_aging_factors(response.aging_factors)
        weights = resolve_quality_weights(response.quality_weights)

        # Components the service left out are scored with its own aging factors
        factored = score_month(
            request.duration_months,
            request.coefficients,
            candidate.aging_depth_m,
            candidate.reduction_potential,
            factors,
        )
        ext = response.quality_scores
        texture = clamp_score(ext.texture_maturity if ext.texture_maturity is not None else factored.texture_maturity, 1)
        aroma = clamp_score(ext.aroma_freshness if ext.aroma_freshness is not None else factored.aroma_freshness, 1)
        risk = clamp_score(ext.off_flavor_risk if ext.off_flavor_risk is not None else factored.off_flavor_risk, 1)
        overall = (
            clamp_score(ext.overall_quality, 1)
            if ext.overall_quality is not None
            else MonthScores(request.duration_months, texture, aroma, risk, factored.bubble_refinement).overall(weights)
        )

        if response.harvest_window is not None:
            window = resolve_window(response.harvest_window, candidate)
        else:
            window = optimal_harvest_window(candidate, request.coefficients, request.config, factors)

        insight = (response.insight or "").strip() or statistical_insight(request, baseline)
        risk_warning = (response.risk_warning or "").strip() or None

        return _build_prediction(
            request,
            flavor=blend_profiles(response.flavor_profile, baseline.flavor),
            quality=QualityScores(
                texture_maturity=texture,
                aroma_freshness=aroma,
                off_flavor_risk=risk,
                overall_quality=overall,
            ),
            bubble=factored.bubble_refinement,
            window=window,
            insight=insight,
            risk_warning=risk_warning,
            aging_factors=factors,
            quality_weights=weights,
            strategy=f"{self.name}:{self.model}",
        )


def statistical_insight(request: PredictionRequest, baseline: StatisticalBaseline) -> str:
    scores = baseline.scores
    source = (
        f"{len(request.matches)} matched terrestrial clusters"
        if request.matches
        else "a neutral default profile (no matching terrestrial clusters)"
    )
    return (
        f"Statistical estimate from {source}. After {request.duration_months} months at "
        f"{request.candidate.aging_depth_m:g} m: texture maturity {scores.texture_maturity:.0f}, "
        f"aroma freshness {scores.aroma_freshness:.0f}, bubble refinement {scores.bubble_refinement:.0f}, "
        f"off-flavor risk {scores.off_flavor_risk:.0f}."
    )


def statistical_risk_warning(request: PredictionRequest, risk: float) -> str | None:
    threshold = request.config.off_flavor_threshold
    if risk < threshold:
        return None
    return (
        f"Off-flavor risk {risk:.0f} at {request.duration_months} months reaches the {threshold:g} "
        "threshold; check for reductive notes and consider an earlier harvest."
    )


class StatisticalStrategy(PredictionStrategy):
    """Pure statistical prediction. Never raises."""

    name: ClassVar[str] = "statistical"

    async def predict(self, request: PredictionRequest, baseline: StatisticalBaseline) -> AgingPrediction:
        return self.predict_now(request, baseline)

    def predict_now(self, request: PredictionRequest, baseline: StatisticalBaseline) -> AgingPrediction:
        scores = baseline.scores
        weights = DEFAULT_QUALITY_WEIGHTS
        return _build_prediction(
            request,
            flavor=dict(baseline.flavor),
            quality=QualityScores(
                texture_maturity=round(scores.texture_maturity, 1),
                aroma_freshness=round(scores.aroma_freshness, 1),
                off_flavor_risk=round(scores.off_flavor_risk, 1),
                overall_quality=scores.overall(weights),
            ),
            bubble=scores.bubble_refinement,
            window=baseline.window,
            insight=statistical_insight(request, baseline),
            risk_warning=statistical_risk_warning(request, scores.off_flavor_risk),
            aging_factors=DEFAULT_AGING_FACTORS,
            quality_weights=weights,
            strategy=self.name,
        )


# =============================================================================
# BLENDER
# =============================================================================


class EnsembleBlender:
    """
    Runs the strategy chain for one prediction at a time.

    Holds no per-request state, so one blender can serve concurrent calls.
    """

    def __init__(
        self,
        client: InferenceClient | None = None,
        config: EngineConfig | None = None,
        strategies: Sequence[PredictionStrategy] | None = None,
    ):
        self.config = config or EngineConfig()
        if strategies is None:
            if client is not None and not self.config.inference_models:
                logger.warning("Inference client given but no model variants configured; using statistics only")
            strategies = (
                [
                    ExternalInferenceStrategy(client, model, self.config.inference_timeout_seconds)
                    for model in self.config.inference_models
                ]
                if client is not None
                else []
            )
        self.strategies: list[PredictionStrategy] = list(strategies)
        self.fallback = StatisticalStrategy()

    async def predict(
        self,
        candidate: CandidateProduct,
        duration_months: int,
        matches: Sequence[ClusterMatch],
        coefficients: CoefficientSet,
        expert_profile: dict[FlavorAxis, float] | None = None,
    ) -> AgingPrediction:
        """Best-effort prediction; inference faults never reach the caller."""
        request = PredictionRequest(
            candidate=candidate,
            duration_months=duration_months,
            matches=tuple(matches),
            coefficients=coefficients,
            config=self.config,
            expert_profile=expert_profile,
        )
        baseline = StatisticalBaseline.compute(request)

        for strategy in self.strategies:
            try:
                prediction = await strategy.predict(request, baseline)
            except Exception as e:
                logger.warning(f"{strategy!r} failed for '{candidate.name}': {e}")
                continue
            logger.info(f"Prediction for '{candidate.name}' from {prediction.strategy}")
            return prediction

        logger.info(f"Prediction for '{candidate.name}' from statistical fallback")
        return self.fallback.predict_now(request, baseline)
