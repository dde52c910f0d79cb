"""
Quality/Flavor Predictor.

Closed-form aging curves (m = undersea months, y = terrestrial years):

    texture   100 / (1 + e^(-0.8 * (y + m / (12 * TCI) - 4)))
    aroma     100 * e^(-0.06 * (y + m * FRI / 12))
    bubble    40 + 60 * (1 - e^(-rate * m)),  rate = 0.08 * (BRI / 1.6) * min(depth / 30, 1.5)
    risk      10 (+40 high, +20 medium) + 2 per month beyond 24, -10 once texture > 85

plus the composite quality score and the statistical flavor profile built
from matched clusters.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from uaps.core.models import (
    DEFAULT_AGING_FACTORS,
    DEFAULT_QUALITY_WEIGHTS,
    FLAVOR_AXES,
    AgingFactors,
    ClusterMatch,
    CoefficientSet,
    FlavorAxis,
    QualityWeights,
    ReductionPotential,
)
from uaps.core.numeric import clamp_score

# Curve constants
TEXTURE_MIDPOINT_YEARS = 4.0
TEXTURE_STEEPNESS = 0.8
MIN_TCI = 1e-3
AROMA_DECAY_RATE = 0.06
BUBBLE_BASE = 40.0
BUBBLE_RATE = 0.08
BUBBLE_REFERENCE_BRI = 1.6
BUBBLE_REFERENCE_DEPTH_M = 30.0
BUBBLE_MAX_DEPTH_FACTOR = 1.5

RISK_BASE = 10.0
RISK_REDUCTION_PENALTY = {
    ReductionPotential.LOW: 0.0,
    ReductionPotential.MEDIUM: 20.0,
    ReductionPotential.HIGH: 40.0,
}
RISK_GRACE_MONTHS = 24
RISK_PER_MONTH = 2.0
RISK_MATURITY_TEXTURE = 85.0
RISK_MATURITY_BONUS = 10.0

NEUTRAL_PROFILE: dict[FlavorAxis, float] = {
    FlavorAxis.CITRUS: 50.0,
    FlavorAxis.BRIOCHE: 30.0,
    FlavorAxis.HONEY: 20.0,
    FlavorAxis.NUTTY: 15.0,
    FlavorAxis.TOAST: 10.0,
    FlavorAxis.OXIDATION: 5.0,
}

# Weak profiles (max axis below this) are stretched so the top axis lands in [65, 80)
WEAK_PROFILE_MAX = 40.0
RESCALE_FLOOR = 65.0
RESCALE_SPAN = 15.0

SYNERGY_MAX_BONUS = 15.0
SYNERGY_MIN_AVERAGE = 60.0
SYNERGY_MIN_HARMONY = 0.5


# =============================================================================
# QUALITY CURVES
# =============================================================================


def texture_maturity(land_years: float, undersea_months: float, tci: float) -> float:
    """Texture maturity (0-100) on a logistic curve centred at 4 equivalent years."""
    equivalent_years = land_years + undersea_months / (12 * max(tci, MIN_TCI))
    score = 100 / (1 + math.exp(-TEXTURE_STEEPNESS * (equivalent_years - TEXTURE_MIDPOINT_YEARS)))
    return clamp_score(score, 2)


def aroma_freshness(land_years: float, undersea_months: float, fri: float) -> float:
    """Aroma freshness (0-100); exactly 100 with no aging at all."""
    oxidation_years = land_years + undersea_months * fri / 12
    return clamp_score(100 * math.exp(-AROMA_DECAY_RATE * oxidation_years), 2)


def bubble_refinement(undersea_months: float, depth_m: float, bri: float) -> float:
    """Bubble refinement rising from 40 toward 100 with depth-scaled speed."""
    depth_factor = min(depth_m / BUBBLE_REFERENCE_DEPTH_M, BUBBLE_MAX_DEPTH_FACTOR)
    rate = BUBBLE_RATE * (bri / BUBBLE_REFERENCE_BRI) * depth_factor
    score = BUBBLE_BASE + (100 - BUBBLE_BASE) * (1 - math.exp(-rate * undersea_months))
    return clamp_score(score, 2)


def off_flavor_risk(
    reduction_potential: ReductionPotential | str,
    undersea_months: float,
    texture_score: float,
) -> float:
    """Reductive off-flavor risk (0-100)."""
    reduction = ReductionPotential(reduction_potential)
    risk = RISK_BASE + RISK_REDUCTION_PENALTY[reduction]
    risk += RISK_PER_MONTH * max(0.0, undersea_months - RISK_GRACE_MONTHS)
    if texture_score > RISK_MATURITY_TEXTURE:
        risk -= RISK_MATURITY_BONUS
    return clamp_score(risk, 2)


def composite_quality(
    texture: float,
    aroma: float,
    bubble: float,
    risk: float,
    weights: QualityWeights | None = None,
) -> float:
    """
    Weighted overall quality with a harmony bonus.

    The bonus (up to 15 points) applies when the component mean exceeds 60
    and the weakest component is more than half the strongest.
    """
    w = weights or DEFAULT_QUALITY_WEIGHTS
    risk_score = max(0.0, 100 - risk)
    base = texture * w.texture + aroma * w.aroma + bubble * w.bubble + risk_score * w.risk

    components = (texture, aroma, bubble, risk_score)
    highest = max(components)
    harmony = min(components) / highest if highest > 0 else 0.0
    average = sum(components) / len(components)

    bonus = 0.0
    if average > SYNERGY_MIN_AVERAGE and harmony > SYNERGY_MIN_HARMONY:
        average_factor = min((average - SYNERGY_MIN_AVERAGE) / 30, 1.0)
        harmony_factor = (harmony - SYNERGY_MIN_HARMONY) / SYNERGY_MIN_HARMONY
        bonus = SYNERGY_MAX_BONUS * average_factor * harmony_factor

    return clamp_score(base + bonus, 1)


@dataclass(frozen=True)
class MonthScores:
    """All quality components at one undersea duration."""

    month: int
    texture_maturity: float
    aroma_freshness: float
    off_flavor_risk: float
    bubble_refinement: float

    def overall(self, weights: QualityWeights | None = None) -> float:
        return composite_quality(
            self.texture_maturity,
            self.aroma_freshness,
            self.bubble_refinement,
            self.off_flavor_risk,
            weights,
        )


def score_month(
    month: int,
    coefficients: CoefficientSet,
    depth_m: float,
    reduction_potential: ReductionPotential,
    aging_factors: AgingFactors | None = None,
) -> MonthScores:
    """
    Evaluate every curve at ``month``.

    Aging factors scale TCI and FRI before the curves are evaluated and
    scale the risk afterwards; ``base_aging_years`` is the terrestrial
    starting age.
    """
    factors = aging_factors or DEFAULT_AGING_FACTORS
    land_years = factors.base_aging_years

    texture = texture_maturity(land_years, month, coefficients.tci.value * factors.texture_mult)
    aroma = aroma_freshness(land_years, month, coefficients.fri.value * factors.aroma_decay)
    risk = clamp_score(off_flavor_risk(reduction_potential, month, texture) * factors.risk_mult, 2)
    bubble = bubble_refinement(month, depth_m, coefficients.bri.value)

    return MonthScores(
        month=month,
        texture_maturity=texture,
        aroma_freshness=aroma,
        off_flavor_risk=risk,
        bubble_refinement=bubble,
    )


# =============================================================================
# STATISTICAL FLAVOR PROFILE
# =============================================================================


def aggregate_cluster_profile(matches: Sequence[ClusterMatch]) -> dict[FlavorAxis, float]:
    """
    Similarity-weighted mean of the clusters' axis means.

    Clusters with no observations for an axis do not vote on it; an axis no
    cluster covers (or no matches at all) takes the neutral default.
    """
    profile: dict[FlavorAxis, float] = {}
    for axis in FLAVOR_AXES:
        weighted = 0.0
        total_weight = 0.0
        for match in matches:
            stats = match.model.flavor_profile.get(axis)
            if stats is None or stats.count == 0 or match.similarity <= 0:
                continue
            weighted += stats.mean * match.similarity
            total_weight += match.similarity
        profile[axis] = weighted / total_weight if total_weight > 0 else NEUTRAL_PROFILE[axis]
    return profile


def rescale_weak_profile(profile: dict[FlavorAxis, float]) -> dict[FlavorAxis, float]:
    """Stretch a profile whose strongest axis is below 40 so it reads on the 0-100 scale."""
    highest = max(profile.values(), default=0.0)
    if highest <= 0 or highest >= WEAK_PROFILE_MAX:
        return dict(profile)
    target = RESCALE_FLOOR + RESCALE_SPAN * (highest / WEAK_PROFILE_MAX)
    factor = target / highest
    return {axis: value * factor for axis, value in profile.items()}


def adjust_for_undersea(
    profile: dict[FlavorAxis, float],
    undersea_months: float,
    coefficients: CoefficientSet,
) -> dict[FlavorAxis, float]:
    """Apply the per-axis month/coefficient drift, clamped and rounded to 0.1."""
    years = undersea_months / 12
    tci = coefficients.tci.value
    fri = coefficients.fri.value
    maturation = years / max(tci, MIN_TCI)

    adjusted = dict(profile)
    adjusted[FlavorAxis.CITRUS] = profile[FlavorAxis.CITRUS] * math.exp(-0.015 * undersea_months * fri)
    adjusted[FlavorAxis.BRIOCHE] = profile[FlavorAxis.BRIOCHE] + maturation * 3
    adjusted[FlavorAxis.TOAST] = profile[FlavorAxis.TOAST] + maturation * 2.5
    adjusted[FlavorAxis.HONEY] = profile[FlavorAxis.HONEY] + years * 2.5
    adjusted[FlavorAxis.NUTTY] = profile[FlavorAxis.NUTTY] + years * 2
    adjusted[FlavorAxis.OXIDATION] = profile[FlavorAxis.OXIDATION] + years * fri * 4

    return {axis: clamp_score(value, 1) for axis, value in adjusted.items()}


def predict_flavor_profile(
    matches: Sequence[ClusterMatch],
    undersea_months: float,
    coefficients: CoefficientSet,
) -> dict[FlavorAxis, float]:
    """Statistical six-axis profile after ``undersea_months`` under the sea."""
    raw = aggregate_cluster_profile(matches)
    return adjust_for_undersea(rescale_weak_profile(raw), undersea_months, coefficients)
