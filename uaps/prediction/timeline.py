"""Month-by-month score series for charts."""

from __future__ import annotations

from uaps.core.config import EngineConfig
from uaps.core.models import (
    DEFAULT_QUALITY_WEIGHTS,
    AgingFactors,
    CandidateProduct,
    CoefficientSet,
    QualityWeights,
    TimelinePoint,
)
from uaps.prediction.quality import score_month


def generate_timeline(
    candidate: CandidateProduct,
    coefficients: CoefficientSet,
    config: EngineConfig | None = None,
    aging_factors: AgingFactors | None = None,
    quality_weights: QualityWeights | None = None,
) -> list[TimelinePoint]:
    """
    One point per month over the scan range (6-36 by default).

    Gain is the weighted mean of the improving components (texture,
    bubbles), loss that of the degrading ones (aroma lost, risk).
    """
    config = config or EngineConfig()
    w = quality_weights or DEFAULT_QUALITY_WEIGHTS

    points: list[TimelinePoint] = []
    for month in range(config.scan_start_month, config.scan_end_month + 1):
        scores = score_month(
            month,
            coefficients,
            candidate.aging_depth_m,
            candidate.reduction_potential,
            aging_factors,
        )

        gain_weight = w.texture + w.bubble
        loss_weight = w.aroma + w.risk
        gain = (
            (scores.texture_maturity * w.texture + scores.bubble_refinement * w.bubble) / gain_weight
            if gain_weight > 0
            else 0.0
        )
        loss = (
            ((100 - scores.aroma_freshness) * w.aroma + scores.off_flavor_risk * w.risk) / loss_weight
            if loss_weight > 0
            else 0.0
        )

        points.append(
            TimelinePoint(
                month=month,
                texture_maturity=scores.texture_maturity,
                aroma_freshness=scores.aroma_freshness,
                off_flavor_risk=scores.off_flavor_risk,
                bubble_refinement=scores.bubble_refinement,
                composite_quality=scores.overall(w),
                gain_score=round(gain, 1),
                loss_score=round(loss, 1),
                net_benefit=round(gain - loss, 1),
            )
        )
    return points
