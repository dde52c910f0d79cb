"""
Harvest Window Optimizer.

Scans whole months (6-36 by default) and keeps every month where texture
is mature enough, aroma is still fresh and off-flavor risk is below the
threshold. The window spans the first to the last qualifying month.
"""

from __future__ import annotations

from loguru import logger

from uaps.core.config import EngineConfig
from uaps.core.models import (
    AgingFactors,
    CandidateProduct,
    CoefficientSet,
    HarvestWindow,
    ReductionPotential,
)
from uaps.prediction.quality import MonthScores, score_month

FLEXIBLE_SPAN_MONTHS = 12


def qualifies(scores: MonthScores, config: EngineConfig) -> bool:
    return (
        scores.texture_maturity >= config.optimal_quality_threshold
        and scores.aroma_freshness >= config.aroma_threshold
        and scores.off_flavor_risk < config.off_flavor_threshold
    )


def harvest_recommendation(start: int, end: int, reduction_potential: ReductionPotential) -> str:
    """Human-readable retrieval advice for a window."""
    window = HarvestWindow(start, end)
    midpoint, span = window.midpoint, window.span

    if reduction_potential is ReductionPotential.HIGH:
        early_end = start + span // 2
        return (
            f"High reduction potential: retrieve early, within months {start}-{early_end} "
            f"(first half of the {start}-{end} month window)."
        )
    if span >= FLEXIBLE_SPAN_MONTHS:
        return (
            f"Wide window of {span} months ({start}-{end}) allows flexible scheduling; "
            f"month {midpoint} is the recommended target."
        )
    return f"Retrieve between month {start} and month {end}; target month {midpoint}."


def optimal_harvest_window(
    candidate: CandidateProduct,
    coefficients: CoefficientSet,
    config: EngineConfig | None = None,
    aging_factors: AgingFactors | None = None,
) -> HarvestWindow:
    """
    Find the golden window for ``candidate``.

    The window is bounded by the extreme qualifying months only; months
    between them are not re-checked. With no qualifying month the
    configured default window is returned.
    """
    config = config or EngineConfig()

    qualifying = [
        month
        for month in range(config.scan_start_month, config.scan_end_month + 1)
        if qualifies(
            score_month(
                month,
                coefficients,
                candidate.aging_depth_m,
                candidate.reduction_potential,
                aging_factors,
            ),
            config,
        )
    ]

    if qualifying:
        start, end = qualifying[0], qualifying[-1]
    else:
        start, end = config.default_window
        logger.debug(f"No qualifying month for '{candidate.name}', using default window {start}-{end}")

    return HarvestWindow(
        start_months=start,
        end_months=end,
        recommendation=harvest_recommendation(start, end, candidate.reduction_potential),
    )
