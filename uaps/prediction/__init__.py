"""Cluster matching, quality curves, harvest window and timeline."""

from .harvest import harvest_recommendation, optimal_harvest_window
from .matcher import find_similar_clusters, similarity
from .quality import (
    NEUTRAL_PROFILE,
    aroma_freshness,
    bubble_refinement,
    composite_quality,
    off_flavor_risk,
    predict_flavor_profile,
    score_month,
    texture_maturity,
)
from .timeline import generate_timeline

__all__ = [
    "NEUTRAL_PROFILE",
    "aroma_freshness",
    "bubble_refinement",
    "composite_quality",
    "find_similar_clusters",
    "generate_timeline",
    "harvest_recommendation",
    "off_flavor_risk",
    "optimal_harvest_window",
    "predict_flavor_profile",
    "score_month",
    "similarity",
    "texture_maturity",
]
