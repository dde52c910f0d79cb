"""
Cluster Matcher.

Scores trained cluster models against a candidate product:

    category match          50
    pH proximity            max(0, 20 - 40 * |ΔpH|)      nearest centroid
    dosage proximity        max(0, 15 - 1.5 * |Δdosage|) nearest centroid
    sample-size bonus       min(count / 100, 1) * 15

An unset candidate pH or dosage contributes nothing for that term.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from uaps.core.models import CandidateProduct, ClusterMatch, TrainedClusterModel
from uaps.core.numeric import clamp

CATEGORY_WEIGHT = 50.0
PH_WEIGHT = 20.0
PH_PENALTY = 40.0
DOSAGE_WEIGHT = 15.0
DOSAGE_PENALTY = 1.5
SAMPLE_WEIGHT = 15.0

DEFAULT_TOP_K = 5


def _proximity(target: float | None, values: Sequence[float], weight: float, penalty: float) -> float:
    if target is None or not values:
        return 0.0
    nearest = min(abs(value - target) for value in values)
    return max(0.0, weight - penalty * nearest)


def similarity(model: TrainedClusterModel, candidate: CandidateProduct) -> float:
    """Similarity of one model to the candidate, 0-100."""
    score = CATEGORY_WEIGHT if model.category == candidate.category else 0.0

    centroid_ph = [c.ph for c in model.cluster_centroids]
    centroid_dosage = [c.dosage for c in model.cluster_centroids]
    score += _proximity(candidate.ph, centroid_ph, PH_WEIGHT, PH_PENALTY)
    score += _proximity(candidate.dosage, centroid_dosage, DOSAGE_WEIGHT, DOSAGE_PENALTY)
    score += min(model.sample_count / 100, 1.0) * SAMPLE_WEIGHT

    return clamp(score)


def find_similar_clusters(
    candidate: CandidateProduct,
    models: Sequence[TrainedClusterModel],
    top_k: int = DEFAULT_TOP_K,
) -> list[ClusterMatch]:
    """
    Rank models by similarity to ``candidate``.

    Sorted descending; ties keep input order. At most ``top_k`` matches are
    returned and an empty model set yields an empty list.
    """
    if not models or top_k <= 0:
        return []

    scored = [ClusterMatch(model=model, similarity=similarity(model, candidate)) for model in models]
    scored.sort(key=lambda match: match.similarity, reverse=True)
    matches = scored[:top_k]

    for match in matches:
        logger.debug(
            f"Match {match.model.category}/{match.model.aging_stage.value}: {match.similarity:.1f}"
        )
    return matches
