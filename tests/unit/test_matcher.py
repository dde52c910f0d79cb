"""
Unit tests for the cluster matcher.
"""

import pytest

from uaps.core.models import (
    AgingStage,
    CandidateProduct,
    ClusterCentroid,
    ReductionPotential,
    TrainedClusterModel,
)
from uaps.prediction.matcher import find_similar_clusters, similarity


def make_model(category="champagne", ph=3.1, dosage=8.0, count=50, stage=AgingStage.DEVELOPING):
    return TrainedClusterModel(
        category=category,
        aging_stage=stage,
        sample_count=count,
        flavor_profile={},
        physicochemical_stats={},
        transition_curves={},
        cluster_centroids=(ClusterCentroid(ph=ph, dosage=dosage, reduction=ReductionPotential.LOW, count=count),),
        drinking_window_stats={},
        confidence=min(count / 100, 1.0),
    )


class TestSimilarity:
    def test_perfect_match(self):
        candidate = CandidateProduct(name="c", ph=3.1, dosage=8.0)
        assert similarity(make_model(count=100), candidate) == pytest.approx(100.0)

    def test_components(self):
        candidate = CandidateProduct(name="c", ph=3.2, dosage=10.0)
        # 50 + (20 - 40 * 0.1) + (15 - 1.5 * 2) + 0.5 * 15
        assert similarity(make_model(count=50), candidate) == pytest.approx(50 + 16 + 12 + 7.5)

    def test_category_mismatch(self):
        candidate = CandidateProduct(name="c", category="cava", ph=3.1, dosage=8.0)
        assert similarity(make_model(count=0), candidate) == pytest.approx(35.0)

    def test_proximity_floors_at_zero(self):
        candidate = CandidateProduct(name="c", ph=4.0, dosage=30.0)
        assert similarity(make_model(count=0), candidate) == pytest.approx(50.0)

    def test_unset_attributes_contribute_nothing(self):
        candidate = CandidateProduct(name="c", ph=None, dosage=None)
        assert similarity(make_model(count=0), candidate) == pytest.approx(50.0)

    def test_zero_dosage_is_a_value(self):
        candidate = CandidateProduct(name="c", ph=None, dosage=0.0)
        assert similarity(make_model(dosage=0.0, count=0), candidate) == pytest.approx(65.0)

    def test_nearest_centroid_used(self):
        model = TrainedClusterModel(
            category="champagne",
            aging_stage=AgingStage.MATURE,
            sample_count=0,
            flavor_profile={},
            physicochemical_stats={},
            transition_curves={},
            cluster_centroids=(
                ClusterCentroid(ph=3.4, dosage=2.0, reduction=ReductionPotential.LOW, count=3),
                ClusterCentroid(ph=3.0, dosage=9.0, reduction=ReductionPotential.LOW, count=2),
            ),
            drinking_window_stats={},
            confidence=0.0,
        )
        candidate = CandidateProduct(name="c", ph=3.0, dosage=2.0)
        assert similarity(model, candidate) == pytest.approx(85.0)


class TestFindSimilarClusters:
    def test_empty_models(self, candidate):
        assert find_similar_clusters(candidate, []) == []

    def test_sorted_and_truncated(self, candidate):
        models = [make_model(ph=3.1 + i * 0.05, count=i * 10) for i in range(8)]
        matches = find_similar_clusters(candidate, models, top_k=5)
        assert len(matches) == 5
        scores = [m.similarity for m in matches]
        assert scores == sorted(scores, reverse=True)

    def test_stable_ties(self, candidate):
        first, second = make_model(), make_model()
        matches = find_similar_clusters(candidate, [first, second])
        assert matches[0].model is first
        assert matches[1].model is second

    def test_category_match_ranks_first(self, candidate):
        models = [make_model(category="cava"), make_model(category="champagne")]
        matches = find_similar_clusters(candidate, models)
        assert matches[0].model.category == "champagne"

    def test_trained_models(self, candidate, trained_models):
        matches = find_similar_clusters(candidate, trained_models)
        assert len(matches) == 2
        assert all(0 <= m.similarity <= 100 for m in matches)
