"""
Unit tests for the quality curves and the statistical flavor profile.
"""

import math

import pytest

from uaps.core.models import (
    FLAVOR_AXES,
    AgingFactors,
    AgingStage,
    ClusterMatch,
    FlavorAxis,
    FlavorStats,
    QualityWeights,
    ReductionPotential,
    TrainedClusterModel,
)
from uaps.prediction.quality import (
    NEUTRAL_PROFILE,
    adjust_for_undersea,
    aggregate_cluster_profile,
    aroma_freshness,
    bubble_refinement,
    composite_quality,
    off_flavor_risk,
    predict_flavor_profile,
    rescale_weak_profile,
    score_month,
    texture_maturity,
)


def profile_model(means: dict[FlavorAxis, float]) -> TrainedClusterModel:
    return TrainedClusterModel(
        category="champagne",
        aging_stage=AgingStage.DEVELOPING,
        sample_count=10,
        flavor_profile={axis: FlavorStats(mean=value, count=10) for axis, value in means.items()},
        physicochemical_stats={},
        transition_curves={},
        cluster_centroids=(),
        drinking_window_stats={},
        confidence=0.1,
    )


class TestTextureMaturity:
    def test_midpoint_is_fifty(self):
        assert texture_maturity(4, 0, 0.3) == 50.0

    def test_undersea_months_accelerate(self):
        # 12 months at TCI 0.3 count as 3.33 equivalent years
        expected = round(100 / (1 + math.exp(-0.8 * (12 / 3.6 - 4))), 2)
        assert texture_maturity(0, 12, 0.3) == expected

    def test_monotonic_in_months(self):
        values = [texture_maturity(0, m, 0.3) for m in range(0, 37, 6)]
        assert values == sorted(values)


class TestAromaFreshness:
    @pytest.mark.parametrize("fri", [0.1, 0.564, 1.0, 3.0])
    def test_untouched_wine_is_fresh(self, fri):
        assert aroma_freshness(0, 0, fri) == 100

    def test_one_year_at_unit_fri(self):
        assert aroma_freshness(0, 12, 1.0) == pytest.approx(94.18, abs=0.005)

    def test_lower_fri_keeps_fresher(self):
        assert aroma_freshness(0, 24, 0.5) > aroma_freshness(0, 24, 1.0)


class TestBubbleRefinement:
    def test_starts_at_base(self):
        assert bubble_refinement(0, 30, 3.1) == 40.0

    def test_approaches_hundred(self):
        assert 95 < bubble_refinement(120, 30, 3.1) <= 100

    def test_depth_factor_capped(self):
        assert bubble_refinement(12, 45, 3.1) == bubble_refinement(12, 90, 3.1)


class TestOffFlavorRisk:
    def test_high_reduction_after_thirty_months(self):
        assert off_flavor_risk(ReductionPotential.HIGH, 30, 50) == 62

    def test_accepts_plain_strings(self):
        assert off_flavor_risk("high", 30, 50) == 62

    def test_medium_and_low(self):
        assert off_flavor_risk(ReductionPotential.MEDIUM, 12, 50) == 30
        assert off_flavor_risk(ReductionPotential.LOW, 12, 50) == 10

    def test_mature_texture_lowers_risk(self):
        assert off_flavor_risk(ReductionPotential.LOW, 12, 90) == 0

    def test_clamped(self):
        assert off_flavor_risk(ReductionPotential.HIGH, 60, 50) == 100


class TestCompositeQuality:
    def test_no_synergy_when_unbalanced(self):
        # mean 45 -> plain weighted sum
        assert composite_quality(10, 90, 40, 60) == round(10 * 0.3 + 90 * 0.3 + 40 * 0.25 + 40 * 0.15, 1)

    def test_synergy_bonus(self):
        # all components 90: mean 90, harmony 1 -> full 15 point bonus, clamped
        assert composite_quality(90, 90, 90, 10) == 100.0

    def test_partial_bonus(self):
        base = 75 * 0.3 + 75 * 0.3 + 75 * 0.25 + 75 * 0.15
        assert composite_quality(75, 75, 75, 25) == round(base + 15 * 0.5, 1)

    def test_custom_weights(self):
        weights = QualityWeights(texture=1.0, aroma=0.0, bubble=0.0, risk=0.0)
        assert composite_quality(30, 100, 100, 0, weights) == 30.0


class TestScoreMonth:
    def test_factors_scale_coefficients(self, coefficients):
        plain = score_month(12, coefficients, 30, ReductionPotential.LOW)
        slower = score_month(12, coefficients, 30, ReductionPotential.LOW, AgingFactors(texture_mult=1.5))
        # larger effective TCI -> fewer equivalent years
        assert slower.texture_maturity < plain.texture_maturity

    def test_risk_multiplier_clamped(self, coefficients):
        scores = score_month(36, coefficients, 30, ReductionPotential.HIGH, AgingFactors(risk_mult=2.0))
        assert scores.off_flavor_risk == 100

    def test_base_aging_years(self, coefficients):
        young = score_month(6, coefficients, 30, ReductionPotential.LOW)
        older = score_month(6, coefficients, 30, ReductionPotential.LOW, AgingFactors(base_aging_years=5))
        assert older.aroma_freshness < young.aroma_freshness


class TestFlavorProfile:
    def test_no_matches_uses_neutral_default(self):
        assert aggregate_cluster_profile([]) == NEUTRAL_PROFILE

    def test_similarity_weighted(self):
        a = profile_model({axis: 80.0 for axis in FLAVOR_AXES})
        b = profile_model({axis: 40.0 for axis in FLAVOR_AXES})
        profile = aggregate_cluster_profile([ClusterMatch(a, 75.0), ClusterMatch(b, 25.0)])
        assert profile[FlavorAxis.CITRUS] == pytest.approx(70.0)

    def test_unobserved_axis_takes_default(self):
        model = profile_model({FlavorAxis.CITRUS: 90.0})
        profile = aggregate_cluster_profile([ClusterMatch(model, 80.0)])
        assert profile[FlavorAxis.CITRUS] == 90.0
        assert profile[FlavorAxis.TOAST] == NEUTRAL_PROFILE[FlavorAxis.TOAST]

    def test_weak_profile_rescaled(self):
        weak = {axis: 10.0 for axis in FLAVOR_AXES}
        weak[FlavorAxis.CITRUS] = 20.0
        scaled = rescale_weak_profile(weak)
        # max 20 -> 65 + 15 * 0.5
        assert scaled[FlavorAxis.CITRUS] == pytest.approx(72.5)
        assert scaled[FlavorAxis.HONEY] == pytest.approx(36.25)

    def test_strong_profile_untouched(self):
        strong = dict(NEUTRAL_PROFILE)
        assert rescale_weak_profile(strong) == strong

    def test_all_zero_untouched(self):
        zeros = {axis: 0.0 for axis in FLAVOR_AXES}
        assert rescale_weak_profile(zeros) == zeros

    def test_zero_months_only_rounds(self, coefficients):
        adjusted = adjust_for_undersea(dict(NEUTRAL_PROFILE), 0, coefficients)
        assert adjusted == NEUTRAL_PROFILE

    def test_adjustment_directions(self, coefficients):
        adjusted = adjust_for_undersea(dict(NEUTRAL_PROFILE), 24, coefficients)
        assert adjusted[FlavorAxis.CITRUS] < NEUTRAL_PROFILE[FlavorAxis.CITRUS]
        assert adjusted[FlavorAxis.BRIOCHE] == pytest.approx(30 + 2 / 0.3 * 3, abs=0.05)
        assert adjusted[FlavorAxis.HONEY] == 25.0
        assert adjusted[FlavorAxis.NUTTY] == 19.0
        assert adjusted[FlavorAxis.OXIDATION] > NEUTRAL_PROFILE[FlavorAxis.OXIDATION]

    def test_profile_in_range(self, coefficients, trained_models, candidate):
        matches = [ClusterMatch(m, 90.0) for m in trained_models]
        for months in (0, 6, 18, 36, 120):
            profile = predict_flavor_profile(matches, months, coefficients)
            assert set(profile) == set(FLAVOR_AXES)
            assert all(0 <= v <= 100 for v in profile.values())
