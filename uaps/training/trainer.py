"""
Terrestrial Trainer.

Aggregates historical land-aging records into one statistical model per
(category, aging stage) group:

1. Group records by category and stage (stage inferred from aging years
   when not recorded)
2. Skip groups smaller than ``min_group_size`` (insufficient data, not an error)
3. Per group: flavor-axis statistics, physicochemical statistics, transition
   curves over the whole category, pH/dosage/reduction centroids and
   drinking-window statistics
4. Publish the full set through ``ModelRegistry.replace`` (copy-then-swap)

All functions here are pure; the registry is the only stateful object.
"""

from __future__ import annotations

import math
import threading
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence

from loguru import logger

from uaps.core.config import EngineConfig
from uaps.core.models import (
    FLAVOR_AXES,
    AgingStage,
    ClusterCentroid,
    CurvePoint,
    FlavorAxis,
    FlavorStats,
    ReductionPotential,
    TerrestrialRecord,
    TrainedClusterModel,
)
from uaps.core.numeric import round_half_up

PHYSICOCHEMICAL_FIELDS = ("ph", "dosage", "alcohol", "acidity")

# Buckets used when a record lacks the attribute
DEFAULT_PH_BUCKET = 3.1
DEFAULT_DOSAGE_BUCKET = 8.0
DOSAGE_BUCKET_WIDTH = 3.0


# =============================================================================
# STAGE INFERENCE
# =============================================================================


def infer_aging_stage(aging_years: float | None, config: EngineConfig | None = None) -> AgingStage:
    """Map aging years to a stage; unknown age counts as developing."""
    config = config or EngineConfig()
    if aging_years is None:
        return AgingStage.DEVELOPING
    if aging_years <= config.stage_threshold_youthful:
        return AgingStage.YOUTHFUL
    if aging_years <= config.stage_threshold_developing:
        return AgingStage.DEVELOPING
    if aging_years <= config.stage_threshold_mature:
        return AgingStage.MATURE
    return AgingStage.AGED


# =============================================================================
# STATISTICS
# =============================================================================


def compute_stats(values: Sequence[float]) -> FlavorStats:
    """
    Descriptive statistics with population standard deviation.

    Quantiles are taken by index on the sorted values (median = upper
    middle for even counts). Empty input yields all zeros.
    """
    if not values:
        return FlavorStats()

    ordered = sorted(values)
    n = len(ordered)
    mean = sum(ordered) / n
    variance = sum((v - mean) ** 2 for v in ordered) / n

    return FlavorStats(
        mean=round(mean, 2),
        median=ordered[n // 2],
        std_dev=round(math.sqrt(variance), 2),
        p25=ordered[math.floor(n * 0.25)],
        p75=ordered[math.floor(n * 0.75)],
        count=n,
    )


def _present(values: Iterable[float | None]) -> list[float]:
    return [v for v in values if v is not None]


def compute_transition_curves(
    category_records: Sequence[TerrestrialRecord],
) -> dict[FlavorAxis, tuple[CurvePoint, ...]]:
    """Average each axis per rounded aging year across a whole category."""
    curves: dict[FlavorAxis, tuple[CurvePoint, ...]] = {}

    for axis in FLAVOR_AXES:
        by_year: dict[int, list[float]] = defaultdict(list)
        for record in category_records:
            value = record.score(axis)
            year = round_half_up(record.aging_years or 0)
            if value is None or year <= 0:
                continue
            by_year[year].append(value)

        curves[axis] = tuple(
            CurvePoint(year=year, value=round(sum(vals) / len(vals), 1))
            for year, vals in sorted(by_year.items())
        )

    return curves


def compute_cluster_centroids(records: Sequence[TerrestrialRecord]) -> tuple[ClusterCentroid, ...]:
    """
    Bucket records by pH (0.1), dosage (3 units) and reduction label.

    Each centroid averages the true pH/dosage of its members (bucket value
    for members that lack the attribute). Sorted by descending member count;
    ties keep first-seen order.
    """
    sums: dict[tuple[float, float, ReductionPotential], list[float]] = {}

    for record in records:
        ph_bucket = round_half_up(record.ph * 10) / 10 if record.ph is not None else DEFAULT_PH_BUCKET
        dosage_bucket = (
            round_half_up(record.dosage / DOSAGE_BUCKET_WIDTH) * DOSAGE_BUCKET_WIDTH
            if record.dosage is not None
            else DEFAULT_DOSAGE_BUCKET
        )
        reduction = record.reduction_potential or ReductionPotential.LOW
        key = (ph_bucket, dosage_bucket, reduction)

        acc = sums.setdefault(key, [0.0, 0.0, 0])
        acc[0] += record.ph if record.ph is not None else ph_bucket
        acc[1] += record.dosage if record.dosage is not None else dosage_bucket
        acc[2] += 1

    centroids = [
        ClusterCentroid(
            ph=round(ph_sum / count, 2),
            dosage=round(dosage_sum / count, 1),
            reduction=reduction,
            count=int(count),
        )
        for (_, _, reduction), (ph_sum, dosage_sum, count) in sums.items()
    ]
    return tuple(sorted(centroids, key=lambda c: c.count, reverse=True))


def _most_frequent_subtype(records: Sequence[TerrestrialRecord]) -> str | None:
    counts = Counter(r.subtype for r in records if r.subtype)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def build_group_model(
    category: str,
    stage: AgingStage,
    records: Sequence[TerrestrialRecord],
    category_records: Sequence[TerrestrialRecord],
) -> TrainedClusterModel:
    """Compute the full statistical model for one group."""
    flavor_profile = {
        axis: compute_stats(_present(r.score(axis) for r in records)) for axis in FLAVOR_AXES
    }
    physicochemical = {
        name: compute_stats(_present(getattr(r, name) for r in records))
        for name in PHYSICOCHEMICAL_FIELDS
    }
    drinking_window = {
        "start": compute_stats(_present(r.drinking_window_start for r in records)),
        "end": compute_stats(_present(r.drinking_window_end for r in records)),
    }

    return TrainedClusterModel(
        category=category,
        aging_stage=stage,
        subtype=_most_frequent_subtype(records),
        sample_count=len(records),
        flavor_profile=flavor_profile,
        physicochemical_stats=physicochemical,
        transition_curves=compute_transition_curves(category_records),
        cluster_centroids=compute_cluster_centroids(records),
        drinking_window_stats=drinking_window,
        confidence=min(len(records) / 100, 1.0),
    )


# =============================================================================
# TRAINING
# =============================================================================


def train_models(
    records: Iterable[TerrestrialRecord],
    config: EngineConfig | None = None,
) -> list[TrainedClusterModel]:
    """
    Train one model per (category, stage) group with enough records.

    Groups are emitted in first-seen order.
    """
    config = config or EngineConfig()
    records = list(records)

    groups: dict[tuple[str, AgingStage], list[TerrestrialRecord]] = defaultdict(list)
    by_category: dict[str, list[TerrestrialRecord]] = defaultdict(list)
    for record in records:
        stage = record.aging_stage or infer_aging_stage(record.aging_years, config)
        groups[(record.category, stage)].append(record)
        by_category[record.category].append(record)

    models: list[TrainedClusterModel] = []
    for (category, stage), members in groups.items():
        if len(members) < config.min_group_size:
            logger.debug(f"Skipping {category}/{stage.value}: {len(members)} records")
            continue
        models.append(build_group_model(category, stage, members, by_category[category]))

    logger.info(f"Trained {len(models)} cluster models from {len(records)} records ({len(groups)} groups)")
    return models


class ModelRegistry:
    """
    Holds the current trained model set.

    Readers get an immutable snapshot; ``replace`` swaps in a fully built
    tuple under a single-writer lock, so no reader ever sees a partial set.
    """

    def __init__(self, models: Iterable[TrainedClusterModel] = ()):
        self._models: tuple[TrainedClusterModel, ...] = tuple(models)
        self._write_lock = threading.Lock()

    def snapshot(self) -> tuple[TrainedClusterModel, ...]:
        return self._models

    def replace(self, models: Iterable[TrainedClusterModel]) -> tuple[TrainedClusterModel, ...]:
        new_models = tuple(models)
        with self._write_lock:
            self._models = new_models
        return new_models

    def retrain(
        self,
        records: Iterable[TerrestrialRecord],
        config: EngineConfig | None = None,
    ) -> tuple[TrainedClusterModel, ...]:
        """Train from ``records`` and publish the result."""
        return self.replace(train_models(records, config))

    def __len__(self) -> int:
        return len(self._models)
