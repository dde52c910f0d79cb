"""Core types, configuration and numeric helpers."""

from .config import EngineConfig
from .models import (
    DEFAULT_AGING_FACTORS,
    DEFAULT_QUALITY_WEIGHTS,
    FLAVOR_AXES,
    AgingFactors,
    AgingPrediction,
    AgingStage,
    CandidateProduct,
    ClusterCentroid,
    ClusterMatch,
    CoefficientMeta,
    CoefficientSet,
    CoefficientSource,
    CurvePoint,
    DataSource,
    FlavorAxis,
    FlavorStats,
    HarvestWindow,
    ProductStatus,
    QualityScores,
    QualityWeights,
    ReductionPotential,
    TerrestrialRecord,
    TimelinePoint,
    TrainedClusterModel,
)
from .numeric import clamp, clamp_score, normalize_weights

__all__ = [
    "DEFAULT_AGING_FACTORS",
    "DEFAULT_QUALITY_WEIGHTS",
    "FLAVOR_AXES",
    "AgingFactors",
    "AgingPrediction",
    "AgingStage",
    "CandidateProduct",
    "ClusterCentroid",
    "ClusterMatch",
    "CoefficientMeta",
    "CoefficientSet",
    "CoefficientSource",
    "CurvePoint",
    "DataSource",
    "EngineConfig",
    "FlavorAxis",
    "FlavorStats",
    "HarvestWindow",
    "ProductStatus",
    "QualityScores",
    "QualityWeights",
    "ReductionPotential",
    "TerrestrialRecord",
    "TimelinePoint",
    "TrainedClusterModel",
    "clamp",
    "clamp_score",
    "normalize_weights",
]
