"""
UAPS Data Models.

Typed records flowing through the engine:

- TerrestrialRecord: one historical (land) aging observation
- TrainedClusterModel: aggregate statistics for a (category, stage) group
- CandidateProduct: the bottle lot being evaluated for undersea aging
- CoefficientMeta / CoefficientSet: TCI, FRI, BRI with provenance
- ClusterMatch: a scored model for one candidate
- AgingPrediction: the final prediction record

Optional attributes use ``None`` for "unset" so that a real zero (for
example a zero-dosage brut nature) is never confused with a missing value.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any

from uaps.exceptions import InvalidStatusTransitionError

# =============================================================================
# ENUMS
# =============================================================================


class FlavorAxis(str, Enum):
    """The six sensory axes scored 0-100."""

    CITRUS = "citrus"
    BRIOCHE = "brioche"
    HONEY = "honey"
    NUTTY = "nutty"
    TOAST = "toast"
    OXIDATION = "oxidation"


FLAVOR_AXES: tuple[FlavorAxis, ...] = tuple(FlavorAxis)


class AgingStage(str, Enum):
    """Terrestrial aging stage of a record or cluster."""

    YOUTHFUL = "youthful"
    DEVELOPING = "developing"
    MATURE = "mature"
    AGED = "aged"


class ReductionPotential(str, Enum):
    """Qualitative tendency of a wine to develop reductive off-flavors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ProductStatus(str, Enum):
    """Lifecycle of a candidate product."""

    PLANNED = "planned"
    IMMERSED = "immersed"
    HARVESTED = "harvested"


class DataSource(str, Enum):
    """Origin of a terrestrial record."""

    VIVINO = "vivino"
    CELLARTRACKER = "cellartracker"
    DECANTER = "decanter"
    INTERNAL_TASTING = "internal_tasting"
    MANUAL_ENTRY = "manual_entry"
    CSV_IMPORT = "csv_import"


class CoefficientSource(str, Enum):
    """Provenance tag for a correction coefficient."""

    HYPOTHESIS = "hypothesis"
    LITERATURE = "literature"
    ARRHENIUS = "arrhenius"
    HENRYS_LAW = "henrys_law"
    EXPERIMENT = "experiment"


def _enum_or_none(enum_cls: type[Enum], value: Any) -> Any:
    if value is None or value == "":
        return None
    return enum_cls(value)


# =============================================================================
# TRAINING INPUT / OUTPUT
# =============================================================================


@dataclass(frozen=True)
class TerrestrialRecord:
    """One historical terrestrial aging observation (read-only)."""

    name: str
    category: str = "champagne"
    subtype: str | None = None
    producer: str | None = None
    vintage: int | None = None
    # Physicochemical
    ph: float | None = None
    dosage: float | None = None
    alcohol: float | None = None
    acidity: float | None = None
    reduction_potential: ReductionPotential | None = None
    # Sensory, axis -> 0-100; absent axis means "not scored"
    flavor_scores: dict[FlavorAxis, float] = field(default_factory=dict)
    # Aging
    aging_years: float | None = None
    aging_years_confidence: float | None = None
    aging_stage: AgingStage | None = None
    drinking_window_start: float | None = None
    drinking_window_end: float | None = None
    # Provenance
    data_source: DataSource = DataSource.MANUAL_ENTRY
    review_text: str | None = None
    rating: float | None = None

    def score(self, axis: FlavorAxis) -> float | None:
        return self.flavor_scores.get(axis)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["flavor_scores"] = {axis.value: value for axis, value in self.flavor_scores.items()}
        data["reduction_potential"] = self.reduction_potential.value if self.reduction_potential else None
        data["aging_stage"] = self.aging_stage.value if self.aging_stage else None
        data["data_source"] = self.data_source.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TerrestrialRecord:
        scores = {
            FlavorAxis(key): float(value)
            for key, value in (data.get("flavor_scores") or {}).items()
            if value is not None
        }
        return cls(
            name=data.get("name", ""),
            category=data.get("category") or "champagne",
            subtype=data.get("subtype"),
            producer=data.get("producer"),
            vintage=data.get("vintage"),
            ph=data.get("ph"),
            dosage=data.get("dosage"),
            alcohol=data.get("alcohol"),
            acidity=data.get("acidity"),
            reduction_potential=_enum_or_none(ReductionPotential, data.get("reduction_potential")),
            flavor_scores=scores,
            aging_years=data.get("aging_years"),
            aging_years_confidence=data.get("aging_years_confidence"),
            aging_stage=_enum_or_none(AgingStage, data.get("aging_stage")),
            drinking_window_start=data.get("drinking_window_start"),
            drinking_window_end=data.get("drinking_window_end"),
            data_source=DataSource(data.get("data_source") or DataSource.MANUAL_ENTRY.value),
            review_text=data.get("review_text"),
            rating=data.get("rating"),
        )


@dataclass(frozen=True)
class FlavorStats:
    """Descriptive statistics for one numeric attribute within a group."""

    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    p25: float = 0.0
    p75: float = 0.0
    count: int = 0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlavorStats:
        return cls(**{key: data[key] for key in ("mean", "median", "std_dev", "p25", "p75", "count") if key in data})


@dataclass(frozen=True)
class ClusterCentroid:
    """Mean pH/dosage of a bucketed physicochemical sub-cluster."""

    ph: float
    dosage: float
    reduction: ReductionPotential
    count: int


@dataclass(frozen=True)
class CurvePoint:
    year: int
    value: float


@dataclass(frozen=True)
class TrainedClusterModel:
    """
    Aggregate statistics for one (category, aging stage) group.

    Produced wholesale by the trainer and never mutated; a new training run
    replaces the whole collection.
    """

    category: str
    aging_stage: AgingStage
    sample_count: int
    flavor_profile: dict[FlavorAxis, FlavorStats]
    physicochemical_stats: dict[str, FlavorStats]
    transition_curves: dict[FlavorAxis, tuple[CurvePoint, ...]]
    cluster_centroids: tuple[ClusterCentroid, ...]
    drinking_window_stats: dict[str, FlavorStats]
    confidence: float
    subtype: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "aging_stage": self.aging_stage.value,
            "subtype": self.subtype,
            "sample_count": self.sample_count,
            "flavor_profile": {axis.value: stats.to_dict() for axis, stats in self.flavor_profile.items()},
            "physicochemical_stats": {
                name: stats.to_dict() for name, stats in self.physicochemical_stats.items()
            },
            "transition_curves": {
                axis.value: [{"year": p.year, "value": p.value} for p in points]
                for axis, points in self.transition_curves.items()
            },
            "cluster_centroids": [
                {"ph": c.ph, "dosage": c.dosage, "reduction": c.reduction.value, "count": c.count}
                for c in self.cluster_centroids
            ],
            "drinking_window_stats": {
                name: stats.to_dict() for name, stats in self.drinking_window_stats.items()
            },
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrainedClusterModel:
        return cls(
            category=data["category"],
            aging_stage=AgingStage(data["aging_stage"]),
            subtype=data.get("subtype"),
            sample_count=int(data["sample_count"]),
            flavor_profile={
                FlavorAxis(key): FlavorStats.from_dict(value)
                for key, value in data.get("flavor_profile", {}).items()
            },
            physicochemical_stats={
                key: FlavorStats.from_dict(value)
                for key, value in data.get("physicochemical_stats", {}).items()
            },
            transition_curves={
                FlavorAxis(key): tuple(CurvePoint(int(p["year"]), float(p["value"])) for p in points)
                for key, points in data.get("transition_curves", {}).items()
            },
            cluster_centroids=tuple(
                ClusterCentroid(
                    ph=float(c["ph"]),
                    dosage=float(c["dosage"]),
                    reduction=ReductionPotential(c["reduction"]),
                    count=int(c["count"]),
                )
                for c in data.get("cluster_centroids", [])
            ),
            drinking_window_stats={
                key: FlavorStats.from_dict(value)
                for key, value in data.get("drinking_window_stats", {}).items()
            },
            confidence=float(data.get("confidence", 0.0)),
        )


# =============================================================================
# CANDIDATE PRODUCT
# =============================================================================


DEFAULT_DEPTH_M = 30.0

_ALLOWED_TRANSITIONS: dict[ProductStatus, ProductStatus] = {
    ProductStatus.PLANNED: ProductStatus.IMMERSED,
    ProductStatus.IMMERSED: ProductStatus.HARVESTED,
}


@dataclass(frozen=True)
class CandidateProduct:
    """A product lot under evaluation for undersea aging."""

    name: str
    category: str = "champagne"
    subtype: str | None = None
    vintage: int | None = None
    producer: str | None = None
    ph: float | None = None
    dosage: float | None = None
    alcohol: float | None = None
    acidity: float | None = None
    reduction_potential: ReductionPotential = ReductionPotential.LOW
    immersion_date: date | None = None
    planned_duration_months: int | None = None
    aging_depth_m: float = DEFAULT_DEPTH_M
    status: ProductStatus = ProductStatus.PLANNED

    def _transition(self, target: ProductStatus, **changes: Any) -> CandidateProduct:
        if _ALLOWED_TRANSITIONS.get(self.status) is not target:
            raise InvalidStatusTransitionError(
                f"Cannot move '{self.name}' from {self.status.value} to {target.value}"
            )
        return replace(self, status=target, **changes)

    def immerse(self, on: date, duration_months: int | None = None) -> CandidateProduct:
        """Return a copy marked as immersed on ``on``."""
        return self._transition(
            ProductStatus.IMMERSED,
            immersion_date=on,
            planned_duration_months=duration_months or self.planned_duration_months,
        )

    def harvest(self) -> CandidateProduct:
        """Return a copy marked as harvested."""
        return self._transition(ProductStatus.HARVESTED)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["reduction_potential"] = self.reduction_potential.value
        data["status"] = self.status.value
        data["immersion_date"] = self.immersion_date.isoformat() if self.immersion_date else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CandidateProduct:
        immersion = data.get("immersion_date")
        depth = data.get("aging_depth_m")
        return cls(
            name=data.get("name", ""),
            category=data.get("category") or "champagne",
            subtype=data.get("subtype"),
            vintage=data.get("vintage"),
            producer=data.get("producer"),
            ph=data.get("ph"),
            dosage=data.get("dosage"),
            alcohol=data.get("alcohol"),
            acidity=data.get("acidity"),
            reduction_potential=ReductionPotential(data.get("reduction_potential") or "low"),
            immersion_date=date.fromisoformat(immersion) if immersion else None,
            planned_duration_months=data.get("planned_duration_months"),
            aging_depth_m=float(depth) if depth is not None else DEFAULT_DEPTH_M,
            status=ProductStatus(data.get("status") or "planned"),
        )


# =============================================================================
# COEFFICIENTS
# =============================================================================


@dataclass(frozen=True)
class CoefficientMeta:
    """A correction coefficient with its 95% interval and provenance."""

    value: float
    lower95: float
    upper95: float
    source: CoefficientSource
    justification: str
    references: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "lower95": self.lower95,
            "upper95": self.upper95,
            "source": self.source.value,
            "justification": self.justification,
            "references": list(self.references),
        }


@dataclass(frozen=True)
class CoefficientSet:
    """TCI, FRI and BRI as applied to one prediction."""

    tci: CoefficientMeta
    fri: CoefficientMeta
    bri: CoefficientMeta

    def to_dict(self) -> dict[str, Any]:
        return {"tci": self.tci.to_dict(), "fri": self.fri.to_dict(), "bri": self.bri.to_dict()}


# =============================================================================
# PREDICTION
# =============================================================================


@dataclass(frozen=True)
class ClusterMatch:
    model: TrainedClusterModel
    similarity: float


@dataclass(frozen=True)
class AgingFactors:
    """Per-category shape parameters for the aging curves."""

    texture_mult: float = 1.0
    aroma_decay: float = 1.0
    risk_mult: float = 1.0
    base_aging_years: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class QualityWeights:
    """Weights of the four quality components in the composite score."""

    texture: float = 0.30
    aroma: float = 0.30
    bubble: float = 0.25
    risk: float = 0.15

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


DEFAULT_AGING_FACTORS = AgingFactors()
DEFAULT_QUALITY_WEIGHTS = QualityWeights()


@dataclass(frozen=True)
class QualityScores:
    texture_maturity: float
    aroma_freshness: float
    off_flavor_risk: float
    overall_quality: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class HarvestWindow:
    start_months: int
    end_months: int
    recommendation: str = ""

    @property
    def midpoint(self) -> int:
        return (self.start_months + self.end_months) // 2

    @property
    def span(self) -> int:
        return self.end_months - self.start_months

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AgingPrediction:
    """Final prediction for one candidate and one undersea duration."""

    product_name: str
    category: str
    input_ph: float | None
    input_dosage: float | None
    input_reduction_potential: ReductionPotential
    undersea_duration_months: int
    aging_depth_m: float
    immersion_date: date | None
    flavor: dict[FlavorAxis, float]
    quality: QualityScores
    bubble_refinement: float
    harvest_window: HarvestWindow
    insight: str
    risk_warning: str | None
    tci_applied: float
    fri_applied: float
    bri_applied: float
    prediction_confidence: float
    aging_factors: AgingFactors
    quality_weights: QualityWeights
    strategy: str
    expert_profile: dict[FlavorAxis, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_name": self.product_name,
            "category": self.category,
            "input_ph": self.input_ph,
            "input_dosage": self.input_dosage,
            "input_reduction_potential": self.input_reduction_potential.value,
            "undersea_duration_months": self.undersea_duration_months,
            "aging_depth_m": self.aging_depth_m,
            "immersion_date": self.immersion_date.isoformat() if self.immersion_date else None,
            "flavor": {axis.value: value for axis, value in self.flavor.items()},
            "quality": self.quality.to_dict(),
            "bubble_refinement": self.bubble_refinement,
            "harvest_window": self.harvest_window.to_dict(),
            "insight": self.insight,
            "risk_warning": self.risk_warning,
            "tci_applied": self.tci_applied,
            "fri_applied": self.fri_applied,
            "bri_applied": self.bri_applied,
            "prediction_confidence": self.prediction_confidence,
            "aging_factors": self.aging_factors.to_dict(),
            "quality_weights": self.quality_weights.to_dict(),
            "strategy": self.strategy,
            "expert_profile": (
                {axis.value: value for axis, value in self.expert_profile.items()}
                if self.expert_profile
                else None
            ),
        }


@dataclass(frozen=True)
class TimelinePoint:
    """Scores for one month of the visualization timeline."""

    month: int
    texture_maturity: float
    aroma_freshness: float
    off_flavor_risk: float
    bubble_refinement: float
    composite_quality: float
    gain_score: float = 0.0
    loss_score: float = 0.0
    net_benefit: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)
