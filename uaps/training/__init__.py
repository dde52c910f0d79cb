"""Terrestrial model training and tasting-note import."""

from .extraction import (
    TastingNote,
    extract_flavor_scores,
    extract_with_inference,
    infer_aging_years,
    records_from_notes,
    records_from_notes_with_inference,
)
from .trainer import ModelRegistry, compute_stats, infer_aging_stage, train_models

__all__ = [
    "ModelRegistry",
    "TastingNote",
    "compute_stats",
    "extract_flavor_scores",
    "extract_with_inference",
    "infer_aging_stage",
    "infer_aging_years",
    "records_from_notes",
    "records_from_notes_with_inference",
    "train_models",
]
