"""JSON files in and out of the engine."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from uaps.core.models import (
    AgingPrediction,
    CandidateProduct,
    FlavorAxis,
    TerrestrialRecord,
    TrainedClusterModel,
)
from uaps.training.extraction import TastingNote


def read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def _as_list(data: Any, key: str) -> list[dict[str, Any]]:
    # Accept a bare list or {"<key>": [...]}
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of {key}")
    return data


def load_records(path: Path) -> list[TerrestrialRecord]:
    return [TerrestrialRecord.from_dict(item) for item in _as_list(read_json(path), "records")]


def save_records(path: Path, records: Iterable[TerrestrialRecord]) -> None:
    write_json(path, [record.to_dict() for record in records])


def load_models(path: Path) -> list[TrainedClusterModel]:
    return [TrainedClusterModel.from_dict(item) for item in _as_list(read_json(path), "models")]


def save_models(path: Path, models: Iterable[TrainedClusterModel]) -> None:
    write_json(path, [model.to_dict() for model in models])


def load_candidate(path: Path) -> CandidateProduct:
    return CandidateProduct.from_dict(read_json(path))


def load_notes(path: Path) -> list[TastingNote]:
    return [TastingNote.from_dict(item) for item in _as_list(read_json(path), "notes")]


def load_expert_profile(path: Path) -> dict[FlavorAxis, float]:
    data = read_json(path)
    return {FlavorAxis(key): float(value) for key, value in data.items() if value is not None}


def save_prediction(path: Path, prediction: AgingPrediction) -> None:
    write_json(path, prediction.to_dict())
