"""
Unit tests for the service operations and the engine facade.
"""

import json

import pytest

from uaps import io, service
from uaps.core.config import EngineConfig
from uaps.core.models import FLAVOR_AXES
from uaps.service import UAPSEngine


class FailingClient:
    async def generate(self, prompt, model, timeout):
        raise ConnectionError("service down")


class RecordingClient:
    def __init__(self):
        self.calls = []

    async def generate(self, prompt, model, timeout):
        self.calls.append(model)
        return json.dumps({"flavorProfile": {"citrus": 50}})


class TestOperations:
    def test_train(self, training_records):
        models = service.train(training_records)
        assert len(models) == 2

    def test_predict_sync_without_models(self, candidate, coefficients):
        prediction = service.predict_sync(candidate, 18, [], coefficients)
        assert set(prediction.flavor) == set(FLAVOR_AXES)
        assert prediction.prediction_confidence == 0.0

    def test_predict_never_raises_on_inference_faults(self, candidate, coefficients, trained_models):
        config = EngineConfig(inference_models=("a", "b", "c"))
        prediction = service.predict_sync(
            candidate, 18, trained_models, coefficients, config=config, client=FailingClient()
        )
        assert prediction.strategy == "statistical"

    def test_predict_uses_client_without_explicit_config(self, candidate, coefficients, trained_models):
        client = RecordingClient()
        prediction = service.predict_sync(candidate, 18, trained_models, coefficients, client=client)
        assert len(client.calls) == 1
        assert prediction.strategy == f"external:{client.calls[0]}"

    def test_predict_in_range(self, candidate, coefficients, trained_models):
        for months in (1, 12, 36, 72):
            prediction = service.predict_sync(candidate, months, trained_models, coefficients)
            assert all(0 <= v <= 100 for v in prediction.flavor.values())
            q = prediction.quality
            assert all(0 <= v <= 100 for v in (q.texture_maturity, q.aroma_freshness, q.off_flavor_risk, q.overall_quality))

    def test_timeline(self, candidate, coefficients):
        assert len(service.timeline(candidate, coefficients)) == 31


class TestEngine:
    def test_train_publishes_models(self, training_records):
        engine = UAPSEngine()
        engine.train(training_records)
        assert len(engine.models) == 2

    @pytest.mark.asyncio
    async def test_predict_uses_planned_duration(self, candidate, training_records):
        engine = UAPSEngine()
        engine.train(training_records)
        prediction = await engine.predict(candidate)
        assert prediction.undersea_duration_months == 18
        assert prediction.bri_applied == engine.coefficients(candidate.aging_depth_m).bri.value

    @pytest.mark.asyncio
    async def test_predict_without_any_duration(self):
        from uaps.core.models import CandidateProduct

        prediction = await UAPSEngine().predict(CandidateProduct(name="Unplanned"))
        assert prediction.undersea_duration_months == 15

    def test_coefficient_overrides_flow_through(self, candidate):
        engine = UAPSEngine(config=EngineConfig().with_overrides({"tci_coefficient": 0.5}))
        assert engine.coefficients().tci.value == 0.5


class TestIO:
    def test_models_file(self, tmp_path, trained_models):
        path = tmp_path / "models.json"
        io.save_models(path, trained_models)
        assert io.load_models(path) == trained_models

    def test_records_wrapped_in_object(self, tmp_path, training_records):
        path = tmp_path / "records.json"
        path.write_text(json.dumps({"records": [r.to_dict() for r in training_records]}), encoding="utf-8")
        assert io.load_records(path) == training_records

    def test_prediction_file(self, tmp_path, candidate, coefficients):
        prediction = service.predict_sync(candidate, 12, [], coefficients)
        path = tmp_path / "out" / "prediction.json"
        io.save_prediction(path, prediction)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["product_name"] == candidate.name
        assert data["strategy"] == "statistical"
