"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from uaps.core.config import EngineConfig
from uaps.core.models import (
    CandidateProduct,
    DataSource,
    FlavorAxis,
    ReductionPotential,
    TerrestrialRecord,
)
from uaps.physics.coefficients import compute_coefficients
from uaps.training.trainer import train_models


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


def _build_record(
    name: str = "Test Brut",
    category: str = "champagne",
    aging_years: float | None = 5.0,
    ph: float | None = 3.1,
    dosage: float | None = 8.0,
    reduction: ReductionPotential | None = ReductionPotential.LOW,
    scores: dict[FlavorAxis, float] | None = None,
    **kwargs,
) -> TerrestrialRecord:
    """Build a terrestrial record with sensible defaults."""
    if scores is None:
        scores = {
            FlavorAxis.CITRUS: 60.0,
            FlavorAxis.BRIOCHE: 50.0,
            FlavorAxis.HONEY: 30.0,
            FlavorAxis.NUTTY: 20.0,
            FlavorAxis.TOAST: 25.0,
            FlavorAxis.OXIDATION: 10.0,
        }
    return TerrestrialRecord(
        name=name,
        category=category,
        aging_years=aging_years,
        ph=ph,
        dosage=dosage,
        reduction_potential=reduction,
        flavor_scores=scores,
        data_source=DataSource.MANUAL_ENTRY,
        **kwargs,
    )


@pytest.fixture
def make_record():
    """Factory for terrestrial records."""
    return _build_record


@pytest.fixture
def engine_config():
    """Default engine configuration (no environment involved)."""
    return EngineConfig()


@pytest.fixture
def coefficients(engine_config):
    """TCI/FRI/BRI at the default 30 m site."""
    return compute_coefficients(engine_config)


@pytest.fixture
def candidate():
    """A typical brut champagne candidate."""
    return CandidateProduct(
        name="Cuvée Abyssale",
        category="champagne",
        subtype="blend",
        vintage=2019,
        ph=3.12,
        dosage=7.5,
        reduction_potential=ReductionPotential.LOW,
        planned_duration_months=18,
        aging_depth_m=30.0,
    )


@pytest.fixture
def training_records():
    """Two trainable champagne groups plus an undersized cava group."""
    developing = [
        _build_record(name=f"Developing {i}", aging_years=4 + i * 0.5, ph=3.05 + i * 0.02, dosage=6 + i)
        for i in range(6)
    ]
    aged = [
        _build_record(
            name=f"Aged {i}",
            aging_years=18 + i,
            ph=3.2,
            dosage=4.0,
            scores={
                FlavorAxis.CITRUS: 25.0,
                FlavorAxis.BRIOCHE: 60.0,
                FlavorAxis.HONEY: 55.0,
                FlavorAxis.NUTTY: 50.0,
                FlavorAxis.TOAST: 45.0,
                FlavorAxis.OXIDATION: 30.0,
            },
        )
        for i in range(5)
    ]
    cava = [_build_record(name=f"Cava {i}", category="cava", aging_years=2) for i in range(4)]
    return developing + aged + cava


@pytest.fixture
def trained_models(training_records, engine_config):
    """Models trained from ``training_records``."""
    return train_models(training_records, engine_config)
