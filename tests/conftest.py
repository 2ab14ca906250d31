"""Pytest configuration and shared fixtures."""

import pytest

from factory_scheduler.constants import FactoryConfig, ProductConfig
from factory_scheduler.data_loader import MachineStep
from factory_scheduler.validator import OptimizerSettings
from tests.fixtures.work_items import REFERENCE_DATE, make_item


@pytest.fixture
def reference_date():
    """Fixture for the date treated as day 1."""
    return REFERENCE_DATE


@pytest.fixture
def per_unit_config():
    """Fixture for an 8-hour day with no machines."""
    return FactoryConfig(working_hours_per_day=8.0)


@pytest.fixture
def product_config():
    """Fixture for a factory with one batch-made product."""
    return FactoryConfig(
        working_hours_per_day=8.0,
        product_configs={
            "SEAL": ProductConfig(
                product_id="SEAL",
                name="Seal Ring",
                pieces_per_batch=10,
                processing_minutes=60,
                cooling_minutes=30,
                mold_refill_minutes=15,
                finishing_minutes=15,
            ),
        },
    )


@pytest.fixture
def machine_config():
    """Fixture for a factory with one mixer and two presses."""
    return FactoryConfig(
        working_hours_per_day=8.0,
        machine_inventory={"MIXER": 1, "PRESS": 2},
        setup_time_hours=0.25,
        time_quantum_hours=0.25,
    )


@pytest.fixture
def settings(reference_date):
    """Fixture for small, seeded per-unit run options."""
    return OptimizerSettings(
        reference_date=reference_date,
        population_size=20,
        generations=15,
        seed=42,
        solver_time_limit_seconds=10.0,
    )


@pytest.fixture
def machine_settings(reference_date):
    """Fixture for small, seeded machine-mode run options."""
    return OptimizerSettings(
        reference_date=reference_date,
        mode="machine",
        population_size=20,
        generations=15,
        seed=42,
        solver_time_limit_seconds=10.0,
    )


@pytest.fixture
def per_unit_items():
    """Fixture for four per-unit items with mixed deadlines."""
    return [
        make_item("A", 12, 5, unit_hours=1.0),
        make_item("B", 4, 1, unit_hours=1.0),
        make_item("C", 6, 3, unit_hours=0.5),
        make_item("D", 10, 10, unit_hours=1.0),
    ]


@pytest.fixture
def machine_items():
    """Fixture for three items sharing the mixer and presses."""
    return [
        make_item("M1", 20, 2, steps=[MachineStep("MIXER", 10, 1.0), MachineStep("PRESS", 5, 0.5)]),
        make_item("M2", 10, 1, steps=[MachineStep("MIXER", 10, 2.0)]),
        make_item("M3", 8, 4, steps=[MachineStep("PRESS", 4, 1.5), MachineStep("MIXER", 8, 1.0)]),
    ]
