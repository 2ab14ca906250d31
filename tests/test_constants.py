"""Tests for the factory configuration loader."""

import pytest
from pathlib import Path

from factory_scheduler.constants import (
    FactoryConfig,
    ProductConfig,
    factory_config_from_dict,
    load_factory_config,
    save_factory_config,
)
from factory_scheduler.errors import ConfigurationError, FileLoadError


CONFIG_PATH = Path(__file__).parent.parent / "config" / "factory.yaml"


class TestLoadFactoryConfig:
    """Tests for reading the YAML configuration."""

    def test_shipped_config(self):
        """The bundled configuration loads with machines and products."""
        config = load_factory_config(CONFIG_PATH)

        assert config.working_hours_per_day == 8.0
        assert config.machine_inventory == {"MIXER": 1, "PRESS": 2, "OVEN": 1}
        assert config.total_instances == 4
        assert config.machine_hours_per_day() == pytest.approx(32.0)
        assert config.setup_time_hours == pytest.approx(5 / 60)
        assert config.time_quantum_hours == pytest.approx(0.25)
        assert config.get_product("SEAL-R").minutes_per_batch == pytest.approx(90)

    def test_save_and_reload(self, tmp_path):
        """A saved configuration loads back unchanged."""
        config = FactoryConfig(
            working_hours_per_day=7.5,
            machine_inventory={"LATHE": 3},
            setup_time_hours=0.5,
            product_configs={
                "P1": ProductConfig("P1", "Part One", 6, 40.0, 10.0),
            },
        )
        path = tmp_path / "factory.yaml"

        save_factory_config(config, path)
        loaded = load_factory_config(path)

        assert loaded == config

    def test_missing_file(self, tmp_path):
        """A missing file is a FileLoadError."""
        with pytest.raises(FileLoadError, match="missing.yaml"):
            load_factory_config(tmp_path / "missing.yaml")

    def test_top_level_must_be_mapping(self, tmp_path):
        """A YAML list is not a configuration."""
        path = tmp_path / "factory.yaml"
        path.write_text("- 8\n- 4\n")

        with pytest.raises(ConfigurationError, match="Top level must be a mapping"):
            load_factory_config(path)


class TestFactoryConfigFromDict:
    """Tests for validating configuration values."""

    def test_minimal(self):
        """Only the working day is required."""
        config = factory_config_from_dict({"working_hours_per_day": 10})

        assert config.working_hours_per_day == 10.0
        assert config.machine_inventory == {}
        assert config.machine_hours_per_day() == 10.0

    @pytest.mark.parametrize("data,issue", [
        ({}, "Missing working_hours_per_day"),
        ({"working_hours_per_day": "long"}, "must be a number"),
        ({"working_hours_per_day": 0}, "must be greater than 0"),
        ({"working_hours_per_day": 8, "machines": [{"type": "MIXER"}]}, "Malformed machine entry"),
        ({"working_hours_per_day": 8, "products": [{"id": "P"}]}, "Malformed product entry"),
        ({"working_hours_per_day": 8, "time_quantum_minutes": 0}, "time_quantum_minutes"),
    ])
    def test_invalid_values(self, data, issue):
        """Bad values raise ConfigurationError naming the issue."""
        with pytest.raises(ConfigurationError, match=issue):
            factory_config_from_dict(data)

    def test_product_needs_positive_batch(self):
        """Products with no pieces per batch are rejected."""
        data = {
            "working_hours_per_day": 8,
            "products": [{"id": "P", "pieces_per_batch": 0, "processing_minutes": 10}],
        }
        with pytest.raises(ConfigurationError, match="positive batch size"):
            factory_config_from_dict(data)

    def test_unknown_product_lookup(self):
        """Looking up an unknown product raises."""
        with pytest.raises(ConfigurationError, match="Product not found: X"):
            FactoryConfig(working_hours_per_day=8.0).get_product("X")
