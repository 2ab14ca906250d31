"""
Tests for derived order metrics.

This module tests:
- Priority derivation from deadline proximity
- Urgency score formula
- Batch rules for per-unit, product, and machine-sequence items
"""

import pytest

from factory_scheduler.calculated_fields import (
    calculate_all_metrics,
    calculate_metrics_for_item,
    calculate_urgency_score,
    derive_priority,
    get_total_hours,
)
from factory_scheduler.data_loader import MachineStep
from factory_scheduler.errors import ValidationError
from tests.fixtures.work_items import make_item


class TestPriority:
    """Tests for priority tiers and urgency."""

    @pytest.mark.parametrize("days,expected", [
        (-2, "High"),
        (0, "High"),
        (3, "High"),
        (4, "Medium"),
        (7, "Medium"),
        (8, "Low"),
    ])
    def test_derive_priority_thresholds(self, days, expected):
        """Priority follows the 3-day and 7-day thresholds."""
        assert derive_priority(days) == expected

    def test_urgency_score(self):
        """Urgency is weight x 1000 minus the days until the deadline."""
        assert calculate_urgency_score("High", 2) == 2998
        assert calculate_urgency_score("Medium", 5) == 1995
        assert calculate_urgency_score("Low", 10) == 990

    def test_urgency_score_clamps_past_deadlines(self):
        """Overdue items do not gain extra urgency beyond the tier weight."""
        assert calculate_urgency_score("High", -5) == 3000

    def test_explicit_priority_overrides_derived(self, per_unit_config, reference_date):
        """An explicit priority is kept even when the deadline is close."""
        item = make_item("X", 2, 1, unit_hours=1.0, priority="Low")
        metrics = calculate_metrics_for_item(item, per_unit_config, "per_unit", reference_date)

        assert metrics.priority == "Low"
        assert metrics.urgency_score == 999


class TestBatchRules:
    """Tests for batch size and duration by processing model."""

    def test_per_unit_item(self, per_unit_config, reference_date):
        """Per-unit items run one unit per batch."""
        item = make_item("U", 4, 6, unit_hours=1.5)
        metrics = calculate_metrics_for_item(item, per_unit_config, "per_unit", reference_date)

        assert metrics.batch_size == 1
        assert metrics.batches_needed == 4
        assert metrics.hours_per_batch == pytest.approx(1.5)
        assert metrics.total_hours == pytest.approx(6.0)
        assert metrics.days_until_deadline == 6
        assert metrics.priority == "Medium"

    def test_product_item(self, product_config, reference_date):
        """Product items use pieces per batch and the summed phase minutes."""
        item = make_item("P", 25, 10, product_id="SEAL")
        metrics = calculate_metrics_for_item(item, product_config, "per_unit", reference_date)

        assert metrics.batch_size == 10
        assert metrics.batches_needed == 3
        assert metrics.hours_per_batch == pytest.approx(2.0)
        assert metrics.total_hours == pytest.approx(6.0)
        assert metrics.hours_per_unit == pytest.approx(0.2)

    def test_last_batch_is_partial(self, product_config, reference_date):
        """The final batch holds only the remaining units."""
        item = make_item("P", 25, 10, product_id="SEAL")
        metrics = calculate_metrics_for_item(item, product_config, "per_unit", reference_date)

        assert metrics.units_in_batch(1) == 10
        assert metrics.units_in_batch(2) == 10
        assert metrics.units_in_batch(3) == 5

    def test_machine_item(self, machine_config, reference_date):
        """Machine items use the smallest step batch and spread total hours."""
        item = make_item(
            "M", 20, 2,
            steps=[MachineStep("MIXER", 10, 1.0), MachineStep("PRESS", 5, 0.5)],
        )
        metrics = calculate_metrics_for_item(item, machine_config, "machine", reference_date)

        assert metrics.batch_size == 5
        assert metrics.batches_needed == 4
        # 2 mixer batches x 1h + 4 press batches x 0.5h
        assert metrics.total_hours == pytest.approx(4.0)
        assert metrics.hours_per_batch == pytest.approx(1.0)

    def test_missing_unit_hours_raises(self, per_unit_config, reference_date):
        """Per-unit mode needs unit_hours or a product."""
        item = make_item("U", 4, 6)
        with pytest.raises(ValidationError, match="no per-unit processing time"):
            calculate_metrics_for_item(item, per_unit_config, "per_unit", reference_date)

    def test_missing_steps_raises(self, machine_config, reference_date):
        """Machine mode needs a machine sequence."""
        item = make_item("M", 4, 6, unit_hours=1.0)
        with pytest.raises(ValidationError, match="has no machine steps"):
            calculate_metrics_for_item(item, machine_config, "machine", reference_date)

    def test_all_metrics_keep_input_order(self, per_unit_config, per_unit_items, reference_date):
        """Normalization preserves the received order."""
        normalized = calculate_all_metrics(per_unit_items, per_unit_config, "per_unit", reference_date)

        assert [n.item_id for n in normalized] == ["A", "B", "C", "D"]
        assert get_total_hours(normalized) == pytest.approx(12 + 4 + 3 + 10)
