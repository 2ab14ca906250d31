"""
Tests for machine timeline allocation.

This module tests:
- Non-overlapping slots on every machine instance
- Changeover setup between different items
- Sequential batches and items on the timeline
- Idle slot filling and machine utilization
"""

import pytest
from itertools import permutations

from factory_scheduler.calculated_fields import calculate_all_metrics
from factory_scheduler.constants import FactoryConfig
from factory_scheduler.data_loader import MachineStep
from factory_scheduler.resources import (
    MachineInstance,
    TimeSlot,
    allocate_ordering,
    fill_idle_slots,
    machine_metrics,
)
from tests.fixtures.work_items import make_item


@pytest.fixture
def single_mixer_config():
    """Factory with one mixer and a 15-minute changeover."""
    return FactoryConfig(
        working_hours_per_day=8.0,
        machine_inventory={"MIXER": 1},
        setup_time_hours=0.25,
        time_quantum_hours=0.25,
    )


@pytest.fixture
def shared_mixer_items(single_mixer_config, reference_date):
    """Two single-batch items that both need the only mixer."""
    items = [
        make_item("A", 10, 5, steps=[MachineStep("MIXER", 10, 2.0)]),
        make_item("B", 10, 5, steps=[MachineStep("MIXER", 10, 1.0)]),
    ]
    return calculate_all_metrics(items, single_mixer_config, "machine", reference_date)


def _assert_disjoint(timeline):
    for instances in timeline.instances.values():
        for inst in instances:
            slots = sorted(inst.slots, key=lambda s: s.start)
            for current, following in zip(slots, slots[1:]):
                assert current.end <= following.start + 1e-9, (
                    f"{inst.label}: {current} overlaps {following}"
                )


class TestMachineInstance:
    """Tests for slot probing on one instance."""

    def test_free_instance_starts_at_ready_time(self):
        """An empty instance accepts a batch at its ready time."""
        inst = MachineInstance("PRESS", 0)
        assert inst.earliest_start(1.5, 1.0, "A", 0.25, 0.25) == 1.5

    def test_other_item_waits_for_setup(self):
        """A different item starts no earlier than last end plus setup."""
        inst = MachineInstance("PRESS", 0)
        inst.slots.append(TimeSlot("PRESS", 0, 0.0, 2.0, "A", "A", 1, 1))

        assert inst.earliest_start(0.0, 1.0, "B", 0.25, 0.25) == pytest.approx(2.25)

    def test_same_item_needs_no_setup(self):
        """Consecutive batches of one item run back to back."""
        inst = MachineInstance("PRESS", 0)
        inst.slots.append(TimeSlot("PRESS", 0, 0.0, 2.0, "A", "A", 1, 2))

        assert inst.earliest_start(0.0, 1.0, "A", 0.25, 0.25) == pytest.approx(2.0)


class TestAllocateOrdering:
    """Tests for turning an ordering into machine slots."""

    def test_shared_machine_gets_setup_gap(self, shared_mixer_items, single_mixer_config):
        """The second item on a shared machine starts after the first ends plus setup."""
        timeline = allocate_ordering(shared_mixer_items, (0, 1), single_mixer_config)
        first = timeline.slots_for_item("A")[0]
        second = timeline.slots_for_item("B")[0]

        assert first.start == 0.0
        assert first.end == pytest.approx(2.0)
        assert second.start >= first.end + single_mixer_config.setup_time_hours - 1e-9
        assert timeline.completion_hours["B"] == pytest.approx(3.25)

    def test_batches_run_one_after_another(self, machine_config, reference_date):
        """Each batch starts no earlier than the previous batch of the item ends."""
        items = calculate_all_metrics(
            [make_item("P", 10, 5, steps=[MachineStep("PRESS", 5, 1.0)])],
            machine_config, "machine", reference_date,
        )
        timeline = allocate_ordering(items, (0,), machine_config)
        slots = sorted(timeline.slots_for_item("P"), key=lambda s: s.batch_number)

        assert [(s.batch_number, s.instance, s.start, s.end) for s in slots] == [
            (1, 0, 0.0, 1.0),
            (2, 0, 1.0, 2.0),
        ]
        assert slots[1].start >= slots[0].end
        assert timeline.completion_hours["P"] == pytest.approx(2.0)

    def test_next_item_starts_at_previous_completion(self, machine_config, reference_date):
        """A later item waits for the earlier one even on a free machine type."""
        items = calculate_all_metrics(
            [
                make_item("A", 10, 5, steps=[MachineStep("MIXER", 10, 2.0)]),
                make_item("B", 5, 5, steps=[MachineStep("PRESS", 5, 1.0)]),
            ],
            machine_config, "machine", reference_date,
        )
        timeline = allocate_ordering(items, (0, 1), machine_config)
        press = timeline.slots_for_item("B")[0]

        assert press.start == pytest.approx(2.0)
        assert press.instance == 0
        assert timeline.completion_hours["B"] == pytest.approx(3.0)

    def test_steps_wait_for_previous_step(self, machine_config, reference_date):
        """A step becomes ready when the last batch of the previous step has ended."""
        items = calculate_all_metrics(
            [make_item(
                "M", 20, 5,
                steps=[MachineStep("MIXER", 10, 1.0), MachineStep("PRESS", 5, 0.5)],
            )],
            machine_config, "machine", reference_date,
        )
        timeline = allocate_ordering(items, (0,), machine_config)
        press = [s for s in timeline.slots_for_item("M") if s.machine_type == "PRESS"]

        assert min(s.start for s in press) == pytest.approx(2.0)
        assert sum(s.units for s in press) == 20
        assert timeline.completion_hours["M"] == pytest.approx(4.0)

    def test_no_overlap_for_any_ordering(self, machine_items, machine_config, reference_date):
        """No instance ever holds two overlapping slots."""
        items = calculate_all_metrics(machine_items, machine_config, "machine", reference_date)
        for order in permutations(range(len(items))):
            timeline = allocate_ordering(items, order, machine_config)
            assert timeline.is_feasible
            _assert_disjoint(timeline)

    def test_zero_instance_type_is_unplaceable(self, reference_date):
        """Steps on a type with no instances are reported, not placed."""
        config = FactoryConfig(working_hours_per_day=8.0, machine_inventory={"OVEN": 0})
        items = calculate_all_metrics(
            [make_item("O", 5, 5, steps=[MachineStep("OVEN", 5, 1.0)])],
            config, "machine", reference_date,
        )
        timeline = allocate_ordering(items, (0,), config)

        assert not timeline.is_feasible
        assert timeline.unplaceable == [("O", "OVEN")]


class TestTimelineSummaries:
    """Tests for idle filling and per-machine metrics."""

    def test_setup_gap_becomes_idle_slot(self, shared_mixer_items, single_mixer_config):
        """The changeover gap shows up as an explicit idle slot."""
        timeline = allocate_ordering(shared_mixer_items, (0, 1), single_mixer_config)
        slots = fill_idle_slots(timeline)["MIXER"]
        idle = [s for s in slots if s.is_idle]

        assert len(idle) == 1
        assert idle[0].start == pytest.approx(2.0)
        assert idle[0].end == pytest.approx(2.25)
        assert [s.start for s in slots] == sorted(s.start for s in slots)

    def test_machine_metrics(self, shared_mixer_items, single_mixer_config):
        """Utilization is busy hours over makespan times instances."""
        timeline = allocate_ordering(shared_mixer_items, (0, 1), single_mixer_config)
        usage = machine_metrics(timeline)["MIXER"]

        assert usage.instances == 1
        assert usage.busy_hours == pytest.approx(3.0)
        assert usage.idle_hours == pytest.approx(0.25)
        assert usage.utilization == pytest.approx(3.0 / 3.25 * 100)
