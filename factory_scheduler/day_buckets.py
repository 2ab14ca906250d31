# Calendar-day bucketing of computed schedules.
# Version: 1.0.0
# Packs per-unit orderings, splits machine timelines, and emits day assignments with idle/overtime accounting.

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from math import ceil, floor

from .calculated_fields import NormalizedItem
from .constants import FactoryConfig
from .resources import EPS, MachineTimeline


logger = logging.getLogger(__name__)

# Batch number marking backfilled production beyond the ordered quantity
EXTRA_BATCH = -1


@dataclass
class DayAllocation:
    """Work attributed to one item (and optionally one machine) on one day.

    Attributes:
        item_id: Work item identifier.
        name: Work item display name.
        units: Units completed on this day.
        hours_used: Hours of capacity consumed on this day.
        first_batch: First batch number touched (EXTRA_BATCH for backfill).
        batch_count: Number of batches touched.
        machine_instance: Machine label in machine mode (e.g., "OVEN #2").
    """
    item_id: str
    name: str
    units: int
    hours_used: float
    first_batch: int = 1
    batch_count: int = 1
    machine_instance: str | None = None

    @property
    def is_extra(self) -> bool:
        return self.first_batch == EXTRA_BATCH


@dataclass
class DaySchedule:
    """One calendar day of the schedule.

    Attributes:
        day: 1-based day number.
        date: Calendar date (day 1 is the reference date).
        capacity_hours: Hours available on this day.
        allocations: Work placed on this day, in placement order.
    """
    day: int
    date: date
    capacity_hours: float
    allocations: list[DayAllocation] = field(default_factory=list)

    @property
    def total_hours_used(self) -> float:
        return sum(a.hours_used for a in self.allocations)

    @property
    def idle_hours(self) -> float:
        """Unused capacity; zero whenever the day is full or in overtime."""
        slack = self.capacity_hours - self.total_hours_used
        return slack if slack > EPS else 0.0

    @property
    def overtime_hours(self) -> float:
        """Hours beyond capacity; zero whenever the day has idle time."""
        excess = self.total_hours_used - self.capacity_hours
        return excess if excess > EPS else 0.0

    @property
    def utilization(self) -> float:
        """Used hours as a percentage of capacity."""
        if self.capacity_hours <= 0:
            return 0.0
        return self.total_hours_used / self.capacity_hours * 100

    def units_for(self, item_id: str) -> int:
        return sum(a.units for a in self.allocations if a.item_id == item_id and not a.is_extra)


@dataclass(frozen=True)
class BatchAssignment:
    """A single batch placed on a single day by a day-assignment strategy.

    Attributes:
        item_index: Index into the normalized item list.
        batch_number: 1-based batch number within the item.
        day: 1-based day number.
    """
    item_index: int
    batch_number: int
    day: int


def day_date(reference_date: date, day: int) -> date:
    """Calendar date of 1-based day ``day``."""
    return reference_date + timedelta(days=day - 1)


def _ensure_day(
    days: list[DaySchedule],
    day: int,
    capacity: float,
    reference_date: date
) -> DaySchedule:
    """Extend ``days`` so that 1-based ``day`` exists and return it."""
    while len(days) < day:
        n = len(days) + 1
        days.append(DaySchedule(n, day_date(reference_date, n), capacity))
    return days[day - 1]


def bucketize_ordering(
    items: list[NormalizedItem],
    order: tuple[int, ...] | list[int],
    config: FactoryConfig,
    reference_date: date
) -> list[DaySchedule]:
    """Pack an ordering of per-unit work into days sequentially.

    Each day takes as many whole units as fit in its remaining capacity, and
    at least one unit while it still has hours left, even when that unit
    overflows into overtime. Packing moves to the next day once the current
    day is full.

    Args:
        items: Normalized work items (per-unit mode).
        order: Permutation of indices into ``items``.
        config: Factory configuration (working hours per day).
        reference_date: Date of day 1.

    Returns:
        DaySchedule list covering every day that received work.
    """
    capacity = config.working_hours_per_day
    days: list[DaySchedule] = []
    current_day = 1
    used = 0.0

    for idx in order:
        n = items[idx]
        m = n.metrics
        unit_hours = m.hours_per_unit
        remaining = m.quantity
        produced = 0

        while remaining > 0:
            if used >= capacity - EPS:
                current_day += 1
                used = 0.0
                continue

            fit = floor((capacity - used) / unit_hours + EPS)
            units = min(remaining, max(1, fit))
            hours = units * unit_hours
            first_batch = produced // m.batch_size + 1
            last_batch = ceil((produced + units) / m.batch_size)

            day = _ensure_day(days, current_day, capacity, reference_date)
            day.allocations.append(
                DayAllocation(
                    item_id=n.item_id,
                    name=n.name,
                    units=units,
                    hours_used=hours,
                    first_batch=first_batch,
                    batch_count=last_batch - first_batch + 1,
                )
            )
            used += hours
            produced += units
            remaining -= units

    return days


def bucketize_timeline(
    items: list[NormalizedItem],
    timeline: MachineTimeline,
    config: FactoryConfig,
    reference_date: date
) -> list[DaySchedule]:
    """Split a continuous machine timeline into calendar days.

    Day d covers hours [(d-1) x H, d x H). Each slot's hours are split across
    the days it overlaps, and units of an item's final step are credited to
    the day the batch ends. Daily capacity is H times the total number of
    machine instances.

    Args:
        items: Normalized work items (machine mode).
        timeline: Allocated machine timeline.
        config: Factory configuration.
        reference_date: Date of day 1.

    Returns:
        DaySchedule list from day 1 through the day of the last slot end.
    """
    hours_per_day = config.working_hours_per_day
    capacity = config.machine_hours_per_day()
    last_step = {n.item_id: len(n.item.machine_steps) - 1 for n in items}
    names = {n.item_id: n.name for n in items}

    days: list[DaySchedule] = []
    # (day, item_id, machine label) -> allocation, kept in first-seen order
    buckets: dict[tuple[int, str, str], DayAllocation] = {}

    for slot in timeline.all_slots():
        label = f"{slot.machine_type} #{slot.instance + 1}"
        first_day = floor(slot.start / hours_per_day + EPS) + 1
        end_day = max(1, ceil(slot.end / hours_per_day - EPS))

        for d in range(first_day, end_day + 1):
            window_start = (d - 1) * hours_per_day
            window_end = d * hours_per_day
            overlap = min(slot.end, window_end) - max(slot.start, window_start)
            if overlap <= EPS:
                continue

            key = (d, slot.item_id, label)
            alloc = buckets.get(key)
            if alloc is None:
                alloc = DayAllocation(
                    item_id=slot.item_id,
                    name=names.get(slot.item_id, slot.item_name),
                    units=0,
                    hours_used=0.0,
                    first_batch=slot.batch_number,
                    batch_count=0,
                    machine_instance=label,
                )
                buckets[key] = alloc
                _ensure_day(days, d, capacity, reference_date).allocations.append(alloc)

            alloc.hours_used += overlap
            alloc.batch_count += 1
            alloc.first_batch = min(alloc.first_batch, slot.batch_number)
            if d == end_day and slot.step_index == last_step.get(slot.item_id):
                alloc.units += slot.units

    return days


def bucketize_assignment(
    items: list[NormalizedItem],
    assignments: list[BatchAssignment],
    config: FactoryConfig,
    reference_date: date
) -> list[DaySchedule]:
    """Emit a direct day-by-day batch assignment as DaySchedules.

    Batches are grouped per (day, item) in the order they were assigned.
    Days between assigned days that received nothing appear as fully idle.

    Args:
        items: Normalized work items.
        assignments: Batches placed on days by the strategy.
        config: Factory configuration (working hours per day).
        reference_date: Date of day 1.

    Returns:
        DaySchedule list from day 1 through the last assigned day.
    """
    capacity = config.working_hours_per_day
    days: list[DaySchedule] = []
    grouped: dict[tuple[int, int], DayAllocation] = {}

    for a in assignments:
        n = items[a.item_index]
        m = n.metrics
        day = _ensure_day(days, a.day, capacity, reference_date)

        key = (a.day, a.item_index)
        alloc = grouped.get(key)
        if alloc is None:
            alloc = DayAllocation(
                item_id=n.item_id,
                name=n.name,
                units=0,
                hours_used=0.0,
                first_batch=a.batch_number,
                batch_count=0,
            )
            grouped[key] = alloc
            day.allocations.append(alloc)

        alloc.units += m.units_in_batch(a.batch_number)
        alloc.hours_used += m.hours_per_batch
        alloc.batch_count += 1
        alloc.first_batch = min(alloc.first_batch, a.batch_number)

    return days


def fill_idle_with_extra(days: list[DaySchedule], items: list[NormalizedItem]) -> int:
    """Backfill the final day's idle capacity with extra batches.

    The item with the largest produced quantity gets whole extra batches
    appended while one more still fits. Extra batches carry EXTRA_BATCH as
    their batch number.

    Args:
        days: Bucketed schedule; the last day is modified in place.
        items: Normalized work items.

    Returns:
        Number of extra batches added.
    """
    if not days:
        return 0

    last_day = days[-1]
    if last_day.idle_hours <= 0:
        return 0

    produced: dict[str, int] = {}
    for day in days:
        for alloc in day.allocations:
            if not alloc.is_extra:
                produced[alloc.item_id] = produced.get(alloc.item_id, 0) + alloc.units

    candidates = [n for n in items if produced.get(n.item_id, 0) > 0]
    if not candidates:
        return 0

    best = max(candidates, key=lambda n: produced[n.item_id])
    m = best.metrics
    extra = floor(last_day.idle_hours / m.hours_per_batch + EPS)
    if extra <= 0:
        return 0

    last_day.allocations.append(
        DayAllocation(
            item_id=best.item_id,
            name=best.name,
            units=extra * m.batch_size,
            hours_used=extra * m.hours_per_batch,
            first_batch=EXTRA_BATCH,
            batch_count=extra,
        )
    )
    logger.info(f"Backfilled day {last_day.day} with {extra} extra batch(es) of {best.item_id}")
    return extra


@dataclass(frozen=True)
class ItemSpan:
    """Days on which an item received ordered (non-extra) work.

    Attributes:
        first_day: 1-based first production day.
        last_day: 1-based completion day.
        days_touched: Number of distinct days with work for the item.
    """
    first_day: int
    last_day: int
    days_touched: int


def item_spans(days: list[DaySchedule]) -> dict[str, ItemSpan]:
    """Collect the production span of every item in a bucketed schedule."""
    touched: dict[str, list[int]] = {}
    for day in days:
        for alloc in day.allocations:
            if alloc.is_extra:
                continue
            seen = touched.setdefault(alloc.item_id, [])
            if not seen or seen[-1] != day.day:
                seen.append(day.day)
    return {
        item_id: ItemSpan(day_numbers[0], day_numbers[-1], len(day_numbers))
        for item_id, day_numbers in touched.items()
    }
