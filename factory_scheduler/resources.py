# Machine timeline allocation for machine-aware scheduling.
# Version: 1.0.0
# Places batches on machine instances with overlap checks and changeover setup time.

import logging
from dataclasses import dataclass, field
from math import ceil

from .calculated_fields import NormalizedItem
from .constants import FactoryConfig


logger = logging.getLogger(__name__)

# Tolerance for floating point interval comparisons (hours)
EPS = 1e-9


@dataclass(frozen=True)
class TimeSlot:
    """One interval on one machine instance.

    Times are hours from the schedule origin (start of day 1).

    Attributes:
        machine_type: Machine type of the instance.
        instance: 0-based instance index within the machine type.
        start: Start time in hours.
        end: End time in hours.
        item_id: Work item processed (empty for idle slots).
        item_name: Work item display name ("Idle" for idle slots).
        batch_number: 1-based batch index within the step (0 for idle).
        total_batches: Batches in this step (0 for idle).
        step_index: 0-based position of the step in the item's sequence.
        units: Units processed by this batch.
        is_idle: True for idle filler slots.
    """
    machine_type: str
    instance: int
    start: float
    end: float
    item_id: str
    item_name: str
    batch_number: int
    total_batches: int
    step_index: int = 0
    units: int = 0
    is_idle: bool = False

    @property
    def duration(self) -> float:
        return self.end - self.start

    def overlaps(self, start: float, end: float) -> bool:
        """Check whether [start, end) intersects this slot."""
        return start < self.end - EPS and self.start < end - EPS


@dataclass
class MachineInstance:
    """Busy slots of a single physical machine.

    Attributes:
        machine_type: Machine type.
        index: 0-based instance index.
        slots: Slots placed on this instance, in placement order.
    """
    machine_type: str
    index: int
    slots: list[TimeSlot] = field(default_factory=list)

    @property
    def label(self) -> str:
        """Display label (e.g., "MIXER #1")."""
        return f"{self.machine_type} #{self.index + 1}"

    def last_slot(self) -> TimeSlot | None:
        """Slot with the latest end time, or None if the instance is unused."""
        if not self.slots:
            return None
        return max(self.slots, key=lambda s: s.end)

    def is_free(self, start: float, end: float) -> bool:
        """Check the instance has no slot overlapping [start, end)."""
        return not any(slot.overlaps(start, end) for slot in self.slots)

    def earliest_start(
        self,
        ready: float,
        duration: float,
        item_id: str,
        setup_time: float,
        quantum: float
    ) -> float:
        """Find the earliest start for a batch on this instance.

        Probes ready, ready + quantum, ready + 2 x quantum, ... and pushes each
        probe past ``last.end + setup_time`` when the instance's most recent
        slot belongs to another item.

        Args:
            ready: Earliest time the batch may start.
            duration: Batch duration in hours.
            item_id: Item the batch belongs to.
            setup_time: Changeover delay in hours.
            quantum: Probe step in hours.

        Returns:
            Start time in hours.
        """
        last = self.last_slot()
        floor = ready
        if last is not None and last.item_id != item_id:
            floor = max(ready, last.end + setup_time)

        k = 0
        while True:
            candidate = max(ready + k * quantum, floor)
            if self.is_free(candidate, candidate + duration):
                return candidate
            k += 1


@dataclass
class MachineTimeline:
    """Continuous-time schedule across every machine instance.

    Attributes:
        instances: Dict mapping machine type to its instances in index order.
        completion_hours: Dict mapping item_id to the end of its last batch.
        unplaceable: (item_id, machine_type) pairs that had no instance to run on.
    """
    instances: dict[str, list[MachineInstance]] = field(default_factory=dict)
    completion_hours: dict[str, float] = field(default_factory=dict)
    unplaceable: list[tuple[str, str]] = field(default_factory=list)

    @property
    def is_feasible(self) -> bool:
        return not self.unplaceable

    @property
    def makespan(self) -> float:
        """End of the latest busy slot (0 for an empty timeline)."""
        return max((s.end for s in self.all_slots()), default=0.0)

    def all_slots(self) -> list[TimeSlot]:
        """All busy slots sorted by start time, then machine."""
        slots = [
            slot
            for instances in self.instances.values()
            for inst in instances
            for slot in inst.slots
        ]
        return sorted(slots, key=lambda s: (s.start, s.machine_type, s.instance))

    def slots_for_item(self, item_id: str) -> list[TimeSlot]:
        return [s for s in self.all_slots() if s.item_id == item_id]

    def start_hours(self, item_id: str) -> float:
        """Start of an item's first batch."""
        return min((s.start for s in self.slots_for_item(item_id)), default=0.0)


def create_timeline(config: FactoryConfig) -> MachineTimeline:
    """Create an empty timeline with one MachineInstance per configured unit.

    Args:
        config: Factory configuration with machine inventory.

    Returns:
        MachineTimeline with no slots.
    """
    return MachineTimeline(
        instances={
            machine_type: [MachineInstance(machine_type, i) for i in range(count)]
            for machine_type, count in config.machine_inventory.items()
        }
    )


def allocate_ordering(
    items: list[NormalizedItem],
    order: tuple[int, ...] | list[int],
    config: FactoryConfig
) -> MachineTimeline:
    """Turn an ordering of work items into machine time slots.

    For each item in ``order``, each step in sequence, and each batch of the
    step, the batch goes to the instance giving the earliest start (lowest
    index on ties). The item cursor advances to each batch's end, so batches
    of one item run one after another. Each item starts at the completion
    time of the items placed before it.

    Args:
        items: Normalized work items (machine mode).
        order: Permutation of indices into ``items``.
        config: Factory configuration (inventory, setup time, probe quantum).

    Returns:
        MachineTimeline with every placeable batch recorded. Steps on a
        machine type with no instances are listed in ``unplaceable``.
    """
    timeline = create_timeline(config)
    current_time = 0.0

    for idx in order:
        normalized = items[idx]
        item = normalized.item
        cursor = current_time

        for step_index, step in enumerate(item.machine_steps):
            instances = timeline.instances.get(step.machine_type, [])
            if not instances:
                timeline.unplaceable.append((item.item_id, step.machine_type))
                continue

            total_batches = ceil(item.quantity / step.batch_size)
            for batch in range(1, total_batches + 1):
                best_start = None
                best_instance = None
                for inst in instances:
                    start = inst.earliest_start(
                        cursor,
                        step.hours_per_batch,
                        item.item_id,
                        config.setup_time_hours,
                        config.time_quantum_hours,
                    )
                    if best_start is None or start < best_start - EPS:
                        best_start = start
                        best_instance = inst

                units = min(step.batch_size, item.quantity - (batch - 1) * step.batch_size)
                slot = TimeSlot(
                    machine_type=step.machine_type,
                    instance=best_instance.index,
                    start=best_start,
                    end=best_start + step.hours_per_batch,
                    item_id=item.item_id,
                    item_name=item.name,
                    batch_number=batch,
                    total_batches=total_batches,
                    step_index=step_index,
                    units=units,
                )
                best_instance.slots.append(slot)
                cursor = max(cursor, slot.end)

        timeline.completion_hours[item.item_id] = cursor
        current_time = max(current_time, cursor)

    if timeline.unplaceable:
        logger.debug(f"Ordering {tuple(order)} left {len(timeline.unplaceable)} step(s) unplaced")
    return timeline


def fill_idle_slots(timeline: MachineTimeline) -> dict[str, list[TimeSlot]]:
    """Build per-machine-type slot lists with idle gaps made explicit.

    Each instance gets idle slots for every gap between busy periods and
    from its last busy slot up to the latest end on that machine type.

    Args:
        timeline: Allocated timeline.

    Returns:
        Dict mapping machine type to busy and idle slots sorted by start time.
    """
    result: dict[str, list[TimeSlot]] = {}

    for machine_type, instances in timeline.instances.items():
        busy = [slot for inst in instances for slot in inst.slots]
        max_time = max((s.end for s in busy), default=0.0)
        filled = list(busy)

        for inst in instances:
            last_end = 0.0
            for slot in sorted(inst.slots, key=lambda s: s.start):
                if slot.start > last_end + EPS:
                    filled.append(_idle_slot(machine_type, inst.index, last_end, slot.start))
                last_end = max(last_end, slot.end)
            if last_end < max_time - EPS:
                filled.append(_idle_slot(machine_type, inst.index, last_end, max_time))

        result[machine_type] = sorted(filled, key=lambda s: (s.start, s.instance))

    return result


def _idle_slot(machine_type: str, instance: int, start: float, end: float) -> TimeSlot:
    return TimeSlot(
        machine_type=machine_type,
        instance=instance,
        start=start,
        end=end,
        item_id="",
        item_name="Idle",
        batch_number=0,
        total_batches=0,
        is_idle=True,
    )


@dataclass(frozen=True)
class MachineMetrics:
    """Usage summary for one machine type.

    Attributes:
        machine_type: Machine type.
        instances: Number of instances.
        busy_hours: Sum of busy slot durations.
        idle_hours: Instance-hours unused up to the type's latest end.
        utilization: busy / (latest end x instances) as a percentage.
    """
    machine_type: str
    instances: int
    busy_hours: float
    idle_hours: float
    utilization: float


def machine_metrics(timeline: MachineTimeline) -> dict[str, MachineMetrics]:
    """Compute utilization and idle time per machine type.

    Args:
        timeline: Allocated timeline.

    Returns:
        Dict mapping machine type to MachineMetrics.
    """
    metrics = {}
    for machine_type, instances in timeline.instances.items():
        busy_slots = [s for inst in instances for s in inst.slots if not s.is_idle]
        max_time = max((s.end for s in busy_slots), default=0.0)
        busy = sum(s.duration for s in busy_slots)
        capacity = max_time * len(instances)
        metrics[machine_type] = MachineMetrics(
            machine_type=machine_type,
            instances=len(instances),
            busy_hours=busy,
            idle_hours=max(0.0, capacity - busy),
            utilization=(busy / capacity * 100) if capacity > 0 else 0.0,
        )
    return metrics
