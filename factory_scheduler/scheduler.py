# Schedule assembly for the production scheduling engine.
# Version: 1.0.0
# Wraps any strategy's output into the uniform ScheduleResult consumed by reports and the web app.

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from .calculated_fields import NormalizedItem
from .constants import PriorityLevel, ProcessingMode
from .day_buckets import DaySchedule, item_spans
from .resources import MachineMetrics, MachineTimeline, TimeSlot, fill_idle_slots, machine_metrics


RunStatus = Literal["DONE", "CANCELLED"]


@dataclass(frozen=True)
class ScheduledItem:
    """A work item annotated with where it landed in the schedule.

    Attributes:
        item_id: Work item identifier.
        name: Display name.
        quantity: Units ordered.
        deadline: Due date.
        priority: Priority tier used for urgency.
        urgency_score: Urgency used by the deadline-driven strategies.
        production_order: 1-based rank in the production sequence.
        start_day: 0-based day index of the first production day.
        days_required: Number of days with work for this item.
        units_per_day: quantity // days_required.
        completion_day: 1-based day the last unit completes.
        days_until_deadline: Days from the reference date to the deadline.
        overdue_days: max(0, completion_day - days_until_deadline).
    """
    item_id: str
    name: str
    quantity: int
    deadline: date
    priority: PriorityLevel
    urgency_score: int
    production_order: int
    start_day: int
    days_required: int
    units_per_day: int
    completion_day: int
    days_until_deadline: int
    overdue_days: int

    @property
    def is_late(self) -> bool:
        return self.overdue_days > 0


@dataclass
class ScheduleResult:
    """Uniform result of one optimization run.

    Attributes:
        method: Strategy that produced the schedule.
        mode: Processing mode used.
        status: "DONE", or "CANCELLED" when a genetic run stopped early.
        reference_date: Date of day 1.
        items: Scheduled items in production order.
        daily_schedule: One DaySchedule per calendar day.
        machine_schedules: Busy and idle slots per machine type (machine mode).
        machine_utilization: Usage summary per machine type (machine mode).
        total_days: Number of days in the schedule.
        average_utilization: Mean utilization percentage.
        total_idle_hours: Unused hours (machine idle in machine mode).
        total_overtime_hours: Hours scheduled beyond daily capacity.
        score: Composite evaluator score (lower is better).
        notes: Human-readable remarks (fallbacks, cancellations).
    """
    method: str
    mode: ProcessingMode
    status: RunStatus
    reference_date: date
    items: list[ScheduledItem] = field(default_factory=list)
    daily_schedule: list[DaySchedule] = field(default_factory=list)
    machine_schedules: dict[str, list[TimeSlot]] = field(default_factory=dict)
    machine_utilization: dict[str, MachineMetrics] = field(default_factory=dict)
    total_days: int = 0
    average_utilization: float = 0.0
    total_idle_hours: float = 0.0
    total_overtime_hours: float = 0.0
    score: float = 0.0
    notes: list[str] = field(default_factory=list)

    @property
    def late_count(self) -> int:
        return sum(1 for item in self.items if item.is_late)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "CANCELLED"

    def get_item(self, item_id: str) -> ScheduledItem | None:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def production_sequence(self) -> list[str]:
        """Item IDs in production order."""
        return [item.item_id for item in self.items]


def build_scheduled_items(
    items: list[NormalizedItem],
    order: list[int] | tuple[int, ...],
    days: list[DaySchedule]
) -> list[ScheduledItem]:
    """Annotate items in production order with their day span and lateness.

    Args:
        items: Normalized work items.
        order: Production order as indices into ``items``.
        days: Bucketed schedule.

    Returns:
        ScheduledItem list in production order.
    """
    spans = item_spans(days)
    scheduled = []

    for rank, idx in enumerate(order, start=1):
        n = items[idx]
        m = n.metrics
        span = spans[n.item_id]
        scheduled.append(
            ScheduledItem(
                item_id=n.item_id,
                name=n.name,
                quantity=m.quantity,
                deadline=n.item.deadline,
                priority=m.priority,
                urgency_score=m.urgency_score,
                production_order=rank,
                start_day=span.first_day - 1,
                days_required=span.days_touched,
                units_per_day=m.quantity // span.days_touched,
                completion_day=span.last_day,
                days_until_deadline=m.days_until_deadline,
                overdue_days=max(0, span.last_day - m.days_until_deadline),
            )
        )

    return scheduled


def assemble_schedule(
    items: list[NormalizedItem],
    order: list[int] | tuple[int, ...],
    days: list[DaySchedule],
    method: str,
    mode: ProcessingMode,
    reference_date: date,
    score: float,
    timeline: MachineTimeline | None = None,
    status: RunStatus = "DONE",
    notes: list[str] | None = None
) -> ScheduleResult:
    """Wrap a strategy's ordering and day buckets into a ScheduleResult.

    Args:
        items: Normalized work items.
        order: Production order as indices into ``items``.
        days: Bucketed schedule.
        method: Strategy name.
        mode: Processing mode.
        reference_date: Date of day 1.
        score: Evaluator score of the chosen schedule.
        timeline: Machine timeline (machine mode only).
        status: Run status.
        notes: Optional remarks.

    Returns:
        ScheduleResult with aggregates filled in.
    """
    result = ScheduleResult(
        method=method,
        mode=mode,
        status=status,
        reference_date=reference_date,
        items=build_scheduled_items(items, order, days),
        daily_schedule=days,
        total_days=len(days),
        total_overtime_hours=sum(d.overtime_hours for d in days),
        score=score,
        notes=list(notes or []),
    )

    if timeline is not None:
        usage = machine_metrics(timeline)
        result.machine_schedules = fill_idle_slots(timeline)
        result.machine_utilization = usage
        result.total_idle_hours = sum(u.idle_hours for u in usage.values())
        result.average_utilization = (
            sum(u.utilization for u in usage.values()) / len(usage) if usage else 0.0
        )
    else:
        capacity = sum(d.capacity_hours for d in days)
        used = sum(d.total_hours_used for d in days)
        result.total_idle_hours = sum(d.idle_hours for d in days)
        result.average_utilization = used / capacity * 100 if capacity > 0 else 0.0

    return result
