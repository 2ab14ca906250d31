# Solution parser for checking and formatting schedule results.
# Version: 1.0.0
# Validates schedule invariants, draws text Gantt charts, and converts results to plain dicts.

import string
from dataclasses import dataclass, field
from math import isfinite

from .day_buckets import DayAllocation, DaySchedule
from .resources import EPS, TimeSlot
from .scheduler import ScheduledItem, ScheduleResult


@dataclass
class GanttRow:
    """One resource row of a Gantt chart.

    Attributes:
        label: Resource label (machine instance or day).
        slots: Busy slots on the resource, sorted by start.
    """
    label: str
    slots: list[TimeSlot] = field(default_factory=list)


def extract_gantt_rows(result: ScheduleResult) -> list[GanttRow]:
    """Group busy machine slots into one row per machine instance.

    Args:
        result: ScheduleResult from a machine-mode run.

    Returns:
        GanttRows ordered by machine type, then instance.
    """
    rows: dict[tuple[str, int], GanttRow] = {}
    for machine_type in sorted(result.machine_schedules):
        for slot in result.machine_schedules[machine_type]:
            key = (machine_type, slot.instance)
            if key not in rows:
                rows[key] = GanttRow(label=f"{machine_type} #{slot.instance + 1}")
            if not slot.is_idle:
                rows[key].slots.append(slot)

    for row in rows.values():
        row.slots.sort(key=lambda s: s.start)
    return [rows[key] for key in sorted(rows)]


def _item_symbols(result: ScheduleResult) -> dict[str, str]:
    """Single-character symbol per item in production order."""
    alphabet = string.ascii_uppercase + string.ascii_lowercase + string.digits
    return {
        item.item_id: alphabet[i % len(alphabet)]
        for i, item in enumerate(result.items)
    }


def generate_text_gantt(result: ScheduleResult, width: int = 60) -> str:
    """Generate a simple text-based Gantt chart.

    Machine-mode results get one row per machine instance on an hour axis.
    Other results get one row per day, each item drawn in proportion to the
    hours it uses out of the day's capacity.

    Args:
        result: ScheduleResult to draw.
        width: Character width for the time axis.

    Returns:
        Multi-line string with ASCII Gantt chart.
    """
    symbols = _item_symbols(result)
    lines = [f"=== {result.method} schedule ({result.total_days} day(s)) ===", ""]

    if result.machine_schedules:
        rows = extract_gantt_rows(result)
        horizon = max((s.end for row in rows for s in row.slots), default=0.0)
        if horizon <= 0:
            lines.append("No machine activity.")
            return "\n".join(lines)

        scale = width / horizon
        lines.append(f"{'':<12} 0h{'':>{width - 4}}{horizon:.1f}h")
        for row in rows:
            bar = ["."] * width
            for slot in row.slots:
                start = int(slot.start * scale)
                end = max(start + 1, int(slot.end * scale))
                for pos in range(start, min(end, width)):
                    bar[pos] = symbols.get(slot.item_id, "?")
            lines.append(f"{row.label[:12]:<12}|{''.join(bar)}|")
    else:
        for day in result.daily_schedule:
            bar: list[str] = []
            scale = width / day.capacity_hours if day.capacity_hours > 0 else 0
            for alloc in day.allocations:
                symbol = "+" if alloc.is_extra else symbols.get(alloc.item_id, "?")
                bar.extend(symbol * max(1, round(alloc.hours_used * scale)))
            cells = "".join(bar).ljust(width, ".")
            lines.append(f"Day {day.day:<3} {day.date.isoformat()} |{cells}|")

    lines.append("")
    legend = ", ".join(f"{symbol}={item_id}" for item_id, symbol in symbols.items())
    lines.append(f"Legend: {legend}")
    return "\n".join(lines)


def validate_schedule(result: ScheduleResult) -> list[str]:
    """Check that a schedule honours its structural invariants.

    Checks:
    1. No two busy slots on one machine instance overlap
    2. Idle and overtime are never both non-zero on a day
    3. Every item's ordered units are all produced
    4. Overdue days agree with completion day and deadline

    Args:
        result: ScheduleResult to validate.

    Returns:
        List of violation messages (empty if valid).
    """
    violations = []

    for row in extract_gantt_rows(result):
        for current, following in zip(row.slots, row.slots[1:]):
            if current.end > following.start + EPS:
                violations.append(
                    f"{row.label}: {current.item_id} ({current.start:.2f}-{current.end:.2f}) "
                    f"overlaps {following.item_id} ({following.start:.2f}-{following.end:.2f})"
                )

    for day in result.daily_schedule:
        if day.idle_hours > 0 and day.overtime_hours > 0:
            violations.append(f"Day {day.day}: both idle and overtime are non-zero")

    produced: dict[str, int] = {}
    for day in result.daily_schedule:
        for alloc in day.allocations:
            if not alloc.is_extra:
                produced[alloc.item_id] = produced.get(alloc.item_id, 0) + alloc.units

    for item in result.items:
        if produced.get(item.item_id, 0) != item.quantity:
            violations.append(
                f"{item.item_id}: produced {produced.get(item.item_id, 0)} "
                f"of {item.quantity} units"
            )
        expected_overdue = max(0, item.completion_day - item.days_until_deadline)
        if item.overdue_days != expected_overdue:
            violations.append(
                f"{item.item_id}: overdue_days {item.overdue_days} != {expected_overdue}"
            )

    return violations


def export_schedule_to_dict(result: ScheduleResult) -> dict:
    """Export a schedule to a dictionary for JSON serialization.

    Args:
        result: ScheduleResult to export.

    Returns:
        Dictionary with complete schedule data.
    """
    return {
        "method": result.method,
        "mode": result.mode,
        "status": result.status,
        "reference_date": result.reference_date.isoformat(),
        "total_days": result.total_days,
        "late_count": result.late_count,
        "average_utilization": round(result.average_utilization, 2),
        "total_idle_hours": round(result.total_idle_hours, 4),
        "total_overtime_hours": round(result.total_overtime_hours, 4),
        # inf is not valid JSON
        "score": result.score if isfinite(result.score) else None,
        "notes": list(result.notes),
        "items": [_export_item(item) for item in result.items],
        "daily_schedule": [_export_day(day) for day in result.daily_schedule],
        "machine_schedules": {
            machine_type: [_export_slot(slot) for slot in slots]
            for machine_type, slots in result.machine_schedules.items()
        },
        "machine_utilization": {
            machine_type: {
                "instances": usage.instances,
                "busy_hours": round(usage.busy_hours, 4),
                "idle_hours": round(usage.idle_hours, 4),
                "utilization": round(usage.utilization, 2),
            }
            for machine_type, usage in result.machine_utilization.items()
        },
    }


def _export_item(item: ScheduledItem) -> dict:
    return {
        "production_order": item.production_order,
        "item_id": item.item_id,
        "name": item.name,
        "quantity": item.quantity,
        "deadline": item.deadline.isoformat(),
        "priority": item.priority,
        "urgency_score": item.urgency_score,
        "start_day": item.start_day,
        "days_required": item.days_required,
        "units_per_day": item.units_per_day,
        "completion_day": item.completion_day,
        "days_until_deadline": item.days_until_deadline,
        "overdue_days": item.overdue_days,
    }


def _export_day(day: DaySchedule) -> dict:
    return {
        "day": day.day,
        "date": day.date.isoformat(),
        "capacity_hours": day.capacity_hours,
        "total_hours_used": round(day.total_hours_used, 4),
        "idle_hours": round(day.idle_hours, 4),
        "overtime_hours": round(day.overtime_hours, 4),
        "utilization": round(day.utilization, 2),
        "allocations": [_export_allocation(a) for a in day.allocations],
    }


def _export_allocation(alloc: DayAllocation) -> dict:
    return {
        "item_id": alloc.item_id,
        "name": alloc.name,
        "units": alloc.units,
        "hours_used": round(alloc.hours_used, 4),
        "first_batch": alloc.first_batch,
        "batch_count": alloc.batch_count,
        "machine_instance": alloc.machine_instance,
        "is_extra": alloc.is_extra,
    }


def _export_slot(slot: TimeSlot) -> dict:
    return {
        "instance": slot.instance,
        "start": round(slot.start, 4),
        "end": round(slot.end, 4),
        "item_id": slot.item_id,
        "item_name": slot.item_name,
        "batch_number": slot.batch_number,
        "total_batches": slot.total_batches,
        "step_index": slot.step_index,
        "units": slot.units,
        "is_idle": slot.is_idle,
    }
