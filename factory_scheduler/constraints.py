# OR-Tools constraint builders for the day-assignment integer program.
# Version: 1.0.0
# Defines per-batch day variables, daily capacity limits, and the lateness objective.

from dataclasses import dataclass, field
from math import ceil, floor

from ortools.sat.python import cp_model

from .calculated_fields import NormalizedItem
from .constants import FactoryConfig
from .resources import EPS


MINUTES_PER_HOUR = 60

# The objective is scaled so the per-assignment cost stays integral
OBJECTIVE_SCALE = 10
LATENESS_WEIGHT = 100
# Per-day assignment cost, 0.1 per day before scaling
DAY_ASSIGNMENT_COST = 1


@dataclass
class BatchVariables:
    """OR-Tools variables for one batch of one work item.

    Attributes:
        item_index: Index into the normalized item list.
        batch_number: 1-based batch number within the item.
        duration_minutes: Batch duration rounded up to whole minutes.
        day_vars: Dict of 1-based day to "batch runs on this day" bool variable.
    """
    item_index: int
    batch_number: int
    duration_minutes: int
    day_vars: dict[int, cp_model.IntVar] = field(default_factory=dict)


@dataclass
class DayAssignmentModel:
    """Container for all OR-Tools model components of the day assignment.

    Attributes:
        model: The CP-SAT model.
        horizon_days: Number of candidate days.
        capacity_minutes: Daily capacity in whole minutes.
        batches: Variables for every batch of every item.
    """
    model: cp_model.CpModel
    horizon_days: int
    capacity_minutes: int
    batches: list[BatchVariables] = field(default_factory=list)

    @property
    def variable_count(self) -> int:
        return sum(len(b.day_vars) for b in self.batches)


def calculate_horizon_days(
    items: list[NormalizedItem],
    daily_capacity_hours: float,
    margin_days: int
) -> int:
    """Candidate day count: ceil(total work / daily capacity) + margin."""
    total_hours = sum(n.metrics.batches_needed * n.metrics.hours_per_batch for n in items)
    return max(1, ceil(total_hours / daily_capacity_hours - EPS)) + margin_days


def to_minutes_ceil(hours: float) -> int:
    """Hours to whole minutes, rounding up (batch durations)."""
    return ceil(hours * MINUTES_PER_HOUR - EPS)


def to_minutes_floor(hours: float) -> int:
    """Hours to whole minutes, rounding down (capacities)."""
    return floor(hours * MINUTES_PER_HOUR + EPS)


def create_batch_variables(
    model: cp_model.CpModel,
    item_index: int,
    normalized: NormalizedItem,
    horizon_days: int
) -> list[BatchVariables]:
    """Create one bool variable per (batch, day) for a work item.

    Args:
        model: CP-SAT model to add variables to.
        item_index: Index of the item in the normalized list.
        normalized: The work item with its metrics.
        horizon_days: Number of candidate days.

    Returns:
        BatchVariables for each of the item's batches.
    """
    m = normalized.metrics
    duration = to_minutes_ceil(m.hours_per_batch)
    batches = []

    for batch in range(1, m.batches_needed + 1):
        bv = BatchVariables(item_index=item_index, batch_number=batch, duration_minutes=duration)
        for day in range(1, horizon_days + 1):
            bv.day_vars[day] = model.NewBoolVar(f"x_{normalized.item_id}_b{batch}_d{day}")
        batches.append(bv)

    return batches


def add_assignment_constraints(model: cp_model.CpModel, batches: list[BatchVariables]) -> None:
    """Each batch runs on exactly one day.

    Args:
        model: CP-SAT model.
        batches: Batch variables.
    """
    for bv in batches:
        model.AddExactlyOne(bv.day_vars.values())


def add_capacity_constraints(
    model: cp_model.CpModel,
    batches: list[BatchVariables],
    horizon_days: int,
    capacity_minutes: int
) -> None:
    """Committed minutes on each day must not exceed the daily capacity.

    Args:
        model: CP-SAT model.
        batches: Batch variables.
        horizon_days: Number of candidate days.
        capacity_minutes: Daily capacity in minutes.
    """
    for day in range(1, horizon_days + 1):
        model.Add(
            sum(bv.duration_minutes * bv.day_vars[day] for bv in batches) <= capacity_minutes
        )


def assignment_cost(day: int, days_until_deadline: int, urgency_score: int) -> int:
    """Scaled objective coefficient for running one batch on ``day``.

    Late days cost (day - deadline day) x 100 x urgency. The assignment cost
    departs from a flat 0.1 per assignment: it grows by 0.1 per day index, so
    among on-time choices the solver settles on the earliest days and the
    result does not depend on which optimum CP-SAT reaches first.
    """
    cost = DAY_ASSIGNMENT_COST * day
    if day > days_until_deadline:
        cost += (day - days_until_deadline) * LATENESS_WEIGHT * max(1, urgency_score) * OBJECTIVE_SCALE
    return cost


def add_objective_minimize_lateness(
    model: cp_model.CpModel,
    items: list[NormalizedItem],
    batches: list[BatchVariables]
) -> None:
    """Minimize urgency-weighted lateness plus the per-assignment day cost.

    Args:
        model: CP-SAT model.
        items: Normalized work items.
        batches: Batch variables.
    """
    terms = []
    for bv in batches:
        m = items[bv.item_index].metrics
        for day, var in bv.day_vars.items():
            terms.append(assignment_cost(day, m.days_until_deadline, m.urgency_score) * var)
    model.Minimize(sum(terms))


def create_day_assignment_model(
    items: list[NormalizedItem],
    daily_capacity_hours: float,
    horizon_days: int
) -> DayAssignmentModel:
    """Create the complete day-assignment model.

    Args:
        items: Normalized work items.
        daily_capacity_hours: Capacity of one day in hours.
        horizon_days: Number of candidate days.

    Returns:
        DayAssignmentModel with variables, constraints, and objective.
    """
    model = cp_model.CpModel()
    day_model = DayAssignmentModel(
        model=model,
        horizon_days=horizon_days,
        capacity_minutes=to_minutes_floor(daily_capacity_hours),
    )

    for idx, normalized in enumerate(items):
        day_model.batches.extend(create_batch_variables(model, idx, normalized, horizon_days))

    add_assignment_constraints(model, day_model.batches)
    add_capacity_constraints(model, day_model.batches, horizon_days, day_model.capacity_minutes)
    add_objective_minimize_lateness(model, items, day_model.batches)

    return day_model


def daily_capacity_for(config: FactoryConfig, machine_mode: bool) -> float:
    """Daily capacity in hours: H, or H x total instances in machine mode."""
    return config.machine_hours_per_day() if machine_mode else config.working_hours_per_day
