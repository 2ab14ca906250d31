# Calculate derived order metrics for work items in the scheduling engine.
# Version: 1.0.0
# Computes batch size, batches needed, batch duration, priority, and urgency score.

from dataclasses import dataclass
from datetime import date
from math import ceil

from .constants import (
    FactoryConfig,
    HIGH_PRIORITY_DAYS,
    MEDIUM_PRIORITY_DAYS,
    PRIORITY_WEIGHTS,
    PriorityLevel,
    ProcessingMode,
)
from .data_loader import WorkItem
from .errors import ValidationError


@dataclass(frozen=True)
class OrderMetrics:
    """Derived values for a single work item.

    Every strategy reads these instead of the raw item so that batch and
    urgency rules live in one place.

    Attributes:
        item_id: Reference to the work item these metrics belong to.
        quantity: Units to produce.
        batch_size: Units produced per batch (1 in per-unit mode).
        batches_needed: ceil(quantity / batch_size).
        hours_per_batch: Duration of one batch (effective batch in machine mode).
        total_hours: Total processing hours for the item.
        days_until_deadline: Calendar days from the reference date to the deadline (may be negative).
        priority: Explicit or derived priority tier.
        urgency_score: priority weight x 1000 minus days until deadline (clamped at 0).
    """
    item_id: str
    quantity: int
    batch_size: int
    batches_needed: int
    hours_per_batch: float
    total_hours: float
    days_until_deadline: int
    priority: PriorityLevel
    urgency_score: int

    @property
    def hours_per_unit(self) -> float:
        """Processing hours attributed to a single unit."""
        return self.hours_per_batch / self.batch_size

    def units_in_batch(self, batch_number: int) -> int:
        """Units produced by batch ``batch_number`` (1-based); the last batch may be partial."""
        if batch_number < self.batches_needed:
            return self.batch_size
        return self.quantity - (self.batches_needed - 1) * self.batch_size


@dataclass(frozen=True)
class NormalizedItem:
    """Combines a WorkItem with its metrics for convenience.

    Attributes:
        item: Original WorkItem object.
        metrics: Derived metrics for the item.
    """
    item: WorkItem
    metrics: OrderMetrics

    @property
    def item_id(self) -> str:
        return self.item.item_id

    @property
    def name(self) -> str:
        return self.item.name


def derive_priority(days_until_deadline: int) -> PriorityLevel:
    """Derive a priority tier from deadline proximity.

    Args:
        days_until_deadline: Days from the reference date to the deadline.

    Returns:
        "High" within 3 days, "Medium" within 7 days, otherwise "Low".
    """
    if days_until_deadline <= HIGH_PRIORITY_DAYS:
        return "High"
    if days_until_deadline <= MEDIUM_PRIORITY_DAYS:
        return "Medium"
    return "Low"


def calculate_urgency_score(priority: PriorityLevel, days_until_deadline: int) -> int:
    """Urgency = weight x 1000 - max(0, days until deadline); higher is more urgent."""
    return PRIORITY_WEIGHTS[priority] * 1000 - max(0, days_until_deadline)


def calculate_metrics_for_item(
    item: WorkItem,
    config: FactoryConfig,
    mode: ProcessingMode,
    reference_date: date
) -> OrderMetrics:
    """Calculate all derived metrics for a single work item.

    Batch rules by processing model:
    - per-unit mode with a product_id: batch = pieces_per_batch, batch hours
      = the sum of the product's phase minutes / 60.
    - per-unit mode without a product: batch = 1 unit of unit_hours.
    - machine mode: batch = smallest step batch size; total hours sums
      ceil(q / step batch) x step hours over all steps, spread evenly over
      the effective batches.

    Args:
        item: Work item to normalize.
        config: Factory configuration for product lookups.
        mode: Active processing mode.
        reference_date: Date treated as "today".

    Returns:
        OrderMetrics for the item.

    Raises:
        ValidationError: If the quantity is not positive or the active
            processing model is missing.
    """
    if item.quantity <= 0:
        raise ValidationError(
            field="quantity",
            value=item.quantity,
            reason=f"Work item {item.item_id} must have a positive quantity"
        )

    if mode == "machine":
        batch_size, batches_needed, hours_per_batch, total_hours = _machine_batches(item)
    else:
        batch_size, hours_per_batch = _per_unit_batch(item, config)
        batches_needed = ceil(item.quantity / batch_size)
        total_hours = batches_needed * hours_per_batch

    days_until_deadline = (item.deadline - reference_date).days
    priority = item.priority or derive_priority(days_until_deadline)

    return OrderMetrics(
        item_id=item.item_id,
        quantity=item.quantity,
        batch_size=batch_size,
        batches_needed=batches_needed,
        hours_per_batch=hours_per_batch,
        total_hours=total_hours,
        days_until_deadline=days_until_deadline,
        priority=priority,
        urgency_score=calculate_urgency_score(priority, days_until_deadline),
    )


def _per_unit_batch(item: WorkItem, config: FactoryConfig) -> tuple[int, float]:
    """Return (batch_size, hours_per_batch) for per-unit mode."""
    if item.product_id is not None:
        product = config.product_configs.get(item.product_id)
        if product is None:
            raise ValidationError(
                field="product_id",
                value=item.product_id,
                reason=f"No product configuration for work item {item.item_id}"
            )
        return product.pieces_per_batch, product.hours_per_batch

    if item.unit_hours is None or item.unit_hours <= 0:
        raise ValidationError(
            field="unit_hours",
            value=item.unit_hours,
            reason=f"Work item {item.item_id} has no per-unit processing time"
        )
    return 1, item.unit_hours


def _machine_batches(item: WorkItem) -> tuple[int, int, float, float]:
    """Return (batch_size, batches_needed, hours_per_batch, total_hours) for machine mode."""
    if not item.machine_steps:
        raise ValidationError(
            field="machine_steps",
            value=(),
            reason=f"Work item {item.item_id} has no machine steps"
        )

    batch_size = min(step.batch_size for step in item.machine_steps)
    batches_needed = ceil(item.quantity / batch_size)
    total_hours = sum(
        ceil(item.quantity / step.batch_size) * step.hours_per_batch
        for step in item.machine_steps
    )
    return batch_size, batches_needed, total_hours / batches_needed, total_hours


def calculate_all_metrics(
    items: list[WorkItem],
    config: FactoryConfig,
    mode: ProcessingMode,
    reference_date: date
) -> list[NormalizedItem]:
    """Calculate metrics for every work item, preserving input order.

    Args:
        items: Work items to normalize.
        config: Factory configuration.
        mode: Active processing mode.
        reference_date: Date treated as "today".

    Returns:
        List of NormalizedItem in the same order as ``items``.
    """
    return [
        NormalizedItem(item, calculate_metrics_for_item(item, config, mode, reference_date))
        for item in items
    ]


def get_total_hours(normalized: list[NormalizedItem]) -> float:
    """Total processing hours across all items."""
    return sum(n.metrics.total_hours for n in normalized)
