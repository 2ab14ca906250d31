# Input validation for the scheduling engine.
# Version: 1.0.0
# Validates work items, factory capacity, and optimizer settings before any search runs.

from dataclasses import dataclass, field
from datetime import date

from .constants import PRIORITY_LEVELS, FactoryConfig, ProcessingMode
from .data_loader import WorkItem
from .errors import InfeasibleMachineCapacityError, SchedulingError, ValidationError


@dataclass
class ValidationWarning:
    """A non-fatal validation issue that should be reported but doesn't block scheduling.

    Attributes:
        item_id: Work item identifier (empty for run-level warnings).
        field: Field name related to the warning.
        message: Human-readable warning message.
    """
    item_id: str
    field: str
    message: str


@dataclass
class ValidationResult:
    """Result of validating a work load against the factory configuration.

    Attributes:
        is_valid: True if no blocking errors found.
        errors: Blocking errors, in the order they were found.
        warnings: List of non-blocking ValidationWarning instances.
        valid_items: Work items that passed validation.
        invalid_item_ids: Set of item IDs that failed validation.
    """
    is_valid: bool = True
    errors: list[SchedulingError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)
    valid_items: list[WorkItem] = field(default_factory=list)
    invalid_item_ids: set[str] = field(default_factory=set)

    def add_error(self, error: SchedulingError, item_id: str | None = None) -> None:
        """Add a blocking error.

        Args:
            error: Error to add.
            item_id: Optional item ID to mark as invalid.
        """
        self.errors.append(error)
        self.is_valid = False
        if item_id:
            self.invalid_item_ids.add(item_id)

    def add_warning(self, warning: ValidationWarning) -> None:
        self.warnings.append(warning)


@dataclass
class OptimizerSettings:
    """Run options chosen by the caller before scheduling.

    Attributes:
        reference_date: Date treated as "today" (day 1 of the schedule).
        mode: "per_unit" for scalar unit durations, "machine" for machine sequences.
        include_extra: Backfill idle time on the last day with extra batches.
        population_size: Genetic population size.
        generations: Number of genetic generations.
        mutation_rate: Probability of a swap mutation per child.
        crossover_rate: Probability of crossover per child.
        elitism_rate: Fraction of the population copied unchanged.
        tournament_size: Candidates sampled per tournament selection.
        seed: Seed for the genetic random source (None for nondeterministic).
        horizon_margin_days: Slack days added to the integer-program horizon.
        max_exhaustive_items: Largest item count the exhaustive search accepts.
        solver_time_limit_seconds: CP-SAT wall-clock limit.
        time_limit_seconds: Overall run limit checked by the stop signal (None = no limit).
    """
    reference_date: date = field(default_factory=date.today)
    mode: ProcessingMode = "per_unit"
    include_extra: bool = False
    population_size: int = 100
    generations: int = 200
    mutation_rate: float = 0.1
    crossover_rate: float = 0.7
    elitism_rate: float = 0.1
    tournament_size: int = 5
    seed: int | None = None
    horizon_margin_days: int = 5
    max_exhaustive_items: int = 8
    solver_time_limit_seconds: float = 30.0
    time_limit_seconds: float | None = None

    @property
    def elite_count(self) -> int:
        """Number of individuals carried unchanged into the next generation."""
        return max(1, int(self.population_size * self.elitism_rate))


def validate_work_load(
    items: list[WorkItem],
    config: FactoryConfig,
    settings: OptimizerSettings
) -> ValidationResult:
    """Validate all work items, the factory config, and the run settings.

    Performs validation checks:
    1. Factory capacity (positive working day, non-negative inventory)
    2. Optimizer settings ranges
    3. Per-item quantity and processing model for the active mode
    4. Machine references (dangling types, zero-instance types)
    5. Duplicate IDs and past-due deadlines (warning)

    Args:
        items: Work items to validate.
        config: Factory configuration.
        settings: Run options.

    Returns:
        ValidationResult with errors, warnings, and valid items.
    """
    result = ValidationResult()

    _validate_factory(config, result)
    _validate_settings(settings, result)

    if not items:
        result.add_error(
            ValidationError(field="items", value=[], reason="At least one work item is required")
        )
        return result

    seen_ids: set[str] = set()
    # machine type -> items needing it, for zero-instance types
    starved: dict[str, list[str]] = {}

    for item in items:
        item_valid = True

        if item.item_id in seen_ids:
            result.add_error(
                ValidationError(
                    field="item_id",
                    value=item.item_id,
                    reason="Duplicate work item ID",
                    row=item.row_number or None
                ),
                item.item_id
            )
            item_valid = False
        seen_ids.add(item.item_id)

        if item.quantity <= 0:
            result.add_error(
                ValidationError(
                    field="quantity",
                    value=item.quantity,
                    reason=f"Work item {item.item_id} must have a positive quantity",
                    row=item.row_number or None
                ),
                item.item_id
            )
            item_valid = False

        if item.priority is not None and item.priority not in PRIORITY_LEVELS:
            result.add_error(
                ValidationError(
                    field="priority",
                    value=item.priority,
                    reason=f"Priority must be one of {', '.join(PRIORITY_LEVELS)}",
                    row=item.row_number or None
                ),
                item.item_id
            )
            item_valid = False

        if settings.mode == "machine":
            if not _validate_machine_steps(item, config, result, starved):
                item_valid = False
        elif not _validate_per_unit_model(item, config, result):
            item_valid = False

        if item.deadline < settings.reference_date:
            result.add_warning(
                ValidationWarning(
                    item_id=item.item_id,
                    field="deadline",
                    message=f"Deadline {item.deadline} is already past; item will be late."
                )
            )

        if item_valid:
            result.valid_items.append(item)

    for machine_type, item_ids in starved.items():
        result.add_error(InfeasibleMachineCapacityError(machine_type, item_ids))
        result.invalid_item_ids.update(item_ids)

    return result


def ensure_valid(
    items: list[WorkItem],
    config: FactoryConfig,
    settings: OptimizerSettings
) -> ValidationResult:
    """Validate and raise the first blocking error, if any.

    Returns:
        The ValidationResult (so callers can still read warnings).

    Raises:
        ValidationError: For invalid input.
        InfeasibleMachineCapacityError: For zero-instance machine types.
    """
    result = validate_work_load(items, config, settings)
    if not result.is_valid:
        raise result.errors[0]
    return result


def _validate_factory(config: FactoryConfig, result: ValidationResult) -> None:
    """Validate factory capacity values."""
    if config.working_hours_per_day <= 0:
        result.add_error(
            ValidationError(
                field="working_hours_per_day",
                value=config.working_hours_per_day,
                reason="Must be greater than 0"
            )
        )

    for machine_type, count in config.machine_inventory.items():
        if count < 0:
            result.add_error(
                ValidationError(
                    field="machine_inventory",
                    value=f"{machine_type}={count}",
                    reason="Instance count cannot be negative"
                )
            )

    if config.setup_time_hours < 0:
        result.add_error(
            ValidationError(
                field="setup_time_hours",
                value=config.setup_time_hours,
                reason="Cannot be negative"
            )
        )

    if config.time_quantum_hours <= 0:
        result.add_error(
            ValidationError(
                field="time_quantum_hours",
                value=config.time_quantum_hours,
                reason="Must be greater than 0"
            )
        )


def _validate_settings(settings: OptimizerSettings, result: ValidationResult) -> None:
    """Validate optimizer tunables are in range."""
    if settings.mode not in ("per_unit", "machine"):
        result.add_error(
            ValidationError(field="mode", value=settings.mode, reason="Must be 'per_unit' or 'machine'")
        )

    for name in ("mutation_rate", "crossover_rate", "elitism_rate"):
        value = getattr(settings, name)
        if not 0.0 <= value <= 1.0:
            result.add_error(
                ValidationError(field=name, value=value, reason="Must be between 0 and 1")
            )

    if settings.population_size < 2:
        result.add_error(
            ValidationError(
                field="population_size",
                value=settings.population_size,
                reason="Must be at least 2"
            )
        )

    if settings.generations < 0:
        result.add_error(
            ValidationError(field="generations", value=settings.generations, reason="Cannot be negative")
        )

    if settings.tournament_size < 1:
        result.add_error(
            ValidationError(
                field="tournament_size",
                value=settings.tournament_size,
                reason="Must be at least 1"
            )
        )

    if settings.horizon_margin_days < 0:
        result.add_error(
            ValidationError(
                field="horizon_margin_days",
                value=settings.horizon_margin_days,
                reason="Cannot be negative"
            )
        )

    if settings.max_exhaustive_items < 1:
        result.add_error(
            ValidationError(
                field="max_exhaustive_items",
                value=settings.max_exhaustive_items,
                reason="Must be at least 1"
            )
        )

    if settings.solver_time_limit_seconds <= 0:
        result.add_error(
            ValidationError(
                field="solver_time_limit_seconds",
                value=settings.solver_time_limit_seconds,
                reason="Must be greater than 0"
            )
        )

    if settings.time_limit_seconds is not None and settings.time_limit_seconds <= 0:
        result.add_error(
            ValidationError(
                field="time_limit_seconds",
                value=settings.time_limit_seconds,
                reason="Must be greater than 0"
            )
        )


def _validate_per_unit_model(
    item: WorkItem,
    config: FactoryConfig,
    result: ValidationResult
) -> bool:
    """Check the item has a usable per-unit or product processing model.

    Returns:
        True if valid, False otherwise.
    """
    if item.product_id is not None:
        if item.product_id not in config.product_configs:
            result.add_error(
                ValidationError(
                    field="product_id",
                    value=item.product_id,
                    reason=f"Work item {item.item_id} references an unknown product",
                    row=item.row_number or None
                ),
                item.item_id
            )
            return False
        return True

    if item.unit_hours is None or item.unit_hours <= 0:
        result.add_error(
            ValidationError(
                field="unit_hours",
                value=item.unit_hours,
                reason=f"Work item {item.item_id} needs a positive unit_hours or a product_id",
                row=item.row_number or None
            ),
            item.item_id
        )
        return False
    return True


def _validate_machine_steps(
    item: WorkItem,
    config: FactoryConfig,
    result: ValidationResult,
    starved: dict[str, list[str]]
) -> bool:
    """Check the item's machine sequence against the inventory.

    Dangling machine types are validation errors. Types listed with zero
    instances are collected in ``starved`` and reported once per type.

    Returns:
        True if valid, False otherwise.
    """
    if not item.machine_steps:
        result.add_error(
            ValidationError(
                field="machine_steps",
                value=(),
                reason=f"Work item {item.item_id} has no machine steps",
                row=item.row_number or None
            ),
            item.item_id
        )
        return False

    valid = True
    for position, step in enumerate(item.machine_steps, start=1):
        if step.batch_size <= 0:
            result.add_error(
                ValidationError(
                    field="batch_size",
                    value=step.batch_size,
                    reason=f"Step {position} of {item.item_id} must have a positive batch size",
                    row=item.row_number or None
                ),
                item.item_id
            )
            valid = False
        if step.hours_per_batch <= 0:
            result.add_error(
                ValidationError(
                    field="hours_per_batch",
                    value=step.hours_per_batch,
                    reason=f"Step {position} of {item.item_id} must have a positive duration",
                    row=item.row_number or None
                ),
                item.item_id
            )
            valid = False

        if step.machine_type not in config.machine_inventory:
            result.add_error(
                ValidationError(
                    field="machine_type",
                    value=step.machine_type,
                    reason=f"Step {position} of {item.item_id} references an unknown machine type",
                    row=item.row_number or None
                ),
                item.item_id
            )
            valid = False
        elif config.machine_inventory[step.machine_type] == 0:
            ids = starved.setdefault(step.machine_type, [])
            if item.item_id not in ids:
                ids.append(item.item_id)
            valid = False

    return valid


def validate_single_item(
    item: WorkItem,
    config: FactoryConfig,
    mode: ProcessingMode = "per_unit"
) -> list[SchedulingError]:
    """Validate a single work item without run context.

    Useful for checking an item before adding it to a load.

    Returns:
        List of errors (empty if valid).
    """
    result = validate_work_load([item], config, OptimizerSettings(reference_date=date.min, mode=mode))
    return result.errors
