# Custom exception hierarchy for the production scheduling engine.
# Version: 1.0.0
# Provides structured error handling with field-level context and user-friendly messages.

from typing import Any


class SchedulingError(Exception):
    """Base exception for all scheduling engine errors.

    All custom exceptions inherit from this class to allow catching
    any scheduling-related error with a single except clause.

    Attributes:
        message: Human-readable error description.
        details: Additional context for debugging.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize the scheduling error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary of additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message


class ValidationError(SchedulingError):
    """Raised when input data fails validation.

    Used for non-positive quantities or capacities, dangling product or
    machine references, and malformed rows in work-order files. Raised
    before any strategy runs, so no partial schedule is ever produced.

    Attributes:
        field: Name of the field that failed validation.
        value: The invalid value that was provided.
        reason: Explanation of why the value is invalid.
        row: Optional row number in the data source.
    """

    def __init__(
        self,
        field: str,
        value: Any,
        reason: str,
        row: int | None = None
    ) -> None:
        """Initialize the validation error.

        Args:
            field: Name of the field that failed validation.
            value: The invalid value provided.
            reason: Explanation of why validation failed.
            row: Optional row number (1-indexed) for spreadsheet errors.
        """
        self.field = field
        self.value = value
        self.reason = reason
        self.row = row

        details = {"field": field, "value": repr(value)}
        if row is not None:
            details["row"] = row

        location = f" in row {row}" if row else ""
        message = f"Invalid {field}{location}: {reason}. Got: {repr(value)}"
        super().__init__(message, details)


class ConfigurationError(SchedulingError):
    """Raised when factory configuration data is invalid or missing.

    Used for errors in the factory YAML file such as a non-positive
    working day, malformed machine inventory, or broken product configs.

    Attributes:
        config_source: Name of the configuration source (section, file, etc.).
        issue: Description of the configuration problem.
    """

    def __init__(self, config_source: str, issue: str) -> None:
        """Initialize the configuration error.

        Args:
            config_source: Name of the configuration source.
            issue: Description of what's wrong with the configuration.
        """
        self.config_source = config_source
        self.issue = issue

        message = f"Configuration error in {config_source}: {issue}"
        super().__init__(message, {"source": config_source})


class FileLoadError(SchedulingError):
    """Raised when a required file cannot be loaded.

    Covers file not found, permission denied, corrupted files, and
    unexpected file format issues.

    Attributes:
        filepath: Path to the file that failed to load.
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, filepath: str, cause: Exception) -> None:
        """Initialize the file load error.

        Args:
            filepath: Path to the file that failed to load.
            cause: The underlying exception.
        """
        self.filepath = filepath
        self.cause = cause

        # Extract just the filename for cleaner messages
        filename = filepath.split("/")[-1].split("\\")[-1]
        cause_type = type(cause).__name__

        message = f"Failed to load {filename}: {cause_type} - {cause}"
        super().__init__(message, {"filepath": filepath, "cause_type": cause_type})


class InfeasibleMachineCapacityError(SchedulingError):
    """Raised when work items need a machine type with no instances.

    A step on a machine type with zero configured instances can never be
    placed on a timeline. The whole run is rejected before the search
    starts rather than silently dropping the affected steps.

    Attributes:
        machine_type: Machine type with no usable instances.
        item_ids: Work items that reference the machine type.
    """

    def __init__(self, machine_type: str, item_ids: list[str]) -> None:
        """Initialize the machine capacity error.

        Args:
            machine_type: Machine type with zero instances.
            item_ids: IDs of the work items needing that machine type.
        """
        self.machine_type = machine_type
        self.item_ids = item_ids

        message = (
            f"Machine type {machine_type!r} has no instances but is required by "
            f"{len(item_ids)} work item(s)"
        )
        super().__init__(
            message,
            {"machine_type": machine_type, "items": ",".join(item_ids)}
        )


class InfeasibleScheduleError(SchedulingError):
    """Raised when no valid day assignment exists within the horizon.

    The integer program could not place every batch inside the day horizon
    without breaking the daily capacity limit. Callers inside the engine
    recover from this by falling back to the earliest-deadline heuristic.

    Attributes:
        horizon_days: Number of candidate days in the model.
        reason: Explanation of why scheduling failed.
    """

    def __init__(self, horizon_days: int, reason: str) -> None:
        """Initialize the infeasible schedule error.

        Args:
            horizon_days: Number of candidate days in the model.
            reason: Explanation of why scheduling was infeasible.
        """
        self.horizon_days = horizon_days
        self.reason = reason

        message = f"Cannot create valid schedule within {horizon_days} day(s): {reason}"
        super().__init__(message, {"horizon_days": horizon_days, "reason": reason})


class SolverTimeoutError(SchedulingError):
    """Raised when the OR-Tools solver exceeds its time limit.

    The solver was unable to find a solution within the allowed time.

    Attributes:
        timeout_seconds: The time limit that was exceeded.
        best_solution_found: Whether any feasible solution was found.
    """

    def __init__(
        self,
        timeout_seconds: float,
        best_solution_found: bool
    ) -> None:
        """Initialize the solver timeout error.

        Args:
            timeout_seconds: The time limit that was exceeded.
            best_solution_found: True if a feasible solution exists.
        """
        self.timeout_seconds = timeout_seconds
        self.best_solution_found = best_solution_found

        if best_solution_found:
            message = (
                f"Solver timed out after {timeout_seconds}s. "
                "Best-found solution is available but may not be optimal."
            )
        else:
            message = (
                f"Solver timed out after {timeout_seconds}s. "
                "No feasible solution found within time limit."
            )

        super().__init__(
            message,
            {"timeout": timeout_seconds, "has_solution": best_solution_found}
        )


class OptimizationCancelledError(SchedulingError):
    """Raised when a run is aborted before it can produce a result.

    The exhaustive and integer-program strategies have no meaningful
    partial answer, so an abort or timeout surfaces as this error instead
    of a half-built schedule.

    Attributes:
        method: Name of the strategy that was cancelled.
        reason: Why the run stopped (timeout or external abort).
    """

    def __init__(self, method: str, reason: str) -> None:
        """Initialize the cancellation error.

        Args:
            method: Strategy name.
            reason: Why the run stopped.
        """
        self.method = method
        self.reason = reason

        message = f"{method} optimization stopped before completion: {reason}"
        super().__init__(message, {"method": method, "reason": reason})
