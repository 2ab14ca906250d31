# Factory Production Scheduler - Core Package
# Version: 1.0.0

"""
Production scheduling engine for batch and machine-sequenced work orders.

Assigns every unit of work to a calendar day (and, in machine mode, to a
machine instance and time interval) using one of four strategies:
exhaustive search, a genetic algorithm, an OR-Tools CP-SAT integer
program, or earliest-deadline-first packing.
"""

__version__ = "1.0.0"

from .errors import (
    SchedulingError,
    ValidationError,
    ConfigurationError,
    FileLoadError,
    InfeasibleMachineCapacityError,
    InfeasibleScheduleError,
    SolverTimeoutError,
    OptimizationCancelledError,
)

from .constants import (
    FactoryConfig,
    ProductConfig,
    load_factory_config,
    save_factory_config,
    factory_config_from_dict,
)

from .data_loader import (
    MachineStep,
    WorkItem,
    WorkLoad,
    load_work_orders,
)

from .calculated_fields import (
    OrderMetrics,
    NormalizedItem,
    calculate_metrics_for_item,
    calculate_all_metrics,
)

from .validator import (
    OptimizerSettings,
    ValidationResult,
    validate_work_load,
    ensure_valid,
)

from .resources import (
    TimeSlot,
    MachineTimeline,
    allocate_ordering,
)

from .day_buckets import (
    DayAllocation,
    DaySchedule,
    EXTRA_BATCH,
)

from .scheduler import (
    ScheduledItem,
    ScheduleResult,
)

from .stop_signal import StopSignal

from .method_variants import (
    SchedulingMethod,
    optimize,
    run_method,
    run_all_methods,
)

from .method_evaluation import (
    MethodEvaluation,
    ScheduleEvaluation,
    evaluate_schedule,
    evaluate_result,
    compare_methods,
    rank_methods,
    generate_evaluation_report,
)

from .solution_parser import (
    generate_text_gantt,
    validate_schedule,
    export_schedule_to_dict,
)

from .output_generator import (
    generate_schedule_report,
    export_to_csv,
    export_to_json,
    export_to_excel,
    generate_schedule_pdf,
    generate_comparison_report,
    save_all_outputs,
)
