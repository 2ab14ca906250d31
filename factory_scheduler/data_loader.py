# Load work-order data for the scheduling engine.
# Version: 1.0.0
# Parses work items and machine steps from CSV or Excel and structures them for scheduling.

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path

import pandas as pd

from .constants import PRIORITY_LEVELS, PriorityLevel
from .errors import FileLoadError, ValidationError


logger = logging.getLogger(__name__)

WORK_ORDER_COLUMNS: frozenset[str] = frozenset({"ID", "NAME", "QUANTITY", "DEADLINE"})
OPTIONAL_WORK_ORDER_COLUMNS: frozenset[str] = frozenset({"UNIT_HOURS", "PRODUCT_ID", "PRIORITY"})
STEP_COLUMNS: frozenset[str] = frozenset({
    "ITEM_ID", "SEQUENCE", "MACHINE_TYPE", "BATCH_SIZE", "HOURS_PER_BATCH"
})

EXCEL_SUFFIXES: frozenset[str] = frozenset({".xlsx", ".xlsm", ".xls"})


@dataclass(frozen=True)
class MachineStep:
    """One operation in a work item's machine sequence.

    Attributes:
        machine_type: Machine type that performs the operation.
        batch_size: Maximum units processed together in one run.
        hours_per_batch: Duration of one batch on one machine instance.
    """
    machine_type: str
    batch_size: int
    hours_per_batch: float


@dataclass(frozen=True)
class WorkItem:
    """A unit of demand to be scheduled.

    Exactly one processing model is used per scheduling mode: per-unit mode
    reads ``product_id`` (if set) or ``unit_hours``, machine mode reads
    ``machine_steps``.

    Attributes:
        item_id: Unique work item identifier.
        name: Display name for reports.
        quantity: Units to produce.
        deadline: Calendar date the units are due.
        unit_hours: Processing hours per unit (per-unit mode).
        machine_steps: Ordered machine operations (machine mode).
        product_id: Reference to a batch-based ProductConfig.
        priority: Explicit priority tier; derived from the deadline when None.
        row_number: Original row number in the source file (for error messages).
    """
    item_id: str
    name: str
    quantity: int
    deadline: date
    unit_hours: float | None = None
    machine_steps: tuple[MachineStep, ...] = ()
    product_id: str | None = None
    priority: PriorityLevel | None = None
    row_number: int = field(default=0, compare=False)

    @property
    def machine_types(self) -> set[str]:
        """Machine types referenced by this item's steps."""
        return {step.machine_type for step in self.machine_steps}


@dataclass
class WorkLoad:
    """Container for all work items loaded from a work-order file.

    Attributes:
        items: List of all work items in file order.
        load_timestamp: When the data was loaded.
        source_file: Path to the source file.
    """
    items: list[WorkItem] = field(default_factory=list)
    load_timestamp: datetime = field(default_factory=datetime.now)
    source_file: str = ""

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def get_item(self, item_id: str) -> WorkItem | None:
        """Find a work item by ID.

        Args:
            item_id: Work item identifier to find.

        Returns:
            WorkItem if found, None otherwise.
        """
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None


def load_work_orders(
    filepath: str | Path,
    steps_path: str | Path | None = None
) -> WorkLoad:
    """Load work orders (and optionally their machine steps) from CSV or Excel.

    Args:
        filepath: Path to the work-order table.
        steps_path: Optional path to the machine-step table.

    Returns:
        WorkLoad with all items parsed, in file order.

    Raises:
        FileLoadError: If a file cannot be read.
        ValidationError: If required columns are missing or data is invalid.
    """
    filepath = Path(filepath)
    df = _read_table(filepath)
    _require_columns(df, WORK_ORDER_COLUMNS, filepath.name)

    steps_by_item: dict[str, list[tuple[int, MachineStep]]] = {}
    if steps_path is not None:
        steps_path = Path(steps_path)
        steps_df = _read_table(steps_path)
        _require_columns(steps_df, STEP_COLUMNS, steps_path.name)
        steps_by_item = _parse_steps(steps_df)

    items = []
    seen_ids: set[str] = set()
    for idx, row in df.iterrows():
        row_num = idx + 2  # 1-indexed, plus header
        item = _parse_item_row(row, row_num, df.columns)
        if item.item_id in seen_ids:
            raise ValidationError(
                field="ID",
                value=item.item_id,
                reason="Duplicate work item ID",
                row=row_num
            )
        seen_ids.add(item.item_id)

        steps = steps_by_item.pop(item.item_id, [])
        if steps:
            ordered = tuple(step for _, step in sorted(steps, key=lambda s: s[0]))
            item = WorkItem(
                item_id=item.item_id,
                name=item.name,
                quantity=item.quantity,
                deadline=item.deadline,
                unit_hours=item.unit_hours,
                machine_steps=ordered,
                product_id=item.product_id,
                priority=item.priority,
                row_number=item.row_number,
            )
        items.append(item)

    for orphan_id in steps_by_item:
        logger.warning(f"Machine steps reference unknown work item {orphan_id}; ignored")

    logger.info(f"Loaded {len(items)} work items from {filepath.name}")
    return WorkLoad(items=items, load_timestamp=datetime.now(), source_file=str(filepath))


def _read_table(filepath: Path) -> pd.DataFrame:
    """Read a CSV or Excel file into a DataFrame with upper-cased headers.

    Raises:
        FileLoadError: If the file is missing or unreadable.
    """
    if not filepath.exists():
        raise FileLoadError(str(filepath), FileNotFoundError(f"File not found: {filepath}"))

    try:
        if filepath.suffix.lower() in EXCEL_SUFFIXES:
            df = pd.read_excel(filepath)
        else:
            df = pd.read_csv(filepath)
    except Exception as e:
        raise FileLoadError(str(filepath), e)

    df.columns = [str(c).strip().upper() for c in df.columns]
    return df


def _require_columns(df: pd.DataFrame, required: frozenset[str], source: str) -> None:
    """Raise if any required column is absent."""
    missing = required - set(df.columns)
    if missing:
        raise ValidationError(
            field="columns",
            value=sorted(df.columns),
            reason=f"{source} is missing required columns: {', '.join(sorted(missing))}"
        )


def _parse_item_row(row: pd.Series, row_number: int, columns) -> WorkItem:
    """Parse a single work-order row into a WorkItem.

    Args:
        row: Pandas Series containing row data.
        row_number: Row number for error messages.
        columns: Columns present in the table.

    Returns:
        Parsed WorkItem (without machine steps).

    Raises:
        ValidationError: If any field is invalid.
    """
    item_id = str(row["ID"]).strip()
    if not item_id or item_id.lower() == "nan":
        raise ValidationError(field="ID", value=row["ID"], reason="ID cannot be empty", row=row_number)

    name = str(row["NAME"]).strip() if pd.notna(row["NAME"]) else item_id

    quantity = _parse_int(row["QUANTITY"], "QUANTITY", row_number)
    if quantity <= 0:
        raise ValidationError(
            field="QUANTITY",
            value=quantity,
            reason="Must be a positive integer",
            row=row_number
        )

    deadline = _parse_date(row["DEADLINE"], "DEADLINE", row_number)

    unit_hours = None
    if "UNIT_HOURS" in columns and pd.notna(row["UNIT_HOURS"]):
        unit_hours = _parse_float(row["UNIT_HOURS"], "UNIT_HOURS", row_number)
        if unit_hours <= 0:
            raise ValidationError(
                field="UNIT_HOURS",
                value=unit_hours,
                reason="Must be a positive number",
                row=row_number
            )

    product_id = None
    if "PRODUCT_ID" in columns and pd.notna(row["PRODUCT_ID"]):
        product_id = str(row["PRODUCT_ID"]).strip() or None

    priority = None
    if "PRIORITY" in columns and pd.notna(row["PRIORITY"]):
        priority = str(row["PRIORITY"]).strip().capitalize()
        if priority not in PRIORITY_LEVELS:
            raise ValidationError(
                field="PRIORITY",
                value=row["PRIORITY"],
                reason=f"Must be one of: {', '.join(PRIORITY_LEVELS)}",
                row=row_number
            )

    return WorkItem(
        item_id=item_id,
        name=name,
        quantity=quantity,
        deadline=deadline,
        unit_hours=unit_hours,
        product_id=product_id,
        priority=priority,
        row_number=row_number,
    )


def _parse_steps(df: pd.DataFrame) -> dict[str, list[tuple[int, MachineStep]]]:
    """Group machine-step rows by work item, keeping their sequence numbers."""
    steps: dict[str, list[tuple[int, MachineStep]]] = {}
    for idx, row in df.iterrows():
        row_num = idx + 2
        item_id = str(row["ITEM_ID"]).strip()
        sequence = _parse_int(row["SEQUENCE"], "SEQUENCE", row_num)

        machine_type = str(row["MACHINE_TYPE"]).strip()
        if not machine_type or machine_type.lower() == "nan":
            raise ValidationError(
                field="MACHINE_TYPE",
                value=row["MACHINE_TYPE"],
                reason="Machine type cannot be empty",
                row=row_num
            )

        batch_size = _parse_int(row["BATCH_SIZE"], "BATCH_SIZE", row_num)
        if batch_size <= 0:
            raise ValidationError(
                field="BATCH_SIZE",
                value=batch_size,
                reason="Must be a positive integer",
                row=row_num
            )

        hours = _parse_float(row["HOURS_PER_BATCH"], "HOURS_PER_BATCH", row_num)
        if hours <= 0:
            raise ValidationError(
                field="HOURS_PER_BATCH",
                value=hours,
                reason="Must be a positive number",
                row=row_num
            )

        steps.setdefault(item_id, []).append(
            (sequence, MachineStep(machine_type, batch_size, hours))
        )
    return steps


def _parse_date(value, field_name: str, row_number: int) -> date:
    """Parse a value into a date.

    Raises:
        ValidationError: If value cannot be parsed as a date.
    """
    if pd.isna(value):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Date cannot be empty",
            row=row_number
        )

    if isinstance(value, pd.Timestamp):
        return value.date()
    elif isinstance(value, datetime):
        return value.date()
    elif isinstance(value, date):
        return value

    try:
        return pd.to_datetime(value).date()
    except (ValueError, TypeError):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Cannot parse as date",
            row=row_number
        )


def _parse_float(value, field_name: str, row_number: int) -> float:
    """Parse a value into a float.

    Raises:
        ValidationError: If value is empty or not numeric.
    """
    if pd.isna(value):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Value cannot be empty",
            row=row_number
        )

    try:
        return float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Must be a number",
            row=row_number
        )


def _parse_int(value, field_name: str, row_number: int) -> int:
    """Parse a value into an integer.

    Raises:
        ValidationError: If value is empty, not numeric, or fractional.
    """
    number = _parse_float(value, field_name, row_number)
    if number != int(number):
        raise ValidationError(
            field=field_name,
            value=value,
            reason="Must be a whole number",
            row=row_number
        )
    return int(number)
