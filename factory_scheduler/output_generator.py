# Output Generation for the Production Scheduler.
# Version: 1.0.0
# Generates text reports and CSV, JSON, Excel, and PDF exports of schedule results.

import io
import json
from datetime import datetime
from pathlib import Path

import pandas as pd

from .method_evaluation import METHOD_NAMES, evaluate_result, generate_evaluation_report
from .method_variants import SchedulingMethod
from .scheduler import ScheduleResult
from .solution_parser import export_schedule_to_dict, generate_text_gantt


ORDER_COLUMNS = [
    "Order", "Item ID", "Product Name", "Quantity", "Pieces per Day",
    "Days Required", "Start Day", "Extra Days", "Due Date",
]
DAILY_COLUMNS = [
    "Day", "Date", "Product", "Pieces", "Hours Used", "Machine",
    "Total Hours", "Utilization %",
]


def _method_name(result: ScheduleResult) -> str:
    return METHOD_NAMES.get(result.method, result.method)


def generate_schedule_report(result: ScheduleResult, include_details: bool = True) -> str:
    """Generate a comprehensive text report for a schedule.

    Args:
        result: ScheduleResult to report on.
        include_details: Whether to include the day-by-day breakdown.

    Returns:
        Multi-line report string.
    """
    lines = []

    lines.append("=" * 70)
    lines.append("PRODUCTION SCHEDULE REPORT")
    lines.append("=" * 70)
    lines.append("")

    lines.append(f"Method: {_method_name(result)}")
    lines.append(f"Mode: {result.mode}")
    lines.append(f"Status: {result.status}")
    lines.append(f"Start Date: {result.reference_date.isoformat()}")
    lines.append("")

    lines.append("-" * 70)
    lines.append("SUMMARY")
    lines.append("-" * 70)
    lines.append(f"Total Production Days: {result.total_days}")
    lines.append(f"Total Items: {len(result.items)}")
    lines.append(f"Delayed Items: {result.late_count}")
    lines.append(f"Average Utilization: {result.average_utilization:.1f}%")
    lines.append(f"Idle Hours: {result.total_idle_hours:.2f}")
    lines.append(f"Overtime Hours: {result.total_overtime_hours:.2f}")
    lines.append("")

    lines.append("-" * 70)
    lines.append("PRODUCTION ORDER")
    lines.append("-" * 70)
    for item in result.items:
        lines.append(f"\n#{item.production_order} - {item.name} ({item.item_id})")
        lines.append(f"  Quantity: {item.quantity}")
        lines.append(f"  Priority: {item.priority} (urgency {item.urgency_score})")
        lines.append(f"  Start Day: Day {item.start_day + 1}")
        lines.append(f"  Days Required: {item.days_required}")
        lines.append(f"  Pieces per Day: {item.units_per_day}")
        lines.append(f"  Due Date: {item.deadline.isoformat()}")
        if item.is_late:
            lines.append(f"  DELAYED BY: {item.overdue_days} day(s)")

    if include_details:
        lines.append("")
        lines.append("-" * 70)
        lines.append("DAILY PRODUCTION BREAKDOWN")
        lines.append("-" * 70)
        for day in result.daily_schedule:
            lines.append(f"\nDay {day.day} - {day.date.strftime('%A, %B %d, %Y')}")
            lines.append(
                f"  Total Hours: {day.total_hours_used:.2f}h / {day.capacity_hours:.2f}h "
                f"({day.utilization:.1f}%)"
            )
            if day.overtime_hours > 0:
                lines.append(f"  Overtime: {day.overtime_hours:.2f}h")
            if not day.allocations:
                lines.append("  (idle)")
            for alloc in day.allocations:
                where = f" on {alloc.machine_instance}" if alloc.machine_instance else ""
                extra = " [extra]" if alloc.is_extra else ""
                lines.append(
                    f"  - {alloc.name}: {alloc.units} pieces ({alloc.hours_used:.2f}h){where}{extra}"
                )

    if result.machine_utilization:
        lines.append("")
        lines.append("-" * 70)
        lines.append("MACHINE UTILIZATION")
        lines.append("-" * 70)
        for machine_type, usage in sorted(result.machine_utilization.items()):
            lines.append(
                f"  {machine_type} x{usage.instances}: busy {usage.busy_hours:.2f}h, "
                f"idle {usage.idle_hours:.2f}h ({usage.utilization:.1f}%)"
            )

    if result.notes:
        lines.append("")
        lines.append("-" * 70)
        lines.append("NOTES")
        lines.append("-" * 70)
        for note in result.notes:
            lines.append(f"  - {note}")

    lines.append("")
    lines.append("=" * 70)
    lines.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("=" * 70)

    return "\n".join(lines)


def schedule_to_dataframes(result: ScheduleResult) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Build the production-order and daily-breakdown tables.

    Day totals and utilization appear only on the first row of each day.

    Args:
        result: ScheduleResult to tabulate.

    Returns:
        Tuple of (orders, daily) DataFrames.
    """
    orders = pd.DataFrame(
        [
            [
                item.production_order, item.item_id, item.name, item.quantity,
                item.units_per_day, item.days_required, item.start_day + 1,
                item.overdue_days, item.deadline.isoformat(),
            ]
            for item in result.items
        ],
        columns=ORDER_COLUMNS,
    )

    daily_rows = []
    for day in result.daily_schedule:
        for idx, alloc in enumerate(day.allocations):
            first = idx == 0
            daily_rows.append([
                day.day,
                day.date.isoformat(),
                alloc.name,
                alloc.units,
                f"{alloc.hours_used:.2f}",
                alloc.machine_instance or "",
                f"{day.total_hours_used:.2f}" if first else "",
                f"{day.utilization:.1f}%" if first else "",
            ])
    daily = pd.DataFrame(daily_rows, columns=DAILY_COLUMNS)

    return orders, daily


def export_to_csv(result: ScheduleResult, output_path: str | Path | None = None) -> str:
    """Export a schedule as a two-section CSV document.

    Args:
        result: ScheduleResult to export.
        output_path: Optional file to write.

    Returns:
        CSV text.
    """
    orders, daily = schedule_to_dataframes(result)

    buffer = io.StringIO()
    buffer.write("Production Schedule - Optimized Order\n\n")
    orders.to_csv(buffer, index=False, lineterminator="\n")
    buffer.write("\n\nDaily Schedule Breakdown\n\n")
    daily.to_csv(buffer, index=False, lineterminator="\n")
    csv_text = buffer.getvalue()

    if output_path is not None:
        Path(output_path).write_text(csv_text, encoding="utf-8")
    return csv_text


def export_to_json(result: ScheduleResult, pretty: bool = True) -> str:
    """Export schedule to JSON format.

    Args:
        result: ScheduleResult to export.
        pretty: Whether to format with indentation.

    Returns:
        JSON string.
    """
    indent = 2 if pretty else None
    return json.dumps(export_schedule_to_dict(result), indent=indent)


def generate_comparison_report(results: dict[SchedulingMethod, ScheduleResult]) -> str:
    """Generate a comparison report for multiple method results.

    Args:
        results: Dict mapping method to result.

    Returns:
        Multi-line comparison report.
    """
    evaluations = [evaluate_result(result) for result in results.values()]

    lines = [generate_evaluation_report(evaluations)]
    lines.append("")
    lines.append("PRODUCTION ORDER BY METHOD")
    lines.append("-" * 80)
    for method, result in results.items():
        sequence = " -> ".join(result.production_sequence())
        lines.append(f"  {METHOD_NAMES.get(method.value, method.value)}: {sequence}")

    lines.append("")
    lines.append("=" * 80)
    lines.append(f"Report generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("=" * 80)

    return "\n".join(lines)


def export_to_excel(result: ScheduleResult, output_path: str | Path) -> Path:
    """Write the order and daily tables to a styled Excel workbook.

    Args:
        result: ScheduleResult to export.
        output_path: Path to save the .xlsx file.

    Returns:
        Path to generated Excel file.
    """
    import openpyxl
    from openpyxl.styles import Alignment, Font, PatternFill
    from openpyxl.utils import get_column_letter

    output_path = Path(output_path)
    orders, daily = schedule_to_dataframes(result)

    wb = openpyxl.Workbook()
    header_fill = PatternFill(start_color="3498db", end_color="3498db", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF")
    late_fill = PatternFill(start_color="FFEBEE", end_color="FFEBEE", fill_type="solid")

    sheets = [("Production Order", orders), ("Daily Schedule", daily)]
    for sheet_idx, (title, frame) in enumerate(sheets):
        ws = wb.active if sheet_idx == 0 else wb.create_sheet()
        ws.title = title

        for col_idx, header in enumerate(frame.columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = Alignment(horizontal="center")
            ws.column_dimensions[get_column_letter(col_idx)].width = max(12, len(header) + 2)

        for row_idx, row in enumerate(frame.itertuples(index=False), 2):
            for col_idx, value in enumerate(row, 1):
                ws.cell(row=row_idx, column=col_idx, value=value)

        ws.freeze_panes = "A2"

    # Highlight late items on the order sheet
    order_sheet = wb["Production Order"]
    extra_col = ORDER_COLUMNS.index("Extra Days") + 1
    for row_idx in range(2, order_sheet.max_row + 1):
        if (order_sheet.cell(row=row_idx, column=extra_col).value or 0) > 0:
            for col_idx in range(1, len(ORDER_COLUMNS) + 1):
                order_sheet.cell(row=row_idx, column=col_idx).fill = late_fill

    wb.save(output_path)
    return output_path


def generate_schedule_pdf(result: ScheduleResult, output_path: str | Path) -> Path:
    """Generate a PDF summary of the schedule.

    Args:
        result: ScheduleResult to render.
        output_path: Path to save PDF.

    Returns:
        Path to generated PDF.
    """
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import letter
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import inch
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    output_path = Path(output_path)

    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=letter,
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=0.5*inch,
        bottomMargin=0.5*inch
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('ScheduleTitle', parent=styles['Heading1'], fontSize=20, spaceAfter=20)
    section_style = ParagraphStyle('Section', parent=styles['Heading2'], fontSize=14, spaceBefore=15, spaceAfter=10)
    table_style = TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#2c3e50')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#bdc3c7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#f8f9fa')]),
    ])

    elements = []
    elements.append(Paragraph(f"Production Schedule - {result.reference_date.isoformat()}", title_style))
    elements.append(Paragraph(f"Method: {_method_name(result)} ({result.status})", styles['Normal']))
    elements.append(Spacer(1, 15))

    elements.append(Paragraph("Summary", section_style))
    summary_data = [
        ["Metric", "Value"],
        ["Total Days", str(result.total_days)],
        ["Delayed Items", str(result.late_count)],
        ["Average Utilization", f"{result.average_utilization:.1f}%"],
        ["Idle Hours", f"{result.total_idle_hours:.2f}"],
        ["Overtime Hours", f"{result.total_overtime_hours:.2f}"],
    ]
    summary_table = Table(summary_data, colWidths=[3*inch, 2*inch])
    summary_table.setStyle(table_style)
    elements.append(summary_table)

    elements.append(Paragraph("Production Order", section_style))
    order_data = [["#", "Item", "Qty", "Start", "Days", "Due", "Late"]]
    for item in result.items:
        order_data.append([
            str(item.production_order),
            item.name[:30],
            str(item.quantity),
            f"Day {item.start_day + 1}",
            str(item.days_required),
            item.deadline.isoformat(),
            str(item.overdue_days) if item.is_late else "-",
        ])
    order_table = Table(order_data, repeatRows=1)
    order_table.setStyle(table_style)
    elements.append(order_table)

    elements.append(Paragraph("Daily Breakdown", section_style))
    day_data = [["Day", "Date", "Used h", "Capacity h", "Util %", "Items"]]
    for day in result.daily_schedule:
        day_data.append([
            str(day.day),
            day.date.isoformat(),
            f"{day.total_hours_used:.2f}",
            f"{day.capacity_hours:.2f}",
            f"{day.utilization:.1f}",
            ", ".join(sorted({a.item_id for a in day.allocations})) or "idle",
        ])
    day_table = Table(day_data, repeatRows=1)
    day_table.setStyle(table_style)
    elements.append(day_table)

    doc.build(elements)
    return output_path


def save_all_outputs(
    result: ScheduleResult,
    output_dir: str | Path,
    prefix: str = "schedule"
) -> dict[str, Path]:
    """Save the text, Gantt, CSV, and JSON outputs to files.

    Args:
        result: ScheduleResult to output.
        output_dir: Directory to save files.
        prefix: Filename prefix.

    Returns:
        Dict of format name to file path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    saved = {}

    report_path = output_dir / f"{prefix}_report.txt"
    report_path.write_text(generate_schedule_report(result), encoding="utf-8")
    saved["report"] = report_path

    gantt_path = output_dir / f"{prefix}_gantt.txt"
    gantt_path.write_text(generate_text_gantt(result), encoding="utf-8")
    saved["gantt_text"] = gantt_path

    csv_path = output_dir / f"{prefix}.csv"
    export_to_csv(result, csv_path)
    saved["csv"] = csv_path

    json_path = output_dir / f"{prefix}.json"
    json_path.write_text(export_to_json(result), encoding="utf-8")
    saved["json"] = json_path

    return saved
