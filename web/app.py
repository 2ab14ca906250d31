"""
Factory Production Scheduler - FastAPI Web Backend
"""

import logging
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from factory_scheduler import __version__
from factory_scheduler.constants import FactoryConfig, load_factory_config
from factory_scheduler.data_loader import EXCEL_SUFFIXES, MachineStep, WorkItem, WorkLoad, load_work_orders
from factory_scheduler.errors import (
    OptimizationCancelledError,
    SchedulingError,
    SolverTimeoutError,
)
from factory_scheduler.method_evaluation import METHOD_NAMES, evaluate_result, rank_methods
from factory_scheduler.method_variants import SchedulingMethod, optimize, run_all_methods
from factory_scheduler.output_generator import (
    export_to_csv,
    export_to_excel,
    generate_schedule_pdf,
    generate_schedule_report,
)
from factory_scheduler.scheduler import ScheduleResult
from factory_scheduler.solution_parser import export_schedule_to_dict, generate_text_gantt
from factory_scheduler.validator import OptimizerSettings


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Factory Production Scheduler",
    description="Production scheduler with exhaustive, genetic, CP-SAT, and EDF strategies",
    version=__version__
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global data holders
factory_config: FactoryConfig | None = None
work_load: WorkLoad | None = None

# Results of the last /api/schedule call, for downloads
all_schedule_results: dict[str, ScheduleResult] = {}
last_schedule_result: ScheduleResult | None = None


def get_base_path():
    return Path(__file__).parent.parent


def get_config_path():
    return get_base_path() / "config" / "factory.yaml"


class MachineStepModel(BaseModel):
    machine_type: str
    batch_size: int
    hours_per_batch: float


class WorkItemModel(BaseModel):
    item_id: str
    name: str
    quantity: int
    deadline: date
    unit_hours: Optional[float] = None
    product_id: Optional[str] = None
    priority: Optional[str] = None
    machine_steps: list[MachineStepModel] = Field(default_factory=list)

    def to_work_item(self) -> WorkItem:
        return WorkItem(
            item_id=self.item_id,
            name=self.name,
            quantity=self.quantity,
            deadline=self.deadline,
            unit_hours=self.unit_hours,
            machine_steps=tuple(
                MachineStep(s.machine_type, s.batch_size, s.hours_per_batch)
                for s in self.machine_steps
            ),
            product_id=self.product_id,
            priority=self.priority,
        )


class ScheduleRequest(BaseModel):
    items: list[WorkItemModel] = Field(default_factory=list)
    method: str = "all"
    mode: str = "per_unit"
    reference_date: Optional[date] = None
    include_extra: bool = False
    seed: Optional[int] = None
    population_size: Optional[int] = None
    generations: Optional[int] = None
    time_limit_seconds: Optional[float] = None


# Error class -> HTTP status; anything else under SchedulingError is a 400
ERROR_STATUS = {
    SolverTimeoutError: 504,
    OptimizationCancelledError: 409,
}


def _http_error(error: SchedulingError) -> HTTPException:
    status = ERROR_STATUS.get(type(error), 400)
    return HTTPException(status_code=status, detail=str(error))


@app.on_event("startup")
async def load_data():
    """Load the factory configuration on startup."""
    global factory_config

    config_path = get_config_path()
    factory_config = load_factory_config(config_path)
    logger.info(
        f"Loaded factory config: {factory_config.working_hours_per_day}h/day, "
        f"{len(factory_config.machine_inventory)} machine type(s), "
        f"{len(factory_config.product_configs)} product(s)"
    )


@app.get("/")
async def root():
    """Serve the main HTML page."""
    html_path = Path(__file__).parent / "static" / "index.html"
    if html_path.exists():
        return HTMLResponse(content=html_path.read_text(), status_code=200)
    return HTMLResponse(content="<h1>Factory Production Scheduler</h1>")


@app.get("/api/config")
async def get_config():
    """Get available configuration options."""
    if not factory_config:
        raise HTTPException(status_code=500, detail="Factory config not loaded")

    return {
        "version": __version__,
        "methods": [
            {"id": method.value, "name": METHOD_NAMES[method.value]}
            for method in SchedulingMethod
        ] + [{"id": "all", "name": "Run All Methods"}],
        "modes": [
            {"id": "per_unit", "name": "Per-unit processing time"},
            {"id": "machine", "name": "Machine sequences"},
        ],
        "working_hours_per_day": factory_config.working_hours_per_day,
        "machines": dict(factory_config.machine_inventory),
        "products": [
            {
                "id": p.product_id,
                "name": p.name,
                "pieces_per_batch": p.pieces_per_batch,
                "minutes_per_batch": p.minutes_per_batch,
            }
            for p in factory_config.product_configs.values()
        ],
        "has_work_orders": work_load is not None,
        "work_orders_count": len(work_load) if work_load else 0,
    }


@app.post("/api/upload")
async def upload_work_orders(file: UploadFile = File(...)):
    """Upload a CSV or Excel work-order file."""
    global work_load

    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in EXCEL_SUFFIXES and suffix != ".csv":
        raise HTTPException(status_code=400, detail="File must be CSV or Excel (.csv, .xlsx, .xls)")

    content = await file.read()
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as f:
        f.write(content)
        upload_path = f.name

    try:
        work_load = load_work_orders(upload_path)
    except SchedulingError as e:
        raise _http_error(e)

    return {
        "success": True,
        "message": f"Uploaded {file.filename} with {len(work_load)} work orders",
        "work_orders_count": len(work_load),
    }


@app.post("/api/schedule")
async def run_schedule(request: ScheduleRequest):
    """Run one scheduling method, or all of them."""
    global last_schedule_result

    if not factory_config:
        raise HTTPException(status_code=500, detail="Factory config not loaded")

    if request.items:
        items = [item.to_work_item() for item in request.items]
    elif work_load is not None:
        items = list(work_load)
    else:
        raise HTTPException(status_code=400, detail="No work orders supplied or uploaded")

    if request.mode not in ("per_unit", "machine"):
        raise HTTPException(status_code=400, detail=f"Unknown mode: {request.mode}")

    settings = OptimizerSettings(
        mode=request.mode,
        include_extra=request.include_extra,
        seed=request.seed,
        time_limit_seconds=request.time_limit_seconds,
    )
    if request.reference_date:
        settings.reference_date = request.reference_date
    if request.population_size:
        settings.population_size = request.population_size
    if request.generations:
        settings.generations = request.generations

    all_schedule_results.clear()
    try:
        if request.method == "all":
            results = run_all_methods(items, factory_config, settings)
        else:
            try:
                method = SchedulingMethod(request.method)
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Unknown method: {request.method}")
            results = {method: optimize(items, factory_config, method, settings)}
    except SchedulingError as e:
        logger.warning(f"Scheduling request failed: {e}")
        raise _http_error(e)

    evaluations = [evaluate_result(result) for result in results.values()]
    best_eval = rank_methods(evaluations)[0][0]

    for method, result in results.items():
        all_schedule_results[method.value] = result
    last_schedule_result = all_schedule_results[best_eval.method]

    return {
        "success": True,
        "best_method": best_eval.method,
        "schedule": export_schedule_to_dict(last_schedule_result),
        "gantt": generate_text_gantt(last_schedule_result),
        "evaluations": [
            {
                "method": ev.method,
                "name": ev.method_name,
                "status": ev.status,
                "late_count": ev.late_count,
                "total_days": ev.total_days,
                "average_utilization": round(ev.average_utilization, 2),
                "total_overtime_hours": round(ev.total_overtime_hours, 4),
            }
            for ev in evaluations
        ],
    }


@app.get("/api/method/{method_key}")
async def get_method_result(method_key: str):
    """Switch to the stored result of another method."""
    global last_schedule_result

    result = all_schedule_results.get(method_key)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No result for method {method_key}")

    last_schedule_result = result
    return {"success": True, "schedule": export_schedule_to_dict(result)}


# ============ DOWNLOAD ENDPOINTS ============

@app.get("/api/download/csv")
async def download_csv():
    if not last_schedule_result:
        raise HTTPException(status_code=400, detail="No schedule to download")

    filename = f"production-schedule-{last_schedule_result.reference_date.isoformat()}.csv"
    return Response(
        content=export_to_csv(last_schedule_result),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/download/report")
async def download_report():
    """Download the text report of the current schedule."""
    if not last_schedule_result:
        raise HTTPException(status_code=400, detail="No schedule to download")

    filename = f"production-schedule-{last_schedule_result.reference_date.isoformat()}.txt"
    return PlainTextResponse(
        content=generate_schedule_report(last_schedule_result),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/api/download/pdf")
async def download_pdf():
    """Download summary report as PDF."""
    if not last_schedule_result:
        raise HTTPException(status_code=400, detail="No schedule to download")

    with tempfile.NamedTemporaryFile(suffix=".pdf", delete=False) as f:
        output_path = f.name

    generate_schedule_pdf(last_schedule_result, output_path)
    return FileResponse(
        output_path,
        media_type="application/pdf",
        filename=f"schedule_{last_schedule_result.reference_date.isoformat()}_report.pdf",
    )


@app.get("/api/download/excel")
async def download_excel():
    """Download the order and daily tables as an Excel workbook."""
    if not last_schedule_result:
        raise HTTPException(status_code=400, detail="No schedule to download")

    with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as f:
        output_path = f.name

    export_to_excel(last_schedule_result, output_path)
    return FileResponse(
        output_path,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=f"schedule_{last_schedule_result.reference_date.isoformat()}.xlsx",
    )


# Mount static files
static_path = Path(__file__).parent / "static"
if static_path.exists():
    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")
