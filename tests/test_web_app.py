"""
Tests for the FastAPI web backend.

This module tests:
- Configuration and scheduling endpoints
- Work-order upload
- Switching between stored method results
- Download endpoints and their error cases
"""

import pytest
from fastapi.testclient import TestClient

import web.app as web_app
from web.app import app


REQUEST_ITEMS = [
    {"item_id": "A", "name": "Gaskets", "quantity": 48, "deadline": "2025-03-07", "product_id": "GASKET-S"},
    {"item_id": "B", "name": "Custom mat", "quantity": 4, "deadline": "2025-03-04", "unit_hours": 1.5},
    {"item_id": "C", "name": "Seals", "quantity": 24, "deadline": "2025-03-10", "product_id": "SEAL-R"},
]

GENETIC_PARAMS = {"seed": 42, "population_size": 20, "generations": 10}


@pytest.fixture
def client():
    """Test client with the startup event run."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scheduled_client(client):
    """Client after one run of every method."""
    response = client.post("/api/schedule", json={
        "items": REQUEST_ITEMS,
        "method": "all",
        "reference_date": "2025-03-03",
        **GENETIC_PARAMS,
    })
    assert response.status_code == 200
    return client


class TestConfigEndpoints:
    """Tests for the read-only endpoints."""

    def test_root_page(self, client):
        """The root serves an HTML page."""
        response = client.get("/")

        assert response.status_code == 200
        assert "Factory Production Scheduler" in response.text

    def test_config(self, client):
        """The config lists methods, modes, machines, and products."""
        data = client.get("/api/config").json()

        assert [m["id"] for m in data["methods"]] == [
            "exhaustive", "genetic", "integer_program", "earliest_deadline_first", "all",
        ]
        assert [m["id"] for m in data["modes"]] == ["per_unit", "machine"]
        assert data["working_hours_per_day"] == 8.0
        assert data["machines"] == {"MIXER": 1, "PRESS": 2, "OVEN": 1}
        assert {p["id"] for p in data["products"]} == {"GASKET-S", "SEAL-R", "MAT-L"}


class TestScheduleEndpoint:
    """Tests for running schedules over HTTP."""

    def test_single_method(self, client):
        """One method returns its schedule and Gantt chart."""
        response = client.post("/api/schedule", json={
            "items": REQUEST_ITEMS,
            "method": "earliest_deadline_first",
            "reference_date": "2025-03-03",
        })
        data = response.json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["best_method"] == "earliest_deadline_first"
        assert data["schedule"]["items"][0]["item_id"] == "B"
        assert data["schedule"]["reference_date"] == "2025-03-03"
        assert "Legend:" in data["gantt"]
        assert len(data["evaluations"]) == 1

    def test_all_methods(self, client):
        """Running all methods evaluates each of them."""
        response = client.post("/api/schedule", json={
            "items": REQUEST_ITEMS,
            "method": "all",
            "reference_date": "2025-03-03",
            **GENETIC_PARAMS,
        })
        data = response.json()

        assert response.status_code == 200
        assert {ev["method"] for ev in data["evaluations"]} == {
            "exhaustive", "genetic", "integer_program", "earliest_deadline_first",
        }
        assert data["best_method"] in {ev["method"] for ev in data["evaluations"]}

    def test_machine_mode(self, client):
        """Machine-sequence items schedule on the configured machines."""
        response = client.post("/api/schedule", json={
            "items": [
                {
                    "item_id": "M1", "name": "Mixed batch", "quantity": 10, "deadline": "2025-03-05",
                    "machine_steps": [
                        {"machine_type": "MIXER", "batch_size": 10, "hours_per_batch": 1.0},
                        {"machine_type": "OVEN", "batch_size": 5, "hours_per_batch": 2.0},
                    ],
                },
            ],
            "method": "genetic",
            "mode": "machine",
            "reference_date": "2025-03-03",
            **GENETIC_PARAMS,
        })
        schedule = response.json()["schedule"]

        assert response.status_code == 200
        assert schedule["mode"] == "machine"
        assert set(schedule["machine_schedules"]) == {"MIXER", "PRESS", "OVEN"}

    def test_unknown_method(self, client):
        """Unknown methods are a client error."""
        response = client.post("/api/schedule", json={"items": REQUEST_ITEMS, "method": "fastest"})

        assert response.status_code == 400
        assert "Unknown method" in response.json()["detail"]

    def test_unknown_mode(self, client):
        """Unknown modes are a client error."""
        response = client.post("/api/schedule", json={"items": REQUEST_ITEMS, "mode": "batch"})

        assert response.status_code == 400

    def test_invalid_item(self, client):
        """Validation errors come back as 400 with the message."""
        bad = dict(REQUEST_ITEMS[1], quantity=0)
        response = client.post("/api/schedule", json={"items": [bad], "method": "genetic"})

        assert response.status_code == 400
        assert "positive quantity" in response.json()["detail"]

    def test_no_items(self, client, monkeypatch):
        """A request with no items and no upload is rejected."""
        monkeypatch.setattr(web_app, "work_load", None)
        response = client.post("/api/schedule", json={"method": "genetic"})

        assert response.status_code == 400


class TestUpload:
    """Tests for work-order upload."""

    def test_upload_then_schedule(self, client, monkeypatch):
        """Uploaded work orders are used when a request has no items."""
        monkeypatch.setattr(web_app, "work_load", None)
        csv_text = (
            "ID,NAME,QUANTITY,DEADLINE,UNIT_HOURS\n"
            "U1,Uploaded one,3,2025-03-05,1.0\n"
            "U2,Uploaded two,5,2025-03-06,0.5\n"
        )
        response = client.post("/api/upload", files={"file": ("orders.csv", csv_text, "text/csv")})

        assert response.status_code == 200
        assert response.json()["work_orders_count"] == 2
        assert client.get("/api/config").json()["has_work_orders"] is True

        response = client.post("/api/schedule", json={
            "method": "earliest_deadline_first",
            "reference_date": "2025-03-03",
        })
        ids = [item["item_id"] for item in response.json()["schedule"]["items"]]
        assert sorted(ids) == ["U1", "U2"]

    def test_upload_rejects_other_files(self, client):
        """Only CSV and Excel files are accepted."""
        response = client.post("/api/upload", files={"file": ("orders.txt", "hello", "text/plain")})

        assert response.status_code == 400

    def test_upload_reports_row_errors(self, client, monkeypatch):
        """Malformed rows are reported with their row number."""
        monkeypatch.setattr(web_app, "work_load", None)
        csv_text = "ID,NAME,QUANTITY,DEADLINE\nU1,One,-3,2025-03-05\n"
        response = client.post("/api/upload", files={"file": ("orders.csv", csv_text, "text/csv")})

        assert response.status_code == 400
        assert "row 2" in response.json()["detail"]


class TestMethodSwitch:
    """Tests for selecting a stored method result."""

    def test_switch_method(self, scheduled_client):
        """Stored results can be selected by method key."""
        response = scheduled_client.get("/api/method/integer_program")

        assert response.status_code == 200
        assert response.json()["schedule"]["method"] == "integer_program"

    def test_unknown_method_key(self, scheduled_client):
        """Methods that did not run are not found."""
        assert scheduled_client.get("/api/method/fastest").status_code == 404


class TestDownloads:
    """Tests for the download endpoints."""

    @pytest.mark.parametrize("path", [
        "/api/download/csv",
        "/api/download/report",
        "/api/download/pdf",
        "/api/download/excel",
    ])
    def test_download_without_schedule(self, client, monkeypatch, path):
        """Downloads need a schedule first."""
        monkeypatch.setattr(web_app, "last_schedule_result", None)

        assert client.get(path).status_code == 400

    def test_download_csv(self, scheduled_client):
        """The CSV download is an attachment."""
        response = scheduled_client.get("/api/download/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "production-schedule-2025-03-03.csv" in response.headers["content-disposition"]
        assert response.text.startswith("Production Schedule - Optimized Order")

    def test_download_report(self, scheduled_client):
        """The text report download holds the report."""
        response = scheduled_client.get("/api/download/report")

        assert response.status_code == 200
        assert "PRODUCTION SCHEDULE REPORT" in response.text

    def test_download_pdf(self, scheduled_client):
        """The PDF download is a PDF document."""
        response = scheduled_client.get("/api/download/pdf")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    def test_download_excel(self, scheduled_client):
        """The Excel download is an xlsx workbook."""
        response = scheduled_client.get("/api/download/excel")

        assert response.status_code == 200
        # xlsx files are zip archives
        assert response.content.startswith(b"PK")
