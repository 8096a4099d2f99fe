"""
Tests for API routes.

Verifies that routes exist, validate their input, and return the engine's
results. Each test gets a fresh engine through a dependency override so
config updates don't leak between tests.
"""

import pytest
from datetime import date
from fastapi.testclient import TestClient

from mailtriage.main import app
from mailtriage.api.routes_processing import get_engine
from mailtriage.config import DEFAULT_PATTERN_CATALOG
from mailtriage.processing.catalog import PatternCatalog
from mailtriage.processing.engine import ProcessingEngine
from mailtriage.processing.schemas import ProcessingConfig
from mailtriage.logging.config import setup_logging


WORK_EMAIL = {
    "subject": "Action Required: Q4 Reports Due Friday",
    "body": (
        "Hi Team,\n\n"
        "Please complete the following by Friday EOD:\n\n"
        "1. Submit your Q4 performance report\n"
        "2. Review the attached budget proposal\n"
        "3. Schedule your 1-on-1 meeting for next week\n\n"
        "Let me know if you have any questions.\n\n"
        "Thanks,\nSarah"
    ),
    "sender": "manager@company.com",
}


@pytest.fixture(autouse=True)
def init_logging():
    setup_logging("debug")


@pytest.fixture
def engine() -> ProcessingEngine:
    return ProcessingEngine(
        config=ProcessingConfig(),
        catalog=PatternCatalog.load(str(DEFAULT_PATTERN_CATALOG)),
        today=lambda: date(2026, 10, 17),
    )


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_ready(self, client):
        resp = client.get("/ready")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ready"

    def test_request_id_header(self, client):
        resp = client.get("/health")
        assert "X-Request-ID" in resp.headers


class TestSingleEngineRoutes:
    def test_classify(self, client):
        resp = client.post("/api/processing/classify", json=WORK_EMAIL)
        assert resp.status_code == 200
        data = resp.json()
        assert data["category"] == "work"
        assert "todo" in data["subcategories"]
        assert 0.0 <= data["confidence"] <= 1.0

    def test_todos(self, client):
        resp = client.post("/api/processing/todos", json=WORK_EMAIL)
        assert resp.status_code == 200
        data = resp.json()
        assert data["has_todos"] is True
        assert len(data["todos"]) == 5
        assert data["todos"][1]["due_date"] == "2026-10-23"
        assert data["todos"][0]["priority"] == "high"

    def test_newsletter(self, client):
        resp = client.post(
            "/api/processing/newsletter",
            json={
                "subject": "Hello",
                "body": '<a href="https://x.com/unsubscribe?x=1">Unsubscribe</a>',
                "sender": "a@x.com",
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["is_newsletter"] is True
        assert data["unsubscribe_links"] == ["https://x.com/unsubscribe?x=1"]

    def test_missing_fields_default_to_empty(self, client):
        resp = client.post("/api/processing/classify", json={})
        assert resp.status_code == 200
        assert resp.json()["category"] == "other"


class TestProcessRoutes:
    def test_process(self, client):
        resp = client.post("/api/processing/process", json={"id": "msg-1", **WORK_EMAIL})
        assert resp.status_code == 200
        data = resp.json()
        assert data["email_id"] == "msg-1"
        assert data["success"] is True
        assert data["classification"]["category"] == "work"
        assert data["metadata"]["tokens_used"] > 0

    def test_process_requires_id(self, client):
        resp = client.post("/api/processing/process", json=WORK_EMAIL)
        assert resp.status_code == 422

    def test_batch(self, client):
        emails = [{"id": f"msg-{i}", **WORK_EMAIL} for i in range(12)]
        resp = client.post("/api/processing/batch", json={"emails": emails})
        assert resp.status_code == 200
        assert [r["email_id"] for r in resp.json()] == [e["id"] for e in emails]

    def test_empty_batch_rejected(self, client):
        resp = client.post("/api/processing/batch", json={"emails": []})
        assert resp.status_code == 422


class TestConfigRoutes:
    def test_get_config(self, client):
        resp = client.get("/api/processing/config")
        assert resp.status_code == 200
        assert resp.json() == {
            "enable_categorization": True,
            "enable_todo_extraction": True,
            "enable_newsletter_detection": True,
            "max_tokens_per_email": 4000,
            "confidence_threshold": 0.5,
            "batch_size": 10,
        }

    def test_patch_config(self, client, engine):
        resp = client.patch("/api/processing/config", json={"confidence_threshold": 0.7})
        assert resp.status_code == 200
        assert resp.json()["confidence_threshold"] == 0.7
        assert engine.get_config().confidence_threshold == 0.7

    def test_patch_out_of_range_rejected(self, client, engine):
        resp = client.patch("/api/processing/config", json={"batch_size": 500})
        assert resp.status_code == 422
        assert engine.get_config().batch_size == 10
