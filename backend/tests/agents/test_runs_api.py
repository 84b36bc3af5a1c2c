"""
API tests for the runs router

Drives the FastAPI app through TestClient with the run service swapped for
one backed by a scripted generation service and a throwaway database.
"""
import json

import pytest
from fastapi.testclient import TestClient

from main import app
from routers.runs import get_run_service


FORM_PLAN = json.dumps([
    {"id": "task-1", "description": "Text input for the user name", "type": "form-item-input-text"},
    {"id": "task-2", "description": "Assemble the form page", "type": "form-assembly"},
])
INPUT_FRAGMENT = '{"type": "input-text", "name": "username"}'
FORM_FRAGMENT = '{"type": "form", "body": [{"type": "input-text", "name": "username"}]}'
PAGE = {"type": "page", "body": {"type": "form"}}


@pytest.fixture
def client(run_service):
    app.dependency_overrides[get_run_service] = lambda: run_service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestRunsAPI:
    """Tests for /api/runs"""

    def test_create_run(self, client, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))

        response = client.post("/api/runs", json={"requirement": "A single text field form"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "completed"
        assert body["artifact"] == PAGE
        assert body["steps"] == 5
        assert body["tasks"][0]["status"] == "completed"
        assert "dataDependencies" in body["tasks"][0]
        assert body["executionLog"][0]["type"] == "task_start"

    def test_create_run_with_data(self, client, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))

        response = client.post(
            "/api/runs",
            json={"requirement": "A profile form", "structuredData": {"content": {"username": "ada"}}},
        )

        assert response.json()["artifact"]["data"] == {"username": "ada"}

    def test_empty_requirement_rejected(self, client, generation):
        response = client.post("/api/runs", json={"requirement": ""})
        assert response.status_code == 422
        assert generation.calls == 0

    def test_get_run(self, client, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        run_id = client.post("/api/runs", json={"requirement": "A form"}).json()["runId"]

        response = client.get(f"/api/runs/{run_id}")

        assert response.status_code == 200
        assert response.json()["artifact"] == PAGE

    def test_malformed_structured_data_rejected(self, client, generation):
        response = client.post(
            "/api/runs",
            json={"requirement": "A form", "structuredData": {"content": {"a": 1}, "schema": "x"}},
        )

        assert response.status_code == 422
        assert "structuredData" in response.json()["detail"]
        assert generation.calls == 0

    def test_get_unknown_run(self, client):
        assert client.get("/api/runs/missing").status_code == 404

    def test_resume_unknown_run(self, client):
        assert client.post("/api/runs/missing/resume").status_code == 404

    def test_retry(self, client, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        run_id = client.post("/api/runs", json={"requirement": "A form"}).json()["runId"]

        generation.push('{"type": "input-text", "name": "nickname"}', '{"type": "page", "body": []}')
        response = client.post(f"/api/runs/{run_id}/retry", json={"taskIndices": [0]})

        assert response.status_code == 200
        assert response.json()["tasks"][0]["result"]["name"] == "nickname"

    def test_retry_out_of_range(self, client, generation):
        generation.push(FORM_PLAN, INPUT_FRAGMENT, FORM_FRAGMENT, json.dumps(PAGE))
        run_id = client.post("/api/runs", json={"requirement": "A form"}).json()["runId"]

        response = client.post(f"/api/runs/{run_id}/retry", json={"taskIndices": [9]})

        assert response.status_code == 400

    def test_retry_unknown_run(self, client):
        assert client.post("/api/runs/missing/retry", json={"taskIndices": [0]}).status_code == 404


class TestServiceEndpoints:
    """Tests for root and health endpoints"""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["endpoints"]["runs"] == "/api/runs"
