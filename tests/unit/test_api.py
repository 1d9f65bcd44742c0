import base64
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from translit_probe.api.routes.execution import get_runner_factory
from translit_probe.core.errors import FailureReason
from translit_probe.core.runner import ExecutionStatus, ScenarioResult, SuiteResult
from translit_probe.main import app

PNG = b"\x89PNG fake"


class StubRunner:
    """Passes positive cases, fails everything else with a screenshot."""

    requests = []

    def __init__(self, request):
        self.request = request
        StubRunner.requests.append(request)

    async def run(self, cases):
        suite = SuiteResult(
            run_id=f"run-{len(StubRunner.requests)}",
            target_url=self.request.target_url or "https://translit.test/",
            started_at=datetime.utcnow(),
        )
        for case in cases:
            result = ScenarioResult(
                case_id=case.id,
                case_name=case.name,
                category=case.category.value,
                status=ExecutionStatus.PASSED,
                started_at=datetime.utcnow(),
                input_text=case.input,
                expected=case.expected,
                normalized_output=case.expected,
            )
            if case.category.value != "positive":
                result.status = ExecutionStatus.FAILED
                result.reason = FailureReason.ASSERTION_MISMATCH
                result.state = "extracted"
                result.screenshot_base64 = base64.b64encode(PNG).decode("utf-8")
            suite.results.append(result)
        suite.completed_at = datetime.utcnow()
        return suite


@pytest.fixture
def client():
    app.dependency_overrides[get_runner_factory] = lambda: StubRunner
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_ready_reports_checks(client):
    body = client.get("/api/v1/health/ready").json()

    assert body["checks"]["cases_loaded"] is True
    assert body["checks"]["target_configured"] is True


def test_list_cases_by_category(client):
    response = client.get("/api/v1/cases", params={"category": "negative"})

    assert response.status_code == 200
    ids = [case["id"] for case in response.json()]
    assert len(ids) == 10
    assert ids[0] == "Neg_Fun_0025"


def test_list_cases_paging(client):
    body = client.get("/api/v1/cases", params={"skip": 34, "limit": 5}).json()

    assert [case["id"] for case in body] == ["Pos_UI_0035"]


def test_get_case(client):
    assert client.get("/api/v1/cases/Pos_Fun_0001").json()["input"] == "suba udhaeesanak"
    assert client.get("/api/v1/cases/Nope").status_code == 404


def test_run_selected_cases(client):
    response = client.post(
        "/api/v1/execution/run",
        json={"case_ids": ["Pos_Fun_0001", "Neg_Fun_0025"], "concurrency": 2},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["passed"] == 1
    assert body["failed"] == 1
    failed = body["results"][1]
    assert failed["case_id"] == "Neg_Fun_0025"
    assert failed["reason"] == "assertion_mismatch"
    assert failed["has_screenshot"] is True
    assert StubRunner.requests[-1].concurrency == 2


def test_run_is_kept_in_history_with_screenshot(client):
    run_id = client.post(
        "/api/v1/execution/run", json={"case_ids": ["Pos_UI_0035"]}
    ).json()["run_id"]

    assert client.get(f"/api/v1/execution/{run_id}").json()["run_id"] == run_id
    assert run_id in [run["run_id"] for run in client.get("/api/v1/execution/history").json()]

    screenshot = client.get(f"/api/v1/execution/{run_id}/screenshot/Pos_UI_0035")
    assert screenshot.status_code == 200
    assert screenshot.headers["content-type"] == "image/png"
    assert screenshot.content == PNG

    missing = client.get(f"/api/v1/execution/{run_id}/screenshot/Pos_Fun_0001")
    assert missing.status_code == 404


def test_run_inline_cases(client):
    response = client.post(
        "/api/v1/execution/run",
        json={
            "cases": [
                {"id": "Inline_1", "name": "inline", "category": "positive",
                 "input": "mama", "expected": "මම"}
            ],
            "target_url": "http://localhost:5173/",
        },
    )

    body = response.json()
    assert body["target_url"] == "http://localhost:5173/"
    assert body["results"][0]["normalized_output"] == "මම"


def test_run_unknown_case_id(client):
    response = client.post("/api/v1/execution/run", json={"case_ids": ["Nope_0001"]})

    assert response.status_code == 404
    assert "Nope_0001" in response.json()["detail"]


def test_run_empty_selection(client):
    response = client.post(
        "/api/v1/execution/run",
        json={"case_ids": ["Pos_Fun_0001"], "category": "ui"},
    )

    assert response.status_code == 400


def test_unknown_run(client):
    assert client.get("/api/v1/execution/missing-run").status_code == 404
