"""
Suite execution endpoints.
"""

import base64
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from translit_probe.cases import bundled_cases, select_cases
from translit_probe.config import settings
from translit_probe.core.browser import BrowserOptions, BrowserType
from translit_probe.core.runner import SuiteResult, SuiteRunner
from translit_probe.schemas.execution import RunRequest, RunResponse

router = APIRouter()

# In-memory run history (results are not persisted)
_run_history: dict[str, dict[str, Any]] = {}
_screenshots: dict[tuple[str, str], str] = {}

RunnerFactory = Callable[[RunRequest], SuiteRunner]


def build_runner(request: RunRequest) -> SuiteRunner:
    """Create a runner configured from settings plus request overrides."""
    browser_options = BrowserOptions.from_settings(settings)
    browser_options.browser_type = BrowserType(request.browser)
    browser_options.headless = request.headless

    return SuiteRunner(
        browser_options=browser_options,
        target_url=request.target_url,
        concurrency=request.concurrency,
        screenshot_on_failure=request.screenshot_on_failure,
    )


def get_runner_factory() -> RunnerFactory:
    return build_runner


def _store(suite: SuiteResult) -> dict[str, Any]:
    data = suite.to_dict()
    _run_history[suite.run_id] = data
    for result in suite.results:
        if result.screenshot_base64:
            _screenshots[(suite.run_id, result.case_id)] = result.screenshot_base64
    return data


@router.post("/run", response_model=RunResponse)
async def run_cases(
    request: RunRequest,
    runner_factory: RunnerFactory = Depends(get_runner_factory),
):
    """
    Run cases and return a per-scenario summary.

    Inline ``cases`` take precedence over the bundled catalogue; ``case_ids``
    and ``category`` filter whichever set is used.
    """
    source = request.cases if request.cases is not None else bundled_cases()
    try:
        cases = select_cases(source, category=request.category, ids=request.case_ids)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))

    if not cases:
        raise HTTPException(status_code=400, detail="No cases selected")

    runner = runner_factory(request)
    suite = await runner.run(cases)

    return _store(suite)


@router.get("/history", response_model=list[RunResponse])
async def list_runs(
    limit: int = 20,
):
    """
    Get run history, newest first.
    """
    runs = list(_run_history.values())
    runs.sort(key=lambda x: x["started_at"], reverse=True)
    return runs[:limit]


@router.get("/{run_id}", response_model=RunResponse)
async def get_run(run_id: str):
    """
    Get details of a specific run.
    """
    if run_id not in _run_history:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return _run_history[run_id]


@router.get("/{run_id}/screenshot/{case_id}")
async def get_failure_screenshot(run_id: str, case_id: str):
    """
    Get the page screenshot captured when a scenario failed.
    """
    screenshot = _screenshots.get((run_id, case_id))
    if screenshot is None:
        raise HTTPException(
            status_code=404,
            detail=f"No screenshot for case {case_id} in run {run_id}",
        )
    return Response(content=base64.b64decode(screenshot), media_type="image/png")
