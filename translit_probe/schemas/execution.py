"""
Pydantic schemas for execution API endpoints.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from translit_probe.schemas.case import CaseCategory, TransliterationCase


class RunRequest(BaseModel):
    """Request to run cases against the target page."""

    case_ids: list[str] | None = Field(None, description="Bundled case ids to run")
    category: CaseCategory | None = Field(None, description="Only run this category")
    cases: list[TransliterationCase] | None = Field(
        None, description="Inline cases, run instead of the bundled catalogue"
    )
    target_url: str | None = Field(None, description="Override the configured target page")
    browser: str = Field(default="chromium", description="Browser type")
    headless: bool = Field(default=True, description="Run in headless mode")
    concurrency: int = Field(default=1, ge=1, le=8, description="Scenarios run at once")
    screenshot_on_failure: bool = Field(default=True, description="Capture failed pages")

    model_config = {"json_schema_extra": {"example": {
        "case_ids": ["Pos_Fun_0001", "Neg_Fun_0025", "Pos_UI_0035"],
        "browser": "chromium",
        "headless": True,
        "concurrency": 1
    }}}


class ScenarioResultSchema(BaseModel):
    """Result of a single scenario."""

    case_id: str
    case_name: str
    category: CaseCategory
    status: str
    reason: str | None = None
    error_message: str | None = None
    state: str | None = None
    duration_ms: float
    input: str
    expected: str
    raw_output: str | None = None
    normalized_output: str | None = None
    input_strategy: str | None = None
    output_strategy: str | None = None
    match: str | None = None
    has_screenshot: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class RunResponse(BaseModel):
    """Summary of a suite run."""

    run_id: str
    target_url: str
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float
    passed: int
    failed: int
    errored: int
    total: int
    results: list[ScenarioResultSchema]
