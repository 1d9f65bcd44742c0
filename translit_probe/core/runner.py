"""
Suite Runner

This module orchestrates a run over many cases:
1. Opens one browser session for the run
2. Gives every case its own page and its own InteractionDriver
3. Converts each scenario's outcome or failure into a ScenarioResult
4. Aggregates results into a SuiteResult

A failing scenario never aborts its siblings.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable

import structlog
from playwright.async_api import Page

from translit_probe.config import Settings, settings as default_settings
from translit_probe.core.browser import BrowserOptions, BrowserSession, capture_screenshot
from translit_probe.core.driver import DriverTimings, InteractionDriver
from translit_probe.core.errors import AssertionMismatch, FailureReason, ScenarioFailure
from translit_probe.core.script import SINHALA, ScriptProfile
from translit_probe.schemas.case import TransliterationCase

logger = structlog.get_logger()


class ExecutionStatus(str, Enum):
    """Scenario execution status."""

    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class ScenarioResult:
    """Result of one case run against its own page."""

    case_id: str
    case_name: str
    category: str
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float = 0
    reason: FailureReason | None = None
    error_message: str | None = None
    state: str | None = None
    input_text: str = ""
    expected: str = ""
    raw_output: str | None = None
    normalized_output: str | None = None
    input_strategy: str | None = None
    output_strategy: str | None = None
    match: str | None = None
    screenshot_base64: str | None = None
    page_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return self.status == ExecutionStatus.PASSED

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "case_name": self.case_name,
            "category": self.category,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "error_message": self.error_message,
            "state": self.state,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "input": self.input_text,
            "expected": self.expected,
            "raw_output": self.raw_output,
            "normalized_output": self.normalized_output,
            "input_strategy": self.input_strategy,
            "output_strategy": self.output_strategy,
            "match": self.match,
            "has_screenshot": self.screenshot_base64 is not None,
            "page_url": self.page_url,
            "metadata": self.metadata,
        }


@dataclass
class SuiteResult:
    """Result of a run over a list of cases."""

    run_id: str
    target_url: str
    started_at: datetime
    completed_at: datetime | None = None
    duration_ms: float = 0
    results: list[ScenarioResult] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.PASSED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.FAILED)

    @property
    def errored(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.ERROR)

    @property
    def total(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "target_url": self.target_url,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "passed": self.passed,
            "failed": self.failed,
            "errored": self.errored,
            "total": self.total,
            "results": [r.to_dict() for r in self.results],
        }


class SuiteRunner:
    """
    Runs cases, one isolated page per case.

    Usage:
        runner = SuiteRunner()
        suite = await runner.run(bundled_cases())
    """

    def __init__(
        self,
        browser_options: BrowserOptions | None = None,
        target_url: str | None = None,
        timings: DriverTimings | None = None,
        concurrency: int | None = None,
        scenario_timeout_ms: int | None = None,
        screenshot_on_failure: bool | None = None,
        on_result: Callable[[ScenarioResult], None] | None = None,
        profile: ScriptProfile = SINHALA,
        config: Settings | None = None,
        session_factory: Callable[[BrowserOptions], BrowserSession] = BrowserSession,
    ):
        """
        Initialize the runner.

        Args:
            browser_options: Browser configuration
            target_url: Page under test
            timings: Scenario waits and tolerances
            concurrency: Scenarios running at once (each on its own page)
            scenario_timeout_ms: Upper bound for one whole scenario
            screenshot_on_failure: Attach a screenshot to failed results
            on_result: Callback for real-time scenario updates
            profile: Target script
        """
        config = config or default_settings
        self.browser_options = browser_options or BrowserOptions.from_settings(config)
        self.target_url = target_url or config.target_url
        self.timings = timings or DriverTimings.from_settings(config)
        self.concurrency = max(1, concurrency or config.suite_concurrency)
        self.scenario_timeout_ms = (
            scenario_timeout_ms if scenario_timeout_ms is not None else config.scenario_timeout_ms
        )
        self.screenshot_on_failure = (
            screenshot_on_failure
            if screenshot_on_failure is not None
            else config.screenshot_on_failure
        )
        self.on_result = on_result
        self.profile = profile
        self.session_factory = session_factory

    def make_driver(self, page: Page) -> InteractionDriver:
        return InteractionDriver(page, timings=self.timings, profile=self.profile)

    async def run(self, cases: Iterable[TransliterationCase]) -> SuiteResult:
        """
        Run every case; results keep the order of ``cases``.

        Returns:
            SuiteResult with one ScenarioResult per case
        """
        cases = list(cases)
        suite = SuiteResult(
            run_id=str(uuid.uuid4()),
            target_url=self.target_url,
            started_at=datetime.utcnow(),
        )

        log = logger.bind(run_id=suite.run_id)
        log.info("suite_started", cases=len(cases), concurrency=self.concurrency)

        semaphore = asyncio.Semaphore(self.concurrency)

        async with self.session_factory(self.browser_options) as session:

            async def bounded(case: TransliterationCase) -> ScenarioResult:
                async with semaphore:
                    return await self.run_case(session, case)

            suite.results = list(await asyncio.gather(*(bounded(case) for case in cases)))

        suite.completed_at = datetime.utcnow()
        suite.duration_ms = (suite.completed_at - suite.started_at).total_seconds() * 1000

        log.info(
            "suite_completed",
            passed=suite.passed,
            failed=suite.failed,
            errored=suite.errored,
            duration_ms=round(suite.duration_ms, 2),
        )
        return suite

    async def run_case(
        self, session: BrowserSession, case: TransliterationCase
    ) -> ScenarioResult:
        """Run one case on a fresh page. Never raises for scenario failures."""
        start = time.time()
        log = logger.bind(case_id=case.id)

        result = ScenarioResult(
            case_id=case.id,
            case_name=case.name,
            category=case.category.value,
            status=ExecutionStatus.RUNNING,
            started_at=datetime.utcnow(),
            input_text=case.input,
            expected=case.expected,
            metadata={"size_class": case.size_class.value},
        )

        try:
            async with session.scenario_page(self.target_url) as page:
                driver = self.make_driver(page)
                try:
                    outcome = await self._bounded(driver.run(case))
                    result.status = ExecutionStatus.PASSED
                    result.state = outcome.state.value
                    result.raw_output = outcome.output.raw
                    result.normalized_output = outcome.output.text
                    result.match = outcome.match
                    if outcome.residual is not None:
                        result.metadata["residual"] = outcome.residual

                except ScenarioFailure as failure:
                    self._record_failure(result, failure, driver)
                    await self._attach_screenshot(result, page)

                except asyncio.TimeoutError:
                    result.status = ExecutionStatus.FAILED
                    result.reason = FailureReason.TIMEOUT
                    result.state = driver.state.value
                    result.error_message = (
                        f"Scenario exceeded {self.scenario_timeout_ms} ms"
                    )
                    await self._attach_screenshot(result, page)

                if driver.input_ref:
                    result.input_strategy = driver.input_ref.strategy
                if driver.output_ref:
                    result.output_strategy = driver.output_ref.strategy
                result.metadata["locations"] = driver.resolver.get_location_history()
                result.page_url = page.url

        except Exception as e:
            log.exception("scenario_error", error=str(e))
            result.status = ExecutionStatus.ERROR
            result.reason = FailureReason.ERROR
            result.error_message = str(e)

        result.completed_at = datetime.utcnow()
        result.duration_ms = (time.time() - start) * 1000

        log.info(
            "scenario_completed",
            status=result.status.value,
            reason=result.reason.value if result.reason else None,
            duration_ms=round(result.duration_ms, 2),
        )

        if self.on_result:
            self.on_result(result)
        return result

    async def _bounded(self, coro):
        if self.scenario_timeout_ms:
            return await asyncio.wait_for(coro, timeout=self.scenario_timeout_ms / 1000)
        return await coro

    def _record_failure(
        self,
        result: ScenarioResult,
        failure: ScenarioFailure,
        driver: InteractionDriver,
    ) -> None:
        result.status = ExecutionStatus.FAILED
        result.reason = failure.reason
        result.error_message = failure.message
        result.state = failure.state
        result.metadata["failure"] = {
            k: v for k, v in failure.details.items() if v is not None
        }

        if isinstance(failure, AssertionMismatch):
            result.raw_output = failure.raw
            result.normalized_output = failure.actual
        elif driver.last_extraction is not None:
            result.raw_output = driver.last_extraction.raw
            result.normalized_output = driver.last_extraction.text

    async def _attach_screenshot(self, result: ScenarioResult, page: Page) -> None:
        if self.screenshot_on_failure:
            result.screenshot_base64 = await capture_screenshot(page)


async def run_suite(
    cases: Iterable[TransliterationCase],
    config: Settings | None = None,
    **kwargs: Any,
) -> SuiteResult:
    """
    Convenience function to run cases with settings-derived defaults.

    Args:
        cases: Cases to run
        config: Settings override

    Returns:
        SuiteResult with one entry per case
    """
    runner = SuiteRunner(config=config, **kwargs)
    return await runner.run(cases)
