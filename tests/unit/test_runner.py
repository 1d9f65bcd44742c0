import asyncio
from types import SimpleNamespace

from translit_probe.core.browser import BrowserOptions
from translit_probe.core.driver import InteractionDriver, ScenarioOutcome, ScenarioState
from translit_probe.core.errors import AssertionMismatch, FailureReason, OutputTimeoutError
from translit_probe.core.extractor import ExtractionResult
from translit_probe.core.runner import ExecutionStatus, SuiteRunner
from translit_probe.schemas.case import CaseCategory, TransliterationCase
from tests.fakes import FakeLocator, FakeSession, make_ref

HANG = object()


class ScriptedDriver:
    """Plays back a per-case outcome instead of driving a page."""

    def __init__(self, page, runner):
        self.page = page
        self.runner = runner
        self.state = ScenarioState.INIT
        self.input_ref = None
        self.output_ref = None
        self.last_extraction = None
        self.resolver = SimpleNamespace(get_location_history=lambda: [])

    async def run(self, case):
        action = self.runner.script[case.id]
        self.input_ref = make_ref(FakeLocator(), strategy="textarea")
        self.state = ScenarioState.INPUT_RESOLVED

        self.runner.active += 1
        self.runner.peak = max(self.runner.peak, self.runner.active)
        try:
            await asyncio.sleep(0.01)
            if action is HANG:
                await asyncio.sleep(10)
            if isinstance(action, BaseException):
                raise action
        finally:
            self.runner.active -= 1

        self.output_ref = make_ref(FakeLocator(), strategy="second_textarea")
        return ScenarioOutcome(
            case_id=case.id,
            category=case.category,
            state=ScenarioState.ASSERTED,
            output=ExtractionResult(text=action, raw=f" {action} "),
            match="exact",
        )


class ScriptedRunner(SuiteRunner):
    def __init__(self, script, **kwargs):
        kwargs.setdefault("target_url", "https://translit.test/")
        kwargs.setdefault("scenario_timeout_ms", 2000)
        super().__init__(browser_options=BrowserOptions(), session_factory=FakeSession, **kwargs)
        self.script = script
        self.active = 0
        self.peak = 0

    def make_driver(self, page):
        return ScriptedDriver(page, self)


def make_cases(*ids):
    return [
        TransliterationCase(
            id=case_id,
            name=f"case {case_id}",
            category=CaseCategory.POSITIVE,
            input="mama",
            expected="මම",
        )
        for case_id in ids
    ]


async def test_statuses_map_from_driver_outcomes():
    runner = ScriptedRunner(
        {
            "ok": "මම",
            "mismatch": AssertionMismatch(
                "Expected 'මම'", actual="ඔබ", expected="මම", raw="ඔබ", state="extracted"
            ),
            "slow": OutputTimeoutError("Output did not update", timeout_ms=10, state="filled"),
            "crash": RuntimeError("browser crashed"),
        }
    )

    suite = await runner.run(make_cases("ok", "mismatch", "slow", "crash"))

    ok, mismatch, slow, crash = suite.results
    assert ok.status == ExecutionStatus.PASSED
    assert ok.normalized_output == "මම"
    assert ok.raw_output == " මම "
    assert ok.output_strategy == "second_textarea"

    assert mismatch.status == ExecutionStatus.FAILED
    assert mismatch.reason == FailureReason.ASSERTION_MISMATCH
    assert mismatch.state == "extracted"
    assert mismatch.normalized_output == "ඔබ"
    assert mismatch.metadata["failure"]["expected"] == "මම"

    assert slow.reason == FailureReason.TIMEOUT
    assert slow.state == "filled"

    assert crash.status == ExecutionStatus.ERROR
    assert crash.error_message == "browser crashed"

    assert (suite.passed, suite.failed, suite.errored, suite.total) == (1, 2, 1, 4)


async def test_failure_does_not_abort_siblings():
    runner = ScriptedRunner({"a": RuntimeError("boom"), "b": "මම", "c": "ඔබ"})

    suite = await runner.run(make_cases("a", "b", "c"))

    assert [r.case_id for r in suite.results] == ["a", "b", "c"]
    assert [r.status for r in suite.results] == [
        ExecutionStatus.ERROR,
        ExecutionStatus.PASSED,
        ExecutionStatus.PASSED,
    ]


async def test_each_case_gets_its_own_page():
    FakeSession.instances.clear()
    runner = ScriptedRunner({"a": "මම", "b": "ඔබ"})

    await runner.run(make_cases("a", "b"))

    session = FakeSession.instances[-1]
    assert len(session.pages) == 2
    assert session.pages[0] is not session.pages[1]


async def test_scenario_timeout_bounds_a_hung_case():
    runner = ScriptedRunner({"hung": HANG, "ok": "මම"}, scenario_timeout_ms=50)

    suite = await runner.run(make_cases("hung", "ok"))

    hung, ok = suite.results
    assert hung.status == ExecutionStatus.FAILED
    assert hung.reason == FailureReason.TIMEOUT
    assert hung.state == ScenarioState.INPUT_RESOLVED.value
    assert "50 ms" in hung.error_message
    assert ok.passed


async def test_concurrency_is_bounded():
    ids = [f"c{i}" for i in range(6)]

    serial = ScriptedRunner({i: "මම" for i in ids}, concurrency=1)
    await serial.run(make_cases(*ids))
    assert serial.peak == 1

    parallel = ScriptedRunner({i: "මම" for i in ids}, concurrency=3)
    suite = await parallel.run(make_cases(*ids))
    assert 1 < parallel.peak <= 3
    assert suite.passed == 6


async def test_on_result_called_per_scenario():
    seen = []
    runner = ScriptedRunner({"a": "මම", "b": RuntimeError("x")}, on_result=seen.append)

    await runner.run(make_cases("a", "b"))

    assert sorted(r.case_id for r in seen) == ["a", "b"]


async def test_screenshot_attached_only_to_failures():
    script = {"ok": "මම", "bad": OutputTimeoutError("late", timeout_ms=10)}

    suite = await ScriptedRunner(script).run(make_cases("ok", "bad"))
    ok, bad = suite.results
    assert ok.screenshot_base64 is None
    assert bad.screenshot_base64 is not None
    assert bad.to_dict()["has_screenshot"] is True

    suite = await ScriptedRunner(script, screenshot_on_failure=False).run(make_cases("ok", "bad"))
    assert suite.results[1].screenshot_base64 is None


async def test_result_dict_shape():
    suite = await ScriptedRunner({"a": "මම"}).run(make_cases("a"))

    data = suite.to_dict()
    assert data["total"] == 1
    assert data["passed"] == 1
    result = data["results"][0]
    assert result["status"] == "passed"
    assert result["reason"] is None
    assert result["input"] == "mama"
    assert result["expected"] == "මම"
    assert result["normalized_output"] == "මම"
    assert result["metadata"]["size_class"] == "S"
    assert result["page_url"] == "https://translit.test/"


async def test_unresolvable_page_fails_with_locator_error(fast_timings):
    """The real driver on an empty page exhausts the input cascade."""
    runner = SuiteRunner(
        browser_options=BrowserOptions(),
        target_url="https://translit.test/",
        timings=fast_timings,
        session_factory=FakeSession,
    )

    suite = await runner.run(make_cases("empty"))

    result = suite.results[0]
    assert result.status == ExecutionStatus.FAILED
    assert result.reason == FailureReason.LOCATOR_ERROR
    assert result.state == ScenarioState.INIT.value
    assert result.metadata["failure"]["element_name"] == "input"
    assert result.metadata["locations"][-1]["success"] is False


def test_make_driver_uses_runner_timings(fast_timings, fake_page):
    runner = SuiteRunner(browser_options=BrowserOptions(), timings=fast_timings)

    driver = runner.make_driver(fake_page)

    assert isinstance(driver, InteractionDriver)
    assert driver.timings is fast_timings
    assert driver.resolver.strategy_timeout_ms == fast_timings.strategy_timeout_ms
