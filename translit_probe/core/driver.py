"""
Interaction Driver

Runs one transliteration case against one page:

    init -> input_resolved -> output_resolved -> filled -> settled
         -> extracted -> asserted

Any failure ends the scenario with a ``ScenarioFailure`` stamped with the
state reached. The driver owns its timings; nothing is read from globals,
so drivers on separate pages can run concurrently.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable

import structlog
from playwright.async_api import Error as PlaywrightError, Page

from translit_probe.config import Settings, settings as default_settings
from translit_probe.core.assertions import (
    check_cleared,
    check_negative,
    check_not_empty,
    check_positive,
)
from translit_probe.core.errors import (
    AssertionMismatch,
    LocatorError,
    OutputTimeoutError,
    ScenarioFailure,
)
from translit_probe.core.extractor import TEXT_INPUT_TAGS, ContentExtractor, ExtractionResult
from translit_probe.core.locator import ElementRef, LocatorResolver
from translit_probe.core.script import SINHALA, ScriptProfile
from translit_probe.schemas.case import CaseCategory, TransliterationCase

logger = structlog.get_logger()

TRIGGER_SELECTOR = (
    'button:has-text("Translate"), button:has-text("🔄"), [aria-label*="translate" i]'
)
CLEAR_SELECTOR = 'button:has-text("Clear"), button:has-text("🗑️"), [aria-label*="clear" i]'
PROBE_TEXT = "test"


class ScenarioState(str, Enum):
    """Driver progress through a scenario."""

    INIT = "init"
    INPUT_RESOLVED = "input_resolved"
    OUTPUT_RESOLVED = "output_resolved"
    FILLED = "filled"
    SETTLED = "settled"
    EXTRACTED = "extracted"
    ASSERTED = "asserted"


@dataclass(frozen=True)
class DriverTimings:
    """Waits and tolerances for one scenario, in milliseconds where timed."""

    strategy_timeout_ms: int = 3000
    output_timeout_ms: int = 10000
    settle_delay_ms: int = 500
    pre_fill_delay_ms: int = 500
    probe_delay_ms: int = 1000
    negative_settle_ms: int = 2000
    clear_window_ms: int = 1500
    poll_interval_ms: int = 100
    read_timeout_ms: int = 1000
    prefix_length: int = 5
    residual_tolerance: int = 20

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "DriverTimings":
        config = config or default_settings
        return cls(
            strategy_timeout_ms=config.strategy_timeout_ms,
            output_timeout_ms=config.output_timeout_ms,
            settle_delay_ms=config.settle_delay_ms,
            pre_fill_delay_ms=config.pre_fill_delay_ms,
            probe_delay_ms=config.probe_delay_ms,
            negative_settle_ms=config.negative_settle_ms,
            clear_window_ms=config.clear_window_ms,
            poll_interval_ms=config.poll_interval_ms,
            read_timeout_ms=config.read_timeout_ms,
            prefix_length=config.prefix_length,
            residual_tolerance=config.residual_tolerance,
        )


@dataclass
class ScenarioOutcome:
    """What a passing scenario observed."""

    case_id: str
    category: CaseCategory
    state: ScenarioState
    output: ExtractionResult
    input_strategy: str | None = None
    output_strategy: str | None = None
    match: str | None = None
    residual: str | None = None


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    timeout_ms: int,
    interval_ms: int = 100,
) -> bool:
    """
    Await ``predicate`` until it is true or ``timeout_ms`` elapses.

    A predicate call still pending at the deadline is cancelled.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    while True:
        remaining = max(deadline - loop.time(), 0.001)
        try:
            if await asyncio.wait_for(predicate(), timeout=remaining):
                return True
        except asyncio.TimeoutError:
            return False
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(interval_ms / 1000)


class InteractionDriver:
    """
    Fill, wait, extract and assert for a single case on a borrowed page.

    Usage:
        driver = InteractionDriver(page)
        outcome = await driver.run(case)
    """

    def __init__(
        self,
        page: Page,
        resolver: LocatorResolver | None = None,
        extractor: ContentExtractor | None = None,
        timings: DriverTimings | None = None,
        profile: ScriptProfile = SINHALA,
    ):
        self.page = page
        self.profile = profile
        self.timings = timings or DriverTimings()
        self.resolver = resolver or LocatorResolver(
            page, profile, strategy_timeout_ms=self.timings.strategy_timeout_ms
        )
        self.extractor = extractor or ContentExtractor(
            profile, read_timeout_ms=self.timings.read_timeout_ms
        )
        self.state = ScenarioState.INIT
        self.input_ref: ElementRef | None = None
        self.output_ref: ElementRef | None = None
        self.last_extraction: ExtractionResult | None = None

    async def run(self, case: TransliterationCase) -> ScenarioOutcome:
        """
        Execute the scenario state machine for ``case``.

        Raises:
            LocatorError: input or output control could not be resolved
            OutputTimeoutError: output did not appear within the timeout
            AssertionMismatch: extracted text fails the category predicate
        """
        log = logger.bind(case_id=case.id, category=case.category.value)
        log.info("scenario_started")

        try:
            input_ref = await self._resolve_input()
            output_ref = await self._resolve_output(input_ref)
            await self._fill(input_ref, case.input)
            await self._click_if_present(TRIGGER_SELECTOR, "trigger")

            if case.category == CaseCategory.NEGATIVE:
                # Malformed input may never produce script text; an empty
                # result is judged by the assertion, not reported as a timeout.
                await self._sleep(self.timings.negative_settle_ms)
                self.state = ScenarioState.SETTLED
            else:
                await self._settle(output_ref)

            extraction = await self._extract(output_ref)
            outcome = ScenarioOutcome(
                case_id=case.id,
                category=case.category,
                state=self.state,
                output=extraction,
                input_strategy=input_ref.strategy,
                output_strategy=output_ref.strategy,
            )

            match case.category:
                case CaseCategory.POSITIVE:
                    outcome.match = check_positive(
                        extraction.text, case.expected, self.timings.prefix_length
                    )
                case CaseCategory.NEGATIVE:
                    check_negative(extraction.text, case.input)
                case CaseCategory.UI:
                    outcome.residual = await self._assert_clears(input_ref, output_ref)

            self.state = ScenarioState.ASSERTED
            outcome.state = self.state
            log.info("scenario_passed", output=extraction.text, match=outcome.match)
            return outcome

        except ScenarioFailure as failure:
            self._annotate(failure)
            log.warning(
                "scenario_failed",
                reason=failure.reason.value,
                state=failure.state,
                error=failure.message,
            )
            raise

    async def _resolve_input(self) -> ElementRef:
        ref = await self.resolver.resolve_input()
        try:
            await ref.locator.wait_for(state="visible", timeout=self.timings.output_timeout_ms)
        except PlaywrightError as e:
            raise LocatorError(
                f"Input control '{ref.selector}' never became visible: {e}",
                element_name="input",
                tried_strategies=[ref.strategy],
                page_url=self.page.url,
            ) from e

        self.input_ref = ref
        self.state = ScenarioState.INPUT_RESOLVED
        return ref

    async def _resolve_output(self, input_ref: ElementRef) -> ElementRef:
        """Resolve the output; pages that render it lazily get a probe value first."""
        try:
            ref = await self.resolver.resolve_output(input_ref)
        except LocatorError:
            logger.info("output_probe", probe=PROBE_TEXT)
            await self._write(input_ref, PROBE_TEXT)
            await self._sleep(self.timings.probe_delay_ms)
            ref = await self.resolver.resolve_output(input_ref)

        self.output_ref = ref
        self.state = ScenarioState.OUTPUT_RESOLVED
        return ref

    async def _fill(self, input_ref: ElementRef, text: str) -> None:
        # The page does not reset its controls; clear before every write.
        await self._write(input_ref, "")
        await self._sleep(self.timings.pre_fill_delay_ms)
        await self._write(input_ref, text)
        self.state = ScenarioState.FILLED

    async def _write(self, input_ref: ElementRef, text: str) -> None:
        try:
            if text:
                await input_ref.locator.fill(text)
            else:
                await input_ref.locator.clear()
        except PlaywrightError as e:
            raise LocatorError(
                f"Input control '{input_ref.selector}' became unavailable: {e}",
                element_name="input",
                tried_strategies=[input_ref.strategy],
                page_url=self.page.url,
            ) from e

    async def _click_if_present(self, selector: str, name: str) -> bool:
        """Click an optional control when it is visible and enabled."""
        control = self.page.locator(selector).first
        try:
            if await control.is_visible() and await control.is_enabled():
                await control.click()
                logger.debug("control_clicked", control=name)
                return True
        except PlaywrightError as e:
            logger.debug("control_unavailable", control=name, error=str(e))
        return False

    async def _settle(self, output_ref: ElementRef) -> None:
        """
        Wait for non-empty output, then one fixed settle delay.

        Each read is capped by what is left of ``output_timeout_ms``, so a
        vanished element cannot hold the poll for the page default timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timings.output_timeout_ms / 1000

        def read_timeout() -> int:
            remaining_ms = int((deadline - loop.time()) * 1000)
            return max(1, min(self.timings.read_timeout_ms, remaining_ms))

        tag = output_ref.tag or await self._tag_of(output_ref, read_timeout())
        observed = ""

        async def has_output() -> bool:
            nonlocal observed
            try:
                if tag in TEXT_INPUT_TAGS:
                    observed = await output_ref.locator.input_value(timeout=read_timeout())
                    return bool(observed.strip())
                observed = await output_ref.locator.text_content(timeout=read_timeout()) or ""
                return self.profile.contains(observed)
            except PlaywrightError:
                return False

        remaining_ms = max(0, int((deadline - loop.time()) * 1000))
        appeared = await poll_until(has_output, remaining_ms, self.timings.poll_interval_ms)
        if not appeared:
            raise OutputTimeoutError(
                f"Output did not update within {self.timings.output_timeout_ms} ms",
                timeout_ms=self.timings.output_timeout_ms,
                last_observed=observed,
            )

        await self._sleep(self.timings.settle_delay_ms)
        self.state = ScenarioState.SETTLED

    async def _extract(self, output_ref: ElementRef) -> ExtractionResult:
        extraction = await self.extractor.extract_detailed(output_ref)
        self.last_extraction = extraction
        self.state = ScenarioState.EXTRACTED
        return extraction

    async def _assert_clears(self, input_ref: ElementRef, output_ref: ElementRef) -> str:
        """Clearing the input must drive the output back to near-empty."""
        check_not_empty(self.last_extraction.text if self.last_extraction else "")

        await self._write(input_ref, "")
        await self._click_if_present(CLEAR_SELECTOR, "clear")
        await self._sleep(self.timings.clear_window_ms)

        after = await self._extract(output_ref)
        return check_cleared(after.text, self.timings.residual_tolerance, self.profile)

    async def _tag_of(self, ref: ElementRef, timeout_ms: int) -> str:
        try:
            return await ref.locator.evaluate(
                "el => el.tagName.toLowerCase()", timeout=timeout_ms
            )
        except PlaywrightError:
            return ""

    async def _sleep(self, ms: int) -> None:
        if ms > 0:
            await asyncio.sleep(ms / 1000)

    def _annotate(self, failure: ScenarioFailure) -> None:
        """Stamp the failure with the reached state and the last extraction."""
        if failure.state is None:
            failure.state = self.state.value
        if isinstance(failure, AssertionMismatch) and failure.raw is None and self.last_extraction:
            failure.raw = self.last_extraction.raw
            failure.details["raw"] = failure.raw
