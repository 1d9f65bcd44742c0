"""
Resilient Element Locator

Locates the transliteration page's input and output controls without any
stable identifiers. Resolution is a prioritized list of independent
strategies tried in order, from "the author left semantic hints" down to
"detect the element by the target-script text it shows".

Design Philosophy:
- Each strategy is a small object with an ``attempt(page)`` coroutine that
  either yields an ``ElementRef`` or nothing
- A failing or slow strategy is just a miss; only exhaustion of the whole
  cascade raises ``LocatorError``
- Attempts are recorded so a failed scenario can show what was tried
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import structlog
from playwright.async_api import Locator, Page, TimeoutError as PlaywrightTimeout

from translit_probe.core.errors import LocatorError
from translit_probe.core.script import SINHALA, ScriptProfile

logger = structlog.get_logger()

CONTENT_TAGS = "div, span, p, pre"


class StrategyKind(str, Enum):
    """Strategy families, ordered from most to least specific."""

    SELECTOR = "selector"  # Semantic hints: ids, test hooks, placeholders
    TWO_BOX = "two_box"  # Classic translator with a second textarea
    SCRIPT_SCAN = "script_scan"  # First rendered element showing the script
    STRUCTURAL = "structural"  # Naming conventions, visible only
    LABEL_PROXIMITY = "label_proximity"  # Near the language label
    CONTENT_FILTER = "content_filter"  # Anything containing the script


@dataclass(frozen=True)
class ElementRef:
    """
    A resolved, re-query-able reference to a DOM node.

    ``selector`` describes how the node was found and is stable for a given
    DOM snapshot; ``locator`` is lazy and re-queries the live page on use.
    """

    strategy: str
    selector: str
    locator: Locator = field(compare=False, repr=False)
    tag: str | None = None


@dataclass
class LocatorResult:
    """Result of a cascade run."""

    success: bool
    ref: ElementRef | None = None
    strategy_used: str | None = None
    strategies_tried: list[str] = field(default_factory=list)
    error_message: str | None = None
    duration_ms: float = 0


def escape_attribute_value(value: str) -> str:
    """Escape a value for use inside a double-quoted CSS attribute selector."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


class ResolutionStrategy(ABC):
    """One attempt at finding an element."""

    kind: StrategyKind

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def attempt(self, page: Page) -> ElementRef | None:
        """Return a reference, or None when this strategy does not apply."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class SelectorStrategy(ResolutionStrategy):
    """First element matching a CSS selector, if any matches at all."""

    kind = StrategyKind.SELECTOR

    def __init__(self, selector: str, name: str | None = None):
        super().__init__(name or selector)
        self.selector = selector

    async def attempt(self, page: Page) -> ElementRef | None:
        locator = page.locator(self.selector).first
        if await locator.count() > 0:
            return ElementRef(self.name, self.selector, locator)
        return None


class TwoBoxStrategy(ResolutionStrategy):
    """The textarea that is not the input, when the page has two or more."""

    kind = StrategyKind.TWO_BOX

    def __init__(self, input_ref: ElementRef | None = None):
        super().__init__("second_textarea")
        self.input_ref = input_ref

    async def attempt(self, page: Page) -> ElementRef | None:
        textareas = page.locator("textarea")
        count = await textareas.count()
        if count < 2:
            return None

        if self.input_ref is None:
            return ElementRef(self.name, "textarea >> nth=1", textareas.nth(1), "textarea")

        input_handle = await self.input_ref.locator.element_handle()
        for index in range(count):
            candidate = textareas.nth(index)
            is_input = await candidate.evaluate("(el, other) => el === other", input_handle)
            if not is_input:
                return ElementRef(
                    self.name, f"textarea >> nth={index}", candidate, "textarea"
                )
        return None


_SCAN_SCRIPT = """
([pattern, maxLength]) => {
    const re = new RegExp(pattern);
    const nodes = document.querySelectorAll('div, span, p, pre, code, [contenteditable]');
    for (const el of nodes) {
        const text = el.textContent || '';
        if (re.test(text) && text.length < maxLength && el.offsetParent !== null) {
            const className = (el.getAttribute('class') || '').trim().split(/\\s+/)[0];
            return {tag: el.tagName.toLowerCase(), id: el.id || '', className: className || ''};
        }
    }
    return null;
}
"""


class ScriptScanStrategy(ResolutionStrategy):
    """
    Scan the live DOM for the first rendered element showing target-script
    text, then re-derive a reusable selector from its id or class.
    """

    kind = StrategyKind.SCRIPT_SCAN

    def __init__(self, profile: ScriptProfile, max_length: int = 10000):
        super().__init__("script_scan")
        self.profile = profile
        self.max_length = max_length

    async def attempt(self, page: Page) -> ElementRef | None:
        info = await page.evaluate(
            _SCAN_SCRIPT, [self.profile.js_char_class, self.max_length]
        )
        if not info:
            return None
        return self.selector_for(page, info)

    def selector_for(self, page: Page, info: dict) -> ElementRef:
        """Build a reference from the scanned element's tag, id and class."""
        tag = info["tag"]
        if info.get("id"):
            selector = f'[id="{escape_attribute_value(info["id"])}"]'
            return ElementRef(self.name, selector, page.locator(selector).first, tag)
        if info.get("className"):
            selector = f'{tag}[class~="{escape_attribute_value(info["className"])}"]'
            return ElementRef(self.name, selector, page.locator(selector).first, tag)

        locator = page.locator(tag).filter(has_text=self.profile.pattern).first
        return ElementRef(self.name, f"{tag} >> has-text={self.profile.char_class}", locator, tag)


class VisibleSelectorStrategy(SelectorStrategy):
    """Like ``SelectorStrategy`` but the first match must be visible."""

    kind = StrategyKind.STRUCTURAL

    async def attempt(self, page: Page) -> ElementRef | None:
        locator = page.locator(self.selector).first
        if await locator.count() > 0 and await locator.is_visible():
            return ElementRef(self.name, self.selector, locator)
        return None


class LabelProximityStrategy(ResolutionStrategy):
    """First visible content element under the language label's parent."""

    kind = StrategyKind.LABEL_PROXIMITY

    def __init__(self, profile: ScriptProfile, label_timeout_ms: int = 2000):
        super().__init__("label_proximity")
        self.profile = profile
        self.label_timeout_ms = label_timeout_ms

    async def attempt(self, page: Page) -> ElementRef | None:
        label = page.get_by_text(self.profile.label_pattern).first
        await label.wait_for(state="visible", timeout=self.label_timeout_ms)

        candidate = label.locator("..").locator(CONTENT_TAGS).first
        if await candidate.is_visible():
            selector = f"text=/{self.profile.name}/i >> .. >> {CONTENT_TAGS}"
            return ElementRef(self.name, selector, candidate)
        return None


class ContentFilterStrategy(ResolutionStrategy):
    """Any content element whose text contains the target script."""

    kind = StrategyKind.CONTENT_FILTER

    def __init__(self, profile: ScriptProfile):
        super().__init__("content_filter")
        self.profile = profile

    async def attempt(self, page: Page) -> ElementRef | None:
        locator = page.locator(CONTENT_TAGS).filter(has_text=self.profile.pattern).first
        if await locator.count() > 0:
            selector = f"{CONTENT_TAGS} >> has-text={self.profile.char_class}"
            return ElementRef(self.name, selector, locator)
        return None


class LocatorResolver:
    """
    Resolves the input and output controls of the transliteration page.

    Usage:
        resolver = LocatorResolver(page)
        input_ref = await resolver.resolve_input()
        output_ref = await resolver.resolve_output(input_ref)
    """

    # Most specific first: semantic hints, then structure as a last resort
    INPUT_SELECTORS = [
        'textarea[id*="input"]',
        'textarea[data-testid*="input"]',
        'textarea[placeholder*="input" i]',
        'textarea[placeholder*="singlish" i]',
        'textarea[placeholder*="enter" i]',
        'textarea[aria-label*="input" i]',
        'textarea[aria-label*="singlish" i]',
        "textarea:first-of-type",
        "textarea",
    ]

    OUTPUT_PATTERN_SELECTORS = [
        "div[contenteditable]",
        '[contenteditable="true"]',
        '[contenteditable="false"]',
        'div[id*="output" i]',
        'div[id*="result" i]',
        'div[id*="translation" i]',
        'div[class*="output" i]',
        'div[class*="result" i]',
        'div[class*="translation" i]',
        '[data-testid*="output" i]',
        '[data-testid*="result" i]',
        "pre",
        "code",
    ]

    def __init__(
        self,
        page: Page,
        profile: ScriptProfile = SINHALA,
        strategy_timeout_ms: int = 3000,
        label_timeout_ms: int = 2000,
        ready_delay_ms: int = 500,
    ):
        """
        Initialize the resolver.

        Args:
            page: Playwright Page borrowed for one scenario
            profile: Target script used by the content-based strategies
            strategy_timeout_ms: Time budget for each single strategy attempt
            label_timeout_ms: How long to wait for the language label
            ready_delay_ms: Pause before output resolution for late renders
        """
        self.page = page
        self.profile = profile
        self.strategy_timeout_ms = strategy_timeout_ms
        self.label_timeout_ms = label_timeout_ms
        self.ready_delay_ms = ready_delay_ms
        self._location_history: list[dict] = []

    def input_strategies(self) -> list[ResolutionStrategy]:
        return [SelectorStrategy(selector) for selector in self.INPUT_SELECTORS]

    def output_strategies(
        self, input_ref: ElementRef | None = None
    ) -> list[ResolutionStrategy]:
        strategies: list[ResolutionStrategy] = [
            TwoBoxStrategy(input_ref),
            ScriptScanStrategy(self.profile),
        ]
        strategies.extend(
            VisibleSelectorStrategy(selector) for selector in self.OUTPUT_PATTERN_SELECTORS
        )
        strategies.append(LabelProximityStrategy(self.profile, self.label_timeout_ms))
        strategies.append(ContentFilterStrategy(self.profile))
        return strategies

    async def resolve_input(self) -> ElementRef:
        """Resolve the editable input control or raise ``LocatorError``."""
        result = await self.find_element("input", self.input_strategies())
        return self._unwrap("input", result)

    async def resolve_output(self, input_ref: ElementRef | None = None) -> ElementRef:
        """Resolve the element showing the transliteration or raise ``LocatorError``."""
        try:
            await self.page.wait_for_load_state("domcontentloaded")
        except PlaywrightTimeout:
            logger.debug("dom_not_ready")
        await asyncio.sleep(self.ready_delay_ms / 1000)

        result = await self.find_element("output", self.output_strategies(input_ref))
        return self._unwrap("output", result)

    async def find_element(
        self,
        element_name: str,
        strategies: list[ResolutionStrategy],
    ) -> LocatorResult:
        """
        Try strategies in order until one yields a reference.

        Args:
            element_name: Name used in logs and errors
            strategies: Ordered cascade, most specific first

        Returns:
            LocatorResult with the reference or the list of strategies tried
        """
        start_time = time.time()
        strategies_tried: list[str] = []

        log = logger.bind(element=element_name)

        for strategy in strategies:
            strategies_tried.append(strategy.name)
            ref = await self._attempt(strategy, log)

            if ref is not None:
                duration_ms = (time.time() - start_time) * 1000
                self._record_success(element_name, strategy)

                log.info(
                    "element_found",
                    strategy=strategy.name,
                    kind=strategy.kind.value,
                    selector=ref.selector,
                    duration_ms=round(duration_ms, 2),
                )

                return LocatorResult(
                    success=True,
                    ref=ref,
                    strategy_used=strategy.name,
                    strategies_tried=strategies_tried,
                    duration_ms=duration_ms,
                )

        duration_ms = (time.time() - start_time) * 1000
        self._record_failure(element_name, strategies_tried)

        error_msg = (
            f"Cannot locate element '{element_name}' "
            f"after trying {len(strategies_tried)} strategies"
        )

        log.error(
            "element_not_found",
            strategies_tried=strategies_tried,
            duration_ms=round(duration_ms, 2),
        )

        return LocatorResult(
            success=False,
            strategies_tried=strategies_tried,
            error_message=error_msg,
            duration_ms=duration_ms,
        )

    async def _attempt(self, strategy: ResolutionStrategy, log) -> ElementRef | None:
        """Run one strategy within its time budget; any failure is a miss."""
        try:
            return await asyncio.wait_for(
                strategy.attempt(self.page),
                timeout=self.strategy_timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, PlaywrightTimeout):
            log.debug("strategy_timeout", strategy=strategy.name)
        except Exception as e:
            log.debug("strategy_error", strategy=strategy.name, error=str(e))
        return None

    def _unwrap(self, element_name: str, result: LocatorResult) -> ElementRef:
        if result.success and result.ref is not None:
            return result.ref
        raise LocatorError(
            result.error_message or f"Cannot locate element '{element_name}'",
            element_name=element_name,
            tried_strategies=result.strategies_tried,
            page_url=self.page.url,
        )

    def _record_success(self, element_name: str, strategy: ResolutionStrategy) -> None:
        self._location_history.append(
            {
                "element": element_name,
                "strategy": strategy.name,
                "kind": strategy.kind.value,
                "success": True,
                "timestamp": datetime.utcnow().isoformat(),
                "page_url": self.page.url,
            }
        )

    def _record_failure(self, element_name: str, tried_strategies: list[str]) -> None:
        self._location_history.append(
            {
                "element": element_name,
                "strategies_tried": list(tried_strategies),
                "success": False,
                "timestamp": datetime.utcnow().isoformat(),
                "page_url": self.page.url,
            }
        )

    def get_location_history(self) -> list[dict]:
        """Get location history for diagnostics."""
        return self._location_history.copy()
