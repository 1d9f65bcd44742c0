"""
Core automation components.
"""

from translit_probe.core.locator import ElementRef, LocatorResolver, ResolutionStrategy
from translit_probe.core.extractor import ContentExtractor, ExtractionResult
from translit_probe.core.driver import DriverTimings, InteractionDriver, ScenarioState
from translit_probe.core.browser import BrowserOptions, BrowserSession
from translit_probe.core.runner import SuiteRunner, SuiteResult, ScenarioResult
from translit_probe.core.errors import (
    AssertionMismatch,
    LocatorError,
    OutputTimeoutError,
    ScenarioFailure,
)

__all__ = [
    "ElementRef",
    "LocatorResolver",
    "ResolutionStrategy",
    "ContentExtractor",
    "ExtractionResult",
    "DriverTimings",
    "InteractionDriver",
    "ScenarioState",
    "BrowserOptions",
    "BrowserSession",
    "SuiteRunner",
    "SuiteResult",
    "ScenarioResult",
    "AssertionMismatch",
    "LocatorError",
    "OutputTimeoutError",
    "ScenarioFailure",
]
