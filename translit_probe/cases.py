"""
Case catalogue.

The bundled catalogue covers the SwiftTranslator Singlish to Sinhala page.
Other suites can be loaded from a JSON array of case objects.
"""

from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Iterable

from pydantic import TypeAdapter

from translit_probe.schemas.case import CaseCategory, TransliterationCase

_CASE_LIST = TypeAdapter(list[TransliterationCase])

BUNDLED_CASES_FILE = "swifttranslator_cases.json"


def parse_cases(data: str | bytes) -> list[TransliterationCase]:
    """Validate a JSON array of cases; ids must be unique."""
    cases = _CASE_LIST.validate_json(data)
    seen: set[str] = set()
    for case in cases:
        if case.id in seen:
            raise ValueError(f"Duplicate case id: {case.id}")
        seen.add(case.id)
    return cases


def load_cases(path: str | Path) -> list[TransliterationCase]:
    """Load cases from a JSON file."""
    return parse_cases(Path(path).read_bytes())


@lru_cache
def bundled_cases() -> tuple[TransliterationCase, ...]:
    """The SwiftTranslator catalogue shipped with the package."""
    data = resources.files("translit_probe.data").joinpath(BUNDLED_CASES_FILE).read_bytes()
    return tuple(parse_cases(data))


def select_cases(
    cases: Iterable[TransliterationCase],
    category: CaseCategory | str | None = None,
    ids: Iterable[str] | None = None,
) -> list[TransliterationCase]:
    """
    Filter cases, keeping catalogue order.

    Raises:
        KeyError: if an id in ``ids`` is not in ``cases``
    """
    cases = list(cases)
    if ids is not None:
        wanted = list(ids)
        known = {case.id for case in cases}
        missing = [case_id for case_id in wanted if case_id not in known]
        if missing:
            raise KeyError(f"Unknown case ids: {', '.join(missing)}")
        wanted_set = set(wanted)
        cases = [case for case in cases if case.id in wanted_set]

    if category is not None:
        category = CaseCategory(category)
        cases = [case for case in cases if case.category == category]

    return cases

