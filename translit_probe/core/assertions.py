"""
Category-specific pass/fail predicates.

Each check takes already-extracted text and raises ``AssertionMismatch``
with the strings needed to diagnose the failure.
"""

from translit_probe.core.errors import AssertionMismatch
from translit_probe.core.extractor import residual_text
from translit_probe.core.script import SINHALA, ScriptProfile, normalize_text


def expected_prefix(expected: str, prefix_length: int = 5) -> str:
    normalized = normalize_text(expected)
    return normalized[: min(prefix_length, len(normalized))]


def check_positive(output: str, expected: str, prefix_length: int = 5) -> str:
    """
    Exact match on normalized text, or containment of the expected prefix.

    The prefix branch tolerates formatting drift around the result but is a
    deliberately loose criterion: a wrong transliteration sharing its first
    characters with the expected one still passes.

    Returns the branch that matched ("exact" or "prefix").
    """
    normalized_output = normalize_text(output)
    normalized_expected = normalize_text(expected)

    if not normalized_expected:
        raise AssertionMismatch(
            "No expected text to compare against",
            actual=normalized_output,
            expected=normalized_expected,
        )

    if normalized_output == normalized_expected:
        return "exact"

    prefix = expected_prefix(normalized_expected, prefix_length)
    if prefix in normalized_output:
        return "prefix"

    raise AssertionMismatch(
        f"Expected '{normalized_expected}' (or prefix '{prefix}'), "
        f"got '{normalized_output}'",
        actual=normalized_output,
        expected=normalized_expected,
    )


def check_negative(output: str, source_input: str) -> None:
    """Some transformation happened: non-empty and different from the input."""
    normalized_output = normalize_text(output)
    normalized_input = normalize_text(source_input)

    if not normalized_output:
        raise AssertionMismatch(
            "Output is empty; no transliteration was attempted",
            actual=normalized_output,
            expected=f"non-empty output differing from '{normalized_input}'",
        )
    if normalized_output == normalized_input:
        raise AssertionMismatch(
            f"Output equals the input '{normalized_input}'",
            actual=normalized_output,
            expected=f"output differing from '{normalized_input}'",
        )


def check_not_empty(output: str) -> None:
    if not normalize_text(output):
        raise AssertionMismatch(
            "Output is empty before clearing",
            actual="",
            expected="non-empty output",
        )


def check_cleared(
    output: str,
    tolerance: int = 20,
    profile: ScriptProfile = SINHALA,
) -> str:
    """Output after clearing the input must be near-empty."""
    residual = residual_text(normalize_text(output), profile)
    if len(residual) > tolerance:
        raise AssertionMismatch(
            f"Output still holds {len(residual)} characters after clearing "
            f"(tolerance {tolerance})",
            actual=residual,
            expected=f"at most {tolerance} characters",
            raw=output,
        )
    return residual
