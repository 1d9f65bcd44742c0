"""
Script profiles and text normalization.

A script profile describes the output language's Unicode block and the
noise markers the target page renders next to the transliteration
(character-reference legends, alphabet tables). All content-shape
heuristics in the locator and extractor are driven by a profile.
"""

import re
from dataclasses import dataclass
from functools import cached_property

_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", text).strip()


@dataclass(frozen=True)
class ScriptProfile:
    """Target-script description used for detection and cleaning."""

    name: str
    block_start: str
    block_end: str
    letters_start: str
    letters_end: str
    legend_marker: str
    legend_alphabet: str
    source_class: str = "a-zA-Z0-9"

    @cached_property
    def char_class(self) -> str:
        """Regex character class matching the whole script block."""
        return f"[{self.block_start}-{self.block_end}]"

    @cached_property
    def letters_class(self) -> str:
        return f"[{self.letters_start}-{self.letters_end}]"

    @cached_property
    def pattern(self) -> re.Pattern[str]:
        return re.compile(self.char_class)

    @cached_property
    def source_pattern(self) -> re.Pattern[str]:
        return re.compile(f"[{self.source_class}]")

    @cached_property
    def label_pattern(self) -> re.Pattern[str]:
        return re.compile(re.escape(self.name), re.IGNORECASE)

    @cached_property
    def js_char_class(self) -> str:
        """The block as a JavaScript RegExp source (``\\uXXXX`` escapes)."""
        return "[\\u{:04X}-\\u{:04X}]".format(
            ord(self.block_start), ord(self.block_end)
        )

    def contains(self, text: str | None) -> bool:
        """Whether ``text`` holds at least one character of the script."""
        return bool(text) and self.pattern.search(text) is not None


SINHALA = ScriptProfile(
    name="Sinhala",
    block_start="\u0d80",
    block_end="\u0dff",
    letters_start="\u0d85",
    letters_end="\u0dc6",
    legend_marker="පිළිවෙළ",
    legend_alphabet="අආඇඈඉඊඋඌ",
)
