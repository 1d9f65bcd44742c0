"""
Content Extractor

Recovers the transliterated text from an output element whose subtree may
also hold labels, buttons and character-reference tables.

The DOM-facing part (``ContentExtractor``) only reads text; everything after
that is a chain of pure string functions that can be tested without a page:

1. ``clean_text`` strips known noise (legend blocks, alphabet tables)
2. ``select_best_segment`` ranks whitespace-separated segments with
   ``score_segment`` when chrome is still present
3. ``fallback_extract`` recovers script-bearing runs when ranking finds nothing
"""

import re
from dataclasses import dataclass

import structlog
from playwright.async_api import Locator

from translit_probe.core.locator import ElementRef
from translit_probe.core.script import SINHALA, ScriptProfile, normalize_text

logger = structlog.get_logger()

TEXT_INPUT_TAGS = ("textarea", "input")
CHROME_KEYWORDS = ("Singlish", "Translate", "Clear")

MAX_CHILD_LENGTH = 1000
MAX_CLEAN_LENGTH = 500
MAX_SEGMENT_LENGTH = 500
REFERENCE_RUN_LENGTH = 50
RESIDUAL_RUN_LENGTH = 20

MIXED_CONTENT_BONUS = 50
SENTENCE_LENGTH_BONUS = 30
SENTENCE_LENGTH_WINDOW = (10, 200)

_SEGMENT_SPLIT = re.compile(r"\s{3,}|\n{2,}")

_DIRECT_TEXT_SCRIPT = """
(el, [pattern, maxLength]) => {
    const re = new RegExp(pattern);
    for (const child of Array.from(el.children)) {
        const childText = child.textContent || '';
        if (re.test(childText) && childText.length < maxLength) {
            return {source: 'child', text: childText};
        }
    }
    const own = Array.from(el.childNodes)
        .filter(node => node.nodeType === Node.TEXT_NODE)
        .map(node => node.textContent)
        .join('');
    return {source: 'own_text', text: own};
}
"""


@dataclass(frozen=True)
class ExtractionResult:
    """Normalized output text plus how it was obtained."""

    text: str
    raw: str = ""
    source: str = "none"
    segmented: bool = False


def _noise_patterns(profile: ScriptProfile) -> list[re.Pattern[str]]:
    marker = re.escape(profile.legend_marker)
    alphabet = re.escape(profile.legend_alphabet)
    return [
        # "( . . - පිළිවෙළ) . . අආඇඈඉඊඋඌ..." legend blocks
        re.compile(rf"\([^)]*{marker}[^)]*\)[\s\S]*?{alphabet}"),
        # character-reference tables
        re.compile(rf"{profile.letters_class}{{{REFERENCE_RUN_LENGTH},}}"),
        re.compile(r"\([^)]*\.\s*\.\s*-[^)]*\)"),
    ]


def clean_text(text: str, profile: ScriptProfile = SINHALA) -> str:
    """
    Strip legend blocks and character-reference tables.

    Removal runs until nothing more matches, so cleaning cleaned text is a
    no-op.
    """
    patterns = _noise_patterns(profile)
    while True:
        cleaned = text
        for pattern in patterns:
            cleaned = pattern.sub("", cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def has_chrome(text: str) -> bool:
    """Whether text is too long or still carries UI labels."""
    return len(text) > MAX_CLEAN_LENGTH or any(k in text for k in CHROME_KEYWORDS)


def score_segment(segment: str, profile: ScriptProfile = SINHALA) -> int:
    """
    Score a candidate segment; 0 means "not a candidate".

    Mixed target-script and source-script content is the hallmark of a real
    transliteration embedded among English labels.
    """
    stripped = segment.strip()
    length = len(stripped)
    if not profile.contains(stripped) or length == 0 or length >= MAX_SEGMENT_LENGTH:
        return 0

    score = length
    if profile.source_pattern.search(stripped):
        score += MIXED_CONTENT_BONUS
    low, high = SENTENCE_LENGTH_WINDOW
    if low < length < high:
        score += SENTENCE_LENGTH_BONUS
    return score


def select_best_segment(text: str, profile: ScriptProfile = SINHALA) -> str:
    """Return the highest-scoring segment, or "" if none qualifies."""
    best_segment = ""
    max_score = 0
    for segment in _SEGMENT_SPLIT.split(text):
        score = score_segment(segment, profile)
        if score > max_score:
            max_score = score
            best_segment = segment.strip()
    return best_segment


def fallback_extract(text: str, profile: ScriptProfile = SINHALA) -> str:
    """Longest alternating script run, else a character-class filter."""
    script = profile.char_class
    other = f"[^{profile.block_start}-{profile.block_end}]"
    runs = re.findall(rf"{other}*{script}+{other}*{script}+", text)
    if runs:
        return max(runs, key=len)

    keep = re.compile(
        rf"[{profile.block_start}-{profile.block_end}{profile.source_class}\s.,!?;:()\"'-]+"
    )
    pieces = keep.findall(text)
    if pieces:
        return " ".join(pieces).strip()
    return text


def refine_text(text: str, profile: ScriptProfile = SINHALA) -> tuple[str, bool]:
    """
    Run the cleaning pipeline over raw element text.

    Returns the normalized text and whether segment ranking was needed.
    """
    cleaned = clean_text(text, profile)
    if not has_chrome(cleaned):
        return normalize_text(cleaned), False

    best = select_best_segment(cleaned, profile)
    if not best:
        best = fallback_extract(cleaned, profile)
    return normalize_text(best), True


def residual_text(text: str, profile: ScriptProfile = SINHALA) -> str:
    """What remains of an output after the page was cleared, minus legend noise."""
    marker = re.escape(profile.legend_marker)
    residual = re.sub(rf"\([^)]*{marker}[^)]*\)", "", text)
    residual = re.sub(rf"{profile.letters_class}{{{RESIDUAL_RUN_LENGTH},}}", "", residual)
    return residual.strip()


class ContentExtractor:
    """
    Reads the transliteration out of a resolved output element.

    ``extract`` never raises: a stale or vanished element reads as "". Every
    DOM read is bounded by ``read_timeout_ms`` instead of the page default.
    """

    def __init__(self, profile: ScriptProfile = SINHALA, read_timeout_ms: int = 1000):
        self.profile = profile
        self.read_timeout_ms = read_timeout_ms

    async def extract(self, ref: ElementRef | Locator) -> str:
        result = await self.extract_detailed(ref)
        return result.text

    async def extract_detailed(self, ref: ElementRef | Locator) -> ExtractionResult:
        locator = ref.locator if isinstance(ref, ElementRef) else ref
        log = logger.bind(selector=ref.selector if isinstance(ref, ElementRef) else None)

        timeout = max(1, self.read_timeout_ms)

        try:
            tag = await locator.evaluate(
                "el => el.tagName.toLowerCase()", timeout=timeout
            )
            if tag in TEXT_INPUT_TAGS:
                value = await locator.input_value(timeout=timeout)
                return ExtractionResult(text=normalize_text(value), raw=value, source="value")

            found = await locator.evaluate(
                _DIRECT_TEXT_SCRIPT,
                [self.profile.js_char_class, MAX_CHILD_LENGTH],
                timeout=timeout,
            )
            source = found["source"] if found else "none"
            raw = found["text"] if found else ""
            if not raw.strip():
                raw = await locator.text_content(timeout=timeout) or ""
                source = "text_content"

            text, segmented = refine_text(raw, self.profile)
            return ExtractionResult(text=text, raw=raw, source=source, segmented=segmented)

        except Exception as e:
            log.debug("extraction_failed", error=str(e))
            return ExtractionResult(text="")
