"""
Transliteration case model.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CaseCategory(str, Enum):
    """Scenario class; selects the pass/fail contract."""

    POSITIVE = "positive"
    NEGATIVE = "negative"
    UI = "ui"


class SizeClass(str, Enum):
    """Input length class."""

    SHORT = "S"
    MEDIUM = "M"
    LONG = "L"


class TransliterationCase(BaseModel):
    """
    One scenario's input data.

    ``expected`` is the literal target text for positive cases, a rationale
    for negative cases and a behavioral description for the UI case; only
    positive cases compare against it.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Case identifier, used for reporting")
    name: str = Field(..., description="Human-readable case name")
    category: CaseCategory
    size_class: SizeClass = SizeClass.SHORT
    input: str = Field(..., min_length=1, description="Literal text typed into the page")
    expected: str = Field(default="", description="Expected output or rationale")

    @model_validator(mode="after")
    def require_positive_expected(self) -> "TransliterationCase":
        if self.category == CaseCategory.POSITIVE and not self.expected.strip():
            raise ValueError(f"Positive case {self.id} needs a non-empty expected text")
        return self
