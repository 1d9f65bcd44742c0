"""
Pydantic schemas for cases and API request/response.
"""

from translit_probe.schemas.case import CaseCategory, SizeClass, TransliterationCase
from translit_probe.schemas.execution import (
    RunRequest,
    RunResponse,
    ScenarioResultSchema,
)

__all__ = [
    "CaseCategory",
    "SizeClass",
    "TransliterationCase",
    "RunRequest",
    "RunResponse",
    "ScenarioResultSchema",
]
