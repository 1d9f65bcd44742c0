"""
Case catalogue endpoints.
"""

from fastapi import APIRouter, HTTPException, Query

from translit_probe.cases import bundled_cases, select_cases
from translit_probe.schemas.case import CaseCategory, TransliterationCase

router = APIRouter()


@router.get("", response_model=list[TransliterationCase])
async def list_cases(
    category: CaseCategory | None = Query(None, description="Filter by category"),
    skip: int = Query(0, ge=0, description="Number of cases to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum cases to return"),
):
    """
    List the bundled cases in catalogue order.
    """
    cases = select_cases(bundled_cases(), category=category)
    return cases[skip : skip + limit]


@router.get("/{case_id}", response_model=TransliterationCase)
async def get_case(case_id: str):
    """
    Get a bundled case by id.
    """
    for case in bundled_cases():
        if case.id == case_id:
            return case
    raise HTTPException(status_code=404, detail=f"Case {case_id} not found")
