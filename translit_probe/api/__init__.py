"""
API routes package.
"""

from fastapi import APIRouter

from translit_probe.api.routes import cases, execution, health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(cases.router, prefix="/cases", tags=["Cases"])
api_router.include_router(execution.router, prefix="/execution", tags=["Execution"])
