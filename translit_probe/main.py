"""
translit-probe - FastAPI Application

HTTP surface for running transliteration scenarios against the target page.
"""

import logging

import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from translit_probe import __version__
from translit_probe.config import settings
from translit_probe.api import api_router


def configure_logging():
    """Configure structured logging."""
    logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False)
            if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Browsers are launched per run, so there is nothing to warm up here.
    """
    logger = structlog.get_logger()

    logger.info(
        "application_starting",
        version=__version__,
        environment=settings.app_env,
        target_url=settings.target_url,
    )

    yield

    logger.info("application_shutting_down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    configure_logging()

    app = FastAPI(
        title="translit-probe",
        description="""
## Transliteration page validation

Drives a transliteration web page through its DOM and checks its output:
- **Resilient locators**: input and output controls found without stable ids
- **Noise-tolerant extraction**: the transliteration is recovered from
  output markup that also holds labels and reference tables
- **Scenario classes**: positive (expected text), negative (some
  transformation happened), UI (output tracks clearing the input)

### Quick Start

1. **Browse the bundled cases**:
   ```
   GET /api/v1/cases?category=positive
   ```

2. **Run a selection**:
   ```
   POST /api/v1/execution/run
   {
     "case_ids": ["Pos_Fun_0001", "Neg_Fun_0025"]
   }
   ```

3. **View results**:
   ```
   GET /api/v1/execution/history
   ```
        """,
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "name": "translit-probe",
            "version": __version__,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "api": "/api/v1",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger = structlog.get_logger()
        logger.exception("unhandled_exception", error=str(exc))

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.is_development else "An error occurred",
            },
        )

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "translit_probe.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
