"""
Statsbook Validator — FastAPI Server
====================================

RESTful API for checking roller derby statsbooks.

Endpoints:
    POST /validate/file     Upload a statsbook (.xlsx) for validation
    GET  /health            Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production

Docs:
    http://localhost:8000/docs             # Swagger UI (auto-generated)
    http://localhost:8000/redoc            # ReDoc (alternative)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from statsbook_validator import __version__
from statsbook_validator.config import Settings, configure_logging
from statsbook_validator.exceptions import StatsbookError
from statsbook_validator.models import StatsbookReport
from statsbook_validator.pipeline import StatsbookPipeline

load_dotenv()

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1_048_576


# ─── Application Lifespan (pre-warm pipeline) ───────────────────────

_pipeline: StatsbookPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load templates and rule descriptions once, on startup."""
    global _pipeline  # noqa: PLW0603
    settings = Settings.from_env()
    configure_logging(settings)
    _pipeline = StatsbookPipeline(settings=settings)
    yield
    _pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="Statsbook Validator API",
    description=(
        "Reads WFTDA-style roller derby statsbooks (2017, 2018 and 2019 "
        "layouts) into a derbyJSON game record and reports scorekeeping "
        "errors and warnings."
    ),
    version=__version__,
    lifespan=lifespan,
)


# ─── Response Schemas ───────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str
    supported_versions: list[str]
    current_version: str


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> StatsbookPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


@app.exception_handler(StatsbookError)
async def statsbook_error_handler(request: Request, exc: StatsbookError) -> JSONResponse:
    """Fatal statsbook problems are the client's file, not the server."""
    logger.warning("Rejected statsbook: [%s] %s", exc.code, exc)
    body = ErrorResponse(code=exc.code, message=str(exc), details=exc.details)
    return JSONResponse(status_code=422, content=body.model_dump(mode="json"))


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/validate/file",
    summary="Validate an uploaded statsbook",
    tags=["Validation"],
    responses={
        400: {"description": "Empty upload"},
        413: {"description": "File too large (max 10 MB)"},
        422: {"description": "File is not a readable statsbook", "model": ErrorResponse},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def validate_statsbook_file(file: UploadFile) -> StatsbookReport:
    """Upload a statsbook `.xlsx` file for validation.

    Returns a structured report with:
    - **is_valid**: `true` if no errors (warnings allowed) were found
    - **errors**: every rule key with its description and diagnostics
    - **game**: the derbyJSON game record
    - **source_hash**: SHA-256 of the uploaded file
    """
    if file.size and file.size > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (max 10 MB)")

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large (max 10 MB)")
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    pipeline = _get_pipeline()
    return await asyncio.to_thread(pipeline.run_bytes, content, file.filename or "")


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and the statsbook layouts that can be read."""
    pipeline = _get_pipeline()
    return HealthResponse(
        status="healthy",
        version=__version__,
        supported_versions=pipeline.supported_versions,
        current_version=pipeline.settings.current_version,
    )
