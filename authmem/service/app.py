"""FastAPI application entrypoint for authmem service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List

import uvicorn
from fastapi import Depends, FastAPI, File, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..acquisition import AcquisitionError, ArchiveBytes, InvalidInputError, RemoteURL, SourceInput
from ..logging import get_logger
from ..orchestrator import ExtractionOutcome, Orchestrator
from ..recorder import ProcessLog

logger = get_logger("service")


class ExtractRequest(BaseModel):
    repo_url: str = Field(alias="repoUrl")


class ExtractResponse(BaseModel):
    success: bool
    authMemory: str
    authMemoryData: Dict[str, Any]
    metadata: Dict[str, Any]
    processSteps: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    status: str


class ExtractionFailed(Exception):
    """Carries the HTTP status and the steps recorded before a failure."""

    def __init__(self, status_code: int, detail: str, steps: List[Dict[str, Any]]) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail
        self.steps = steps


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def _status_for(exc: Exception) -> int:
    if isinstance(exc, InvalidInputError):
        return 400
    if isinstance(exc, AcquisitionError):
        return 502
    return 500


async def _run_extraction(orchestrator: Orchestrator, source: SourceInput) -> ExtractResponse:
    log = ProcessLog()

    def _run() -> ExtractionOutcome:
        return orchestrator.run(source, recorder=log)

    try:
        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(None, _run)
    except RuntimeError as exc:
        logger.info("Extraction of %s failed: %s", source.description, exc)
        raise ExtractionFailed(_status_for(exc), str(exc), log.to_list()) from exc
    return ExtractResponse(**outcome.to_response())


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing authmem extraction."""
    app = FastAPI(title="AuthMem Service", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        # Lazy-instantiate per request to keep state predictable.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/extract", response_model=ExtractResponse)
    async def extract_repo(
        payload: ExtractRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ExtractResponse:
        return await _run_extraction(orchestrator, RemoteURL(payload.repo_url))

    @app.post("/extract/upload", response_model=ExtractResponse)
    async def extract_upload(
        file: UploadFile = File(...),
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> ExtractResponse:
        data = await file.read()
        source = ArchiveBytes(data=data, filename=file.filename or "upload.zip")
        return await _run_extraction(orchestrator, source)

    @app.exception_handler(ExtractionFailed)
    async def extraction_failed_handler(_: Any, exc: ExtractionFailed) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "processSteps": exc.steps},
        )

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["ExtractRequest", "ExtractResponse", "create_app", "run_service"]
