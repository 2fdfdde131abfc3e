"""FastAPI application for starter daemon mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .. import __version__
from ..config import DaemonConfig
from ..logging import get_logger
from ..models import AnalysisRequest, AnalysisResult, parse_artifacts
from ..orchestrator import Orchestrator


class AnalyzeRequest(BaseModel):
    path: str
    generator: str = "dockerfile"
    environment: str = "production"
    overwrite: bool = False
    git_repo: str = ""
    git_branch: str = ""
    use_registry: Optional[bool] = None


class AnalyzeResponse(BaseModel):
    ok: bool
    language: str = ""
    language_version: str = ""
    supported_language_versions: List[str] = []
    framework: str = ""
    framework_version: str = ""
    databases: List[str] = []
    warnings: List[str] = []
    start_commands: List[str] = []
    build_commands: List[str] = []
    deploy_commands: List[str] = []
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


class VersionResponse(BaseModel):
    version: str


def create_app(
    config: DaemonConfig | None = None,
    orchestrator_factory: Callable[[], Orchestrator] | None = None,
) -> FastAPI:
    """Create the FastAPI application exposing the analysis entry point."""

    config = config or DaemonConfig()
    if orchestrator_factory is None:
        cache_dir = config.resolved_cache_dir()

        def orchestrator_factory() -> Orchestrator:
            return Orchestrator(cache_dir, manifest_url=config.templates_url)

    app = FastAPI(title="Starter", version=__version__)

    async def get_orchestrator() -> Orchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/version", response_model=VersionResponse)
    async def version() -> VersionResponse:
        return VersionResponse(version=__version__)

    @app.post("/analyze", response_model=AnalyzeResponse)
    async def analyze(
        payload: AnalyzeRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> AnalyzeResponse:
        try:
            artifacts = parse_artifacts(payload.generator)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        request = AnalysisRequest(
            project_path=Path(payload.path),
            environment=payload.environment,
            unattended=True,
            allow_overwrite=payload.overwrite,
            artifacts=artifacts,
            use_registry=config.use_registry if payload.use_registry is None else payload.use_registry,
            templates=config.templates,
            branch=config.branch,
            git_repo=payload.git_repo,
            git_branch=payload.git_branch,
            update_templates=False,
        )

        def _run() -> AnalysisResult:
            return orchestrator.analyze_guarded(request)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run)
        return AnalyzeResponse(**result.to_dict())

    return app


def run_service(config: DaemonConfig) -> None:  # pragma: no cover - integration path
    """Prefetch templates once, then serve until interrupted."""
    logger = get_logger("service")
    orchestrator = Orchestrator(config.resolved_cache_dir(), manifest_url=config.templates_url)
    orchestrator.templates.ensure_templates(branch=config.branch, explicit=config.templates)

    app = create_app(config, lambda: orchestrator)
    logger.info("Starting API on %s:%d", config.api.address, config.api.port)
    uvicorn.run(app, host=config.api.address, port=config.api.port, log_config=None)
    logger.info("Received an interrupt, stopping services")
