"""Ordered artifact generation for the chosen pack."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from .errors import AnalysisError, RenderError
from .guard import ConflictGuard
from .logging import get_logger
from .models import AnalysisRequest, AnalysisResult, ArtifactKind
from .packs import Pack


class GenerationPipeline:
    """Runs analysis then each requested renderer; the first failure stops the run."""

    def __init__(self, guard: ConflictGuard | None = None) -> None:
        self.guard = guard or ConflictGuard()
        self.logger = get_logger("pipeline")

    def generate(self, pack: Pack, request: AnalysisRequest, template_dir: Path) -> AnalysisResult:
        project_path = request.project_path
        interactive = request.interactive

        self.logger.info("Analyzing %s project", pack.name)
        try:
            pack.analyze(project_path, request.environment, interactive, request.git_repo, request.git_branch)
        except Exception as exc:
            raise AnalysisError(f"Failed to analyze the project due to: {exc}") from exc

        self._render(
            ArtifactKind.CONTAINER_BUILD_FILE,
            lambda: pack.write_dockerfile(template_dir, project_path, interactive),
        )

        if request.wants(ArtifactKind.SERVICE_DESCRIPTOR):
            self._render(
                ArtifactKind.SERVICE_DESCRIPTOR,
                lambda: pack.write_service_yaml(template_dir, project_path, interactive),
            )

        if request.wants(ArtifactKind.ORCHESTRATION_MANIFEST):
            # Writing service.yml can leave a kubernetes.yml behind on some packs.
            self.guard.check_one(project_path, ArtifactKind.ORCHESTRATION_MANIFEST, request.allow_overwrite)
            self._render(
                ArtifactKind.ORCHESTRATION_MANIFEST,
                lambda: pack.write_kubes_config(project_path, interactive),
            )

        if request.wants(ArtifactKind.DEPLOYMENT_BUNDLE):
            self.guard.check_one(project_path, ArtifactKind.DEPLOYMENT_BUNDLE, request.allow_overwrite)
            self._render(
                ArtifactKind.DEPLOYMENT_BUNDLE,
                lambda: pack.create_bundle(project_path, template_dir, request.branch),
            )

        return aggregate(pack)

    def _render(self, kind: ArtifactKind, step: Callable[[], None]) -> None:
        self.logger.debug("Writing %s", kind.filename)
        try:
            step()
        except Exception as exc:
            raise RenderError(kind, f"Failed to write {kind.filename} due to: {exc}") from exc


def aggregate(pack: Pack) -> AnalysisResult:
    """Copy the pack's reported values into a successful result."""
    return AnalysisResult(
        ok=True,
        language=pack.name,
        language_version=pack.language_version,
        supported_language_versions=list(pack.supported_language_versions),
        framework=pack.framework,
        framework_version=pack.framework_version,
        databases=list(pack.databases),
        warnings=list(pack.messages),
        start_commands=list(pack.start_commands),
        build_commands=list(pack.build_commands),
        deploy_commands=list(pack.deploy_commands),
    )


__all__ = ["GenerationPipeline", "aggregate"]
