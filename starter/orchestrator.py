"""End-to-end orchestration of a single analysis run."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Callable, List

from .config import DEFAULT_CACHE_DIR
from .detection import Detector, SelectionResolver
from .errors import StarterError
from .guard import ConflictGuard
from .logging import get_logger
from .models import AnalysisRequest, AnalysisResult, ArtifactKind
from .packs import Pack, discover_packs
from .pipeline import GenerationPipeline
from .registry import DEFAULT_REGISTRY_URL, VersionEnricher
from .reporting import capture_exception
from .templates import TemplateFetcher, TemplateManager


class Orchestrator:
    """Wires template sync, detection, selection, guarding, enrichment and generation."""

    def __init__(
        self,
        cache_dir: Path | None = None,
        *,
        fetcher: TemplateFetcher | None = None,
        pack_factory: Callable[[], List[Pack]] | None = None,
        resolver: SelectionResolver | None = None,
        guard: ConflictGuard | None = None,
        enricher: VersionEnricher | None = None,
        registry_endpoint: str = DEFAULT_REGISTRY_URL,
        manifest_url: str | None = None,
    ) -> None:
        self.cache_dir = Path(cache_dir or DEFAULT_CACHE_DIR).expanduser().resolve()
        if fetcher is None and manifest_url:
            fetcher = TemplateFetcher(manifest_url)
        self.templates = TemplateManager(self.cache_dir, fetcher)
        self._pack_factory = pack_factory or discover_packs
        self.resolver = resolver or SelectionResolver()
        self.guard = guard or ConflictGuard()
        self.enricher = enricher or VersionEnricher()
        self.pipeline = GenerationPipeline(self.guard)
        self.registry_endpoint = registry_endpoint
        self.logger = get_logger("orchestrator")

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Run the full pipeline; typed failures propagate to the caller."""
        project_path = Path(request.project_path).expanduser().resolve()
        if not project_path.is_dir():
            raise StarterError(f"Project path {project_path} does not exist or is not a directory")
        request = dataclasses.replace(request, project_path=project_path)

        template_dir = self.templates.ensure_templates(
            branch=request.branch,
            explicit=request.templates,
            update=request.update_templates,
        )

        self.logger.info("Detecting framework for the project at %s", project_path)
        detector = Detector(self._pack_factory())
        if request.wants(ArtifactKind.ORCHESTRATION_MANIFEST):
            pack = detector.detect_for_manifest(project_path)
        else:
            pack = self.resolver.choose(detector.detect(project_path), request.unattended)
        self.logger.info("Using the %s pack", pack.name)

        # Conflicts are checked before any analysis work.
        self.guard.check(project_path, request.artifacts, pack, request.allow_overwrite)

        if request.use_registry:
            self.enricher.enrich(pack, self.registry_endpoint)

        result = self.pipeline.generate(pack, request, template_dir)
        self.logger.info("Generated %s for %s", _describe(request), project_path)
        return result

    def analyze_guarded(self, request: AnalysisRequest) -> AnalysisResult:
        """Like :meth:`analyze` but reports every failure as an ``ok=False`` result."""
        try:
            return self.analyze(request)
        except StarterError as exc:
            self.logger.error("%s", exc)
            return AnalysisResult(ok=False, error=str(exc))
        except Exception as exc:
            capture_exception(
                exc,
                self.cache_dir / "crash",
                context={"project_path": request.project_path, "artifacts": _describe(request)},
            )
            return AnalysisResult(ok=False, error=f"Unexpected error: {exc}")


def _describe(request: AnalysisRequest) -> str:
    return ", ".join(sorted(kind.filename for kind in request.artifacts))


__all__ = ["Orchestrator"]
