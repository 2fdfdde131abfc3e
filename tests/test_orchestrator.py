"""End-to-end tests for a single analysis run."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from starter.errors import (
    ArtifactExistsError,
    NoServiceDescriptorFoundError,
    NoSupportedFrameworkError,
    RegistryUnavailableError,
)
from starter.models import AnalysisRequest, parse_artifacts
from starter.orchestrator import Orchestrator
from starter.registry import VersionEnricher
from starter.reporting import CHANNEL_ENV
from tests._fixtures.fakes import FakeRemote, MarkerPack
from tests._fixtures.project_builder import ProjectBuilder


def _request(project: Path, generator: str = "dockerfile", **overrides) -> AnalysisRequest:
    overrides.setdefault("unattended", True)
    return AnalysisRequest(project_path=project, artifacts=parse_artifacts(generator), **overrides)


def test_single_marker_generates_dockerfile_from_downloaded_templates(
    tmp_path: Path, project_builder: ProjectBuilder
) -> None:
    project_builder.write({"x.marker": ""})
    remote = FakeRemote(version="7")
    orchestrator = Orchestrator(
        tmp_path / "cache",
        fetcher=remote.fetcher(),
        pack_factory=lambda: [MarkerPack("x", "x.marker")],
    )

    result = orchestrator.analyze(_request(project_builder.path()))

    assert result.ok is True
    assert result.language == "x"
    assert result.warnings == []
    assert (project_builder.path() / "Dockerfile").read_text(encoding="utf-8") == "FROM x:1.0\n"
    manifest = json.loads((tmp_path / "cache" / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["version"] == "7"


def test_no_matching_pack_fails(tmp_path: Path, project_builder: ProjectBuilder, template_dir: Path) -> None:
    orchestrator = Orchestrator(tmp_path / "cache", pack_factory=lambda: [MarkerPack("alpha", "a")])

    with pytest.raises(NoSupportedFrameworkError, match="Failed to detect supported framework"):
        orchestrator.analyze(_request(project_builder.path(), templates=template_dir))


@pytest.mark.parametrize("order, expected", [(("alpha", "beta"), "alpha"), (("beta", "alpha"), "beta")])
def test_unattended_ambiguity_picks_first_registered(
    tmp_path: Path,
    project_builder: ProjectBuilder,
    template_dir: Path,
    order: tuple[str, str],
    expected: str,
) -> None:
    project_builder.write({"shared": ""})
    orchestrator = Orchestrator(
        tmp_path / "cache",
        pack_factory=lambda: [MarkerPack(name, "shared") for name in order],
    )

    result = orchestrator.analyze(_request(project_builder.path(), templates=template_dir))

    assert result.language == expected
    assert (project_builder.path() / "Dockerfile").read_text(encoding="utf-8").startswith(f"FROM {expected}:")


def test_existing_dockerfile_blocks_before_analysis(
    tmp_path: Path, project_builder: ProjectBuilder, template_dir: Path
) -> None:
    project_builder.write({"a": "", "Dockerfile": "FROM scratch\n"})
    pack = MarkerPack("alpha", "a")
    orchestrator = Orchestrator(tmp_path / "cache", pack_factory=lambda: [pack])

    with pytest.raises(ArtifactExistsError):
        orchestrator.analyze(_request(project_builder.path(), templates=template_dir))

    assert pack.calls == []
    assert (project_builder.path() / "Dockerfile").read_text(encoding="utf-8") == "FROM scratch\n"


def test_overwrite_replaces_existing_dockerfile(
    tmp_path: Path, project_builder: ProjectBuilder, template_dir: Path
) -> None:
    project_builder.write({"a": "", "Dockerfile": "FROM scratch\n"})
    orchestrator = Orchestrator(tmp_path / "cache", pack_factory=lambda: [MarkerPack("alpha", "a")])

    orchestrator.analyze(_request(project_builder.path(), templates=template_dir, allow_overwrite=True))

    assert (project_builder.path() / "Dockerfile").read_text(encoding="utf-8") == "FROM alpha:1.0\nCMD run-alpha\n"


def test_kubernetes_output_requires_service_descriptor(
    tmp_path: Path, project_builder: ProjectBuilder, template_dir: Path
) -> None:
    project_builder.write({"requirements.txt": "flask\n"})
    orchestrator = Orchestrator(tmp_path / "cache")

    with pytest.raises(NoServiceDescriptorFoundError):
        orchestrator.analyze(_request(project_builder.path(), "kube", templates=template_dir))

    assert not (project_builder.path() / "kubernetes.yml").exists()


def test_kubernetes_output_from_service_descriptor(
    tmp_path: Path, project_builder: ProjectBuilder, template_dir: Path
) -> None:
    project_builder.write(
        {
            "Dockerfile": "FROM python:3.12\n",
            "service.yml": """
                services:
                  web:
                    image: acme/web:1.0
                    command: gunicorn app:app
                    ports:
                      - "8000:80:443"
            """,
        }
    )
    orchestrator = Orchestrator(tmp_path / "cache")

    result = orchestrator.analyze(_request(project_builder.path(), "kube", templates=template_dir))

    assert result.ok is True
    assert result.language == "service.yml"
    assert result.start_commands == ["gunicorn app:app"]
    assert (project_builder.path() / "Dockerfile").read_text(encoding="utf-8") == "FROM python:3.12\n"
    assert "kind: Deployment" in (project_builder.path() / "kubernetes.yml").read_text(encoding="utf-8")


class _DownRegistry:
    def ping(self) -> None:
        raise RegistryUnavailableError("can't connect to docker registry to check for allowed base images")

    def tags(self, repository: str) -> list[str]:  # pragma: no cover - never reached
        return []


def test_registry_failure_is_fatal(tmp_path: Path, project_builder: ProjectBuilder, template_dir: Path) -> None:
    project_builder.write({"a": ""})
    pack = MarkerPack("alpha", "a")
    orchestrator = Orchestrator(
        tmp_path / "cache",
        pack_factory=lambda: [pack],
        enricher=VersionEnricher(lambda _: _DownRegistry()),
    )

    with pytest.raises(RegistryUnavailableError):
        orchestrator.analyze(_request(project_builder.path(), templates=template_dir, use_registry=True))

    assert pack.calls == []
    assert not (project_builder.path() / "Dockerfile").exists()


def test_guarded_run_reports_typed_errors(tmp_path: Path) -> None:
    orchestrator = Orchestrator(tmp_path / "cache", pack_factory=lambda: [])

    result = orchestrator.analyze_guarded(_request(tmp_path / "missing"))

    assert result.ok is False
    assert "does not exist" in result.error


class _BrokenPack(MarkerPack):
    def detect(self, project_path: Path) -> bool:
        raise RuntimeError("detector crashed")


def test_guarded_run_writes_crash_report_for_unexpected_errors(
    tmp_path: Path,
    project_builder: ProjectBuilder,
    template_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv(CHANNEL_ENV, raising=False)
    orchestrator = Orchestrator(tmp_path / "cache", pack_factory=lambda: [_BrokenPack("alpha", "a")])

    result = orchestrator.analyze_guarded(_request(project_builder.path(), templates=template_dir))

    assert result.ok is False
    assert result.error == "Unexpected error: detector crashed"
    reports = list((tmp_path / "cache" / "crash").glob("crash-*.json"))
    assert len(reports) == 1
    payload = json.loads(reports[0].read_text(encoding="utf-8"))
    assert payload["error"] == "RuntimeError: detector crashed"
    assert payload["context"]["project_path"] == str(project_builder.path())


def test_manifest_url_selects_template_source(tmp_path: Path) -> None:
    orchestrator = Orchestrator(tmp_path / "cache", manifest_url="https://mirror.test/{branch}/manifest.json")

    assert orchestrator.templates.fetcher.manifest_url_for("develop") == "https://mirror.test/develop/manifest.json"
