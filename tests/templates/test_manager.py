"""Tests for the template manager."""

from __future__ import annotations

from pathlib import Path

import pytest

from starter.errors import ManifestFetchError, TemplateDownloadError
from starter.templates import TemplateManager
from tests._fixtures.fakes import FakeRemote


def _manager(tmp_path: Path, remote: FakeRemote) -> TemplateManager:
    return TemplateManager(tmp_path / "cache", remote.fetcher())


def test_first_run_downloads_full_set(tmp_path: Path) -> None:
    remote = FakeRemote(version="1", files={"a.template": "A", "b/c.template": "C"})
    manager = _manager(tmp_path, remote)

    location = manager.ensure_templates()

    assert location == (tmp_path / "cache").resolve()
    assert (location / "a.template").read_text(encoding="utf-8") == "A"
    assert (location / "b" / "c.template").read_text(encoding="utf-8") == "C"
    assert manager.cache.load_manifest().version == "1"
    assert sorted(remote.downloads()) == [
        "https://templates.test/master/files/a.template",
        "https://templates.test/master/files/b/c.template",
    ]


def test_unchanged_version_reuses_cache(tmp_path: Path) -> None:
    remote = FakeRemote(version="1")
    manager = _manager(tmp_path, remote)
    first = manager.ensure_templates()
    snapshot = {path.name: path.read_bytes() for path in first.iterdir()}
    downloads = len(remote.downloads())

    for _ in range(3):
        assert manager.ensure_templates() == first

    assert len(remote.downloads()) == downloads
    assert {path.name: path.read_bytes() for path in first.iterdir()} == snapshot


def test_version_change_replaces_full_set_once(tmp_path: Path) -> None:
    remote = FakeRemote(version="1", files={"old.template": "old"})
    manager = _manager(tmp_path, remote)
    location = manager.ensure_templates()

    remote.publish("2", {"new.template": "new"})
    manager.ensure_templates()
    downloads_after_refresh = len(remote.downloads())
    manager.ensure_templates()

    assert not (location / "old.template").exists()
    assert (location / "new.template").read_text(encoding="utf-8") == "new"
    assert manager.cache.load_manifest().version == "2"
    assert len(remote.downloads()) == downloads_after_refresh


def test_version_comparison_is_string_equality(tmp_path: Path) -> None:
    remote = FakeRemote(version="1.10")
    manager = _manager(tmp_path, remote)
    manager.ensure_templates()

    remote.publish("1.9", {"x.dockerfile.template": "older but different"})
    manager.ensure_templates()

    assert manager.cache.load_manifest().version == "1.9"


def test_explicit_directory_skips_network(tmp_path: Path, template_dir: Path) -> None:
    remote = FakeRemote()
    manager = _manager(tmp_path, remote)

    assert manager.ensure_templates(explicit=template_dir) == template_dir.resolve()
    assert remote.requests == []


def test_explicit_directory_must_exist(tmp_path: Path) -> None:
    manager = _manager(tmp_path, FakeRemote())
    with pytest.raises(TemplateDownloadError):
        manager.ensure_templates(explicit=tmp_path / "nope")


def test_update_disabled_skips_network(tmp_path: Path) -> None:
    remote = FakeRemote()
    manager = _manager(tmp_path, remote)

    assert manager.ensure_templates(update=False) == (tmp_path / "cache").resolve()
    assert remote.requests == []


def test_manifest_failure_is_fatal_even_with_warm_cache(tmp_path: Path) -> None:
    remote = FakeRemote()
    manager = _manager(tmp_path, remote)
    manager.ensure_templates()
    remote.fail_manifest = True

    with pytest.raises(ManifestFetchError, match="Failed to download latest templates"):
        manager.ensure_templates()


def test_partial_download_failure_is_fatal_and_keeps_old_cache(tmp_path: Path) -> None:
    remote = FakeRemote(version="1", files={"a.template": "A"})
    manager = _manager(tmp_path, remote)
    manager.ensure_templates()

    remote.publish("2", {"a.template": "A2", "b.template": "B2"})
    remote.missing.add("b.template")

    with pytest.raises(TemplateDownloadError, match="b.template"):
        manager.ensure_templates()

    assert manager.cache.load_manifest().version == "1"
    assert (manager.cache.root / "a.template").read_text(encoding="utf-8") == "A"


def test_branch_is_substituted_into_manifest_url(tmp_path: Path) -> None:
    remote = FakeRemote()
    manager = _manager(tmp_path, remote)

    manager.ensure_templates(branch="develop")

    assert remote.requests[0] == "https://templates.test/develop/manifest.json"
    assert all(url.startswith("https://templates.test/develop/") for url in remote.requests)
