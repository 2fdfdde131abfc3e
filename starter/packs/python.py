"""Python projects (pip, Poetry, setuptools)."""

from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Dict, List

from .base import PackBase, read_text

_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*(?:==\s*([\w.]+))?")

_FRAMEWORKS = ("django", "flask", "fastapi")

_DATABASES: Dict[str, str] = {
    "psycopg2": "postgresql",
    "psycopg2-binary": "postgresql",
    "psycopg": "postgresql",
    "asyncpg": "postgresql",
    "mysqlclient": "mysql",
    "pymysql": "mysql",
    "redis": "redis",
    "pymongo": "mongodb",
    "motor": "mongodb",
    "elasticsearch": "elasticsearch",
}


class PythonPack(PackBase):
    """Detects Python projects and their WSGI/ASGI framework."""

    name = "python"
    default_language_version = "3.12"
    default_supported_versions = ("3.10", "3.11", "3.12", "3.13")
    default_ports = ("8000:80:443",)

    _MARKERS = ("requirements.txt", "pyproject.toml", "setup.py", "Pipfile")

    def detect(self, project_path: Path) -> bool:
        return any((Path(project_path) / marker).is_file() for marker in self._MARKERS)

    def _analyze(self, project_path: Path) -> None:
        self._language_version = self._detect_version(project_path)
        packages = load_python_packages(project_path)

        for framework in _FRAMEWORKS:
            if framework in packages:
                self._framework = framework
                self._framework_version = packages[framework]
                break

        for package, database in _DATABASES.items():
            if package in packages and database not in self._databases:
                self._databases.append(database)

        if (project_path / "requirements.txt").is_file():
            self._build_commands.append("pip install --no-cache-dir -r requirements.txt")
        elif (project_path / "pyproject.toml").is_file() or (project_path / "setup.py").is_file():
            self._build_commands.append("pip install --no-cache-dir .")

        module = project_path.resolve().name.replace("-", "_")
        if self._framework == "django":
            self._start_commands.append(f"gunicorn {module}.wsgi --bind 0.0.0.0:8000")
            self._deploy_commands.append("python manage.py migrate --noinput")
        elif self._framework == "flask":
            self._start_commands.append("gunicorn app:app --bind 0.0.0.0:8000")
        elif self._framework == "fastapi":
            self._start_commands.append("uvicorn main:app --host 0.0.0.0 --port 8000")
        elif (project_path / "Procfile").is_file():
            self._start_commands.extend(_procfile_web_command(project_path / "Procfile"))

        if self._framework and "gunicorn" not in packages and self._framework != "fastapi":
            self.add_message("gunicorn is not listed in your dependencies but is used to start the app")

    def _detect_version(self, project_path: Path) -> str:
        version_file = read_text(project_path / ".python-version")
        if version_file and version_file.strip():
            return _major_minor(version_file.strip().splitlines()[0])
        runtime = read_text(project_path / "runtime.txt")
        if runtime:
            match = re.search(r"python-(\d+\.\d+)", runtime)
            if match:
                return match.group(1)
        pyproject = _load_pyproject(project_path)
        requires = pyproject.get("project", {}).get("requires-python")
        if isinstance(requires, str):
            match = re.search(r"(\d+\.\d+)", requires)
            if match:
                return match.group(1)
        return ""


def load_python_packages(project_path: Path) -> Dict[str, str]:
    """Return ``{normalised package name: pinned version or ""}``."""
    packages: Dict[str, str] = {}
    requirements = read_text(project_path / "requirements.txt")
    if requirements:
        for line in requirements.splitlines():
            stripped = line.split("#", 1)[0].strip()
            if not stripped or stripped.startswith("-"):
                continue
            _add_requirement(packages, stripped)

    pyproject = _load_pyproject(project_path)
    for requirement in pyproject.get("project", {}).get("dependencies", []) or []:
        if isinstance(requirement, str):
            _add_requirement(packages, requirement)
    poetry = pyproject.get("tool", {}).get("poetry", {}).get("dependencies", {})
    if isinstance(poetry, dict):
        for name in poetry:
            if name.lower() != "python":
                packages.setdefault(name.lower(), "")
    return packages


def _add_requirement(packages: Dict[str, str], requirement: str) -> None:
    match = _REQUIREMENT_NAME.match(requirement)
    if match:
        packages.setdefault(match.group(1).lower().replace("_", "-"), match.group(2) or "")


def _load_pyproject(project_path: Path) -> dict:
    text = read_text(project_path / "pyproject.toml")
    if not text:
        return {}
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return {}


def _major_minor(version: str) -> str:
    parts = version.split(".")
    return ".".join(parts[:2])


def _procfile_web_command(procfile: Path) -> List[str]:
    text = read_text(procfile) or ""
    for line in text.splitlines():
        if line.startswith("web:"):
            return [line.split(":", 1)[1].strip()]
    return []


__all__ = ["PythonPack", "load_python_packages"]
