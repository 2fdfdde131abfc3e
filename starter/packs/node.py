"""Node.js projects driven by package.json."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict

from ..errors import PackError
from .base import PackBase, read_text

_FRAMEWORKS = ("next", "express", "koa", "fastify", "@nestjs/core")

_DATABASES: Dict[str, str] = {
    "pg": "postgresql",
    "mysql": "mysql",
    "mysql2": "mysql",
    "redis": "redis",
    "ioredis": "redis",
    "mongodb": "mongodb",
    "mongoose": "mongodb",
}


class NodePack(PackBase):
    """Detects Node.js projects from their package.json."""

    name = "node"
    default_language_version = "20"
    default_supported_versions = ("18", "20", "22")
    default_ports = ("3000:80:443",)

    def detect(self, project_path: Path) -> bool:
        return (Path(project_path) / "package.json").is_file()

    def _analyze(self, project_path: Path) -> None:
        package = self._load_package(project_path)
        dependencies: Dict[str, str] = {}
        for section in ("dependencies", "devDependencies"):
            values = package.get(section)
            if isinstance(values, dict):
                for name, version in values.items():
                    dependencies.setdefault(str(name), str(version))

        engines = package.get("engines")
        if isinstance(engines, dict) and isinstance(engines.get("node"), str):
            match = re.search(r"(\d+)", engines["node"])
            if match:
                self._language_version = match.group(1)
        if not self._language_version:
            nvmrc = read_text(project_path / ".nvmrc")
            if nvmrc:
                match = re.search(r"(\d+)", nvmrc)
                if match:
                    self._language_version = match.group(1)

        for framework in _FRAMEWORKS:
            if framework in dependencies:
                self._framework = framework.split("/")[-1] if framework.startswith("@") else framework
                self._framework_version = dependencies[framework].lstrip("^~>=")
                break

        for dependency, database in _DATABASES.items():
            if dependency in dependencies and database not in self._databases:
                self._databases.append(database)

        manager = "yarn" if (project_path / "yarn.lock").is_file() else "npm"
        self._build_commands.append("yarn install --production" if manager == "yarn" else "npm ci --omit=dev")

        scripts = package.get("scripts") if isinstance(package.get("scripts"), dict) else {}
        if "build" in scripts:
            self._build_commands.append(f"{manager} run build")
        if "start" in scripts:
            self._start_commands.append(f"{manager} start")
        elif isinstance(package.get("main"), str):
            self._start_commands.append(f"node {package['main']}")

    @staticmethod
    def _load_package(project_path: Path) -> Dict[str, Any]:
        text = read_text(project_path / "package.json")
        if text is None:
            raise PackError("package.json could not be read")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PackError(f"package.json is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise PackError("package.json must contain a JSON object")
        return data


__all__ = ["NodePack"]
