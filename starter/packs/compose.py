"""Projects already described by a docker-compose file."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..errors import PackError
from ..models import ArtifactKind
from .base import PackBase, Prompt, read_text

_COMPOSE_FILES = ("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")

# Image name prefixes that are run as managed databases instead of services.
_DATABASE_IMAGES: Dict[str, str] = {
    "postgres": "postgresql",
    "mysql": "mysql",
    "mariadb": "mysql",
    "redis": "redis",
    "mongo": "mongodb",
    "elasticsearch": "elasticsearch",
}


class DockerComposePack(PackBase):
    """Turns docker-compose services into a service.yml.

    The compose services already reference their own Dockerfiles, so this
    pack never writes one.
    """

    name = "docker-compose"
    native_artifacts = frozenset({ArtifactKind.CONTAINER_BUILD_FILE})
    enrichable = False

    def __init__(self, prompt: Prompt | None = None) -> None:
        super().__init__(prompt)
        self._services: Dict[str, Dict[str, Any]] = {}

    def detect(self, project_path: Path) -> bool:
        return self._compose_file(Path(project_path)) is not None

    def analyze(
        self,
        project_path: Path,
        environment: str,
        interactive: bool,
        git_repo: str = "",
        git_branch: str = "",
    ) -> None:
        self._environment = environment
        self._git_repo = git_repo
        self._git_branch = git_branch
        self._analyze(Path(project_path))

    def _analyze(self, project_path: Path) -> None:
        compose_file = self._compose_file(project_path)
        if compose_file is None:
            raise PackError("No docker-compose file found")
        try:
            data = yaml.safe_load(read_text(compose_file) or "") or {}
        except yaml.YAMLError as exc:
            raise PackError(f"Failed to parse {compose_file.name}: {exc}") from exc
        services = data.get("services") if isinstance(data, dict) else None
        if not isinstance(services, dict) or not services:
            raise PackError(f"{compose_file.name} does not define any services")

        for name, definition in services.items():
            definition = definition if isinstance(definition, dict) else {}
            database = _database_for(definition.get("image"))
            if database is not None:
                if database not in self._databases:
                    self._databases.append(database)
                continue
            self._services[str(name)] = definition
            command = definition.get("command")
            if isinstance(command, list):
                command = " ".join(str(part) for part in command)
            if isinstance(command, str) and command:
                self._start_commands.append(command)

        if not self._services:
            self.add_message(f"{compose_file.name} only defines databases; no application services found")

    def write_dockerfile(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        self.logger.debug("docker-compose services use their own Dockerfiles; nothing to write")

    def write_service_yaml(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        services: Dict[str, Dict[str, Any]] = {}
        for name, definition in self._services.items():
            services[name] = self._convert_service(name, definition)
        document: Dict[str, Any] = {"services": services}
        if self._databases:
            document["databases"] = list(self._databases)
        target = ArtifactKind.SERVICE_DESCRIPTOR.destination(project_path)
        target.write_text(yaml.safe_dump(document, sort_keys=False), encoding="utf-8")
        self.logger.info("service.yml written to %s", target)

    def _convert_service(self, name: str, definition: Dict[str, Any]) -> Dict[str, Any]:
        service: Dict[str, Any] = {}
        build = definition.get("build")
        if isinstance(build, str):
            service["build_root"] = build
        elif isinstance(build, dict):
            if build.get("context"):
                service["build_root"] = str(build["context"])
            if build.get("dockerfile"):
                service["dockerfile_path"] = str(build["dockerfile"])
        if definition.get("image"):
            service["image"] = str(definition["image"])
        if self._git_repo:
            service["git_url"] = self._git_repo
            service["git_branch"] = self._git_branch or "master"

        command = definition.get("command")
        if isinstance(command, list):
            command = " ".join(str(part) for part in command)
        if command:
            service["command"] = str(command)

        ports = [_container_port(port) for port in definition.get("ports") or []]
        ports = [port for port in ports if port]
        if ports:
            service["ports"] = ports

        env_vars = _environment(definition.get("environment"))
        if env_vars:
            service["env_vars"] = env_vars
        if not service.get("build_root") and not service.get("image"):
            self.add_message(f"Service {name} has neither an image nor a build context")
        return service

    @staticmethod
    def _compose_file(project_path: Path) -> Optional[Path]:
        for candidate in _COMPOSE_FILES:
            path = project_path / candidate
            if path.is_file():
                return path
        return None


def _database_for(image: Any) -> Optional[str]:
    if not isinstance(image, str):
        return None
    repository = image.split(":", 1)[0].rsplit("/", 1)[-1]
    return _DATABASE_IMAGES.get(repository)


def _container_port(port: Any) -> str:
    text = str(port).split("/", 1)[0]
    return text.rsplit(":", 1)[-1]


def _environment(value: Any) -> Dict[str, str]:
    if isinstance(value, dict):
        return {str(key): "" if item is None else str(item) for key, item in value.items()}
    result: Dict[str, str] = {}
    if isinstance(value, list):
        for item in value:
            key, _, item_value = str(item).partition("=")
            result[key] = item_value
    return result


__all__ = ["DockerComposePack"]
