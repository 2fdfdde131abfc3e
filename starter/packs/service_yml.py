"""Projects that already ship a service.yml."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..errors import PackError
from ..models import ArtifactKind
from .base import PackBase, Prompt, read_text


class ServiceYmlPack(PackBase):
    """Imports an existing service.yml and converts it to Kubernetes resources."""

    name = ArtifactKind.SERVICE_DESCRIPTOR.filename
    native_artifacts = frozenset({ArtifactKind.CONTAINER_BUILD_FILE, ArtifactKind.SERVICE_DESCRIPTOR})
    enrichable = False

    def __init__(self, prompt: Prompt | None = None) -> None:
        super().__init__(prompt)
        self._services: Dict[str, Dict[str, Any]] = {}

    def detect(self, project_path: Path) -> bool:
        return ArtifactKind.SERVICE_DESCRIPTOR.destination(Path(project_path)).is_file()

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
        source = ArtifactKind.SERVICE_DESCRIPTOR.destination(project_path)
        try:
            data = yaml.safe_load(read_text(source) or "") or {}
        except yaml.YAMLError as exc:
            raise PackError(f"Failed to parse service.yml: {exc}") from exc
        if not isinstance(data, dict):
            raise PackError("service.yml must contain a mapping at the root")
        services = data.get("services")
        if not isinstance(services, dict) or not services:
            raise PackError("service.yml does not define any services")

        for name, definition in services.items():
            definition = definition if isinstance(definition, dict) else {}
            self._services[str(name)] = definition
            for key, target in (
                ("command", self._start_commands),
                ("build_command", self._build_commands),
                ("deploy_command", self._deploy_commands),
            ):
                value = definition.get(key)
                if isinstance(value, str) and value:
                    target.append(value)

        databases = data.get("databases")
        if isinstance(databases, list):
            self._databases.extend(str(database) for database in databases)

    def write_dockerfile(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        self.logger.debug("service.yml references its own images; nothing to write")

    def write_service_yaml(self, template_dir: Path, project_path: Path, interactive: bool) -> None:
        self.logger.debug("service.yml already present; nothing to write")

    def write_kubes_config(self, project_path: Path, interactive: bool) -> None:
        documents: List[Dict[str, Any]] = []
        for name, definition in self._services.items():
            image = definition.get("image")
            if not image:
                image = f"{name}:latest"
                self.add_message(f"Service {name} has no image; using {image} in kubernetes.yml")
            ports = [_port_number(port) for port in definition.get("ports") or []]
            ports = [port for port in ports if port is not None]
            documents.append(_deployment(name, definition, str(image), ports, self._environment))
            if ports:
                documents.append(_service(name, ports))
        for database in self._databases:
            self.add_message(f"Database {database} is not converted to Kubernetes resources")

        target = ArtifactKind.ORCHESTRATION_MANIFEST.destination(project_path)
        target.write_text(yaml.safe_dump_all(documents, sort_keys=False), encoding="utf-8")
        self.logger.info("kubernetes.yml written to %s", target)


def _deployment(
    name: str, definition: Dict[str, Any], image: str, ports: List[int], environment: str
) -> Dict[str, Any]:
    container: Dict[str, Any] = {"name": name, "image": image}
    command = definition.get("command")
    if isinstance(command, str) and command:
        container["command"] = ["/bin/sh", "-c", command]
    if ports:
        container["ports"] = [{"containerPort": port} for port in ports]
    env_vars = definition.get("env_vars")
    env = [{"name": "ENVIRONMENT", "value": environment}]
    if isinstance(env_vars, dict):
        env.extend({"name": str(key), "value": str(value)} for key, value in env_vars.items())
    container["env"] = env
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "labels": {"app": name}},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": {"app": name}},
            "template": {
                "metadata": {"labels": {"app": name}},
                "spec": {"containers": [container]},
            },
        },
    }


def _service(name: str, ports: List[int]) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": name},
        "spec": {
            "selector": {"app": name},
            "ports": [{"port": port, "targetPort": port} for port in ports],
        },
    }


def _port_number(port: Any) -> int | None:
    # service.yml ports read "container:http:https"; the container port comes first.
    head = str(port).split(":", 1)[0].split("/", 1)[0]
    return int(head) if head.isdigit() else None


__all__ = ["ServiceYmlPack"]
