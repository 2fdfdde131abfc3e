"""Go modules."""

from __future__ import annotations

import re
from pathlib import Path

from .base import PackBase, read_text

_GO_DIRECTIVE = re.compile(r"^go\s+(\d+\.\d+)", re.MULTILINE)
_MODULE_DIRECTIVE = re.compile(r"^module\s+(\S+)", re.MULTILINE)

_FRAMEWORKS = {
    "github.com/gin-gonic/gin": "gin",
    "github.com/labstack/echo": "echo",
    "github.com/gofiber/fiber": "fiber",
    "github.com/go-chi/chi": "chi",
}

_DATABASES = {
    "github.com/lib/pq": "postgresql",
    "github.com/jackc/pgx": "postgresql",
    "github.com/go-sql-driver/mysql": "mysql",
    "github.com/redis/go-redis": "redis",
    "github.com/go-redis/redis": "redis",
    "go.mongodb.org/mongo-driver": "mongodb",
}


class GolangPack(PackBase):
    name = "golang"
    default_language_version = "1.22"
    default_supported_versions = ("1.21", "1.22", "1.23")
    default_ports = ("8080:80:443",)

    def detect(self, project_path: Path) -> bool:
        return (Path(project_path) / "go.mod").is_file()

    def _analyze(self, project_path: Path) -> None:
        gomod = read_text(project_path / "go.mod") or ""

        version = _GO_DIRECTIVE.search(gomod)
        if version:
            self._language_version = version.group(1)

        for module, framework in _FRAMEWORKS.items():
            match = re.search(rf"^\s*(?:require\s+)?{re.escape(module)}(?:/v\d+)?\s+v([\w.\-]+)", gomod, re.MULTILINE)
            if match:
                self._framework = framework
                self._framework_version = match.group(1)
                break

        for module, database in _DATABASES.items():
            if module in gomod and database not in self._databases:
                self._databases.append(database)

        module = _MODULE_DIRECTIVE.search(gomod)
        binary = module.group(1).rstrip("/").rsplit("/", 1)[-1] if module else "app"
        self._build_commands.append(f"go build -o /go/bin/{binary} .")
        self._start_commands.append(f"/go/bin/{binary}")


__all__ = ["GolangPack"]
