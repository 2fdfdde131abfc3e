"""Tests for the Python, Node.js and Go packs."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from starter.errors import PackError
from starter.packs import GolangPack, NodePack, PythonPack
from starter.packs.python import load_python_packages
from tests._fixtures.project_builder import ProjectBuilder


def _analyze(pack, project: Path, *, interactive: bool = False, environment: str = "production"):
    pack.analyze(project, environment, interactive)
    return pack


@pytest.mark.parametrize(
    "files, pack_cls",
    [
        ({"requirements.txt": "flask\n"}, PythonPack),
        ({"pyproject.toml": "[project]\nname = 'x'\n"}, PythonPack),
        ({"package.json": "{}"}, NodePack),
        ({"go.mod": "module example.com/app\n"}, GolangPack),
    ],
)
def test_detect_markers(project_builder: ProjectBuilder, files: dict, pack_cls) -> None:
    project_builder.write(files)

    assert pack_cls().detect(project_builder.path()) is True


def test_detect_ignores_unrelated_projects(project_builder: ProjectBuilder) -> None:
    project_builder.write({"README.md": "hello"})

    assert project_builder.detect() == []


def test_polyglot_project_matches_every_language(project_builder: ProjectBuilder) -> None:
    project_builder.write({"requirements.txt": "flask\n", "package.json": "{}", "docker-compose.yml": "services: {}\n"})

    assert project_builder.detect() == ["docker-compose", "python", "node"]


def test_python_django_project(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            ".python-version": "3.11.4\n",
            "requirements.txt": """
                Django==4.2.7
                psycopg2-binary==2.9.9  # database
                gunicorn
            """,
        }
    )

    pack = _analyze(PythonPack(), project_builder.path())

    assert pack.language_version == "3.11"
    assert pack.framework == "django"
    assert pack.framework_version == "4.2.7"
    assert pack.databases == ["postgresql"]
    assert pack.build_commands == ["pip install --no-cache-dir -r requirements.txt"]
    assert pack.start_commands == ["gunicorn project.wsgi --bind 0.0.0.0:8000"]
    assert pack.deploy_commands == ["python manage.py migrate --noinput"]
    assert pack.messages == []


def test_python_flask_without_gunicorn_warns(project_builder: ProjectBuilder) -> None:
    project_builder.write({"requirements.txt": "flask==3.0.0\nredis\n"})

    pack = _analyze(PythonPack(), project_builder.path())

    assert pack.language_version == "3.12"
    assert pack.databases == ["redis"]
    assert pack.messages == ["gunicorn is not listed in your dependencies but is used to start the app"]


def test_python_version_from_pyproject(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "pyproject.toml": """
                [project]
                name = "svc"
                requires-python = ">=3.11"
                dependencies = ["fastapi==0.110.0", "asyncpg"]
            """,
        }
    )

    pack = _analyze(PythonPack(), project_builder.path())

    assert pack.language_version == "3.11"
    assert pack.framework == "fastapi"
    assert pack.build_commands == ["pip install --no-cache-dir ."]
    assert pack.start_commands == ["uvicorn main:app --host 0.0.0.0 --port 8000"]


def test_python_unsupported_version_is_a_warning(project_builder: ProjectBuilder) -> None:
    project_builder.write({"runtime.txt": "python-3.8.10\n", "Procfile": "web: python app.py\n", "setup.py": ""})

    pack = _analyze(PythonPack(), project_builder.path())

    assert pack.language_version == "3.8"
    assert pack.start_commands == ["python app.py"]
    assert pack.messages == ["python 3.8 is not in the supported versions (3.10, 3.11, 3.12, 3.13)"]


def test_missing_start_command_prompts_when_interactive(project_builder: ProjectBuilder) -> None:
    project_builder.write({"requirements.txt": "requests\n"})
    questions: list[str] = []

    def prompt(question: str) -> str:
        questions.append(question)
        return "python worker.py"

    pack = _analyze(PythonPack(prompt=prompt), project_builder.path(), interactive=True)

    assert len(questions) == 1
    assert pack.start_commands == ["python worker.py"]
    assert pack.messages == []


def test_missing_start_command_is_reported_when_unattended(project_builder: ProjectBuilder) -> None:
    project_builder.write({"requirements.txt": "requests\n"})

    def prompt(question: str) -> str:  # pragma: no cover - must not be asked
        raise AssertionError("prompted while unattended")

    pack = _analyze(PythonPack(prompt=prompt), project_builder.path())

    assert pack.start_commands == []
    assert pack.messages == ["No start command detected; add one to the generated files"]


def test_load_python_packages_merges_sources(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "requirements.txt": "-r base.txt\nFlask[async]==3.0.0\n# comment\n",
            "pyproject.toml": """
                [tool.poetry.dependencies]
                python = "^3.11"
                SQLAlchemy = "^2.0"
            """,
        }
    )

    assert load_python_packages(project_builder.path()) == {"flask": "3.0.0", "sqlalchemy": ""}


def test_python_templates_render(project_builder: ProjectBuilder, published_templates: Path) -> None:
    project_builder.write({"requirements.txt": "flask\ngunicorn\npsycopg2\n"})
    pack = _analyze(PythonPack(), project_builder.path(), environment="staging")

    pack.write_dockerfile(published_templates, project_builder.path(), False)
    pack.write_service_yaml(published_templates, project_builder.path(), False)

    dockerfile = (project_builder.path() / "Dockerfile").read_text(encoding="utf-8")
    assert dockerfile.startswith("FROM python:3.12-slim\n")
    assert "APP_ENV=staging" in dockerfile
    assert "RUN pip install --no-cache-dir -r requirements.txt\n" in dockerfile
    assert "CMD gunicorn app:app --bind 0.0.0.0:8000\n" in dockerfile

    service = yaml.safe_load((project_builder.path() / "service.yml").read_text(encoding="utf-8"))
    web = service["services"]["project"]
    assert web["command"] == "gunicorn app:app --bind 0.0.0.0:8000"
    assert web["ports"] == ["8000:80:443"]
    assert web["env_vars"] == {"APP_ENV": "staging"}
    assert service["databases"] == ["postgresql"]


def test_node_express_project(project_builder: ProjectBuilder) -> None:
    project_builder.write(
        {
            "yarn.lock": "",
            "package.json": """
                {
                  "engines": {"node": ">=18"},
                  "dependencies": {"express": "^4.18.2", "pg": "^8.11.0"},
                  "scripts": {"build": "tsc", "start": "node dist/server.js"}
                }
            """,
        }
    )

    pack = _analyze(NodePack(), project_builder.path())

    assert pack.language_version == "18"
    assert pack.framework == "express"
    assert pack.framework_version == "4.18.2"
    assert pack.databases == ["postgresql"]
    assert pack.build_commands == ["yarn install --production", "yarn run build"]
    assert pack.start_commands == ["yarn start"]
    assert pack.messages == []


def test_node_version_from_nvmrc_and_main_entry(project_builder: ProjectBuilder, published_templates: Path) -> None:
    project_builder.write(
        {
            ".nvmrc": "v22.1.0\n",
            "package.json": '{"main": "index.js", "dependencies": {"@nestjs/core": "~10.0.0"}}',
        }
    )

    pack = _analyze(NodePack(), project_builder.path())
    pack.write_dockerfile(published_templates, project_builder.path(), False)

    assert pack.language_version == "22"
    assert pack.framework == "core"
    assert pack.start_commands == ["node index.js"]
    dockerfile = (project_builder.path() / "Dockerfile").read_text(encoding="utf-8")
    assert dockerfile.startswith("FROM node:22-alpine\n")
    assert "RUN npm ci --omit=dev\n" in dockerfile


def test_node_invalid_package_json(project_builder: ProjectBuilder) -> None:
    project_builder.write({"package.json": "{not json"})

    with pytest.raises(PackError, match="package.json is not valid JSON"):
        _analyze(NodePack(), project_builder.path())


def test_golang_module(project_builder: ProjectBuilder, published_templates: Path) -> None:
    project_builder.write(
        {
            "go.mod": """
                module github.com/acme/api

                go 1.22

                require (
                    github.com/gin-gonic/gin v1.9.1
                    github.com/lib/pq v1.10.9
                )
            """,
        }
    )

    pack = _analyze(GolangPack(), project_builder.path())
    pack.write_dockerfile(published_templates, project_builder.path(), False)

    assert pack.language_version == "1.22"
    assert pack.framework == "gin"
    assert pack.framework_version == "1.9.1"
    assert pack.databases == ["postgresql"]
    assert pack.build_commands == ["go build -o /go/bin/api ."]
    assert pack.start_commands == ["/go/bin/api"]
    assert pack.messages == []
    dockerfile = (project_builder.path() / "Dockerfile").read_text(encoding="utf-8")
    assert dockerfile.startswith("FROM golang:1.22 AS build\n")
    assert 'CMD ["/go/bin/api"]' in dockerfile


def test_enriched_patch_versions_accept_detected_release(project_builder: ProjectBuilder) -> None:
    project_builder.write({"go.mod": "module example.com/svc\n\ngo 1.22\n"})
    pack = GolangPack()
    pack.set_supported_language_versions(["1.21.9", "1.22.3"])

    _analyze(pack, project_builder.path())

    assert pack.supported_language_versions == ["1.21.9", "1.22.3"]
    assert pack.messages == []
