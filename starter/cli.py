"""CLI entrypoint for starter."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__
from .config import DEFAULT_CACHE_DIR, ConfigError, DaemonConfig, load_config
from .errors import StarterError
from .logging import configure_logging
from .models import AnalysisRequest, AnalysisResult, ArtifactKind, parse_artifacts
from .orchestrator import Orchestrator
from .reporting import capture_exception
from .templates import DEFAULT_MANIFEST_URL

_GENERATOR_HELP = """what kind of files need to be generated:
  dockerfile: only the Dockerfile
  service: the service.yml + Dockerfile
  skycap: the starter.bundle + Dockerfile
  kube: a kubernetes.yml generated from an existing service.yml
  combine them with commas, e.g. dockerfile,service,skycap"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="starter",
        description="Detect a project's framework and generate its Dockerfile and deployment files.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("-p", "--path", default="", help="project path (defaults to current directory)")
    parser.add_argument("-g", "--generator", default="dockerfile", help=_GENERATOR_HELP)
    parser.add_argument(
        "-y", "--no-prompt", dest="no_prompt", action="store_true", help="do not prompt user"
    )
    parser.add_argument("--overwrite", action="store_true", help="overwrite existing files")
    parser.add_argument("-e", "--environment", default="production", help="set project environment")
    parser.add_argument("--templates", default="", help="location of the templates directory")
    parser.add_argument(
        "--templates-url",
        default="",
        help=(
            "URL of the template manifest; {branch} is replaced by --branch\n"
            f"(default: {DEFAULT_MANIFEST_URL}).\n"
            "Point it at wherever the repository templates/ directory is published,\n"
            "or use --templates templates/ to render from a local checkout"
        ),
    )
    parser.add_argument("--branch", default=None, help="template branch (default: master)")
    parser.add_argument(
        "--registry", action="store_true", help="check base images against docker registry"
    )
    parser.add_argument("--daemon", action="store_true", help="runs starter in daemon mode")
    parser.add_argument("-c", "--config", default="", help="configuration path for the daemon mode")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Increase log verbosity for troubleshooting."
    )
    parser.add_argument("--log-file", default="", help="also write logs to this file")
    parser.add_argument("--version", action="version", version=f"starter {__version__}")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for starter."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(args.log_file) if args.log_file else None,
        daemon=bool(args.daemon),
    )

    if args.daemon:
        _run_daemon(parser, args)
        return

    try:
        artifacts = parse_artifacts(args.generator)
    except ValueError as exc:
        parser.error(str(exc))

    project_path = Path(args.path).expanduser() if args.path else Path.cwd()
    request = AnalysisRequest(
        project_path=project_path,
        environment=args.environment,
        unattended=bool(args.no_prompt),
        allow_overwrite=bool(args.overwrite),
        artifacts=artifacts,
        use_registry=bool(args.registry),
        templates=Path(args.templates) if args.templates else None,
        branch=args.branch or "master",
    )

    orchestrator = Orchestrator(manifest_url=args.templates_url or None)
    try:
        result = orchestrator.analyze(request)
    except StarterError as exc:
        parser.exit(1, f"{exc}\n")
    except Exception as exc:
        capture_exception(exc, orchestrator.cache_dir / "crash", context={"argv": argv or sys.argv[1:]})
        parser.exit(1, f"starter failed: {exc}\nRun with --verbose for more details.\n")

    _print_summary(result, request)


def _print_summary(result: AnalysisResult, request: AnalysisRequest) -> None:
    if result.warnings:
        print("Warnings:")
        for warning in result.warnings:
            print(f" * {warning}")

    print("Now you can add the newly created Dockerfile to your git")
    print("To do that you will need to run the following commands:\n")
    print(f"cd {request.project_path}")
    print("git add Dockerfile")
    print("git commit -m 'Adding Dockerfile'")
    if request.wants(ArtifactKind.SERVICE_DESCRIPTOR):
        print("\nTo create a new Docker Stack with Cloud 66 use the following command:\n")
        print(
            f"cx stacks create --name='CHANGEME' --environment='{request.environment}' "
            "--service_yaml=service.yml\n"
        )
    print("Done")


def _run_daemon(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    from .service import run_service

    if args.config:
        try:
            config = load_config(Path(args.config))
        except ConfigError as exc:
            parser.exit(1, f"Failed to load configuration file due to {exc}\n")
    else:
        config = DaemonConfig(cache_dir=DEFAULT_CACHE_DIR)
    if args.templates:
        config.templates = Path(args.templates)
    if args.registry:
        config.use_registry = True
    if args.templates_url:
        config.templates_url = args.templates_url
    if args.branch is not None:
        config.branch = args.branch

    try:
        run_service(config)
    except StarterError as exc:
        parser.exit(1, f"Unable to start the API due to {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
