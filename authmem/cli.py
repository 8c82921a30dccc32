"""CLI entrypoints for authmem commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

from .acquisition import InvalidInputError, resolve_source
from .config import OUTPUT_FORMATS, AuthMemConfig, ConfigError, load_config
from .logging import configure_logging
from .orchestrator import ExtractionOutcome, Orchestrator
from .serializer import write_artifact


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_source_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "source",
        help="GitHub repository URL, path to a .zip archive, or a local directory.",
    )
    parser.add_argument("--config", help="Path to .authmem.yml (or the directory holding it).")
    parser.add_argument(
        "--token",
        help="GitHub token used for API and archive requests (overrides the environment).",
    )
    parser.add_argument("--name", help="Project name recorded in the metadata.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authmem",
        description="Extract a repository's authentication and authorization patterns.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract auth patterns and write the auth memory artifact.",
    )
    _add_verbose_option(extract_parser, suppress_default=True)
    _add_source_options(extract_parser)
    extract_parser.add_argument(
        "-o",
        "--output",
        help="File or directory for the artifact (prints to stdout when omitted).",
    )
    extract_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        help="Artifact format (defaults to the configured format, typescript).",
    )

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Print the extracted auth memory record as JSON.",
    )
    _add_verbose_option(inspect_parser, suppress_default=True)
    _add_source_options(inspect_parser)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP extraction service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _load(args: argparse.Namespace) -> AuthMemConfig:
    config = load_config(Path(args.config) if args.config else None)
    if args.token:
        config.acquisition.github_token = args.token
    return config


def _print_summary(outcome: ExtractionOutcome, stream: TextIO) -> None:
    summary = outcome.memory.summary()
    print(f"Auth provider:    {summary['authProvider']}", file=stream)
    print(f"Session strategy: {summary['sessionStrategy']}", file=stream)
    print(
        f"Roles: {summary['roles']}  Permissions: {summary['permissions']}  "
        f"Middleware: {summary['middleware']}  Protected routes: {summary['protectedRoutes']}  "
        f"API guards: {summary['apiGuards']}",
        file=stream,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for authmem commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        config = _load(args)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    fmt = getattr(args, "format", None) or config.output.format
    orchestrator = Orchestrator(config)
    try:
        source = resolve_source(args.source)
        outcome = orchestrator.run(source, fmt=fmt, project_name=args.name)
    except InvalidInputError as exc:
        parser.exit(2, f"{exc}\n")
    except RuntimeError as exc:
        parser.exit(1, f"authmem {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    if args.command == "inspect":
        print(json.dumps(outcome.memory.to_dict(), indent=2, ensure_ascii=False))
        return

    if args.output:
        target = write_artifact(outcome.memory, Path(args.output), fmt)
        _print_summary(outcome, sys.stdout)
        print(f"Auth memory written to {_relativize(target)}")
    else:
        _print_summary(outcome, sys.stderr)
        sys.stdout.write(outcome.artifact)


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
