"""
blockgraph command line.

Usage:
    blockgraph                              # run the embedded demo document
    blockgraph pipeline.hcl                 # run a document until Ctrl+C
    blockgraph pipeline.hcl --duration 5    # run for five seconds
    blockgraph pipeline.hcl --check         # evaluate only, print exports
    python -m blockgraph --log-level DEBUG --json-logs

Exit codes:
    0    run completed (task failures are reported, not fatal)
    1    invalid settings, or the document could not be loaded or evaluated
    130  interrupted before the graph started
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any

from .config import AppSettings, get_settings
from .errors import BlockGraphError
from .loaders import DEMO_DOCUMENT_NAME
from .observability import configure_logging
from .runtime import GraphRuntime, RunReport, create_runtime

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blockgraph",
        description="Evaluate a block configuration document and run its components",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "document",
        nargs="?",
        default=DEMO_DOCUMENT_NAME,
        help="Document path or name (default: the embedded demo)",
    )
    parser.add_argument("--duration", type=float, help="Seconds to run before shutting down")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log records")
    parser.add_argument("--check", action="store_true", help="Evaluate only, do not run")
    parser.add_argument("--report", action="store_true", help="Print the run report as JSON")
    return parser


def _settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.json_logs:
        overrides["json_logs"] = True
    return overrides


def _load_settings(args: argparse.Namespace) -> AppSettings:
    """
    Environment settings with command-line overrides applied.

    Raises:
        ValueError: If the environment or a flag holds an invalid value
    """
    settings = get_settings()
    overrides = _settings_overrides(args)
    if overrides:
        settings = AppSettings.model_validate({**settings.model_dump(), **overrides})
    return settings


def _install_signal_handlers(runtime: GraphRuntime) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, runtime.request_shutdown)
        except NotImplementedError:
            # Not supported by this event loop; Ctrl+C raises KeyboardInterrupt instead
            logger.debug(f"[cli] Signal handler for {sig.name} not installed")


def _print_exports(environment: dict[str, str]) -> None:
    for name, description in environment.items():
        print(f"{name} = {description}")


def _print_report(report: RunReport, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    print(f"Ran {len(report.components)} components for {report.duration_s:.1f}s")
    for failure in report.failures:
        print(
            f"  failed: {failure.component} [{failure.task}] "
            f"{type(failure.error).__name__}: {failure.error}",
            file=sys.stderr,
        )


async def run_document(
    runtime: GraphRuntime,
    document: str,
    *,
    duration: float | None = None,
    check: bool = False,
    report: bool = False,
) -> int:
    """Load, evaluate and (unless `check`) run one document."""
    try:
        graph = await runtime.load_graph(document)
    except BlockGraphError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if check:
        _print_exports(graph.environment.describe())
        return EXIT_OK

    _install_signal_handlers(runtime)
    result = await runtime.run_graph(graph, duration=duration, document=document)
    _print_report(result, report)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = _load_settings(args)
    except ValueError as e:
        print(f"error: invalid settings: {e}", file=sys.stderr)
        return EXIT_ERROR

    configure_logging(settings.log_level, json_format=settings.json_logs)

    if args.duration is not None and args.duration <= 0:
        print("error: --duration must be positive", file=sys.stderr)
        return EXIT_ERROR

    try:
        runtime = create_runtime(settings)
        return asyncio.run(
            run_document(
                runtime,
                args.document,
                duration=args.duration,
                check=args.check,
                report=args.report,
            )
        )
    except KeyboardInterrupt:
        print("interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
