"""Command-line interface router for drvtree."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from drvtree.config import (
    IDENTITY_POLICIES,
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from drvtree.control_plane import BuildScheduler, DryRunBuilder
from drvtree.observability import correlation_scope, new_run_id, setup_logging
from drvtree.planning import CycleError, plan
from drvtree.resolver import DerivationResolver, LoadError
from drvtree.ui.render import CLIRenderer, create_renderer
from drvtree.ui.tui.navigator import GraphNavigator

if TYPE_CHECKING:
    from drvtree.graph.derivation_graph import DerivationGraph, NodeHandle

EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_LOAD_ERROR = 3


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="drvtree",
        description=(
            "drvtree: resolve, plan and inspect derivation graphs.\n\n"
            "Common workflows:\n"
            "  drvtree plan app.drv.json     Print the build order, leaves first\n"
            "  drvtree build app.drv.json    Dry-run the build scheduler\n"
            "  drvtree tree app.drv.json     Print the fully expanded tree\n"
            "  drvtree tui app.drv.json      Browse the graph interactively\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to drvtree TOML config (default: ./drvtree.toml if present).",
    )
    common.add_argument(
        "--identity",
        choices=IDENTITY_POLICIES,
        default=None,
        help="Deduplication key for derivations (overrides resolver.identity).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output and log at DEBUG level.",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser(
        "plan",
        parents=[common],
        help="Print a dependency-respecting build order.",
    )
    plan_parser.add_argument("root", help="Root derivation descriptor (.json/.yaml).")
    plan_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Emit the order and graph summary as JSON.",
    )
    plan_parser.set_defaults(handler=_cmd_plan)

    build_cmd_parser = subparsers.add_parser(
        "build",
        parents=[common],
        help="Dry-run the build scheduler over the resolved graph.",
    )
    build_cmd_parser.add_argument("root", help="Root derivation descriptor (.json/.yaml).")
    build_cmd_parser.add_argument(
        "--jobs",
        "-j",
        type=int,
        default=None,
        help="Maximum concurrent builds (overrides build.max_jobs).",
    )
    build_cmd_parser.set_defaults(handler=_cmd_build)

    tree_parser = subparsers.add_parser(
        "tree",
        parents=[common],
        help="Print the fully expanded derivation tree.",
    )
    tree_parser.add_argument("root", help="Root derivation descriptor (.json/.yaml).")
    tree_parser.set_defaults(handler=_cmd_tree)

    tui_parser = subparsers.add_parser(
        "tui",
        parents=[common],
        help="Browse the derivation tree interactively (requires the tui extra).",
    )
    tui_parser.add_argument("root", help="Root derivation descriptor (.json/.yaml).")
    tui_parser.set_defaults(handler=_cmd_tui)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective config as JSON.",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser



def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)



def _cmd_plan(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    with _logging_session(args, config, command="plan"):
        graph, root = _resolve_root(args, config)
        order = _plan(graph)

    names = [graph[handle].name for handle in order]
    if args.json:
        _emit_json(
            {
                "command": "plan",
                "root": graph[root].name,
                "order": names,
                "graph": graph.serialize(),
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.heading(f"Build order for {graph[root].name} ({len(order)} derivations):")
    if renderer.verbose:
        renderer.numbered([f"{graph[h].name}  [{graph[h].builder}]" for h in order])
    else:
        renderer.numbered(names)
    return 0


def _cmd_build(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    max_jobs = int(config["build"]["max_jobs"])
    with _logging_session(args, config, command="build"):
        graph, _root = _resolve_root(args, config)
        _plan(graph)
        builder = DryRunBuilder()
        scheduler = BuildScheduler(graph, builder, max_jobs=max_jobs)
        report = asyncio.run(scheduler.run())

    renderer = _get_renderer(args)
    renderer.heading(f"Dry-run build ({max_jobs} jobs):")
    for handle in report.completed:
        renderer.build_result(graph[handle].name, ok=True)
    for handle, error in sorted(report.failed.items()):
        renderer.build_result(f"{graph[handle].name}: {error}", ok=False)
    if report.skipped:
        renderer.section("Skipped (failed inputs):")
        renderer.items([graph[handle].name for handle in report.skipped])
    return 0 if report.succeeded else EXIT_BUILD_FAILED


def _cmd_tree(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    with _logging_session(args, config, command="tree"):
        graph, root = _resolve_root(args, config)

    navigator = GraphNavigator(graph, root, indent_width=int(config["ui"]["indent_width"]))
    _get_renderer(args, config).tree(navigator.render_lines())
    return 0


def _cmd_tui(args: argparse.Namespace) -> int:
    from drvtree.ui.tui import run_tui

    config = _load_effective_config(args)
    with _logging_session(args, config, command="tui", interactive=True):
        graph, root = _resolve_root(args, config)
        return run_tui(
            graph,
            root,
            indent_width=int(config["ui"]["indent_width"]),
            no_color=bool(config["ui"]["no_color"]),
        )


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    print(dump_effective_config(config))
    return 0



def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = args.config_path
    overrides: dict[str, object] = {
        "resolver.identity": args.identity,
        "build.max_jobs": getattr(args, "jobs", None),
    }
    if args.no_color:
        overrides["ui.no_color"] = True
    if args.verbose:
        overrides["observability.log_level"] = "DEBUG"

    try:
        return load_config(config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=EXIT_CONFIG_ERROR) from exc


@contextmanager
def _logging_session(
    args: argparse.Namespace,
    config: Mapping[str, Any],
    *,
    command: str,
    interactive: bool = False,
) -> Iterator[None]:
    run_id = new_run_id()
    session = setup_logging(config["observability"], run_id=run_id, interactive=interactive)
    logger = structlog.get_logger(__name__)
    root = getattr(args, "root", None)
    try:
        with correlation_scope(command=command, root=root):
            logger.info("cli_command_started", command=command, run_id=run_id)
            yield
            logger.info("cli_command_finished", command=command)
    finally:
        session.close()


def _resolve_root(
    args: argparse.Namespace, config: Mapping[str, Any]
) -> tuple[DerivationGraph, NodeHandle]:
    root_path = Path(args.root)
    resolver = DerivationResolver(identity=config["resolver"]["identity"])
    try:
        return resolver.resolve(root_path)
    except LoadError as exc:
        structlog.get_logger(__name__).error(
            "resolution_failed", path=str(exc.path), error=exc.reason
        )
        raise CLIError(str(exc), exit_code=EXIT_LOAD_ERROR) from exc


def _plan(graph: DerivationGraph) -> tuple[NodeHandle, ...]:
    try:
        return plan(graph)
    except CycleError as exc:
        raise CLIError(str(exc), exit_code=EXIT_LOAD_ERROR) from exc



def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(
    args: argparse.Namespace, config: Mapping[str, Any] | None = None
) -> CLIRenderer:
    """Create a CLI renderer from the parsed namespace and effective config."""

    no_color = args.no_color or (config is not None and bool(config["ui"]["no_color"]))
    return create_renderer(no_color=no_color, verbose=args.verbose)


__all__ = ["CLIError", "build_parser", "run_cli"]
