# SPDX-License-Identifier: MIT
"""Command-line interface for rtdeploy."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rtdeploy.configure.config import Configure
    from rtdeploy.core.graph import Graph
    from rtdeploy.deploy.project import DeploymentPlan

# Set up logging
logger = logging.getLogger("rtdeploy")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
        fmt = "%(levelname)s: %(name)s: %(message)s"
    elif verbose:
        level = logging.INFO
        fmt = "%(levelname)s: %(message)s"
    else:
        level = logging.WARNING
        fmt = "%(levelname)s: %(message)s"

    logging.basicConfig(level=level, format=fmt)


def parse_variables(args: list[str]) -> tuple[dict[str, str], list[str]]:
    """Parse KEY=value arguments from a list.

    Args:
        args: List of arguments.

    Returns:
        Tuple of (variables dict, remaining args).
    """
    variables: dict[str, str] = {}
    remaining: list[str] = []

    for arg in args:
        if "=" in arg and not arg.startswith("-"):
            key, _, value = arg.partition("=")
            if key:  # Valid KEY=value
                variables[key] = value
            else:
                remaining.append(arg)
        else:
            remaining.append(arg)

    return variables, remaining


def apply_variables(variables: dict[str, str]) -> None:
    """Make KEY=value command line variables visible to get_var()."""
    import rtdeploy

    if variables:
        os.environ["RTDEPLOY_VARS"] = json.dumps(variables)
    rtdeploy._cli_vars = None


def load_graph(path: str) -> Graph | None:
    """Load a graph file, logging errors.

    Returns:
        The Graph, or None on error.
    """
    from rtdeploy.core.errors import GraphError
    from rtdeploy.core.graph import Graph

    graph_path = Path(path)
    if not graph_path.is_file():
        logger.error("Graph file not found: %s", path)
        return None
    try:
        graph = Graph.load(graph_path)
    except GraphError as e:
        logger.error("%s", e)
        return None
    for problem in graph.validate():
        logger.warning("%s", problem)
    return graph


def resolve_family(args: argparse.Namespace) -> str | None:
    """Toolchain family from --family, RTDEPLOY_FAMILY or the platform."""
    from rtdeploy import get_family

    if getattr(args, "family", None):
        return str(args.family)
    try:
        return get_family()
    except ValueError as e:
        logger.error("%s", e)
        return None


def _plan(
    args: argparse.Namespace, build_dir: Path
) -> tuple[DeploymentPlan | None, Configure | None]:
    from rtdeploy.configure.config import Configure
    from rtdeploy.core.errors import GraphError
    from rtdeploy.deploy.project import plan_deployment

    variables, _ = parse_variables(getattr(args, "extra", []))
    apply_variables(variables)

    graph = load_graph(args.graph)
    if graph is None:
        return None, None
    family = resolve_family(args)
    if family is None:
        return None, None

    config = Configure(build_dir=build_dir)
    try:
        plan = plan_deployment(
            graph,
            args.root or None,
            runtime_dir=args.runtime_dir,
            family=family,
            config=config,
        )
    except GraphError as e:
        logger.error("%s", e)
        return None, None
    return plan, config


def cmd_closure(args: argparse.Namespace) -> int:
    """Print the shared library closure of one root, sorted by name."""
    from rtdeploy.core.closure import resolve_closure
    from rtdeploy.core.errors import GraphError

    setup_logging(args.verbose, args.debug)

    graph = load_graph(args.graph)
    if graph is None:
        return 1
    try:
        closure = resolve_closure(graph[args.root], graph)
    except GraphError as e:
        logger.error("%s", e)
        return 1

    for name in sorted(closure.names):
        print(name)
    return 0


def cmd_plan(args: argparse.Namespace) -> int:
    """Plan propagation and write generator outputs and discovery scripts.

    This command:
    1. Loads the graph description
    2. Resolves every root's closure and plans build and install steps
    3. Writes the selected generator outputs into the build directory
    4. Writes one install_<root>_dependencies.py per installed root
    """
    from rtdeploy.generators import get_generator

    setup_logging(args.verbose, args.debug)

    build_dir = Path(args.build_dir)
    plan, config = _plan(args, build_dir)
    if plan is None:
        return 1

    names = args.generator or ["manifest"]
    try:
        generators = [get_generator(name) for name in names]
    except ValueError as e:
        logger.error("%s", e)
        return 1

    for generator in generators:
        path = generator.generate(plan, build_dir)
        print(f"Wrote {path}")
    for script in plan.write_scripts(build_dir):
        print(f"Wrote {script}")

    config.save()
    return 0


def cmd_deploy(args: argparse.Namespace) -> int:
    """Run build-time copy actions in-process."""
    from rtdeploy.deploy.planner import execute_actions

    setup_logging(args.verbose, args.debug)

    plan, config = _plan(args, Path(args.build_dir))
    if plan is None:
        return 1

    copied = 0
    for root_plan in plan:
        copied += len(execute_actions(root_plan.build.actions))
    config.save()
    print(f"Copied {copied} file(s)")
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    """Write the Mermaid diagram of a graph with closures highlighted."""
    from rtdeploy.core.closure import resolve_all
    from rtdeploy.generators.mermaid import MermaidGenerator

    setup_logging(args.verbose, args.debug)

    graph = load_graph(args.graph)
    if graph is None:
        return 1

    output = Path(args.output) if args.output else Path(args.build_dir) / "rtdeploy.mmd"
    MermaidGenerator().write(graph, output, resolve_all(graph))
    print(f"Wrote {output}")
    return 0


def add_common_args(parser: argparse.ArgumentParser) -> None:
    """Add common arguments to a parser."""
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output")
    parser.add_argument(
        "-B", "--build-dir", default="build", help="Build directory (default: build)"
    )


def add_plan_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments for planning commands."""
    from rtdeploy.configure.platform import FAMILIES

    parser.add_argument("graph", help="Graph description (JSON)")
    parser.add_argument(
        "--root",
        action="append",
        metavar="NAME",
        help="Root target to plan (repeatable; default: all)",
    )
    parser.add_argument(
        "--runtime-dir",
        default="bin",
        help="Install runtime directory (default: bin)",
    )
    parser.add_argument(
        "--family",
        choices=FAMILIES,
        help="Toolchain family (default: RTDEPLOY_FAMILY or platform default)",
    )
    parser.add_argument(
        "extra",
        nargs="*",
        help="Variables (KEY=value)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the rtdeploy CLI."""
    from rtdeploy import __version__
    from rtdeploy.generators import GENERATORS

    parser = argparse.ArgumentParser(
        prog="rtdeploy",
        description="Plan runtime dependency propagation for native builds.",
        epilog="Run 'rtdeploy <command> --help' for command-specific help.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # rtdeploy closure
    closure_parser = subparsers.add_parser(
        "closure", help="Print the shared library closure of a root"
    )
    add_common_args(closure_parser)
    closure_parser.add_argument("graph", help="Graph description (JSON)")
    closure_parser.add_argument("root", help="Root target name")
    closure_parser.set_defaults(func=cmd_closure)

    # rtdeploy plan
    plan_parser = subparsers.add_parser(
        "plan", help="Write copy hooks, install rules and discovery scripts"
    )
    add_common_args(plan_parser)
    add_plan_args(plan_parser)
    plan_parser.add_argument(
        "-g",
        "--generator",
        action="append",
        choices=sorted(GENERATORS),
        help="Output format (repeatable; default: manifest)",
    )
    plan_parser.set_defaults(func=cmd_plan)

    # rtdeploy deploy
    deploy_parser = subparsers.add_parser(
        "deploy", help="Copy runtime dependencies into the build tree now"
    )
    add_common_args(deploy_parser)
    add_plan_args(deploy_parser)
    deploy_parser.set_defaults(func=cmd_deploy)

    # rtdeploy graph
    graph_parser = subparsers.add_parser(
        "graph", help="Write a Mermaid diagram of the graph"
    )
    add_common_args(graph_parser)
    graph_parser.add_argument("graph", help="Graph description (JSON)")
    graph_parser.add_argument("-o", "--output", help="Output file")
    graph_parser.set_defaults(func=cmd_graph)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
