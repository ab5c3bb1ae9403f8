# SPDX-License-Identifier: MIT
"""Deployment plan for a whole graph.

plan_deployment() runs the closure resolver, the build-time planner and
the install planner for every selected root and keeps the results
together, so generators can render a single consistent plan.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from rtdeploy.configure.platform import Platform, default_family, get_platform
from rtdeploy.core.closure import ClosureSet, resolve_closure
from rtdeploy.deploy.install import InstallPlan, plan_install
from rtdeploy.deploy.planner import BuildPlan, plan_build_time_actions
from rtdeploy.deploy.sanitizer import sanitizer_artifacts
from rtdeploy.deploy.vendor import VendorRegistry

if TYPE_CHECKING:
    from rtdeploy.configure.config import Configure
    from rtdeploy.core.graph import Graph
    from rtdeploy.core.target import Target

logger = logging.getLogger(__name__)


@dataclass
class RootPlan:
    """Closure, build plan and install plan of one root."""

    root: Target
    closure: ClosureSet
    build: BuildPlan
    install: InstallPlan | None = None


@dataclass
class DeploymentPlan:
    """Plans for every root of a graph.

    Attributes:
        graph: The planned graph.
        runtime_dir: Install runtime directory.
        family: Toolchain family the plan was made for.
        roots: Per-root plans, in graph order.
    """

    graph: Graph
    runtime_dir: str = "bin"
    family: str = "gcc"
    roots: dict[str, RootPlan] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.graph.name

    def __iter__(self) -> Iterator[RootPlan]:
        return iter(self.roots.values())

    def __len__(self) -> int:
        return len(self.roots)

    def to_dict(self) -> dict[str, object]:
        roots: dict[str, object] = {}
        for name, plan in self.roots.items():
            entry = plan.build.to_dict()
            entry["closure"] = [t.name for t in plan.closure]
            entry["install"] = plan.install.to_dict() if plan.install else None
            roots[name] = entry
        return {
            "project": self.graph.name,
            "runtime_dir": self.runtime_dir,
            "family": self.family,
            "roots": roots,
        }

    def write_scripts(self, output_dir: Path) -> list[Path]:
        """Write every discovery script into output_dir."""
        output_dir.mkdir(parents=True, exist_ok=True)
        written: list[Path] = []
        for plan in self.roots.values():
            if plan.install is not None and plan.install.script is not None:
                script = plan.install.script
                written.append(script.write(output_dir / script.file_name))
        return written


def plan_deployment(
    graph: Graph,
    roots: list[Target | str] | None = None,
    *,
    runtime_dir: str = "bin",
    archive_dir: str = "lib",
    family: str | None = None,
    registry: VendorRegistry | None = None,
    config: Configure | None = None,
    platform: Platform | None = None,
    install_prefix: Path | str | None = None,
) -> DeploymentPlan:
    """Plan build-time propagation and installation for a graph.

    Args:
        graph: The build graph.
        roots: Roots to plan (default: every executable and shared library).
            Install plans are made for roots the graph marks as installed,
            and for every root named explicitly.
        runtime_dir: Install runtime directory.
        archive_dir: Install directory for static libraries.
        family: Toolchain family (default: from the platform).
        registry: Vendor registry (default: built-in rules plus the graph's).
        config: Configure context for cached lookups.
        platform: Target platform (default: host).
        install_prefix: Default prefix baked into discovery scripts.
    """
    platform = platform or get_platform()
    family = family or default_family(platform)
    registry = registry if registry is not None else VendorRegistry.from_graph(graph)

    if roots is None:
        selected = graph.roots()
        explicit = False
    else:
        selected = [graph[r] if isinstance(r, str) else r for r in roots]
        explicit = True

    plan = DeploymentPlan(graph, runtime_dir=runtime_dir, family=family)
    for root in selected:
        closure = resolve_closure(root, graph)
        extras = sanitizer_artifacts(root, family, config, platform)
        build = plan_build_time_actions(root, closure, registry, extras)
        install = None
        if root.install or explicit:
            install = plan_install(
                root,
                graph,
                runtime_dir,
                archive_dir,
                family=family,
                registry=registry,
                config=config,
                closure=closure,
                platform=platform,
                install_prefix=install_prefix,
                sanitizer_runtime=extras,
            )
        plan.roots[root.name] = RootPlan(root, closure, build, install)

    logger.info("Planned deployment of %d root(s) for %s", len(plan), graph.name)
    return plan
