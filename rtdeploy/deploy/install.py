# SPDX-License-Identifier: MIT
"""Install rules for a root target.

plan_install() describes what an installer must place for one root: the
root's own artifact, every shared library of its closure, vendor
artifacts, a sanitizer runtime when the root needs one, and the
discovery script that picks up whatever the static plan could not name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from rtdeploy.configure.platform import Platform, default_family, get_platform
from rtdeploy.core.closure import resolve_closure
from rtdeploy.core.target import TargetKind
from rtdeploy.deploy.discovery import DiscoveryScript, generate_discovery_procedure
from rtdeploy.deploy.sanitizer import sanitizer_artifacts

if TYPE_CHECKING:
    from rtdeploy.configure.config import Configure
    from rtdeploy.core.closure import ClosureSet
    from rtdeploy.core.graph import Graph
    from rtdeploy.core.target import Target
    from rtdeploy.deploy.vendor import VendorRegistry

logger = logging.getLogger(__name__)

RUNTIME_COMPONENT = "Runtime"
DEVELOPMENT_COMPONENT = "Development"


@dataclass
class InstallRule:
    """Install some files into a directory below the install prefix.

    Attributes:
        files: Paths or build-tool tokens.
        destination: Directory relative to the install prefix.
        component: Install component name.
        optional: Whether missing files are tolerated.
    """

    files: list[str]
    destination: str
    component: str = RUNTIME_COMPONENT
    optional: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "files": list(self.files),
            "destination": self.destination,
            "component": self.component,
            "optional": self.optional,
        }


@dataclass
class InstallPlan:
    """Everything needed to install one root.

    Attributes:
        root: Root target name.
        rules: Install rules, in the order they should run.
        script: Discovery script to run after the rules, if any.
    """

    root: str
    rules: list[InstallRule] = field(default_factory=list)
    script: DiscoveryScript | None = None

    def files_for(self, destination: str) -> list[str]:
        """All files installed into one destination."""
        files: list[str] = []
        for rule in self.rules:
            if rule.destination == destination:
                files.extend(f for f in rule.files if f not in files)
        return files

    def to_dict(self) -> dict[str, object]:
        return {
            "root": self.root,
            "rules": [r.to_dict() for r in self.rules],
            "script": self.script.file_name if self.script else None,
        }


def _wasm_companion(target: Target) -> str:
    if target.has_concrete_output:
        return str(Path(target.output_dir) / f"{target.stem}.wasm")
    return f"{target.output_dir}/{target.stem}.wasm"


def plan_install(
    root: Target,
    graph: Graph,
    runtime_dir: str = "bin",
    archive_dir: str = "lib",
    *,
    family: str | None = None,
    registry: VendorRegistry | None = None,
    config: Configure | None = None,
    closure: ClosureSet | None = None,
    platform: Platform | None = None,
    install_prefix: Path | str | None = None,
    sanitizer_runtime: list[Path] | None = None,
) -> InstallPlan:
    """Plan the installation of one root.

    Args:
        root: The target to install.
        graph: The graph the root belongs to.
        runtime_dir: Destination of executables and shared libraries.
        archive_dir: Destination of static libraries.
        family: Toolchain family (default: from the platform).
        registry: Vendor registry; matching artifacts are installed.
        config: Configure context used to cache the sanitizer lookup.
        closure: Precomputed closure of root.
        platform: Target platform (default: host).
        install_prefix: Default prefix baked into the discovery script.
        sanitizer_runtime: Already located sanitizer runtime files; looked
            up when not given.

    Returns:
        The InstallPlan.
    """
    platform = platform or get_platform()
    family = family or default_family(platform)
    plan = InstallPlan(root.name)

    if root.kind is TargetKind.INTERFACE_LIBRARY:
        logger.debug("%s is an interface library; nothing to install", root.name)
        return plan

    if root.kind is TargetKind.STATIC_LIBRARY:
        plan.rules.append(
            InstallRule([root.output_path], archive_dir, DEVELOPMENT_COMPONENT)
        )
        return plan

    seen: dict[tuple[str, str], str] = {}

    def add_rule(
        entries: list[tuple[str, str]], optional: bool = False
    ) -> list[str]:
        # entries are (path, file name in runtime_dir); first one wins.
        files: list[str] = []
        for path, file_name in entries:
            existing = seen.get((runtime_dir, file_name))
            if existing is not None:
                logger.debug(
                    "Dropping duplicate %s for %s (already from %s)",
                    file_name,
                    root.name,
                    existing,
                )
                continue
            seen[(runtime_dir, file_name)] = path
            files.append(path)
        if files:
            plan.rules.append(InstallRule(files, runtime_dir, optional=optional))
        return files

    add_rule([(root.output_path, root.output_file_name)])

    if closure is None:
        closure = resolve_closure(root, graph)
    add_rule([(lib.output_path, lib.output_file_name) for lib in closure])

    extras: list[Path] = []
    if registry is not None:
        vendor = registry.artifacts_for(closure)
        kept = add_rule([(str(p), p.name) for p in vendor])
        extras.extend(Path(p) for p in kept)

    sanitizer = sanitizer_runtime
    if sanitizer is None:
        sanitizer = sanitizer_artifacts(root, family, config, platform)
    kept = add_rule([(str(p), p.name) for p in sanitizer])
    extras.extend(Path(p) for p in kept)

    if family == "emscripten" and root.kind is TargetKind.EXECUTABLE:
        add_rule([(_wasm_companion(root), f"{root.stem}.wasm")], optional=True)

    plan.script = generate_discovery_procedure(
        root,
        runtime_dir,
        graph,
        install_prefix=install_prefix,
        platform=platform,
        extra_artifacts=extras,
    )
    logger.info(
        "Install plan for %s: %d rule(s), discovery script %s",
        root.name,
        len(plan.rules),
        plan.script.file_name,
    )
    return plan
