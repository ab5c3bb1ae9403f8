# SPDX-License-Identifier: MIT
"""Build-time propagation planner.

For a root target and its closure, the planner emits one copy-if-different
action per shared library (copying it next to the root's output) plus
build-order edges so the root is only linked after everything it needs has
been built. Vendor artifacts and a sanitizer runtime can be unioned in as
extra actions.

The plan itself is data. Build executors render it (see the generators)
or run it directly with execute_actions().
"""

from __future__ import annotations

import logging
import shlex
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from rtdeploy.core.errors import CopyFailureError, MissingArtifactError
from rtdeploy.core.target import TargetKind
from rtdeploy.util.commands import copy_if_different

if TYPE_CHECKING:
    from rtdeploy.core.closure import ClosureSet
    from rtdeploy.core.target import Target
    from rtdeploy.deploy.vendor import VendorRegistry

logger = logging.getLogger(__name__)


class PropagationPhase(str, Enum):
    """When a propagation action runs."""

    BUILD_TIME = "build"
    INSTALL_TIME = "install"


@dataclass(frozen=True)
class PropagationAction:
    """Copy one artifact into a destination directory.

    Attributes:
        source: Artifact path or build-tool token.
        destination: Destination directory or build-tool token.
        file_name: File name the artifact has in the destination.
        phase: Build time or install time.
        root: Name of the root the action serves.
    """

    source: str
    destination: str
    file_name: str
    phase: PropagationPhase = PropagationPhase.BUILD_TIME
    root: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.destination, self.file_name)

    def to_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "destination": self.destination,
            "file_name": self.file_name,
            "phase": self.phase.value,
            "root": self.root,
        }


@dataclass(frozen=True)
class BuildOrderEdge:
    """Build `before` ahead of `after` (the root depends on `before`)."""

    before: str
    after: str

    def to_dict(self) -> dict[str, str]:
        return {"before": self.before, "after": self.after}


def python_command() -> str:
    """The Python interpreter used in generated commands."""
    return sys.executable.replace("\\", "/")


@dataclass
class BuildPlan:
    """Build-time plan for one root.

    Attributes:
        root: Root target name.
        actions: Copy actions, deduplicated by destination and file name.
        order_edges: Build-order edges.
    """

    root: str
    actions: list[PropagationAction] = field(default_factory=list)
    order_edges: list[BuildOrderEdge] = field(default_factory=list)

    def hook_commands(self, python: str | None = None) -> list[str]:
        """Render each action as a post-build command line."""
        python = python or python_command()
        return [
            " ".join(
                [
                    python,
                    "-m rtdeploy.util.commands copy-if-different",
                    _quote(action.source),
                    _quote(as_directory(action.destination)),
                ]
            )
            for action in self.actions
        ]

    def to_dict(self) -> dict[str, object]:
        return {
            "root": self.root,
            "actions": [a.to_dict() for a in self.actions],
            "order_edges": [e.to_dict() for e in self.order_edges],
            "hooks": self.hook_commands(),
        }


def as_directory(path: str) -> str:
    """Spell a destination with a trailing separator so it is created as a directory."""
    if path.endswith(("/", "\\")):
        return path
    return path + "/"


def _quote(value: str) -> str:
    # Build-tool tokens contain shell metacharacters but are substituted
    # before the shell sees them.
    if value.startswith("$<"):
        return value
    return shlex.quote(value)


def plan_build_time_actions(
    root: Target,
    closure: ClosureSet,
    registry: VendorRegistry | None = None,
    extra_artifacts: Iterable[Path | str] = (),
) -> BuildPlan:
    """Plan the build-time propagation for one root.

    Args:
        root: The root target.
        closure: The root's closure (see resolve_closure()).
        registry: Optional vendor registry; matching artifacts are added.
        extra_artifacts: Further files to place next to the root, such as
            a sanitizer runtime.

    Returns:
        The BuildPlan. Within the root's output directory, no two actions
        share a file name; the first one planned wins.
    """
    plan = BuildPlan(root.name)
    seen: dict[tuple[str, str], PropagationAction] = {}
    destination = root.output_dir

    def add(action: PropagationAction) -> None:
        existing = seen.get(action.key)
        if existing is not None:
            logger.debug(
                "Dropping duplicate %s for %s (already from %s)",
                action.file_name,
                root.name,
                existing.source,
            )
            return
        seen[action.key] = action
        plan.actions.append(action)

    for lib in closure:
        if lib is root or lib.name == root.name:
            continue
        add(
            PropagationAction(
                source=lib.output_path,
                destination=destination,
                file_name=lib.output_file_name,
                root=root.name,
            )
        )

    if registry is not None:
        for path in registry.artifacts_for(closure):
            add(
                PropagationAction(
                    source=str(path),
                    destination=destination,
                    file_name=path.name,
                    root=root.name,
                )
            )

    for artifact in extra_artifacts:
        path = Path(artifact)
        add(
            PropagationAction(
                source=str(path),
                destination=destination,
                file_name=path.name,
                root=root.name,
            )
        )

    # Every linked target is sequenced, not just the shared libraries.
    for target in closure.visited:
        if target.kind is TargetKind.INTERFACE_LIBRARY or target.name == root.name:
            continue
        plan.order_edges.append(BuildOrderEdge(before=target.name, after=root.name))

    logger.debug(
        "Planned %d copy action(s) and %d order edge(s) for %s",
        len(plan.actions),
        len(plan.order_edges),
        root.name,
    )
    return plan


def execute_actions(actions: Iterable[PropagationAction]) -> list[PropagationAction]:
    """Run copy actions in-process.

    Actions whose source or destination is still a build-tool token are
    skipped. Missing sources and failed copies are logged as warnings and
    never raised.

    Returns:
        The actions that copied a file.
    """
    copied: list[PropagationAction] = []
    for action in actions:
        if action.source.startswith("$<") or action.destination.startswith("$<"):
            logger.debug("Skipping unresolved action %s", action.source)
            continue
        source = Path(action.source)
        dest = Path(action.destination) / action.file_name
        if not source.is_file():
            logger.warning("%s", MissingArtifactError(action.source))
            continue
        try:
            if copy_if_different(source, dest):
                copied.append(action)
                logger.info("Copied %s to %s", source.name, action.destination)
        except OSError as e:
            logger.warning("%s", CopyFailureError(str(source), str(dest), str(e)))
    return copied
