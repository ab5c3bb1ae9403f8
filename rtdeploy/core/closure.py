# SPDX-License-Identifier: MIT
"""Shared library closure of a root target.

The closure of a root is the set of shared libraries it needs at run time:
every SHARED_LIBRARY target reachable through direct or interface links,
transitively. Traversal continues through targets of any kind, so a shared
library that is only reached through a static library is still found.

Each call owns its own visited set, so resolution is a pure function of
the graph and terminates on cyclic graphs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from rtdeploy.core.errors import UnknownTargetError

if TYPE_CHECKING:
    from rtdeploy.core.graph import Graph
    from rtdeploy.core.target import Target

logger = logging.getLogger(__name__)


class ClosureSet:
    """Deduplicated set of shared library targets reachable from a root.

    Iteration yields targets in discovery order so emitted plans are
    reproducible; equality ignores order.

    Attributes:
        root: The root target.
        visited: Every target reached during traversal, of any kind,
            in discovery order (the root excluded).
    """

    __slots__ = ("root", "_members", "visited")

    def __init__(
        self,
        root: Target,
        members: Iterable[Target] = (),
        visited: Iterable[Target] = (),
    ) -> None:
        self.root = root
        self._members: dict[str, Target] = {}
        for target in members:
            self._members.setdefault(target.name, target)
        self.visited: list[Target] = list(visited)

    @property
    def names(self) -> set[str]:
        return set(self._members)

    def __iter__(self) -> Iterator[Target]:
        return iter(self._members.values())

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, item: object) -> bool:
        name = getattr(item, "name", item)
        return name in self._members

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ClosureSet):
            return self.names == other.names
        if isinstance(other, (set, frozenset)):
            return self.names == {getattr(t, "name", t) for t in other}
        return NotImplemented

    def __repr__(self) -> str:
        names = ", ".join(sorted(self._members))
        return f"ClosureSet({self.root.name!r}, {{{names}}})"


def resolve_closure(root: Target, graph: Graph | None = None) -> ClosureSet:
    """Compute the shared library closure of a root target.

    Args:
        root: Root target.
        graph: Optional graph; when given, the root must be registered in it.

    Returns:
        The closure. Never contains the root itself.

    Raises:
        UnknownTargetError: If a graph is given and the root is not in it.
    """
    if graph is not None and root not in graph:
        raise UnknownTargetError(root.name, root.defined_at)

    # The root is marked up front so a cycle leading back to it is ignored.
    visited: set[str] = {root.name}
    members: list[Target] = []
    order: list[Target] = []

    # Explicit stack; reversed pushes keep declaration order depth-first.
    stack: list[Target] = list(reversed(root.dependencies))
    while stack:
        target = stack.pop()
        if target.name in visited:
            continue
        visited.add(target.name)
        order.append(target)
        if target.is_shared_library:
            members.append(target)
        for dep in reversed(target.dependencies):
            if dep.name not in visited:
                stack.append(dep)

    closure = ClosureSet(root, members, order)
    logger.debug(
        "Closure of %s: %s", root.name, ", ".join(t.name for t in closure) or "(empty)"
    )
    return closure


def resolve_all(
    graph: Graph, roots: Iterable[Target | str] | None = None
) -> dict[str, ClosureSet]:
    """Resolve closures for several roots.

    Args:
        graph: The build graph.
        roots: Roots to resolve, as targets or names. Defaults to every
            executable and shared library in the graph.

    Returns:
        Mapping of root name to closure.
    """
    if roots is None:
        selected = graph.roots()
    else:
        selected = [graph[r] if isinstance(r, str) else r for r in roots]
    return {root.name: resolve_closure(root, graph) for root in selected}
