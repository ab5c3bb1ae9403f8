# SPDX-License-Identifier: MIT
"""Build graph container.

The Graph holds the targets and fetched packages declared by the
registration layer. It provides name lookup, simple validation and a
JSON loader so that a build description written by another tool can be
fed to the planner.

JSON format::

    {
      "name": "myproject",
      "build_dir": "build",
      "targets": [
        {"name": "app", "kind": "executable", "install": true,
         "link": {"private": ["core"]}},
        {"name": "core", "kind": "shared_library",
         "output_path": "build/libcore.so",
         "link": {"public": ["utils"]}}
      ],
      "packages": [
        {"name": "fmt", "source_dir": "_deps/fmt-src",
         "binary_dir": "_deps/fmt-build"}
      ],
      "vendor_rules": [
        {"name": "acme", "pattern": "acme", "base_dir": "../bin",
         "artifacts": ["acme_rt.dll"]}
      ]
    }

Relative paths are interpreted against the directory of the JSON file.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from rtdeploy.core.errors import DuplicateTargetError, GraphError, UnknownTargetError
from rtdeploy.core.target import FetchedPackage, LinkScope, Target, TargetKind
from rtdeploy.util.source_location import SourceLocation, get_caller_location

logger = logging.getLogger(__name__)


class Graph:
    """Container for the targets of one build.

    Example:
        graph = Graph("myproject", build_dir="build")
        core = graph.SharedLibrary("core")
        app = graph.Executable("app").link(core)

    Attributes:
        name: Project name.
        build_dir: Top-level build directory (searched at install time).
        binary_dir: Binary directory of the current source directory.
        vendor_rules: Raw vendor rule declarations from the description.
    """

    __slots__ = (
        "name",
        "build_dir",
        "binary_dir",
        "vendor_rules",
        "_targets",
        "_packages",
        "defined_at",
    )

    def __init__(
        self,
        name: str = "project",
        *,
        build_dir: Path | str = "build",
        binary_dir: Path | str | None = None,
        defined_at: SourceLocation | None = None,
    ) -> None:
        self.name = name
        self.build_dir = Path(build_dir)
        self.binary_dir = Path(binary_dir) if binary_dir is not None else None
        self.vendor_rules: list[dict[str, Any]] = []
        self._targets: dict[str, Target] = {}
        self._packages: dict[str, FetchedPackage] = {}
        self.defined_at = defined_at or get_caller_location()

    # Registration

    def add_target(self, target: Target) -> Target:
        """Register a target.

        Raises:
            DuplicateTargetError: If a target with this name exists.
        """
        if target.name in self._targets:
            raise DuplicateTargetError(target.name, target.defined_at)
        self._targets[target.name] = target
        return target

    def _create(self, name: str, kind: TargetKind, **kwargs: Any) -> Target:
        kwargs.setdefault("defined_at", get_caller_location())
        return self.add_target(Target(name, kind=kind, **kwargs))

    def Executable(self, name: str, **kwargs: Any) -> Target:
        """Create and register an executable target."""
        return self._create(name, TargetKind.EXECUTABLE, **kwargs)

    def SharedLibrary(self, name: str, **kwargs: Any) -> Target:
        """Create and register a shared library target."""
        return self._create(name, TargetKind.SHARED_LIBRARY, **kwargs)

    def StaticLibrary(self, name: str, **kwargs: Any) -> Target:
        """Create and register a static library target."""
        return self._create(name, TargetKind.STATIC_LIBRARY, **kwargs)

    def InterfaceLibrary(self, name: str, **kwargs: Any) -> Target:
        """Create and register an interface (header-only) library target."""
        return self._create(name, TargetKind.INTERFACE_LIBRARY, **kwargs)

    def add_package(self, package: FetchedPackage) -> FetchedPackage:
        """Register a fetched package (last declaration wins)."""
        if package.name in self._packages:
            logger.debug("Replacing package declaration for %s", package.name)
        self._packages[package.name] = package
        return package

    # Lookup

    def get_target(self, name: str) -> Target | None:
        return self._targets.get(name)

    def __getitem__(self, name: str) -> Target:
        target = self._targets.get(name)
        if target is None:
            raise UnknownTargetError(name)
        return target

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Target):
            return self._targets.get(item.name) is item
        return item in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    @property
    def targets(self) -> list[Target]:
        return list(self._targets.values())

    @property
    def packages(self) -> list[FetchedPackage]:
        return list(self._packages.values())

    def package(self, name: str) -> FetchedPackage | None:
        return self._packages.get(name)

    def roots(self, *, installed_only: bool = False) -> list[Target]:
        """Targets that can receive propagated runtime artifacts."""
        return [
            t
            for t in self._targets.values()
            if t.is_root_eligible and (t.install or not installed_only)
        ]

    # Validation

    def validate(self) -> list[Exception]:
        """Check that every dependency is registered in this graph.

        Returns:
            List of errors found (empty if valid).
        """
        errors: list[Exception] = []
        for target in self._targets.values():
            for dep in target.dependencies:
                if self._targets.get(dep.name) is not dep:
                    errors.append(UnknownTargetError(dep.name, target.defined_at))
            if target.package and target.package not in self._packages:
                errors.append(
                    GraphError(
                        f"target {target.name} refers to undeclared package "
                        f"{target.package}",
                        target.defined_at,
                    )
                )
        return errors

    def find_cycles(self) -> list[list[str]]:
        """Find dependency cycles.

        Cycles are not errors for propagation; this is for callers that
        want to report them.

        Returns:
            Each cycle as a list of target names, first name repeated last.
        """
        cycles: list[list[str]] = []
        done: set[str] = set()

        for start in self._targets.values():
            if start.name in done:
                continue
            path = [start.name]
            on_path = {start.name}
            stack: list[tuple[Target, Iterator[Target]]] = [
                (start, iter(start.dependencies))
            ]
            while stack:
                target, deps = stack[-1]
                dep = next(deps, None)
                if dep is None:
                    stack.pop()
                    done.add(target.name)
                    on_path.discard(target.name)
                    path.pop()
                elif dep.name in on_path:
                    cycles.append(path[path.index(dep.name) :] + [dep.name])
                elif dep.name not in done:
                    path.append(dep.name)
                    on_path.add(dep.name)
                    stack.append((dep, iter(dep.dependencies)))
        return cycles

    # Loading

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, base_dir: Path | None = None) -> Graph:
        """Build a graph from a JSON-style description.

        Raises:
            GraphError: If the description is malformed.
            UnknownTargetError: If a link refers to an undeclared target.
        """
        base = base_dir or Path.cwd()

        def as_path(value: Any) -> Path | None:
            if value is None or value == "":
                return None
            path = Path(value)
            return path if path.is_absolute() else base / path

        graph = cls(
            str(data.get("name", "project")),
            build_dir=as_path(data.get("build_dir")) or base / "build",
            binary_dir=as_path(data.get("binary_dir")),
        )

        for entry in data.get("packages", []):
            if "name" not in entry:
                raise GraphError(f"package entry without a name: {entry!r}")
            graph.add_package(
                FetchedPackage(
                    entry["name"],
                    source_dir=as_path(entry.get("source_dir")),
                    binary_dir=as_path(entry.get("binary_dir")),
                )
            )

        entries = data.get("targets", [])
        for entry in entries:
            if "name" not in entry or "kind" not in entry:
                raise GraphError(f"target entry needs 'name' and 'kind': {entry!r}")
            graph.add_target(
                Target(
                    entry["name"],
                    kind=entry["kind"],
                    output_path=as_path(entry.get("output_path")),
                    output_name=entry.get("output_name"),
                    source_dir=as_path(entry.get("source_dir")),
                    binary_dir=as_path(entry.get("binary_dir")),
                    package=entry.get("package"),
                    install=bool(entry.get("install", False)),
                    sanitizers=entry.get("sanitizers"),
                )
            )

        # Second pass so links may refer forward.
        for entry in entries:
            target = graph[entry["name"]]
            for scope_name, names in (entry.get("link") or {}).items():
                scope = LinkScope.parse(scope_name)
                for dep_name in names:
                    target.link(graph[dep_name], scope=scope)

        graph.vendor_rules = [dict(rule) for rule in data.get("vendor_rules", [])]
        return graph

    @classmethod
    def load(cls, path: Path | str) -> Graph:
        """Load a graph from a JSON file."""
        path = Path(path)
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise GraphError(f"invalid graph file {path}: {e}") from e
        return cls.from_dict(data, base_dir=path.parent.resolve())

    def __repr__(self) -> str:
        return f"Graph({self.name!r}, targets={len(self._targets)})"
