# SPDX-License-Identifier: MIT
"""Build targets as seen by the propagation engine.

A Target mirrors one node of the build graph owned by the external build
description: an executable, a shared, static or interface library. The
engine only reads targets; they are created once by the registration layer
and linked with CMake-style scopes:

- PRIVATE: the target links the dependency itself.
- INTERFACE: the dependency propagates to consumers of the target, but the
  target does not link it.
- PUBLIC: both.

Output locations are often only known to the build tool. A target without
an explicit ``output_path`` is referred to by an opaque token
(``$<TARGET_FILE:name>``) that the build tool substitutes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rtdeploy.core.errors import InvalidTargetKindError
from rtdeploy.util.source_location import SourceLocation, get_caller_location


class TargetKind(str, Enum):
    """Kind of build target."""

    EXECUTABLE = "executable"
    SHARED_LIBRARY = "shared_library"
    STATIC_LIBRARY = "static_library"
    INTERFACE_LIBRARY = "interface"

    @classmethod
    def parse(cls, value: str | TargetKind) -> TargetKind:
        """Parse a kind from its name or a common alias.

        Accepts the enum values plus CMake spellings ("SHARED_LIBRARY",
        "EXECUTABLE") and short forms ("program", "shared", "static").

        Raises:
            InvalidTargetKindError: If the value is not recognized.
        """
        if isinstance(value, TargetKind):
            return value
        key = value.strip().lower().replace("-", "_")
        kind = _KIND_ALIASES.get(key)
        if kind is None:
            raise InvalidTargetKindError(f"unknown target kind: {value!r}")
        return kind


_KIND_ALIASES = {
    "executable": TargetKind.EXECUTABLE,
    "program": TargetKind.EXECUTABLE,
    "exe": TargetKind.EXECUTABLE,
    "shared_library": TargetKind.SHARED_LIBRARY,
    "sharedlibrary": TargetKind.SHARED_LIBRARY,
    "shared": TargetKind.SHARED_LIBRARY,
    "module_library": TargetKind.SHARED_LIBRARY,
    "static_library": TargetKind.STATIC_LIBRARY,
    "staticlibrary": TargetKind.STATIC_LIBRARY,
    "static": TargetKind.STATIC_LIBRARY,
    "interface": TargetKind.INTERFACE_LIBRARY,
    "interface_library": TargetKind.INTERFACE_LIBRARY,
    "interfacelibrary": TargetKind.INTERFACE_LIBRARY,
    "header_only": TargetKind.INTERFACE_LIBRARY,
}


class LinkScope(str, Enum):
    """Visibility of a link relationship."""

    PRIVATE = "private"
    PUBLIC = "public"
    INTERFACE = "interface"

    @classmethod
    def parse(cls, value: str | LinkScope) -> LinkScope:
        if isinstance(value, LinkScope):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidTargetKindError(f"unknown link scope: {value!r}") from None


@dataclass(frozen=True)
class FetchedPackage:
    """An externally fetched dependency.

    Only its directories are known; the exact locations of the runtime
    artifacts it produces are discovered at install time.

    Attributes:
        name: Package name.
        source_dir: Where the package sources were fetched to.
        binary_dir: Where the package is built.
    """

    name: str
    source_dir: Path | None = None
    binary_dir: Path | None = None

    def directories(self) -> list[Path]:
        return [d for d in (self.source_dir, self.binary_dir) if d is not None]


class Target:
    """A node in the build graph.

    Example:
        core = Target("core", kind=TargetKind.SHARED_LIBRARY)
        app = Target("app", kind=TargetKind.EXECUTABLE)
        app.link(core)  # PRIVATE by default

    Attributes:
        name: Target name, unique within a graph.
        kind: Kind of target.
        direct_dependencies: Targets this target links itself.
        interface_dependencies: Targets that propagate to consumers.
        output_name: File stem override (default: the target name).
        source_dir: Source directory, used by vendor artifact rules.
        binary_dir: Build directory of this target.
        package: Name of the fetched package this target belongs to.
        install: Whether the registration layer installs this target.
        sanitizers: Sanitizer names enabled for this target.
        defined_at: Where this target was created in user code.
    """

    __slots__ = (
        "name",
        "kind",
        "direct_dependencies",
        "interface_dependencies",
        "output_name",
        "source_dir",
        "binary_dir",
        "package",
        "install",
        "sanitizers",
        "defined_at",
        "_output_path",
    )

    def __init__(
        self,
        name: str,
        *,
        kind: TargetKind | str,
        output_path: Path | str | None = None,
        output_name: str | None = None,
        source_dir: Path | str | None = None,
        binary_dir: Path | str | None = None,
        package: str | None = None,
        install: bool = False,
        sanitizers: set[str] | list[str] | None = None,
        defined_at: SourceLocation | None = None,
    ) -> None:
        self.name = name
        self.kind = TargetKind.parse(kind)
        self.direct_dependencies: list[Target] = []
        self.interface_dependencies: list[Target] = []
        self.output_name = output_name
        self.source_dir = Path(source_dir) if source_dir is not None else None
        self.binary_dir = Path(binary_dir) if binary_dir is not None else None
        self.package = package
        self.install = install
        self.sanitizers: set[str] = set(sanitizers or ())
        self.defined_at = defined_at or get_caller_location()
        self._output_path = Path(output_path) if output_path is not None else None

    def link(self, *targets: Target, scope: LinkScope | str = LinkScope.PRIVATE) -> Target:
        """Add link dependencies (fluent API).

        Args:
            *targets: Targets to depend on.
            scope: PRIVATE, PUBLIC or INTERFACE.

        Returns:
            self for method chaining.
        """
        scope = LinkScope.parse(scope)
        for target in targets:
            if scope in (LinkScope.PRIVATE, LinkScope.PUBLIC):
                if target not in self.direct_dependencies:
                    self.direct_dependencies.append(target)
            if scope in (LinkScope.INTERFACE, LinkScope.PUBLIC):
                if target not in self.interface_dependencies:
                    self.interface_dependencies.append(target)
        return self

    @property
    def dependencies(self) -> list[Target]:
        """Direct then interface dependencies, without duplicates."""
        result = list(self.direct_dependencies)
        for dep in self.interface_dependencies:
            if dep not in result:
                result.append(dep)
        return result

    @property
    def stem(self) -> str:
        """Base file name of the output, without prefix or suffix."""
        return self.output_name or self.name

    @property
    def has_concrete_output(self) -> bool:
        return self._output_path is not None

    @property
    def output_path(self) -> str:
        """Path of the built artifact, or an opaque token for the build tool."""
        if self._output_path is not None:
            return str(self._output_path)
        return f"$<TARGET_FILE:{self.name}>"

    @property
    def output_dir(self) -> str:
        """Directory holding the built artifact, or an opaque token."""
        if self._output_path is not None:
            return str(self._output_path.parent)
        return f"$<TARGET_FILE_DIR:{self.name}>"

    @property
    def output_file_name(self) -> str:
        """File name of the built artifact, or an opaque token."""
        if self._output_path is not None:
            return self._output_path.name
        return f"$<TARGET_FILE_NAME:{self.name}>"

    @property
    def is_shared_library(self) -> bool:
        return self.kind is TargetKind.SHARED_LIBRARY

    @property
    def is_root_eligible(self) -> bool:
        """Whether this target can receive propagated runtime artifacts."""
        return self.kind in (TargetKind.EXECUTABLE, TargetKind.SHARED_LIBRARY)

    def to_dict(self) -> dict[str, object]:
        """Serialize for manifests (dependencies by name)."""
        data: dict[str, object] = {
            "name": self.name,
            "kind": self.kind.value,
            "output_path": self.output_path,
            "direct_dependencies": [d.name for d in self.direct_dependencies],
            "interface_dependencies": [d.name for d in self.interface_dependencies],
        }
        if self.package:
            data["package"] = self.package
        if self.sanitizers:
            data["sanitizers"] = sorted(self.sanitizers)
        return data

    def __repr__(self) -> str:
        deps = ", ".join(d.name for d in self.dependencies)
        return f"Target({self.name!r}, kind={self.kind.value}, deps=[{deps}])"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Target):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)
