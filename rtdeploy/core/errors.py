# SPDX-License-Identifier: MIT
"""Custom exceptions for rtdeploy.

All rtdeploy exceptions inherit from RtdeployError, which includes
optional source location information for better error messages.

Two families exist:

- GraphError and its subclasses are raised. They signal mistakes in the
  registration layer (unknown targets, duplicate names) and stop planning.
- PropagationError and its subclasses describe runtime degradations. They
  are built for their message and logged as warnings; a propagation
  failure leaves a target unable to run standalone but never fails the
  build.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rtdeploy.util.source_location import SourceLocation


class RtdeployError(Exception):
    """Base class for all rtdeploy exceptions.

    Attributes:
        message: The error message.
        location: Optional source location where the error occurred.
    """

    def __init__(
        self,
        message: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"{self.location}: {self.message}"
        return self.message


class GraphError(RtdeployError):
    """Error in the build graph description."""


class UnknownTargetError(GraphError):
    """A target name was referenced but never registered.

    Attributes:
        name: The unknown target name.
    """

    def __init__(
        self,
        name: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.name = name
        super().__init__(f"unknown target: {name}", location)


class DuplicateTargetError(GraphError):
    """A target name was registered twice.

    Attributes:
        name: The duplicated target name.
    """

    def __init__(
        self,
        name: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.name = name
        super().__init__(f"target already registered: {name}", location)


class InvalidTargetKindError(GraphError):
    """A target kind or link scope string could not be parsed."""


class PropagationError(RtdeployError):
    """Base class for recoverable propagation failures."""


class MissingArtifactError(PropagationError):
    """A shared library expected in the closure is absent at copy time.

    Attributes:
        path: The missing artifact path.
    """

    def __init__(
        self,
        path: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.path = path
        super().__init__(f"artifact not found: {path}", location)


class CopyFailureError(PropagationError):
    """Copying one artifact failed.

    Attributes:
        source: Source path.
        dest: Destination path.
        reason: Underlying OS error text.
    """

    def __init__(
        self,
        source: str,
        dest: str,
        reason: str,
        location: SourceLocation | None = None,
    ) -> None:
        self.source = source
        self.dest = dest
        self.reason = reason
        super().__init__(f"failed to copy {source} to {dest}: {reason}", location)


class AmbiguousRootError(PropagationError):
    """The root's own installed artifact could not be located.

    Attributes:
        root: Root target name.
        candidates: Paths that were tried.
    """

    def __init__(
        self,
        root: str,
        candidates: list[str],
        location: SourceLocation | None = None,
    ) -> None:
        self.root = root
        self.candidates = candidates
        tried = ", ".join(candidates) if candidates else "(none)"
        super().__init__(
            f"installed artifact for {root} does not exist (tried: {tried})",
            location,
        )
