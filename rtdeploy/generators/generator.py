# SPDX-License-Identifier: MIT
"""Generator protocol for deployment plan output.

Generators take a DeploymentPlan and hand it to a build executor in the
executor's own format (a JSON manifest, a Ninja fragment, an Xcode
project, a diagram).
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from rtdeploy.deploy.project import DeploymentPlan


@runtime_checkable
class Generator(Protocol):
    """Protocol for plan generators.

    A Generator takes a DeploymentPlan and writes files to the output
    directory.
    """

    @property
    def name(self) -> str:
        """Generator name (e.g., 'manifest', 'ninja', 'xcode')."""
        ...

    def generate(self, plan: DeploymentPlan, output_dir: Path) -> Path:
        """Write the plan.

        Args:
            plan: The deployment plan.
            output_dir: Directory to write output files to.

        Returns:
            Path of the main file (or bundle) written.
        """
        ...


class BaseGenerator:
    """Base class for generators with common functionality."""

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def generate(self, plan: DeploymentPlan, output_dir: Path) -> Path:
        """Generate output. Subclasses must implement."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"
