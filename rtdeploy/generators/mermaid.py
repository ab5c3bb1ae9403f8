# SPDX-License-Identifier: MIT
"""Mermaid diagram generator for dependency visualization.

Generates Mermaid flowchart syntax showing the build graph, with shared
libraries that belong to a root's closure highlighted. Output can be
rendered in GitHub markdown, documentation tools, or the Mermaid live
editor (https://mermaid.live).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from rtdeploy.core.target import TargetKind
from rtdeploy.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from rtdeploy.core.closure import ClosureSet
    from rtdeploy.core.graph import Graph
    from rtdeploy.core.target import Target
    from rtdeploy.deploy.project import DeploymentPlan

logger = logging.getLogger(__name__)

_SHAPES = {
    TargetKind.EXECUTABLE: ("[[", "]]"),
    TargetKind.SHARED_LIBRARY: ("([", "])"),
    TargetKind.STATIC_LIBRARY: ("[", "]"),
    TargetKind.INTERFACE_LIBRARY: ("{{", "}}"),
}


class MermaidGenerator(BaseGenerator):
    """Generator that produces Mermaid flowchart diagrams.

    Example output:
        ---
        title: myproject Runtime Dependencies
        ---
        flowchart LR
          app[[app]]
          core([core])
          core --> app
          classDef root stroke-width:3px
          classDef closure fill:#ffe8a3
          class app root
          class core closure

    Usage:
        generator = MermaidGenerator()
        generator.generate(plan, Path("build"))
        # Creates build/rtdeploy.mmd
    """

    def __init__(
        self,
        *,
        direction: str = "LR",
        output_filename: str = "rtdeploy.mmd",
    ) -> None:
        """Initialize the Mermaid generator.

        Args:
            direction: Graph direction - "LR" (left-right), "TB" (top-bottom),
                      "RL" (right-left), or "BT" (bottom-top).
            output_filename: Name of the output file.
        """
        super().__init__("mermaid")
        self._direction = direction
        self._output_filename = output_filename

    def generate(self, plan: DeploymentPlan, output_dir: Path) -> Path:
        closures = {name: rp.closure for name, rp in plan.roots.items()}
        return self.write(plan.graph, output_dir / self._output_filename, closures)

    def write(
        self,
        graph: Graph,
        output_file: Path,
        closures: Mapping[str, ClosureSet] | None = None,
    ) -> Path:
        """Write the diagram of a graph to a file."""
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(self.render(graph, closures))
        logger.info("Wrote %s", output_file)
        return output_file

    def render(
        self,
        graph: Graph,
        closures: Mapping[str, ClosureSet] | None = None,
    ) -> str:
        """Render a graph as Mermaid text.

        Args:
            graph: The graph to draw.
            closures: Closures by root name; their roots and members are
                highlighted.
        """
        lines = [
            "---",
            f"title: {graph.name} Runtime Dependencies",
            "---",
            f"flowchart {self._direction}",
        ]
        targets = graph.targets
        if not targets:
            lines.append("  empty[No targets]")
            return "\n".join(lines) + "\n"

        for target in targets:
            lines.append(f"  {self._node(target)}")
        lines.append("")

        for target in targets:
            target_id = self._sanitize_id(target.name)
            for dep in target.direct_dependencies:
                lines.append(f"  {self._sanitize_id(dep.name)} --> {target_id}")
            for dep in target.interface_dependencies:
                if dep not in target.direct_dependencies:
                    lines.append(f"  {self._sanitize_id(dep.name)} -.-> {target_id}")

        if closures:
            roots = [name for name in closures if name in graph]
            members: list[str] = []
            for closure in closures.values():
                members.extend(t.name for t in closure if t.name not in members)
            lines.append("")
            lines.append("  classDef root stroke-width:3px")
            lines.append("  classDef closure fill:#ffe8a3")
            if roots:
                ids = ",".join(self._sanitize_id(n) for n in roots)
                lines.append(f"  class {ids} root")
            if members:
                ids = ",".join(self._sanitize_id(n) for n in members)
                lines.append(f"  class {ids} closure")

        return "\n".join(lines) + "\n"

    def _node(self, target: Target) -> str:
        opening, closing = _SHAPES.get(target.kind, ("[", "]"))
        label = target.name
        if target.package:
            label = f"{target.name}<br/>{target.package}"
        return f"{self._sanitize_id(target.name)}{opening}{label}{closing}"

    def _sanitize_id(self, name: str) -> str:
        """Sanitize a name for use as a Mermaid node ID."""
        result = name.replace("/", "_").replace("\\", "_")
        result = result.replace(".", "_").replace("-", "_")
        result = result.replace(" ", "_").replace(":", "_")
        # Ensure it starts with a letter
        if result and result[0].isdigit():
            result = "n" + result
        return result
