# SPDX-License-Identifier: MIT
"""Ninja fragment generator.

Writes rtdeploy.ninja, meant to be included (``include rtdeploy.ninja``
or ``subninja``) from the main build.ninja. It holds one
copy_if_different rule, one build statement per copy action and a
``deploy_<root>`` phony target per root, plus a ``deploy`` phony target
covering every root.

Actions whose paths are still build-tool tokens cannot be expressed in
Ninja and are listed as comments instead.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from rtdeploy.deploy.planner import as_directory, python_command
from rtdeploy.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from rtdeploy.deploy.planner import PropagationAction
    from rtdeploy.deploy.project import DeploymentPlan, RootPlan

logger = logging.getLogger(__name__)


def escape_path(path: str) -> str:
    """Escape a path for use in a Ninja build line."""
    return path.replace("$", "$$").replace(" ", "$ ").replace(":", "$:")


def _is_token(value: str) -> bool:
    return value.startswith("$<")


def _outdir(destination: str) -> str:
    # Substituted into the command verbatim, unlike $in.
    return shlex.quote(as_directory(destination)).replace("$", "$$")


class NinjaGenerator(BaseGenerator):
    """Generator that produces a Ninja fragment with copy statements.

    Example output:
        rule copy_if_different
          command = /usr/bin/python3 -m rtdeploy.util.commands copy-if-different $in $outdir
          description = Copying $in

        build build/bin/libcore.so: copy_if_different build/lib/libcore.so
          outdir = build/bin/

        build deploy_app: phony build/bin/libcore.so
    """

    def __init__(self, *, output_filename: str = "rtdeploy.ninja") -> None:
        super().__init__("ninja")
        self._output_filename = output_filename

    def generate(self, plan: DeploymentPlan, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / self._output_filename

        with open(output_file, "w") as f:
            self._write_header(f, plan)
            self._write_rules(f)
            written: set[str] = set()
            phonies: list[str] = []
            for root_plan in plan:
                phonies.append(self._write_root(f, root_plan, written))
            if phonies:
                f.write(f"build deploy: phony {' '.join(phonies)}\n")

        logger.info("Wrote %s", output_file)
        return output_file

    def _write_header(self, f: TextIO, plan: DeploymentPlan) -> None:
        f.write(f"# Runtime dependency propagation for {plan.name}\n")
        f.write("# Generated by rtdeploy; do not edit.\n\n")
        f.write("ninja_required_version = 1.7\n\n")
        f.write(f"rtdeploy_python = {python_command()}\n\n")

    def _write_rules(self, f: TextIO) -> None:
        f.write("rule copy_if_different\n")
        f.write(
            "  command = $rtdeploy_python -m rtdeploy.util.commands "
            "copy-if-different $in $outdir\n"
        )
        f.write("  description = Copying $in\n\n")

    def _write_root(self, f: TextIO, root_plan: RootPlan, written: set[str]) -> str:
        name = root_plan.root.name
        phony = f"deploy_{name}"
        f.write(f"# {name}\n")
        for edge in root_plan.build.order_edges:
            f.write(f"#   builds after {edge.before}\n")

        outputs: list[str] = []
        for action in root_plan.build.actions:
            out = self._output_for(action)
            if out is None:
                f.write(f"#   unresolved: {action.source} -> {action.destination}\n")
                continue
            outputs.append(escape_path(out))
            # Several roots may share an output directory.
            if out in written:
                continue
            written.add(out)
            f.write(
                f"build {escape_path(out)}: copy_if_different "
                f"{escape_path(action.source)}\n"
            )
            f.write(f"  outdir = {_outdir(action.destination)}\n")

        f.write(f"build {phony}: phony {' '.join(outputs)}\n\n")
        return phony

    def _output_for(self, action: PropagationAction) -> str | None:
        if _is_token(action.source) or _is_token(action.destination):
            return None
        return (Path(action.destination) / action.file_name).as_posix()
