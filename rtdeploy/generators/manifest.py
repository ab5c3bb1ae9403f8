# SPDX-License-Identifier: MIT
"""JSON manifest generator.

Writes the whole deployment plan as one JSON document that any build
executor can consume.

Format:
    {
      "project": "myproject",
      "runtime_dir": "bin",
      "family": "gcc",
      "roots": {
        "app": {
          "root": "app",
          "closure": ["core", "utils"],
          "actions": [{"source": ..., "destination": ..., ...}],
          "order_edges": [{"before": "core", "after": "app"}],
          "hooks": ["python -m rtdeploy.util.commands copy-if-different ..."],
          "install": {"root": "app", "rules": [...], "script": "..."}
        }
      }
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from rtdeploy.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from rtdeploy.deploy.project import DeploymentPlan

logger = logging.getLogger(__name__)


class ManifestGenerator(BaseGenerator):
    """Generator for rtdeploy_plan.json."""

    def __init__(self, *, output_filename: str = "rtdeploy_plan.json") -> None:
        super().__init__("manifest")
        self._output_filename = output_filename

    def generate(self, plan: DeploymentPlan, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / self._output_filename

        with open(output_file, "w") as f:
            json.dump(plan.to_dict(), f, indent=2)
            f.write("\n")

        logger.info("Wrote %s", output_file)
        return output_file
