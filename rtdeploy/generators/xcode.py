# SPDX-License-Identifier: MIT
"""Xcode project generator.

Generates a ``<project>_deploy.xcodeproj`` bundle with one aggregate
target per root. Each aggregate target runs a shell script phase that
copies the root's runtime dependencies next to it, so it can be added
as a dependency of the real target in an existing Xcode workspace or
built alone with ``xcodebuild -target deploy_<root>``.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pbxproj import XcodeProject

from rtdeploy.deploy.planner import python_command
from rtdeploy.generators.generator import BaseGenerator

if TYPE_CHECKING:
    from rtdeploy.deploy.project import DeploymentPlan, RootPlan

logger = logging.getLogger(__name__)


def _generate_id() -> str:
    """Generate a 24-character hex ID like Xcode uses."""
    return uuid.uuid4().hex[:24].upper()


def _is_token(value: str) -> bool:
    return value.startswith("$<")


class XcodeGenerator(BaseGenerator):
    """Generator that produces an Xcode project of deploy targets.

    Example:
        plan = plan_deployment(graph)
        generator = XcodeGenerator()
        generator.generate(plan, Path("build"))
        # Creates build/myproject_deploy.xcodeproj/

        # Run with: xcodebuild -project build/myproject_deploy.xcodeproj \\
        #               -target deploy_app
    """

    def __init__(self) -> None:
        super().__init__("xcode")
        self._target_ids: dict[str, str] = {}  # root name -> aggregate target id

    def generate(self, plan: DeploymentPlan, output_dir: Path) -> Path:
        """Generate the .xcodeproj bundle.

        Args:
            plan: Deployment plan to render.
            output_dir: Directory to write the .xcodeproj to.

        Returns:
            Path of the .xcodeproj bundle.
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        self._target_ids = {}

        xcodeproj_path = output_dir / f"{plan.name}_deploy.xcodeproj"
        xcodeproj_path.mkdir(parents=True, exist_ok=True)
        pbxproj_path = xcodeproj_path / "project.pbxproj"

        tree = self._create_project_tree(plan)
        XcodeProject(tree, str(pbxproj_path)).save()

        logger.info("Wrote %s", xcodeproj_path)
        return xcodeproj_path

    def _create_project_tree(self, plan: DeploymentPlan) -> dict[str, Any]:
        """Create the Xcode project tree structure.

        Returns:
            Dictionary tree for XcodeProject.
        """
        proj_id = _generate_id()
        main_group_id = _generate_id()
        proj_config_list_id = _generate_id()
        proj_debug_config_id = _generate_id()
        proj_release_config_id = _generate_id()

        objects: dict[str, dict[str, Any]] = {}
        target_ids: list[str] = []

        for root_plan in plan:
            target_id = self._create_target_objects(root_plan, objects)
            target_ids.append(target_id)
            self._target_ids[root_plan.root.name] = target_id

        for root_plan in plan:
            self._add_dependencies(root_plan, proj_id, objects)

        for config_id, name in (
            (proj_debug_config_id, "Debug"),
            (proj_release_config_id, "Release"),
        ):
            objects[config_id] = {
                "isa": "XCBuildConfiguration",
                "buildSettings": {"SDKROOT": "macosx", "SYMROOT": "."},
                "name": name,
            }

        objects[proj_config_list_id] = {
            "isa": "XCConfigurationList",
            "buildConfigurations": [proj_debug_config_id, proj_release_config_id],
            "defaultConfigurationIsVisible": "0",
            "defaultConfigurationName": "Release",
        }

        objects[main_group_id] = {
            "isa": "PBXGroup",
            "children": [],
            "sourceTree": "<group>",
        }

        objects[proj_id] = {
            "isa": "PBXProject",
            "buildConfigurationList": proj_config_list_id,
            "compatibilityVersion": "Xcode 14.0",
            "developmentRegion": "en",
            "hasScannedForEncodings": "0",
            "knownRegions": ["en", "Base"],
            "mainGroup": main_group_id,
            "projectDirPath": "",
            "projectRoot": "",
            "targets": target_ids,
        }

        return {
            "archiveVersion": "1",
            "classes": {},
            "objectVersion": "56",
            "objects": objects,
            "rootObject": proj_id,
        }

    def _create_target_objects(
        self, root_plan: RootPlan, objects: dict[str, dict[str, Any]]
    ) -> str:
        """Create the aggregate target and script phase for one root."""
        name = f"deploy_{root_plan.root.name}"
        target_id = _generate_id()
        config_list_id = _generate_id()
        debug_config_id = _generate_id()
        release_config_id = _generate_id()
        script_phase_id = _generate_id()

        for config_id, config_name in (
            (debug_config_id, "Debug"),
            (release_config_id, "Release"),
        ):
            objects[config_id] = {
                "isa": "XCBuildConfiguration",
                "buildSettings": {"PRODUCT_NAME": name},
                "name": config_name,
            }

        objects[config_list_id] = {
            "isa": "XCConfigurationList",
            "buildConfigurations": [debug_config_id, release_config_id],
            "defaultConfigurationIsVisible": "0",
            "defaultConfigurationName": "Release",
        }

        input_paths: list[str] = []
        output_paths: list[str] = []
        lines = ["set -e"]
        python = python_command()
        for action in root_plan.build.actions:
            if _is_token(action.source) or _is_token(action.destination):
                lines.append(f"# unresolved: {action.source} -> {action.destination}")
                continue
            input_paths.append(action.source)
            output_paths.append(str(Path(action.destination) / action.file_name))
            lines.append(
                f'"{python}" -m rtdeploy.util.commands copy-if-different '
                f'"{action.source}" "{action.destination}/"'
            )

        objects[script_phase_id] = {
            "isa": "PBXShellScriptBuildPhase",
            "buildActionMask": "2147483647",
            "files": [],
            "inputPaths": input_paths,
            "name": f"Copy runtime dependencies of {root_plan.root.name}",
            "outputPaths": output_paths,
            "runOnlyForDeploymentPostprocessing": "0",
            "shellPath": "/bin/sh",
            "shellScript": "\n".join(lines) + "\n",
        }

        objects[target_id] = {
            "isa": "PBXAggregateTarget",
            "buildConfigurationList": config_list_id,
            "buildPhases": [script_phase_id],
            "dependencies": [],
            "name": name,
            "productName": name,
        }
        return target_id

    def _add_dependencies(
        self, root_plan: RootPlan, proj_id: str, objects: dict[str, dict[str, Any]]
    ) -> None:
        """Order deploy targets after the deploy targets of their dependencies."""
        target_id = self._target_ids[root_plan.root.name]
        for edge in root_plan.build.order_edges:
            dep_target_id = self._target_ids.get(edge.before)
            if dep_target_id is None:
                continue

            proxy_id = _generate_id()
            dep_id = _generate_id()
            objects[proxy_id] = {
                "isa": "PBXContainerItemProxy",
                "containerPortal": proj_id,
                "proxyType": "1",
                "remoteGlobalIDString": dep_target_id,
                "remoteInfo": f"deploy_{edge.before}",
            }
            objects[dep_id] = {
                "isa": "PBXTargetDependency",
                "target": dep_target_id,
                "targetProxy": proxy_id,
            }
            objects[target_id]["dependencies"].append(dep_id)
