# SPDX-License-Identifier: MIT
"""Propagation planning: build-time copies, install rules and discovery."""

from rtdeploy.deploy.discovery import (
    DiscoveryParams,
    DiscoveryResult,
    DiscoveryScript,
    candidate_directories,
    generate_discovery_procedure,
    run_discovery,
)
from rtdeploy.deploy.install import InstallPlan, InstallRule, plan_install
from rtdeploy.deploy.project import DeploymentPlan, RootPlan, plan_deployment
from rtdeploy.deploy.planner import (
    BuildOrderEdge,
    BuildPlan,
    PropagationAction,
    PropagationPhase,
    execute_actions,
    plan_build_time_actions,
)
from rtdeploy.deploy.sanitizer import (
    SanitizerRuntime,
    locate_sanitizer_runtime,
    requires_sanitizer_runtime,
    sanitizer_artifacts,
)
from rtdeploy.deploy.system_libs import SystemLibraryRule, is_system_library
from rtdeploy.deploy.vendor import VendorArtifactRule, VendorRegistry, default_registry

__all__ = [
    "BuildOrderEdge",
    "BuildPlan",
    "DiscoveryParams",
    "DiscoveryResult",
    "DeploymentPlan",
    "DiscoveryScript",
    "InstallPlan",
    "InstallRule",
    "PropagationAction",
    "PropagationPhase",
    "RootPlan",
    "SanitizerRuntime",
    "SystemLibraryRule",
    "VendorArtifactRule",
    "VendorRegistry",
    "candidate_directories",
    "default_registry",
    "execute_actions",
    "generate_discovery_procedure",
    "is_system_library",
    "locate_sanitizer_runtime",
    "plan_build_time_actions",
    "plan_deployment",
    "plan_install",
    "requires_sanitizer_runtime",
    "run_discovery",
    "sanitizer_artifacts",
]
