# SPDX-License-Identifier: MIT
"""
rtdeploy: runtime dependency closure and artifact propagation.

rtdeploy computes, for every executable and shared library of a native
build, the set of shared libraries it loads at run time, and plans the
copies that put them next to it in the build tree and the install tree.
"""

from __future__ import annotations

import json
import logging
import os

from rtdeploy.configure.config import Configure
from rtdeploy.configure.platform import FAMILIES, default_family, get_platform
from rtdeploy.core.closure import ClosureSet, resolve_all, resolve_closure
from rtdeploy.core.errors import GraphError, PropagationError, RtdeployError
from rtdeploy.core.graph import Graph
from rtdeploy.core.target import FetchedPackage, LinkScope, Target, TargetKind
from rtdeploy.deploy.project import DeploymentPlan, plan_deployment

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

# Internal storage for CLI variables
_cli_vars: dict[str, str] | None = None


def get_var(name: str, default: str | None = None) -> str | None:
    """Get a variable set on the command line or from the environment.

    Variables can be set when invoking rtdeploy:
        rtdeploy plan graph.json RTDEPLOY_FAMILY=msvc

    Precedence (highest to lowest):
        1. Command line (passed as JSON in RTDEPLOY_VARS)
        2. Environment variable

    Args:
        name: Variable name.
        default: Default value if not set.

    Returns:
        The variable value, or default if not set.
    """
    global _cli_vars

    # Lazy-load CLI vars from environment on first access
    if _cli_vars is None:
        rtdeploy_vars = os.environ.get("RTDEPLOY_VARS")
        if rtdeploy_vars:
            try:
                _cli_vars = json.loads(rtdeploy_vars)
            except json.JSONDecodeError:
                logger.warning("Ignoring malformed RTDEPLOY_VARS")
                _cli_vars = {}
        else:
            _cli_vars = {}

    if name in _cli_vars:
        return _cli_vars[name]

    return os.environ.get(name, default)


def get_family(default: str | None = None) -> str:
    """Get the toolchain family.

    Precedence (highest to lowest):
        1. RTDEPLOY_FAMILY (command line or environment)
        2. default parameter
        3. The platform default (msvc on Windows, clang on macOS, gcc elsewhere)

    Raises:
        ValueError: If the family is not one of FAMILIES.
    """
    family = get_var("RTDEPLOY_FAMILY") or default or default_family(get_platform())
    if family not in FAMILIES:
        raise ValueError(
            f"unknown toolchain family {family!r} (known: {', '.join(FAMILIES)})"
        )
    return family


__all__ = [
    "__version__",
    "get_var",
    "get_family",
    "ClosureSet",
    "Configure",
    "DeploymentPlan",
    "FAMILIES",
    "FetchedPackage",
    "Graph",
    "GraphError",
    "LinkScope",
    "PropagationError",
    "RtdeployError",
    "Target",
    "TargetKind",
    "plan_deployment",
    "resolve_all",
    "resolve_closure",
]
