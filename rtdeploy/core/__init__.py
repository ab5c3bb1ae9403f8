# SPDX-License-Identifier: MIT
"""Graph model and closure resolution."""

from rtdeploy.core.closure import ClosureSet, resolve_all, resolve_closure
from rtdeploy.core.graph import Graph
from rtdeploy.core.target import FetchedPackage, LinkScope, Target, TargetKind

__all__ = [
    "ClosureSet",
    "FetchedPackage",
    "Graph",
    "LinkScope",
    "Target",
    "TargetKind",
    "resolve_all",
    "resolve_closure",
]
