# SPDX-License-Identifier: MIT
"""Platform detection and configuration caching."""

from rtdeploy.configure.config import Configure, ProgramInfo, load_config
from rtdeploy.configure.platform import (
    FAMILIES,
    Platform,
    default_family,
    get_platform,
)

__all__ = [
    "Configure",
    "FAMILIES",
    "Platform",
    "ProgramInfo",
    "default_family",
    "get_platform",
    "load_config",
]
