# SPDX-License-Identifier: MIT
"""Platform detection and per-platform naming conventions."""

from __future__ import annotations

import platform as _platform
import struct
import sys
from dataclasses import dataclass, field
from functools import lru_cache

# Multi-config generators place outputs in one of these subdirectories.
DEFAULT_CONFIGURATIONS = ("Release", "Debug", "RelWithDebInfo", "MinSizeRel")

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "x86_64": "x86_64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
}


@dataclass(frozen=True)
class Platform:
    """Description of the host (or target) platform.

    Attributes:
        os: One of "windows", "darwin", "linux" or another sys.platform-ish name.
        arch: Normalized architecture ("x86_64", "arm64", "x86", ...).
        pointer_size: Size of a pointer in bytes (4 or 8).
        configurations: Build configuration names to search for outputs.
    """

    os: str
    arch: str
    pointer_size: int = 8
    configurations: tuple[str, ...] = field(default=DEFAULT_CONFIGURATIONS)

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def is_macos(self) -> bool:
        return self.os == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.os == "linux"

    @property
    def is_unix(self) -> bool:
        return not self.is_windows

    @property
    def exe_suffix(self) -> str:
        return ".exe" if self.is_windows else ""

    @property
    def shared_lib_suffixes(self) -> tuple[str, ...]:
        """Shared library extensions, most specific first."""
        if self.is_windows:
            return (".dll",)
        if self.is_macos:
            return (".dylib", ".so")
        return (".so",)

    @property
    def shared_lib_suffix(self) -> str:
        return self.shared_lib_suffixes[0]

    @property
    def shared_lib_prefix(self) -> str:
        return "" if self.is_windows else "lib"

    @property
    def static_lib_suffix(self) -> str:
        return ".lib" if self.is_windows else ".a"

    def shared_library_names(self, stem: str) -> list[str]:
        """Candidate file names for a shared library with the given stem.

        Tries the bare stem first, then the conventional ``lib`` prefix.
        """
        names: list[str] = []
        prefixes = [""]
        if self.shared_lib_prefix and not stem.startswith(self.shared_lib_prefix):
            prefixes.append(self.shared_lib_prefix)
        for prefix in prefixes:
            for suffix in self.shared_lib_suffixes:
                names.append(f"{prefix}{stem}{suffix}")
        return names

    def to_dict(self) -> dict[str, object]:
        return {
            "os": self.os,
            "arch": self.arch,
            "pointer_size": self.pointer_size,
            "configurations": list(self.configurations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Platform:
        configurations = data.get("configurations") or DEFAULT_CONFIGURATIONS
        return cls(
            os=str(data["os"]),
            arch=str(data.get("arch", "x86_64")),
            pointer_size=int(data.get("pointer_size", 8)),  # type: ignore[arg-type]
            configurations=tuple(configurations),  # type: ignore[arg-type]
        )


def _detect_os() -> str:
    if sys.platform == "win32":
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def _detect_arch() -> str:
    machine = _platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine or "unknown")


@lru_cache(maxsize=1)
def get_platform() -> Platform:
    """Detect the host platform (cached)."""
    return Platform(
        os=_detect_os(),
        arch=_detect_arch(),
        pointer_size=struct.calcsize("P"),
    )


def default_family(platform: Platform | None = None) -> str:
    """Default toolchain family for a platform."""
    platform = platform or get_platform()
    if platform.is_windows:
        return "msvc"
    if platform.is_macos:
        return "clang"
    return "gcc"


# Toolchain families understood by the planners.
FAMILIES = ("gcc", "clang", "msvc", "clang-msvc", "emscripten")
