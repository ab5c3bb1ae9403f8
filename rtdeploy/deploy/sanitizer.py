# SPDX-License-Identifier: MIT
"""Sanitizer runtime location.

Executables built by MSVC with AddressSanitizer load a dynamic runtime DLL
that ships with Visual Studio, not with the program. To run such a program
from the build tree (or after install) the DLL must be copied next to it.

The DLL is searched for with three strategies, in priority order:

1. The Visual Studio locator (vswhere), then the MSVC tools tree below
   the reported installation.
2. Environment hints set by a developer command prompt
   (VCToolsInstallDir, VCINSTALLDIR).
3. Conventional Visual Studio roots under Program Files.

When several versions are installed, the lexically last match (newest
toolset) wins.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from rtdeploy.configure.config import env_path
from rtdeploy.configure.platform import Platform, get_platform

if TYPE_CHECKING:
    from rtdeploy.configure.config import Configure
    from rtdeploy.core.target import Target

logger = logging.getLogger(__name__)

VSWHERE_TIMEOUT = 30

# Families whose toolchain supports sanitizers with a separate runtime DLL.
_RUNTIME_FAMILIES = {"msvc"}
# Families that cannot build with sanitizers at all.
_UNSUPPORTED_FAMILIES = {"clang-msvc"}

STRATEGIES = ("vswhere", "environment", "program-files")


@dataclass(frozen=True)
class SanitizerRuntime:
    """A sanitizer runtime DLL for one family and architecture.

    Attributes:
        family: Toolchain family ("msvc").
        sanitizer: Sanitizer name ("address").
        arch_dir: Architecture directory in the MSVC tools tree ("x64", "x86").
        dll_name: File name of the runtime.
    """

    family: str
    sanitizer: str
    arch_dir: str
    dll_name: str

    @classmethod
    def for_platform(
        cls,
        platform: Platform | None = None,
        *,
        family: str = "msvc",
        sanitizer: str = "address",
    ) -> SanitizerRuntime:
        """The ASan runtime matching the platform pointer size."""
        platform = platform or get_platform()
        if platform.pointer_size == 4 or platform.arch == "x86":
            return cls(family, sanitizer, "x86", "clang_rt.asan_dynamic-i386.dll")
        return cls(family, sanitizer, "x64", "clang_rt.asan_dynamic-x86_64.dll")

    @property
    def tail(self) -> str:
        """Glob tail below an MSVC toolset directory."""
        return f"bin/Host*/{self.arch_dir}/{self.dll_name}"


def requires_sanitizer_runtime(target: Target, family: str) -> bool:
    """Whether a target needs a sanitizer runtime propagated next to it."""
    if "address" not in target.sanitizers:
        return False
    if family in _UNSUPPORTED_FAMILIES:
        logger.debug(
            "Sanitizers are not supported for %s with %s; no runtime needed",
            target.name,
            family,
        )
        return False
    return family in _RUNTIME_FAMILIES


def _newest(matches: list[Path]) -> Path | None:
    matches = [m for m in matches if m.is_file()]
    if not matches:
        return None
    return sorted(matches, key=str)[-1]


def _find_vswhere(config: Configure | None) -> Path | None:
    program_files = os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)")
    installer = Path(program_files) / "Microsoft Visual Studio" / "Installer"
    if config is not None:
        info = config.find_program("vswhere", hints=[installer])
        return info.path if info else None
    vswhere = installer / "vswhere.exe"
    return vswhere if vswhere.exists() else None


def _visual_studio_install(config: Configure | None) -> Path | None:
    vswhere = _find_vswhere(config)
    if vswhere is None:
        return None
    try:
        result = subprocess.run(
            [str(vswhere), "-latest", "-property", "installationPath"],
            capture_output=True,
            text=True,
            timeout=VSWHERE_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.debug("vswhere failed: %s", e)
        return None
    if result.returncode == 0 and result.stdout.strip():
        return Path(result.stdout.strip().splitlines()[0])
    return None


def _from_vswhere(runtime: SanitizerRuntime, config: Configure | None) -> Path | None:
    install = _visual_studio_install(config)
    if install is None:
        return None
    tools = install / "VC" / "Tools" / "MSVC"
    return _newest(list(tools.glob(f"*/{runtime.tail}")))


def _from_environment(runtime: SanitizerRuntime) -> Path | None:
    tools_dir = env_path("VCToolsInstallDir")
    if tools_dir is not None:
        found = _newest(list(tools_dir.glob(runtime.tail)))
        if found:
            return found
    vc_dir = env_path("VCINSTALLDIR")
    if vc_dir is not None:
        return _newest(list(vc_dir.glob(f"Tools/MSVC/*/{runtime.tail}")))
    return None


def _from_program_files(runtime: SanitizerRuntime) -> Path | None:
    matches: list[Path] = []
    for var in ("ProgramFiles", "ProgramFiles(x86)"):
        root = env_path(var)
        if root is None:
            continue
        vs_root = root / "Microsoft Visual Studio"
        matches.extend(vs_root.glob(f"20*/*/VC/Tools/MSVC/*/{runtime.tail}"))
    return _newest(matches)


def locate_sanitizer_runtime(
    runtime: SanitizerRuntime,
    config: Configure | None = None,
) -> Path | None:
    """Find a sanitizer runtime DLL on this machine.

    Args:
        runtime: The runtime to look for.
        config: Optional configure context; a found path is cached in it
            and reused on later runs while it still exists.

    Returns:
        Path to the runtime, or None (a warning is logged).
    """
    cache_key = f"sanitizer:{runtime.family}:{runtime.sanitizer}:{runtime.arch_dir}"
    if config is not None:
        cached = config.cached_path(cache_key)
        if cached is not None:
            logger.debug("Using cached %s: %s", runtime.dll_name, cached)
            return cached

    found = (
        _from_vswhere(runtime, config)
        or _from_environment(runtime)
        or _from_program_files(runtime)
    )
    if found is None:
        logger.warning(
            "Could not find %s (tried %s); sanitized targets will not run "
            "standalone",
            runtime.dll_name,
            ", ".join(STRATEGIES),
        )
        return None

    logger.info("Found %s: %s", runtime.dll_name, found)
    if config is not None:
        config.set(cache_key, str(found))
    return found


def sanitizer_artifacts(
    target: Target,
    family: str,
    config: Configure | None = None,
    platform: Platform | None = None,
) -> list[Path]:
    """Sanitizer runtime files to propagate next to one target."""
    if not requires_sanitizer_runtime(target, family):
        return []
    runtime = SanitizerRuntime.for_platform(platform, family=family)
    found = locate_sanitizer_runtime(runtime, config)
    return [found] if found is not None else []
