# SPDX-License-Identifier: MIT
"""Install-time discovery of runtime dependencies.

The static plan cannot always name every shared library a root needs:
fetched packages build artifacts whose exact location is only known once
they are built. For each installed root a small Python script is
generated; run after installation, it searches the build tree and the
package directories for shared libraries and copies the ones that are not
system libraries next to the installed root.

The script embeds its parameters as JSON and calls run_discovery(), so
the search logic lives here and is tested here.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rtdeploy.configure.platform import Platform, get_platform
from rtdeploy.core.errors import AmbiguousRootError, CopyFailureError
from rtdeploy.core.target import TargetKind
from rtdeploy.deploy.system_libs import matching_rule
from rtdeploy.util.commands import copy_if_different

if TYPE_CHECKING:
    from rtdeploy.core.graph import Graph
    from rtdeploy.core.target import Target

logger = logging.getLogger(__name__)

PREFIX_ENV = "RTDEPLOY_INSTALL_PREFIX"

PACKAGE_BINARY_SUBDIRS = ("bin", "lib", "library", "dll")
PACKAGE_LIBRARY_SUBDIRS = ("", "bin", "lib", "library", "libs")


@dataclass
class DiscoveryParams:
    """Everything a discovery run needs, serializable to JSON.

    Attributes:
        root: Root target name.
        kind: Root target kind value.
        output_name: File stem of the root's installed artifact.
        runtime_dir: Runtime directory relative to the install prefix.
        install_prefix: Install prefix; None means the current directory.
        build_dir: Top-level build directory.
        binary_dir: Binary directory of the root's source directory.
        package_binary_dirs: Binary directories of fetched packages.
        package_source_dirs: Source directories of fetched packages.
        extra_artifacts: Fixed files to copy (vendor, sanitizer runtime).
        platform: Platform description (see Platform.to_dict()).
    """

    root: str
    kind: str
    output_name: str
    runtime_dir: str = "bin"
    install_prefix: str | None = None
    build_dir: str | None = None
    binary_dir: str | None = None
    package_binary_dirs: list[str] = field(default_factory=list)
    package_source_dirs: list[str] = field(default_factory=list)
    extra_artifacts: list[str] = field(default_factory=list)
    platform: dict[str, Any] = field(default_factory=dict)

    def get_platform(self) -> Platform:
        if self.platform:
            return Platform.from_dict(self.platform)
        return get_platform()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiscoveryParams:
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class DiscoveryResult:
    """Outcome of one discovery run (file names)."""

    root_file: str | None = None
    copied: list[str] = field(default_factory=list)
    already_present: list[str] = field(default_factory=list)
    skipped_system: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def handled(self) -> list[str]:
        return self.copied + self.already_present


def root_artifact_candidates(params: DiscoveryParams) -> list[Path]:
    """Possible locations of the root's installed artifact, in order."""
    platform = params.get_platform()
    prefix = Path(params.install_prefix or ".").absolute()
    runtime = prefix / params.runtime_dir
    if params.kind == TargetKind.EXECUTABLE.value:
        return [runtime / f"{params.output_name}{platform.exe_suffix}"]
    return [runtime / name for name in platform.shared_library_names(params.output_name)]


def candidate_directories(params: DiscoveryParams) -> list[Path]:
    """Directories to search, deduplicated, existing only, in priority order."""
    platform = params.get_platform()
    configs = [*platform.configurations, ""]
    candidates: list[Path] = []

    if params.build_dir:
        build = Path(params.build_dir).absolute()
        subpaths = [build]
        if params.binary_dir:
            subpaths.insert(0, build / params.binary_dir)
        for config in configs:
            for base in subpaths:
                candidates.append(base / config if config else base)

    for pkg_dir in params.package_binary_dirs:
        base = Path(pkg_dir)
        for sub in (*configs, *PACKAGE_BINARY_SUBDIRS):
            candidates.append(base / sub if sub else base)

    for pkg_dir in (*params.package_source_dirs, *params.package_binary_dirs):
        base = Path(pkg_dir)
        for libsub in PACKAGE_LIBRARY_SUBDIRS:
            for config in ("", *platform.configurations):
                path = base / libsub if libsub else base
                candidates.append(path / config if config else path)

    result: list[Path] = []
    seen: set[str] = set()
    for path in candidates:
        key = os.path.normcase(os.path.normpath(str(path)))
        if key in seen:
            continue
        seen.add(key)
        if path.is_dir():
            result.append(path)
    return result


def _shared_libraries(directory: Path, platform: Platform) -> list[Path]:
    found: list[Path] = []
    for ext in platform.shared_lib_suffixes:
        found.extend(sorted(p for p in directory.glob(f"*{ext}") if p.is_file()))
    return found


def run_discovery(params: DiscoveryParams | Mapping[str, Any]) -> DiscoveryResult:
    """Copy a root's runtime dependencies next to its installed artifact.

    Running it again over the same trees yields the same destination
    contents. Nothing is raised for missing or uncopyable files; those
    are logged as warnings.

    Args:
        params: DiscoveryParams or their dict form.

    Returns:
        What was copied, found in place, skipped or failed.
    """
    if not isinstance(params, DiscoveryParams):
        params = DiscoveryParams.from_dict(params)
    platform = params.get_platform()
    result = DiscoveryResult()

    tried = root_artifact_candidates(params)
    root_file = next((p for p in tried if p.is_file()), None)
    if root_file is None:
        logger.warning("%s", AmbiguousRootError(params.root, [str(p) for p in tried]))
        return result

    result.root_file = root_file.name
    runtime_dir = root_file.parent
    logger.info("Installing shared library dependencies for: %s", root_file)

    handled: set[str] = set()

    def consider(lib_file: Path) -> None:
        name = lib_file.name
        if name == root_file.name or name in handled:
            return
        rule = matching_rule(lib_file, platform)
        if rule is not None:
            if name not in result.skipped_system:
                logger.info("  Skipping system library: %s (%s)", name, rule.name)
                result.skipped_system.append(name)
            return
        dest = runtime_dir / name
        if dest.exists():
            logger.info("  Shared library dependency already exists: %s", name)
            result.already_present.append(name)
            handled.add(name)
            return
        try:
            copy_if_different(lib_file, dest)
        except OSError as e:
            # Left unhandled so a later candidate with this name may succeed.
            logger.warning("%s", CopyFailureError(str(lib_file), str(dest), str(e)))
            result.failed.append(name)
            return
        logger.info("  Installing shared library dependency: %s", name)
        result.copied.append(name)
        handled.add(name)

    for artifact in params.extra_artifacts:
        path = Path(artifact)
        if path.is_file():
            consider(path)
        else:
            logger.warning("Extra artifact not found: %s", path)

    for directory in candidate_directories(params):
        for lib_file in _shared_libraries(directory, platform):
            consider(lib_file)

    # A name that failed once but was later satisfied is not a failure.
    result.failed = [n for n in dict.fromkeys(result.failed) if n not in handled]
    return result


def discovery_main(
    params: Mapping[str, Any],
    argv: list[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> int:
    """Entry point of generated discovery scripts.

    The install prefix is taken from the first argument, then the
    RTDEPLOY_INSTALL_PREFIX environment variable, then the parameters.
    """
    argv = sys.argv[1:] if argv is None else argv
    environ = os.environ if environ is None else environ
    data = dict(params)
    if argv:
        data["install_prefix"] = argv[0]
    elif environ.get(PREFIX_ENV):
        data["install_prefix"] = environ[PREFIX_ENV]
    run_discovery(data)
    return 0


_SCRIPT_TEMPLATE = '''\
#!/usr/bin/env python3
# Installs shared library dependencies for {root}.
# Generated by rtdeploy; do not edit.
#
# Usage: python {file_name} [INSTALL_PREFIX]

import json
import logging
import sys

from rtdeploy.deploy.discovery import discovery_main

PARAMS = json.loads({params!r})

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="-- %(message)s")
    sys.exit(discovery_main(PARAMS))
'''


@dataclass
class DiscoveryScript:
    """A generated discovery script for one root."""

    root: str
    params: DiscoveryParams

    @property
    def file_name(self) -> str:
        return f"install_{self.root}_dependencies.py"

    @property
    def text(self) -> str:
        return _SCRIPT_TEMPLATE.format(
            root=self.root,
            file_name=self.file_name,
            params=json.dumps(self.params.to_dict(), sort_keys=True),
        )

    def write(self, path: Path | str) -> Path:
        """Write the script; a directory path gets the default file name."""
        path = Path(path)
        if path.is_dir():
            path = path / self.file_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.text)
        return path


def _dirs(paths: Iterable[Path | None]) -> list[str]:
    result: list[str] = []
    for path in paths:
        if path is not None and str(path) not in result:
            result.append(str(path))
    return result


def generate_discovery_procedure(
    root: Target,
    runtime_install_dir: str,
    graph: Graph,
    *,
    install_prefix: Path | str | None = None,
    platform: Platform | None = None,
    extra_artifacts: Iterable[Path | str] = (),
) -> DiscoveryScript:
    """Build the discovery script for an installed root.

    Args:
        root: Executable or shared library root.
        runtime_install_dir: Runtime directory relative to the install prefix.
        graph: The graph the root belongs to; its build directory and
            fetched packages are searched.
        install_prefix: Default install prefix baked into the script.
        platform: Target platform (default: host).
        extra_artifacts: Fixed files to copy as well.
    """
    platform = platform or get_platform()
    packages = graph.packages
    # Binary dirs of other targets are searched like package binary dirs.
    binary_dirs = _dirs(
        [p.binary_dir for p in packages]
        + [t.binary_dir for t in graph.targets if t is not root]
    )
    params = DiscoveryParams(
        root=root.name,
        kind=root.kind.value,
        output_name=root.stem,
        runtime_dir=runtime_install_dir,
        install_prefix=str(install_prefix) if install_prefix is not None else None,
        build_dir=str(graph.build_dir),
        binary_dir=str(graph.binary_dir) if graph.binary_dir is not None else None,
        package_binary_dirs=binary_dirs,
        package_source_dirs=_dirs(p.source_dir for p in packages),
        extra_artifacts=[str(a) for a in extra_artifacts],
        platform=platform.to_dict(),
    )
    logger.debug("Discovery parameters for %s: %s", root.name, params)
    return DiscoveryScript(root.name, params)
