# SPDX-License-Identifier: MIT
"""Configure context for rtdeploy.

The Configure class holds the small amount of state that is worth keeping
between planning runs: where helper programs live and where runtime
artifacts outside the build graph were found. Lookups that spawn
subprocesses or walk large directory trees (vswhere, toolchain install
roots) are cached here so re-planning stays cheap.
"""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rtdeploy.configure.platform import Platform, get_platform


@dataclass
class ProgramInfo:
    """Information about a found program.

    Attributes:
        path: Path to the program executable.
    """

    path: Path


class Configure:
    """Context for the configure phase.

    Example:
        config = Configure(build_dir=Path("build"))

        vswhere = config.find_program("vswhere", hints=[installer_dir])
        if vswhere:
            print(f"Found vswhere at {vswhere.path}")

        config.save()

    Attributes:
        platform: The detected platform.
        build_dir: Directory for build outputs and cache.
    """

    def __init__(
        self,
        *,
        build_dir: Path | str = "build",
        cache_file: str = "rtdeploy_config.json",
        platform: Platform | None = None,
    ) -> None:
        """Create a configure context.

        Args:
            build_dir: Directory for build outputs.
            cache_file: Name of the cache file within build_dir.
            platform: Platform override (default: host platform).
        """
        self.platform = platform or get_platform()
        self.build_dir = Path(build_dir)
        self._cache_file = cache_file
        self._cache: dict[str, Any] = {}
        self._programs: dict[str, ProgramInfo] = {}

        self._load_cache()

    def _cache_path(self) -> Path:
        """Get the path to the cache file."""
        return self.build_dir / self._cache_file

    def _load_cache(self) -> None:
        """Load configuration from cache file if it exists."""
        cache_path = self._cache_path()
        if cache_path.exists():
            try:
                with open(cache_path) as f:
                    self._cache = json.load(f)
            except (json.JSONDecodeError, OSError):
                self._cache = {}

    def save(self, path: Path | None = None) -> None:
        """Save configuration to cache file.

        Args:
            path: Optional path override for cache file.
        """
        cache_path = path or self._cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)

        with open(cache_path, "w") as f:
            json.dump(self._cache, f, indent=2, default=str)
            f.write("\n")

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        self._cache[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        return self._cache.get(key, default)

    def cached_path(self, key: str) -> Path | None:
        """Return a cached path if it is still present on disk."""
        value = self._cache.get(key)
        if not value:
            return None
        path = Path(value)
        if path.exists():
            return path
        del self._cache[key]
        return None

    def find_program(
        self,
        name: str,
        *,
        hints: list[Path | str] | None = None,
        required: bool = False,
    ) -> ProgramInfo | None:
        """Find a program on the system.

        Searches for the program in:
        1. Hint paths (if provided)
        2. PATH environment variable

        Args:
            name: Program name (e.g., 'vswhere').
            hints: Additional paths to search.
            required: If True, raise error if not found.

        Returns:
            ProgramInfo if found, None otherwise.

        Raises:
            FileNotFoundError: If required and not found.
        """
        if name in self._programs:
            return self._programs[name]

        cache_key = f"program:{name}"
        cached = self.cached_path(cache_key)
        if cached is not None:
            info = ProgramInfo(path=cached)
            self._programs[name] = info
            return info

        found_path: Path | None = None

        if hints:
            for hint in hints:
                hint_path = Path(hint)
                if hint_path.is_file():
                    found_path = hint_path
                    break
                candidate = hint_path / name
                if self.platform.is_windows and not candidate.suffix:
                    candidate = candidate.with_suffix(".exe")
                if candidate.is_file():
                    found_path = candidate
                    break

        if found_path is None:
            found_path = self._which(name)

        if found_path is None:
            if required:
                raise FileNotFoundError(f"Required program not found: {name}")
            return None

        self._cache[cache_key] = str(found_path)
        info = ProgramInfo(path=found_path)
        self._programs[name] = info
        return info

    def _which(self, name: str) -> Path | None:
        """Find a program in PATH using shutil.which."""
        result = shutil.which(name)
        if result:
            return Path(result)
        return None

    def __repr__(self) -> str:
        return (
            f"Configure(platform={self.platform.os}/{self.platform.arch}, "
            f"build_dir={self.build_dir})"
        )


def load_config(path: Path | str = "build/rtdeploy_config.json") -> dict[str, Any]:
    """Load a saved configuration.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        data: dict[str, Any] = json.load(f)
        return data


def env_path(name: str) -> Path | None:
    """Return an environment variable as a Path, if set and non-empty."""
    value = os.environ.get(name)
    if not value:
        return None
    return Path(value)
