# SPDX-License-Identifier: MIT
"""Predicates for "system" shared libraries.

System libraries belong to the base operating system and must never be
copied next to a deployed binary. Each check is a SystemLibraryRule; the
rules are kept in an ordered list and evaluated per platform, so they can
be tested and extended one at a time.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath

from rtdeploy.configure.platform import Platform, get_platform

# Platform tags: "unix" covers linux and darwin.
UNIX = frozenset({"unix"})
WINDOWS = frozenset({"windows"})
DARWIN = frozenset({"darwin"})


@dataclass(frozen=True)
class SystemLibraryRule:
    """One "is this a system library" check.

    Attributes:
        name: Short rule name, used in log messages.
        platforms: Platform tags the rule applies to.
        predicate: Called with the candidate path.
    """

    name: str
    platforms: frozenset[str]
    predicate: Callable[[str], bool]

    def applies_to(self, platform: Platform) -> bool:
        if platform.os in self.platforms:
            return True
        return platform.is_unix and "unix" in self.platforms

    def matches(self, path: Path | str) -> bool:
        return self.predicate(str(path))


_UNIX_RUNTIME_NAME = re.compile(r"^lib(c|m|dl|pthread|rt|util|gcc_s|stdc\+\+)\.so")
_UNIX_SYSTEM_PREFIXES = ("/lib/", "/lib32/", "/lib64/", "/usr/lib/", "/usr/lib32/", "/usr/lib64/")
_DARWIN_SYSTEM_PREFIXES = ("/System/Library/", "/usr/lib/")
_DARWIN_RUNTIME_NAME = re.compile(r"^lib(System|c\+\+|c\+\+abi|objc)(\.[\w.]+)?\.dylib$")
_WINDOWS_SYSTEM_DIRS = {"system32", "syswow64", "winsxs"}


def _unix_runtime_name(path: str) -> bool:
    return _UNIX_RUNTIME_NAME.match(PurePosixPath(path).name) is not None


def _unix_system_dir(path: str) -> bool:
    posix = path.replace("\\", "/")
    return posix.startswith(_UNIX_SYSTEM_PREFIXES)


def _darwin_runtime(path: str) -> bool:
    if path.startswith(_DARWIN_SYSTEM_PREFIXES):
        return True
    return _DARWIN_RUNTIME_NAME.match(PurePosixPath(path).name) is not None


def _windows_system_dir(path: str) -> bool:
    win_path = PureWindowsPath(path)
    parts = [p.lower() for p in win_path.parts]
    if any(p in _WINDOWS_SYSTEM_DIRS for p in parts):
        return True
    # Directly under the Windows directory, e.g. C:\Windows\foo.dll
    if win_path.root and len(parts) >= 2 and parts[1].strip("\\") == "windows":
        return True
    system_root = os.environ.get("SystemRoot")
    if system_root:
        root = PureWindowsPath(system_root)
        try:
            PureWindowsPath(path).relative_to(root)
            return True
        except ValueError:
            return False
    return False


DEFAULT_RULES: tuple[SystemLibraryRule, ...] = (
    SystemLibraryRule("unix-runtime-name", UNIX, _unix_runtime_name),
    SystemLibraryRule("unix-system-dir", UNIX, _unix_system_dir),
    SystemLibraryRule("darwin-system", DARWIN, _darwin_runtime),
    SystemLibraryRule("windows-system-dir", WINDOWS, _windows_system_dir),
)

RULES_BY_NAME = {rule.name: rule for rule in DEFAULT_RULES}


def rules_for(
    platform: Platform | None = None,
    rules: Iterable[SystemLibraryRule] = DEFAULT_RULES,
) -> list[SystemLibraryRule]:
    """Rules that apply to a platform, in evaluation order."""
    platform = platform or get_platform()
    return [rule for rule in rules if rule.applies_to(platform)]


def matching_rule(
    path: Path | str,
    platform: Platform | None = None,
    rules: Iterable[SystemLibraryRule] = DEFAULT_RULES,
) -> SystemLibraryRule | None:
    """First rule that classifies path as a system library, if any."""
    for rule in rules_for(platform, rules):
        if rule.matches(path):
            return rule
    return None


def is_system_library(
    path: Path | str,
    platform: Platform | None = None,
    rules: Iterable[SystemLibraryRule] = DEFAULT_RULES,
) -> bool:
    return matching_rule(path, platform, rules) is not None
