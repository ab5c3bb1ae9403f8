# SPDX-License-Identifier: MIT
"""Source location tracking for error messages.

Targets remember where in the user's build description they were
declared, so graph errors can point back at the offending line.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from pathlib import Path

_PACKAGE_DIR = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class SourceLocation:
    """A file/line pair in user code."""

    filename: str
    lineno: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.lineno}"


def get_caller_location() -> SourceLocation | None:
    """Return the first stack frame outside the rtdeploy package.

    Returns:
        The caller's location, or None if every frame is internal.
    """
    frame = inspect.currentframe()
    try:
        while frame is not None:
            filename = frame.f_code.co_filename
            try:
                inside = Path(filename).resolve().is_relative_to(_PACKAGE_DIR)
            except (OSError, ValueError):
                inside = False
            if not inside:
                return SourceLocation(filename, frame.f_lineno)
            frame = frame.f_back
        return None
    finally:
        del frame
