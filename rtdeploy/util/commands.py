# SPDX-License-Identifier: MIT
"""Cross-platform command helpers for rtdeploy build and install rules.

These helpers are designed to be invoked from generated build rules and
install scripts using Python, so the same semantics hold for every build
executor.

Usage in build rules:
    python -m rtdeploy.util.commands copy <src> <dest>
    python -m rtdeploy.util.commands copy-if-different <src> <dest-or-dir>
    python -m rtdeploy.util.commands discover <params.json> [install-prefix]
"""

from __future__ import annotations

import filecmp
import json
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path


def copy(src: str, dest: str) -> None:
    """Copy a file, creating parent directories as needed."""
    dest_path = Path(dest)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dest)


def _destination(src: Path, dest: Path | str) -> Path:
    dest_str = str(dest)
    dest_path = Path(dest)
    if dest_path.is_dir() or dest_str.endswith(("/", "\\")):
        return dest_path / src.name
    return dest_path


def is_up_to_date(src: Path, dest: Path) -> bool:
    """Whether dest already holds the same content as src."""
    if not dest.is_file():
        return False
    src_stat = src.stat()
    dest_stat = dest.stat()
    if src_stat.st_size != dest_stat.st_size:
        return False
    if int(src_stat.st_mtime) == int(dest_stat.st_mtime):
        return True
    return filecmp.cmp(src, dest, shallow=False)


def copy_if_different(src: str | Path, dest: str | Path) -> bool:
    """Copy src to dest unless dest already has the same content.

    dest may be a directory (existing, or spelled with a trailing
    separator), in which case the file keeps its name. The new file is
    written next to the destination and moved into place, so concurrent
    copies of the same artifact never expose a partial file.

    Returns:
        True if a copy was made.

    Raises:
        FileNotFoundError: If src does not exist.
        OSError: If the copy fails.
    """
    src_path = Path(src)
    if not src_path.is_file():
        raise FileNotFoundError(f"No such file: {src_path}")
    dest_path = _destination(src_path, dest)
    if is_up_to_date(src_path, dest_path):
        return False

    dest_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{dest_path.name}.", suffix=".tmp", dir=dest_path.parent
    )
    os.close(fd)
    try:
        shutil.copy2(src_path, tmp_name)
        os.replace(tmp_name, dest_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return True


def discover(params_file: str, prefix: str | None = None) -> int:
    """Run an install-time discovery procedure from a parameters file."""
    from rtdeploy.deploy.discovery import discovery_main

    with open(params_file) as f:
        params = json.load(f)
    return discovery_main(params, [prefix] if prefix else [])


def main() -> int:
    """Command-line entry point."""
    if len(sys.argv) < 2:
        print(
            "Usage: python -m rtdeploy.util.commands <command> [args...]",
            file=sys.stderr,
        )
        print("Commands: copy, copy-if-different, discover", file=sys.stderr)
        return 1

    cmd = sys.argv[1]

    if cmd == "copy":
        if len(sys.argv) != 4:
            print(
                "Usage: python -m rtdeploy.util.commands copy <src> <dest>",
                file=sys.stderr,
            )
            return 1
        copy(sys.argv[2], sys.argv[3])
        return 0

    elif cmd == "copy-if-different":
        if len(sys.argv) != 4:
            print(
                "Usage: python -m rtdeploy.util.commands copy-if-different "
                "<src> <dest-or-dir>",
                file=sys.stderr,
            )
            return 1
        try:
            copy_if_different(sys.argv[2], sys.argv[3])
        except OSError as e:
            # Reported, never fatal to the build.
            print(f"warning: {e}", file=sys.stderr)
        return 0

    elif cmd == "discover":
        if len(sys.argv) not in (3, 4):
            print(
                "Usage: python -m rtdeploy.util.commands discover <params.json> "
                "[install-prefix]",
                file=sys.stderr,
            )
            return 1
        logging.basicConfig(level=logging.INFO, format="-- %(message)s")
        return discover(sys.argv[2], sys.argv[3] if len(sys.argv) == 4 else None)

    else:
        print(f"Unknown command: {cmd}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
