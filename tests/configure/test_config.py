# SPDX-License-Identifier: MIT
"""Tests for rtdeploy.configure.config."""

import json
from pathlib import Path

import pytest

from rtdeploy.configure.config import Configure, env_path, load_config
from rtdeploy.configure.platform import Platform

LINUX = Platform("linux", "x86_64")


class TestConfigure:
    """Tests for the configure context and its cache."""

    def test_set_get(self, tmp_path):
        config = Configure(build_dir=tmp_path, platform=LINUX)
        config.set("key", "value")
        assert config.get("key") == "value"
        assert config.get("missing", 42) == 42

    def test_save_and_reload(self, tmp_path):
        config = Configure(build_dir=tmp_path, platform=LINUX)
        config.set("key", "value")
        config.save()

        data = json.loads((tmp_path / "rtdeploy_config.json").read_text())
        assert data == {"key": "value"}
        assert Configure(build_dir=tmp_path, platform=LINUX).get("key") == "value"
        assert load_config(tmp_path / "rtdeploy_config.json") == {"key": "value"}

    def test_corrupt_cache_ignored(self, tmp_path):
        (tmp_path / "rtdeploy_config.json").write_text("{oops")
        config = Configure(build_dir=tmp_path, platform=LINUX)
        assert config.get("key") is None

    def test_cached_path(self, tmp_path):
        existing = tmp_path / "tool"
        existing.write_text("")
        config = Configure(build_dir=tmp_path, platform=LINUX)
        config.set("a", str(existing))
        config.set("b", str(tmp_path / "gone"))
        assert config.cached_path("a") == existing
        assert config.cached_path("b") is None
        assert config.get("b") is None
        assert config.cached_path("never") is None

    def test_find_program_hint(self, tmp_path):
        hints = tmp_path / "hints"
        hints.mkdir()
        program = hints / "vswhere"
        program.write_text("")
        config = Configure(build_dir=tmp_path, platform=LINUX)

        info = config.find_program("vswhere", hints=[hints])
        assert info is not None
        assert info.path == program
        assert config.get("program:vswhere") == str(program)

    def test_find_program_missing(self, tmp_path):
        config = Configure(build_dir=tmp_path, platform=LINUX)
        assert config.find_program("rtdeploy-no-such-program") is None
        with pytest.raises(FileNotFoundError):
            config.find_program("rtdeploy-no-such-program", required=True)

    def test_load_config_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.json")


class TestEnvPath:
    def test_set(self, monkeypatch):
        monkeypatch.setenv("RTDEPLOY_TEST_DIR", "/some/dir")
        assert env_path("RTDEPLOY_TEST_DIR") == Path("/some/dir")

    def test_empty_or_unset(self, monkeypatch):
        monkeypatch.setenv("RTDEPLOY_TEST_DIR", "")
        assert env_path("RTDEPLOY_TEST_DIR") is None
        monkeypatch.delenv("RTDEPLOY_TEST_DIR")
        assert env_path("RTDEPLOY_TEST_DIR") is None
