# SPDX-License-Identifier: MIT
"""Tests for rtdeploy.deploy.sanitizer."""

import logging
import subprocess
from unittest.mock import MagicMock

import pytest

from rtdeploy.configure.config import Configure
from rtdeploy.configure.platform import Platform
from rtdeploy.core.target import Target
from rtdeploy.deploy import sanitizer
from rtdeploy.deploy.sanitizer import (
    SanitizerRuntime,
    locate_sanitizer_runtime,
    requires_sanitizer_runtime,
    sanitizer_artifacts,
)

WIN64 = Platform("windows", "x86_64", pointer_size=8)
WIN32 = Platform("windows", "x86", pointer_size=4)
X64 = SanitizerRuntime.for_platform(WIN64)


def make_toolset(root, version, arch="x64", host="Hostx64"):
    dll_dir = root / version / "bin" / host / arch
    dll_dir.mkdir(parents=True)
    name = "clang_rt.asan_dynamic-x86_64.dll" if arch == "x64" else "clang_rt.asan_dynamic-i386.dll"
    dll = dll_dir / name
    dll.write_bytes(b"MZ")
    return dll


@pytest.fixture
def clean_env(monkeypatch):
    """No Visual Studio hints and no vswhere."""
    for var in ("VCToolsInstallDir", "VCINSTALLDIR", "ProgramFiles", "ProgramFiles(x86)"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(sanitizer, "_find_vswhere", lambda config: None)
    return monkeypatch


class TestSanitizerRuntime:
    def test_x64(self):
        assert X64.arch_dir == "x64"
        assert X64.dll_name == "clang_rt.asan_dynamic-x86_64.dll"
        assert X64.tail == "bin/Host*/x64/clang_rt.asan_dynamic-x86_64.dll"

    def test_x86(self):
        runtime = SanitizerRuntime.for_platform(WIN32)
        assert runtime.arch_dir == "x86"
        assert runtime.dll_name == "clang_rt.asan_dynamic-i386.dll"


class TestRequiresSanitizerRuntime:
    def test_msvc_with_asan(self):
        target = Target("app", kind="executable", sanitizers=["address"])
        assert requires_sanitizer_runtime(target, "msvc")

    def test_no_sanitizer(self):
        assert not requires_sanitizer_runtime(Target("app", kind="executable"), "msvc")

    @pytest.mark.parametrize("family", ["clang-msvc", "gcc", "clang", "emscripten"])
    def test_other_families(self, family):
        target = Target("app", kind="executable", sanitizers=["address"])
        assert not requires_sanitizer_runtime(target, family)


class TestLocate:
    def test_environment_tools_dir(self, tmp_path, clean_env):
        dll = make_toolset(tmp_path, "14.38.33130")
        clean_env.setenv("VCToolsInstallDir", str(tmp_path / "14.38.33130"))
        assert locate_sanitizer_runtime(X64) == dll

    def test_vcinstalldir_newest_wins(self, tmp_path, clean_env):
        msvc = tmp_path / "VC" / "Tools" / "MSVC"
        make_toolset(msvc, "14.29.30133")
        newest = make_toolset(msvc, "14.38.33130")
        clean_env.setenv("VCINSTALLDIR", str(tmp_path / "VC"))
        assert locate_sanitizer_runtime(X64) == newest

    def test_program_files(self, tmp_path, clean_env):
        msvc = tmp_path / "Microsoft Visual Studio" / "2022" / "Community" / "VC" / "Tools" / "MSVC"
        dll = make_toolset(msvc, "14.38.33130")
        clean_env.setenv("ProgramFiles", str(tmp_path))
        assert locate_sanitizer_runtime(X64) == dll

    def test_x86_runtime(self, tmp_path, clean_env):
        dll = make_toolset(tmp_path, "14.38.33130", arch="x86", host="Hostx86")
        clean_env.setenv("VCToolsInstallDir", str(tmp_path / "14.38.33130"))
        runtime = SanitizerRuntime.for_platform(WIN32)
        assert locate_sanitizer_runtime(runtime) == dll

    def test_vswhere(self, tmp_path, clean_env):
        install = tmp_path / "VS2022"
        dll = make_toolset(install / "VC" / "Tools" / "MSVC", "14.38.33130")
        vswhere = tmp_path / "vswhere.exe"
        vswhere.write_bytes(b"MZ")
        clean_env.setattr(sanitizer, "_find_vswhere", lambda config: vswhere)

        run = MagicMock(return_value=subprocess.CompletedProcess([], 0, f"{install}\n", ""))
        clean_env.setattr(sanitizer.subprocess, "run", run)

        assert locate_sanitizer_runtime(X64) == dll
        args, kwargs = run.call_args
        assert args[0] == [str(vswhere), "-latest", "-property", "installationPath"]
        assert kwargs["timeout"] == sanitizer.VSWHERE_TIMEOUT

    def test_vswhere_timeout_falls_through(self, tmp_path, clean_env):
        dll = make_toolset(tmp_path, "14.38.33130")
        clean_env.setenv("VCToolsInstallDir", str(tmp_path / "14.38.33130"))
        clean_env.setattr(sanitizer, "_find_vswhere", lambda config: tmp_path / "vswhere.exe")
        clean_env.setattr(
            sanitizer.subprocess,
            "run",
            MagicMock(side_effect=subprocess.TimeoutExpired("vswhere", 30)),
        )
        assert locate_sanitizer_runtime(X64) == dll

    def test_not_found_warns(self, clean_env, caplog):
        with caplog.at_level(logging.WARNING):
            assert locate_sanitizer_runtime(X64) is None
        assert "vswhere, environment, program-files" in caplog.text

    def test_cached_in_config(self, tmp_path, clean_env):
        dll = make_toolset(tmp_path / "tools", "14.38.33130")
        clean_env.setenv("VCToolsInstallDir", str(tmp_path / "tools" / "14.38.33130"))
        config = Configure(build_dir=tmp_path / "build", platform=WIN64)
        assert locate_sanitizer_runtime(X64, config) == dll
        assert config.get("sanitizer:msvc:address:x64") == str(dll)

        clean_env.delenv("VCToolsInstallDir")
        assert locate_sanitizer_runtime(X64, config) == dll

    def test_stale_cache_ignored(self, tmp_path, clean_env):
        config = Configure(build_dir=tmp_path / "build", platform=WIN64)
        config.set("sanitizer:msvc:address:x64", str(tmp_path / "gone.dll"))
        assert locate_sanitizer_runtime(X64, config) is None
        assert config.get("sanitizer:msvc:address:x64") is None


class TestSanitizerArtifacts:
    def test_found(self, tmp_path, clean_env):
        dll = make_toolset(tmp_path, "14.38.33130")
        clean_env.setenv("VCToolsInstallDir", str(tmp_path / "14.38.33130"))
        target = Target("app", kind="executable", sanitizers=["address"])
        assert sanitizer_artifacts(target, "msvc", platform=WIN64) == [dll]

    def test_not_required(self, clean_env):
        target = Target("app", kind="executable", sanitizers=["address"])
        assert sanitizer_artifacts(target, "clang-msvc", platform=WIN64) == []
