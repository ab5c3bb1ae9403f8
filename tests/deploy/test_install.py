# SPDX-License-Identifier: MIT
"""Tests for rtdeploy.deploy.install."""

from pathlib import Path

from rtdeploy.configure.platform import Platform
from rtdeploy.core.graph import Graph
from rtdeploy.deploy.install import (
    DEVELOPMENT_COMPONENT,
    RUNTIME_COMPONENT,
    InstallRule,
    plan_install,
)
from rtdeploy.deploy.vendor import VendorArtifactRule, VendorRegistry

LINUX = Platform("linux", "x86_64")
WINDOWS = Platform("windows", "x86_64")


def make_graph(tmp_path):
    graph = Graph("demo", build_dir=tmp_path / "build")
    utils = graph.SharedLibrary("utils", output_path=tmp_path / "libutils.so")
    core = graph.SharedLibrary("core", output_path=tmp_path / "libcore.so").link(utils)
    graph.StaticLibrary("st", output_path=tmp_path / "libst.a")
    graph.InterfaceLibrary("headers")
    graph.Executable("app", output_path=tmp_path / "bin" / "app", install=True).link(core)
    return graph


class TestPlanInstall:
    def test_executable(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_install(graph["app"], graph, family="gcc", platform=LINUX)

        assert plan.root == "app"
        assert plan.rules[0] == InstallRule([str(tmp_path / "bin" / "app")], "bin")
        assert plan.files_for("bin") == [
            str(tmp_path / "bin" / "app"),
            str(tmp_path / "libcore.so"),
            str(tmp_path / "libutils.so"),
        ]
        assert all(r.component == RUNTIME_COMPONENT for r in plan.rules)
        assert plan.script is not None
        assert plan.script.file_name == "install_app_dependencies.py"

    def test_static_library(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_install(graph["st"], graph, archive_dir="lib64", platform=LINUX)
        assert plan.rules == [
            InstallRule([str(tmp_path / "libst.a")], "lib64", DEVELOPMENT_COMPONENT)
        ]
        assert plan.script is None

    def test_interface_library(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_install(graph["headers"], graph, platform=LINUX)
        assert plan.rules == []
        assert plan.script is None

    def test_shared_library_root_installs_its_closure(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_install(graph["core"], graph, runtime_dir="lib", platform=LINUX)
        assert plan.files_for("lib") == [
            str(tmp_path / "libcore.so"),
            str(tmp_path / "libutils.so"),
        ]
        assert plan.script.params.kind == "shared_library"
        assert plan.script.params.runtime_dir == "lib"

    def test_emscripten_wasm_companion(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_install(graph["app"], graph, family="emscripten", platform=LINUX)
        wasm = [r for r in plan.rules if r.optional]
        assert len(wasm) == 1
        assert wasm[0].files == [str(tmp_path / "bin" / "app.wasm")]

    def test_emscripten_wasm_token(self):
        graph = Graph()
        app = graph.Executable("app")
        plan = plan_install(app, graph, family="emscripten", platform=LINUX)
        assert plan.rules[-1].files == ["$<TARGET_FILE_DIR:app>/app.wasm"]

    def test_no_wasm_for_other_families(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_install(graph["app"], graph, family="clang", platform=LINUX)
        assert not any(r.optional for r in plan.rules)

    def test_vendor_and_sanitizer_artifacts(self, tmp_path):
        (tmp_path / "acme").mkdir()
        (tmp_path / "acme" / "acme_rt.dll").write_bytes(b"MZ")
        graph = Graph()
        acme = graph.SharedLibrary("acme", source_dir=tmp_path / "acme")
        app = graph.Executable("app", sanitizers=["address"]).link(acme)
        registry = VendorRegistry([VendorArtifactRule("acme", "acme", artifacts=["acme_rt.dll"])])
        asan = tmp_path / "clang_rt.asan_dynamic-x86_64.dll"

        plan = plan_install(
            app,
            graph,
            family="msvc",
            registry=registry,
            platform=WINDOWS,
            sanitizer_runtime=[asan],
        )
        files = plan.files_for("bin")
        assert str(tmp_path / "acme" / "acme_rt.dll") in files
        assert str(asan) in files
        assert plan.script.params.extra_artifacts == [
            str(tmp_path / "acme" / "acme_rt.dll"),
            str(asan),
        ]

    def test_empty_closure_uses_precomputed(self, tmp_path):
        from rtdeploy.core.closure import ClosureSet

        graph = make_graph(tmp_path)
        app = graph["app"]
        plan = plan_install(app, graph, closure=ClosureSet(app), platform=LINUX)
        assert plan.files_for("bin") == [str(tmp_path / "bin" / "app")]

    def test_to_dict(self, tmp_path):
        graph = make_graph(tmp_path)
        data = plan_install(graph["app"], graph, platform=LINUX).to_dict()
        assert data["root"] == "app"
        assert data["script"] == "install_app_dependencies.py"
        assert data["rules"][0]["destination"] == "bin"
        assert data["rules"][0]["component"] == "Runtime"
        assert Path(data["rules"][0]["files"][0]).name == "app"

    def test_vendor_file_name_collision_first_wins(self, tmp_path):
        """A vendor DLL named like a closure library is installed once."""
        src = tmp_path / "dpp-src" / "library"
        src.mkdir(parents=True)
        vendor_bin = tmp_path / "dpp-src" / "win32" / "bin"
        vendor_bin.mkdir(parents=True)
        (vendor_bin / "zlib1.dll").write_bytes(b"MZ")

        graph = Graph()
        zlib = graph.SharedLibrary("zlib", output_path=tmp_path / "zlib" / "zlib1.dll")
        dpp = graph.SharedLibrary("dpp", output_path=tmp_path / "dpp.dll", source_dir=src)
        dpp.link(zlib)
        app = graph.Executable("app", output_path=tmp_path / "app.exe").link(dpp)

        plan = plan_install(
            app,
            graph,
            family="msvc",
            registry=VendorRegistry.from_graph(graph),
            platform=WINDOWS,
            sanitizer_runtime=[],
        )
        files = plan.files_for("bin")
        assert [Path(f).name for f in files] == ["app.exe", "dpp.dll", "zlib1.dll"]
        assert str(tmp_path / "zlib" / "zlib1.dll") in files
        assert str(tmp_path / "zlib" / "zlib1.dll") in plan.rules[1].files
        assert all(Path(p).name != "zlib1.dll" for p in plan.script.params.extra_artifacts)

    def test_no_empty_rules(self, tmp_path):
        graph = Graph()
        app = graph.Executable("app", output_path=tmp_path / "app")
        plan = plan_install(app, graph, family="gcc", platform=LINUX, sanitizer_runtime=[])
        assert len(plan.rules) == 1
