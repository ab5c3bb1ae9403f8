# SPDX-License-Identifier: MIT
"""Tests for rtdeploy.core.graph."""

import json
from pathlib import Path

import pytest

from rtdeploy.core.errors import (
    DuplicateTargetError,
    GraphError,
    InvalidTargetKindError,
    UnknownTargetError,
)
from rtdeploy.core.graph import Graph
from rtdeploy.core.target import FetchedPackage, Target, TargetKind

GRAPH_JSON = {
    "name": "demo",
    "build_dir": "build",
    "targets": [
        {"name": "app", "kind": "executable", "install": True,
         "link": {"private": ["core", "static"]}},
        {"name": "core", "kind": "shared_library",
         "output_path": "build/lib/libcore.so",
         "link": {"public": ["utils"]}},
        {"name": "utils", "kind": "shared_library"},
        {"name": "static", "kind": "static_library", "package": "fmt"},
    ],
    "packages": [
        {"name": "fmt", "source_dir": "_deps/fmt-src",
         "binary_dir": "/abs/_deps/fmt-build"},
    ],
    "vendor_rules": [
        {"name": "acme", "pattern": "acme", "artifacts": ["acme.dll"]},
    ],
}


class TestRegistration:
    def test_factories(self):
        graph = Graph("p")
        exe = graph.Executable("app")
        lib = graph.SharedLibrary("lib")
        st = graph.StaticLibrary("st")
        iface = graph.InterfaceLibrary("iface")
        assert exe.kind is TargetKind.EXECUTABLE
        assert lib.kind is TargetKind.SHARED_LIBRARY
        assert st.kind is TargetKind.STATIC_LIBRARY
        assert iface.kind is TargetKind.INTERFACE_LIBRARY
        assert len(graph) == 4

    def test_duplicate_name(self):
        graph = Graph()
        graph.SharedLibrary("lib")
        with pytest.raises(DuplicateTargetError) as exc_info:
            graph.StaticLibrary("lib")
        assert exc_info.value.name == "lib"

    def test_lookup(self):
        graph = Graph()
        lib = graph.SharedLibrary("lib")
        assert graph["lib"] is lib
        assert graph.get_target("missing") is None
        with pytest.raises(UnknownTargetError):
            graph["missing"]

    def test_contains_checks_identity_for_targets(self):
        graph = Graph()
        graph.SharedLibrary("lib")
        assert "lib" in graph
        assert Target("lib", kind="shared") not in graph

    def test_roots(self):
        graph = Graph()
        graph.Executable("app", install=True)
        graph.SharedLibrary("lib")
        graph.StaticLibrary("st")
        assert [t.name for t in graph.roots()] == ["app", "lib"]
        assert [t.name for t in graph.roots(installed_only=True)] == ["app"]

    def test_packages(self):
        graph = Graph()
        graph.add_package(FetchedPackage("fmt", source_dir=Path("a")))
        graph.add_package(FetchedPackage("fmt", source_dir=Path("b")))
        assert len(graph.packages) == 1
        assert graph.package("fmt").source_dir == Path("b")


class TestValidation:
    def test_valid_graph(self):
        graph = Graph()
        lib = graph.SharedLibrary("lib")
        graph.Executable("app").link(lib)
        assert graph.validate() == []

    def test_unregistered_dependency(self):
        graph = Graph()
        stray = Target("stray", kind="shared")
        graph.Executable("app").link(stray)
        errors = graph.validate()
        assert len(errors) == 1
        assert isinstance(errors[0], UnknownTargetError)

    def test_undeclared_package(self):
        graph = Graph()
        graph.SharedLibrary("lib", package="nope")
        errors = graph.validate()
        assert len(errors) == 1
        assert "nope" in str(errors[0])

    def test_find_cycles(self):
        graph = Graph()
        a = graph.SharedLibrary("a")
        b = graph.SharedLibrary("b").link(a)
        a.link(b)
        cycles = graph.find_cycles()
        assert cycles == [["a", "b", "a"]]

    def test_find_cycles_deep_chain(self):
        """Long dependency chains do not exhaust the interpreter stack."""
        graph = Graph()
        first = prev = graph.SharedLibrary("lib0")
        for i in range(1, 5000):
            prev = graph.SharedLibrary(f"lib{i}").link(prev)
        assert graph.find_cycles() == []

        first.link(prev)
        (cycle,) = graph.find_cycles()
        assert len(cycle) == 5001
        assert cycle[0] == cycle[-1]

    def test_no_cycles(self):
        graph = Graph()
        a = graph.SharedLibrary("a")
        graph.Executable("app").link(a)
        assert graph.find_cycles() == []


class TestFromDict:
    def test_loads_targets_and_links(self, tmp_path):
        graph = Graph.from_dict(GRAPH_JSON, base_dir=tmp_path)
        assert graph.name == "demo"
        app = graph["app"]
        assert [t.name for t in app.direct_dependencies] == ["core", "static"]
        assert app.install is True
        core = graph["core"]
        assert core.interface_dependencies == [graph["utils"]]

    def test_relative_paths_use_base_dir(self, tmp_path):
        graph = Graph.from_dict(GRAPH_JSON, base_dir=tmp_path)
        assert graph.build_dir == tmp_path / "build"
        assert Path(graph["core"].output_path) == tmp_path / "build/lib/libcore.so"
        pkg = graph.package("fmt")
        assert pkg.source_dir == tmp_path / "_deps/fmt-src"
        assert pkg.binary_dir == Path("/abs/_deps/fmt-build")

    def test_vendor_rules_kept(self, tmp_path):
        graph = Graph.from_dict(GRAPH_JSON, base_dir=tmp_path)
        assert graph.vendor_rules[0]["name"] == "acme"

    def test_unknown_link(self, tmp_path):
        data = {"targets": [{"name": "app", "kind": "executable",
                             "link": {"private": ["ghost"]}}]}
        with pytest.raises(UnknownTargetError):
            Graph.from_dict(data, base_dir=tmp_path)

    def test_bad_kind(self, tmp_path):
        data = {"targets": [{"name": "app", "kind": "widget"}]}
        with pytest.raises(InvalidTargetKindError):
            Graph.from_dict(data, base_dir=tmp_path)

    def test_missing_kind(self, tmp_path):
        with pytest.raises(GraphError):
            Graph.from_dict({"targets": [{"name": "app"}]}, base_dir=tmp_path)


class TestLoad:
    def test_load_file(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(GRAPH_JSON))
        graph = Graph.load(path)
        assert len(graph) == 4
        assert graph.build_dir == tmp_path.resolve() / "build"

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text("{not json")
        with pytest.raises(GraphError):
            Graph.load(path)
