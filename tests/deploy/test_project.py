# SPDX-License-Identifier: MIT
"""Tests for rtdeploy.deploy.project."""

import json

import pytest

from rtdeploy.configure.platform import Platform
from rtdeploy.core.errors import UnknownTargetError
from rtdeploy.core.graph import Graph
from rtdeploy.deploy.project import plan_deployment
from rtdeploy.deploy.vendor import VendorRegistry

LINUX = Platform("linux", "x86_64")


def make_graph(tmp_path):
    graph = Graph("demo", build_dir=tmp_path / "build")
    core = graph.SharedLibrary("core", output_path=tmp_path / "libcore.so")
    graph.Executable("app", output_path=tmp_path / "app", install=True).link(core)
    graph.Executable("tool", output_path=tmp_path / "tool").link(core)
    graph.StaticLibrary("st")
    return graph


class TestPlanDeployment:
    def test_all_roots(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_deployment(graph, family="gcc", platform=LINUX)
        assert list(plan.roots) == ["core", "app", "tool"]
        assert len(plan) == 3
        assert plan.name == "demo"
        assert plan.roots["app"].closure.names == {"core"}

    def test_install_only_for_installed_roots(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_deployment(graph, family="gcc", platform=LINUX)
        assert plan.roots["app"].install is not None
        assert plan.roots["tool"].install is None

    def test_explicit_roots_are_installed(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_deployment(graph, ["tool"], family="gcc", platform=LINUX)
        assert list(plan.roots) == ["tool"]
        assert plan.roots["tool"].install is not None

    def test_unknown_root(self, tmp_path):
        graph = make_graph(tmp_path)
        with pytest.raises(UnknownTargetError):
            plan_deployment(graph, ["ghost"], platform=LINUX)

    def test_default_family_from_platform(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_deployment(graph, platform=Platform("darwin", "arm64"))
        assert plan.family == "clang"

    def test_to_dict_is_json(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_deployment(
            graph, family="gcc", platform=LINUX, registry=VendorRegistry()
        )
        data = json.loads(json.dumps(plan.to_dict()))
        assert data["project"] == "demo"
        assert data["family"] == "gcc"
        app = data["roots"]["app"]
        assert app["closure"] == ["core"]
        assert app["actions"][0]["file_name"] == "libcore.so"
        assert app["install"]["script"] == "install_app_dependencies.py"
        assert data["roots"]["tool"]["install"] is None

    def test_write_scripts(self, tmp_path):
        graph = make_graph(tmp_path)
        plan = plan_deployment(graph, family="gcc", platform=LINUX)
        written = plan.write_scripts(tmp_path / "out")
        assert [p.name for p in written] == ["install_app_dependencies.py"]
        assert written[0].is_file()
