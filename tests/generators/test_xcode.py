# SPDX-License-Identifier: MIT
"""Tests for XcodeGenerator."""

from rtdeploy.configure.platform import Platform
from rtdeploy.core.graph import Graph
from rtdeploy.deploy.project import plan_deployment
from rtdeploy.generators.xcode import XcodeGenerator

MACOS = Platform("darwin", "arm64")


def make_plan(tmp_path):
    graph = Graph("myapp", build_dir=tmp_path)
    core = graph.SharedLibrary("core", output_path=tmp_path / "libcore.dylib")
    graph.Executable("app", output_path=tmp_path / "bin" / "app").link(core)
    return plan_deployment(graph, family="clang", platform=MACOS)


class TestXcodeGeneratorBasic:
    """Basic tests for XcodeGenerator."""

    def test_generator_creation(self):
        """Test generator can be created."""
        gen = XcodeGenerator()
        assert gen.name == "xcode"

    def test_generates_xcodeproj_bundle(self, tmp_path):
        """Test that generation creates .xcodeproj directory."""
        path = XcodeGenerator().generate(make_plan(tmp_path), tmp_path)

        xcodeproj_path = tmp_path / "myapp_deploy.xcodeproj"
        assert path == xcodeproj_path
        assert xcodeproj_path.is_dir()

    def test_creates_project_pbxproj(self, tmp_path):
        """Test that project.pbxproj file is created."""
        XcodeGenerator().generate(make_plan(tmp_path), tmp_path)

        pbxproj_path = tmp_path / "myapp_deploy.xcodeproj" / "project.pbxproj"
        assert pbxproj_path.is_file()

        content = pbxproj_path.read_text()
        assert "// !$*UTF8*$!" in content
        assert "PBXProject" in content


class TestXcodeGeneratorTargets:
    """Tests for deploy targets."""

    def test_aggregate_target_per_root(self, tmp_path):
        """Each root gets a deploy_<root> aggregate target."""
        XcodeGenerator().generate(make_plan(tmp_path), tmp_path)
        content = (tmp_path / "myapp_deploy.xcodeproj" / "project.pbxproj").read_text()

        assert "PBXAggregateTarget" in content
        assert "deploy_app" in content
        assert "deploy_core" in content

    def test_shell_script_phase(self, tmp_path):
        """The script phase copies the closure next to the root."""
        XcodeGenerator().generate(make_plan(tmp_path), tmp_path)
        content = (tmp_path / "myapp_deploy.xcodeproj" / "project.pbxproj").read_text()

        assert "PBXShellScriptBuildPhase" in content
        assert "copy-if-different" in content
        assert "libcore.dylib" in content

    def test_target_dependency_from_order_edges(self, tmp_path):
        """deploy_app depends on deploy_core."""
        XcodeGenerator().generate(make_plan(tmp_path), tmp_path)
        content = (tmp_path / "myapp_deploy.xcodeproj" / "project.pbxproj").read_text()

        assert "PBXTargetDependency" in content
        assert "PBXContainerItemProxy" in content

    def test_unresolved_actions_commented(self, tmp_path):
        graph = Graph("tokens")
        lib = graph.SharedLibrary("lib")
        graph.Executable("app").link(lib)
        plan = plan_deployment(graph, ["app"], family="clang", platform=MACOS)
        XcodeGenerator().generate(plan, tmp_path)
        content = (tmp_path / "tokens_deploy.xcodeproj" / "project.pbxproj").read_text()
        assert "unresolved" in content
        assert "PBXTargetDependency" not in content
