"""Tests for Jinja2 template loading with project overrides."""

from pathlib import Path

import pytest
from jinja2 import UndefinedError

from polyface.infrastructure.templates import OVERRIDE_DIR, build_template_environment


class TestBuildTemplateEnvironment:
    def test_packaged_templates(self) -> None:
        env = build_template_environment("idl")
        template = env.get_template("thrift.j2")
        text = template.render(package_name="users", service="Users", methods=[])
        assert text.startswith("namespace * users")
        assert "service Users {" in text

    def test_project_override_in_group_dir(self, tmp_path: Path) -> None:
        group = tmp_path / OVERRIDE_DIR / "idl"
        group.mkdir(parents=True)
        (group / "thrift.j2").write_text("custom {{ service }}\n", encoding="utf-8")
        env = build_template_environment("idl", project_root=tmp_path)
        assert env.get_template("thrift.j2").render(service="Users") == "custom Users\n"

    def test_flat_override(self, tmp_path: Path) -> None:
        base = tmp_path / OVERRIDE_DIR
        base.mkdir(parents=True)
        (base / "proto.j2").write_text("flat\n", encoding="utf-8")
        env = build_template_environment("idl", project_root=tmp_path)
        assert env.get_template("proto.j2").render() == "flat\n"

    def test_template_dir_beats_project_dir(self, tmp_path: Path) -> None:
        project_dir = tmp_path / OVERRIDE_DIR
        project_dir.mkdir(parents=True)
        (project_dir / "proto.j2").write_text("project\n", encoding="utf-8")
        custom = tmp_path / "my-templates"
        custom.mkdir()
        (custom / "proto.j2").write_text("configured\n", encoding="utf-8")
        env = build_template_environment("idl", project_root=tmp_path, template_dir=custom)
        assert env.get_template("proto.j2").render() == "configured\n"

    def test_unoverridden_falls_back_to_package(self, tmp_path: Path) -> None:
        base = tmp_path / OVERRIDE_DIR
        base.mkdir(parents=True)
        (base / "proto.j2").write_text("flat\n", encoding="utf-8")
        env = build_template_environment("idl", project_root=tmp_path)
        text = env.get_template("thrift.j2").render(package_name="n", service="S", methods=[])
        assert "service S {" in text

    def test_strict_undefined(self) -> None:
        env = build_template_environment("idl")
        with pytest.raises(UndefinedError, match="package_name"):
            env.get_template("thrift.j2").render(service="Users", methods=[])

    def test_keeps_trailing_newline(self, tmp_path: Path) -> None:
        base = tmp_path / OVERRIDE_DIR
        base.mkdir(parents=True)
        (base / "proto.j2").write_text("{% if true %}\nline\n{% endif %}\n", encoding="utf-8")
        env = build_template_environment("idl", project_root=tmp_path)
        assert env.get_template("proto.j2").render() == "line\n"
