"""Tests for artifact writing."""

from pathlib import Path

from polyface.infrastructure.output import write_artifact


class TestWriteArtifact:
    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "api" / "v1" / "users.proto"
        written = write_artifact(target, 'syntax = "proto3";\n')
        assert written == target.resolve()
        assert target.read_text(encoding="utf-8") == 'syntax = "proto3";\n'

    def test_appends_final_newline(self, tmp_path: Path) -> None:
        target = tmp_path / "schema.graphql"
        write_artifact(target, "type Query")
        assert target.read_text(encoding="utf-8") == "type Query\n"

    def test_overwrites(self, tmp_path: Path) -> None:
        target = tmp_path / "a.json"
        write_artifact(target, "{}\n")
        write_artifact(target, "[]\n")
        assert target.read_text(encoding="utf-8") == "[]\n"

    def test_relative_path_resolved(self, project: Path) -> None:
        written = write_artifact(Path("out/a.md"), "# A\n")
        assert written == (project / "out" / "a.md").resolve()
