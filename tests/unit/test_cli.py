"""コマンドラインエントリポイントのユニットテスト。"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from schema_factories import enum_type, manga_snapshot, manga_types, snapshot

from schemawatch.__main__ import main
from schemawatch.models.errors import AcquisitionError
from schemawatch.services.introspection import IntrospectionClient


@pytest.fixture
def saved_baseline(baseline_path: Path) -> Path:
    """BaselineStore.save と同じ形式で書き出したベースライン。"""
    baseline_path.parent.mkdir(parents=True)
    baseline_path.write_text(manga_snapshot().model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    return baseline_path


class TestRender:
    def test_render_to_stdout(self, saved_baseline: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["render", "--baseline", str(saved_baseline)]) == 0
        out = capsys.readouterr().out
        assert out.startswith("# GraphQL Schema\n")
        assert "type Manga implements Node {" in out

    def test_render_summary(self, saved_baseline: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["render", "--baseline", str(saved_baseline), "--summary"]) == 0
        assert "GraphQL Schema Summary" in capsys.readouterr().out

    def test_render_to_file(self, saved_baseline: Path, tmp_path: Path) -> None:
        output = tmp_path / "out.graphql"
        assert main(["render", "--baseline", str(saved_baseline), "--output", str(output)]) == 0
        assert "enum ReadingStatus {" in output.read_text(encoding="utf-8")

    def test_render_missing_baseline(self, baseline_path: Path) -> None:
        assert main(["render", "--baseline", str(baseline_path)]) == 1


class TestCheck:
    def test_check_compatible(self, saved_baseline: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch.object(IntrospectionClient, "acquire", new_callable=AsyncMock, return_value=manga_snapshot()):
            assert main(["check", "--baseline", str(saved_baseline)]) == 0
        out = capsys.readouterr().out
        assert "Schema Validation PASSED" in out
        assert "All schema validations passed successfully!" in out

    def test_check_incompatible(self, saved_baseline: Path, capsys: pytest.CaptureFixture[str]) -> None:
        types = [enum_type("ReadingStatus", ["READING"]) if t.name == "ReadingStatus" else t for t in manga_types()]
        actual = snapshot(*types, mutation="Mutation")
        with patch.object(IntrospectionClient, "acquire", new_callable=AsyncMock, return_value=actual):
            assert main(["check", "--baseline", str(saved_baseline)]) == 1
        out = capsys.readouterr().out
        assert "Schema Validation FAILED" in out
        assert "Enum value 'COMPLETED' is missing from enum 'ReadingStatus'" in out

    def test_check_server_unreachable(self, saved_baseline: Path) -> None:
        with patch.object(
            IntrospectionClient, "acquire", new_callable=AsyncMock, side_effect=AcquisitionError("connection refused")
        ):
            assert main(["check", "--baseline", str(saved_baseline)]) == 1

    def test_check_missing_baseline(self, baseline_path: Path) -> None:
        assert main(["check", "--baseline", str(baseline_path)]) == 1


class TestIntrospect:
    def test_introspect_saves_json_and_sdl(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        json_path = tmp_path / "schema.json"
        sdl_path = tmp_path / "schema.graphql"
        with (
            patch.object(IntrospectionClient, "ping", new_callable=AsyncMock, return_value=True),
            patch.object(IntrospectionClient, "acquire", new_callable=AsyncMock, return_value=manga_snapshot()),
        ):
            code = main(["introspect", "--json", str(json_path), "--sdl", str(sdl_path), "--summary"])

        assert code == 0
        assert '"__schema"' in json_path.read_text(encoding="utf-8")
        assert "type Query {" in sdl_path.read_text(encoding="utf-8")
        assert "GraphQL Schema Summary" in capsys.readouterr().out

    def test_introspect_unreachable_server(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        json_path = tmp_path / "schema.json"
        with patch.object(IntrospectionClient, "ping", new_callable=AsyncMock, return_value=False):
            code = main(["introspect", "--server", "http://nowhere:4567", "--json", str(json_path)])

        assert code == 1
        assert not json_path.exists()
        assert "Unable to connect to server at http://nowhere:4567" in capsys.readouterr().err


class TestArguments:
    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            main([])
