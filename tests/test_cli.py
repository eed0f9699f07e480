"""Tests for the command line interface."""

from __future__ import annotations

import json

import pytest
import yaml
from click.testing import CliRunner

from apistub.cli import cli, main


@pytest.fixture
def spec_file(tmp_path, chat_spec, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("APISTUB_OUTPUT_DIR", raising=False)
    monkeypatch.delenv("APISTUB_ARTIFACT_PREFIX", raising=False)
    path = tmp_path / "openapi.json"
    path.write_text(json.dumps(chat_spec), encoding="utf-8")
    return path


class TestGenerate:
    """Test the generate command."""

    def test_writes_artifacts(self, spec_file, tmp_path):
        out = tmp_path / "out"
        result = CliRunner().invoke(cli, ["generate", str(spec_file), "--output", str(out)])
        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in out.iterdir()) == ["chat.py", "router.py", "types.py"]
        assert str(out / "router.py") in result.output

    def test_output_dir_from_environment(self, spec_file, tmp_path, monkeypatch):
        monkeypatch.setenv("APISTUB_OUTPUT_DIR", str(tmp_path / "env-out"))
        assert main(["generate", str(spec_file)]) == 0
        assert (tmp_path / "env-out" / "types.py").exists()

    def test_yaml_input(self, tmp_path, chat_spec, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "openapi.yaml"
        path.write_text(yaml.safe_dump(chat_spec), encoding="utf-8")
        assert main(["generate", str(path), "--output", str(tmp_path / "gen")]) == 0
        assert (tmp_path / "gen" / "chat.py").exists()

    def test_enhance_without_key_keeps_placeholders(self, spec_file, tmp_path, monkeypatch):
        monkeypatch.delenv("APISTUB_API_KEY", raising=False)
        out = tmp_path / "out"
        assert main(["generate", str(spec_file), "--output", str(out), "--enhance"]) == 0
        assert "Not implemented" in (out / "chat.py").read_text(encoding="utf-8")


class TestErrors:
    """Generation errors exit with status 1 and write nothing."""

    def test_broken_reference(self, tmp_path, chat_spec, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        chat_spec["components"]["schemas"]["Node"]["properties"]["parent"] = {
            "$ref": "#/components/schemas/Missing"
        }
        path = tmp_path / "openapi.json"
        path.write_text(json.dumps(chat_spec), encoding="utf-8")
        out = tmp_path / "out"

        assert main(["generate", str(path), "--output", str(out)]) == 1
        assert "Broken reference: #/components/schemas/Missing" in capsys.readouterr().err
        assert not out.exists()

    def test_missing_file(self, tmp_path, capsys):
        assert main(["generate", str(tmp_path / "absent.json")]) == 1
        assert "error:" in capsys.readouterr().err

    def test_invalid_setting(self, spec_file, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("APISTUB_ENHANCE_TIMEOUT", "abc")
        out = tmp_path / "out"
        assert main(["generate", str(spec_file), "--output", str(out)]) == 1
        err = capsys.readouterr().err
        assert err.startswith("error:")
        assert "enhance_timeout" in err
        assert not out.exists()

    def test_usage_error(self):
        assert main(["generate"]) == 2


class TestRoutes:
    """Test the routes listing."""

    def test_lists_groups(self, spec_file):
        result = CliRunner().invoke(cli, ["routes", str(spec_file)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert "chat (chat.py)" in lines
        assert "  POST /chat/completions -> create_completion" in lines
        assert "  GET /chat/threads/{threadId} -> get_thread" in lines
