"""Tests for the command-line entry point (vibecoder.cli)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from vibecoder.cli import build_autocoder, build_parser, load_tasks, main
from vibecoder.config import Settings
from vibecoder.errors import ConfigurationError
from vibecoder.file_store import VersionedFileStore
from vibecoder.llm.ollama import OllamaClient
from vibecoder.models import PipelineRun


def _write_tasks(path: Path, tasks: list[dict]) -> Path:
    path.write_text(json.dumps(tasks), encoding="utf-8")
    return path


class TestLoadTasks:
    @pytest.mark.unit
    def test_valid(self, tmp_path: Path):
        path = _write_tasks(
            tmp_path / "tasks.json",
            [{"prompt": "p", "file": "src/app.py", "testCommand": "pytest"}],
        )
        tasks = load_tasks(path)
        assert len(tasks) == 1
        assert tasks[0].test_command == "pytest"

    @pytest.mark.unit
    def test_missing(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_tasks(tmp_path / "none.json")

    @pytest.mark.unit
    def test_invalid_entries(self, tmp_path: Path):
        path = _write_tasks(tmp_path / "tasks.json", [{"prompt": "p"}])
        with pytest.raises(ConfigurationError, match="Invalid task file"):
            load_tasks(path)

    @pytest.mark.unit
    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "tasks.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_tasks(path)


class TestParser:
    @pytest.mark.unit
    def test_run_defaults(self):
        args = build_parser().parse_args(["run", "tasks.json"])
        assert args.command == "run"
        assert args.workspace == "."
        assert args.language == "python"
        assert args.performance is None

    @pytest.mark.unit
    def test_revert_version_is_int(self):
        args = build_parser().parse_args(["revert", "src/app.py", "2", "-w", "/tmp/ws"])
        assert args.version == 2
        assert args.workspace == "/tmp/ws"

    @pytest.mark.unit
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestWiring:
    @pytest.mark.unit
    def test_build_autocoder(self, workspace: Path, logger, mock_runner):
        coder = build_autocoder(workspace, Settings(performance="high"), logger, mock_runner)
        assert isinstance(coder.llm, OllamaClient)
        assert coder.recovery.llm is coder.llm
        assert coder.runner is mock_runner
        assert coder.workspace == workspace.resolve()
        assert coder.performance.value == "high"


class TestMain:
    @pytest.mark.unit
    def test_providers(self, capsys):
        assert main(["providers"]) == 0
        out = capsys.readouterr().out
        assert "ollama" in out
        assert "openai" in out

    @pytest.mark.unit
    def test_history_empty(self, workspace: Path, capsys):
        assert main(["history", "-w", str(workspace)]) == 0
        assert "No recorded changes" in capsys.readouterr().out

    @pytest.mark.unit
    def test_history_and_revert(self, workspace: Path, logger, capsys):
        store = VersionedFileStore(workspace, logger)
        store.write_file("app.py", "first")
        store.write_file("app.py", "second")

        assert main(["history", "app.py", "-w", str(workspace)]) == 0
        assert "Change history" in capsys.readouterr().out

        assert main(["revert", "app.py", "2", "-w", str(workspace)]) == 0
        assert (workspace / "app.py").read_text(encoding="utf-8") == "first"

    @pytest.mark.unit
    def test_revert_unknown_version_fails(self, workspace: Path, capsys):
        assert main(["revert", "app.py", "9", "-w", str(workspace)]) == 1
        assert "not found" in capsys.readouterr().out

    @pytest.mark.unit
    def test_run_missing_task_file(self, workspace: Path):
        assert main(["run", str(workspace / "absent.json"), "-w", str(workspace)]) == 1

    @pytest.mark.unit
    @pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
    def test_bad_settings_file_fails(self, workspace: Path, tmp_path: Path, capsys, content):
        settings = tmp_path / "settings.json"
        settings.write_text(content, encoding="utf-8")
        assert main(["models", "-w", str(workspace), "--settings", str(settings)]) == 1
        assert "Invalid settings file" in capsys.readouterr().out

    @pytest.mark.unit
    def test_run_invokes_pipeline(self, workspace: Path, tmp_path: Path):
        tasks = _write_tasks(
            tmp_path / "tasks.json",
            [{"prompt": "p", "file": "src/app.py", "testCommand": "pytest"}],
        )
        summary = PipelineRun(tasks_total=1, tasks_passed=1, attempts={"src/app.py": 1})
        with patch(
            "vibecoder.orchestrator.AutoCoder.start_auto_mode",
            new=AsyncMock(return_value=summary),
        ) as start:
            code = main(
                ["run", str(tasks), "-w", str(workspace), "--performance", "efficient", "--model", "m"]
            )

        assert code == 0
        kwargs = start.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["language"] == "python"
        assert kwargs["performance"].value == "efficient"
        assert len(start.call_args.args[0]) == 1
