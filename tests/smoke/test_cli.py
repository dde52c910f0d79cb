"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli.py -v
    pytest tests/smoke/test_cli.py -v -m smoke
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


def run_cli_command(args: list[str], timeout: int = 60) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        args: Arguments after 'python -m uaps.cli'
        timeout: Maximum time to wait
    """
    result = subprocess.run(
        [sys.executable, "-m", "uaps.cli", *args],
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def candidate_file(tmp_path, candidate):
    path = tmp_path / "candidate.json"
    path.write_text(json.dumps(candidate.to_dict()), encoding="utf-8")
    return path


@pytest.fixture
def records_file(tmp_path, training_records):
    path = tmp_path / "records.json"
    path.write_text(json.dumps([r.to_dict() for r in training_records]), encoding="utf-8")
    return path


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        code, stdout, stderr = run_cli_command(["--help"])

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout

    @pytest.mark.parametrize("command", ["train", "predict", "timeline", "coefficients", "import-notes"])
    def test_command_help(self, command):
        code, stdout, stderr = run_cli_command([command, "--help"])

        assert code == 0, f"{command} help failed: {stderr}"


class TestCLICommands:
    def test_coefficients(self):
        code, stdout, stderr = run_cli_command(["coefficients", "--depth", "30"])

        assert code == 0, f"coefficients failed: {stderr}"
        assert "BRI" in stdout

    def test_train_then_predict(self, tmp_path, records_file, candidate_file):
        models_file = tmp_path / "models.json"
        code, stdout, stderr = run_cli_command(["train", str(records_file), "-o", str(models_file)])
        assert code == 0, f"train failed: {stderr}"
        assert len(json.loads(models_file.read_text(encoding="utf-8"))) == 2

        code, stdout, stderr = run_cli_command(
            ["predict", str(candidate_file), "-m", str(models_file), "--offline", "--json"]
        )
        assert code == 0, f"predict failed: {stderr}"
        prediction = json.loads(stdout)
        assert prediction["undersea_duration_months"] == 18
        assert prediction["strategy"] == "statistical"

    def test_predict_without_models(self, tmp_path, candidate_file):
        code, stdout, stderr = run_cli_command(
            ["predict", str(candidate_file), "-m", str(tmp_path / "missing.json"), "--offline", "--months", "12"]
        )
        assert code == 0, f"predict failed: {stderr}"
        assert "Harvest window" in stdout

    def test_timeline_json(self, candidate_file):
        code, stdout, stderr = run_cli_command(["timeline", str(candidate_file), "--json"])

        assert code == 0, f"timeline failed: {stderr}"
        assert [p["month"] for p in json.loads(stdout)] == list(range(6, 37))

    def test_import_notes(self, tmp_path):
        notes = tmp_path / "notes.json"
        notes.write_text(
            json.dumps(
                [
                    {
                        "wineName": "2012 Grande Année",
                        "reviewText": "Toasty and nutty, with honey and a little lemon.",
                        "date": "5/1/2022",
                        "score": 93,
                    }
                ]
            ),
            encoding="utf-8",
        )
        output = tmp_path / "records.json"
        code, stdout, stderr = run_cli_command(
            ["import-notes", str(notes), "-o", str(output), "--year", "2024", "--offline"]
        )

        assert code == 0, f"import-notes failed: {stderr}"
        records = json.loads(output.read_text(encoding="utf-8"))
        assert records[0]["aging_years"] == 10.0

    def test_null_depth_uses_default(self, tmp_path, candidate):
        data = dict(candidate.to_dict(), aging_depth_m=None)
        path = tmp_path / "candidate.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        code, stdout, stderr = run_cli_command(
            ["predict", str(path), "-m", str(tmp_path / "missing.json"), "--offline", "--json"]
        )

        assert code == 0, f"predict failed: {stderr}"
        assert json.loads(stdout)["aging_depth_m"] == 30.0

    def test_missing_records_file(self, tmp_path):
        code, stdout, stderr = run_cli_command(["train", str(tmp_path / "nope.json")])

        assert code == 1
