# tests/cli/test_cli.py
"""Tests for the periscope CLI."""

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from periscope.cli import app

runner = CliRunner()


def write_events(path: Path, events: list[Any]) -> Path:
    lines = [event if isinstance(event, str) else json.dumps(event) for event in events]
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "periscope.yaml"
    path.write_text("""
collector:
  capacity: 5
""")
    return path


class TestCLIBasics:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "periscope version" in result.stdout

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "validate" in result.stdout
        assert "replay" in result.stdout


class TestValidateCommand:
    def test_valid_settings(self, settings_file: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "validate", "--settings", str(settings_file)])

        assert result.exit_code == 0
        assert "Configuration valid" in result.stdout
        assert "Capacity per category: 5" in result.stdout

    def test_missing_settings_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "validate", "--settings", str(tmp_path / "nope.yaml")])

        assert result.exit_code == 1

    def test_invalid_settings(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("collector:\n  capacity: 0\n")

        result = runner.invoke(app, ["--no-dotenv", "validate", "--settings", str(path)])

        assert result.exit_code == 1


class TestReplayCommand:
    def test_replay_json_report(self, tmp_path: Path, settings_file: Path) -> None:
        events = write_events(
            tmp_path / "events.jsonl",
            [
                {"kind": "unhandled", "message": str(i), "recipient": "a3", "at": float(i)}
                for i in range(1, 8)
            ]
            + [{"kind": "dead_letter", "message": "dead", "recipient": "a1", "at": 7.5}],
        )

        result = runner.invoke(
            app,
            [
                "--no-dotenv",
                "replay",
                "--events",
                str(events),
                "--settings",
                str(settings_file),
                "--window-ms",
                "2000",
                "--format",
                "json",
            ],
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["replayed"] == 8
        assert report["skipped"] == 0
        assert report["capacity"] == 5
        assert report["at"] == 7.5
        assert [e["value"]["message"] for e in report["snapshot"]["unhandled"]] == ["7", "6", "5", "4", "3"]
        # window [5.5, 7.5]: unhandled 6 and 7, oldest retained (3.0) predates it
        assert report["window"]["unhandled"] == {"count": 2, "is_minimum_estimate": False}
        assert report["window"]["dead_letter"] == {"count": 1, "is_minimum_estimate": True}
        assert report["window"]["dropped"] == {"count": 0, "is_minimum_estimate": True}

    def test_replay_skips_malformed_lines(self, tmp_path: Path) -> None:
        events = write_events(
            tmp_path / "events.jsonl",
            [
                {"kind": "dropped", "message": "work", "reason": "mailbox full", "at": 1.0},
                "not json",
                {"kind": "teleported", "message": "x"},
                "",
                {"kind": "dropped", "message": "more work", "at": 1.2},
            ],
        )

        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(events), "--format", "json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["replayed"] == 2
        assert report["skipped"] == 2
        assert report["snapshot"]["dropped"][1]["value"]["reason"] == "mailbox full"

    def test_capacity_override(self, tmp_path: Path) -> None:
        events = write_events(
            tmp_path / "events.jsonl",
            [{"kind": "unhandled", "message": m, "at": t} for t, m in enumerate(["a", "b", "c"])],
        )

        result = runner.invoke(
            app, ["--no-dotenv", "replay", "--events", str(events), "--capacity", "1", "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert [e["value"]["message"] for e in report["snapshot"]["unhandled"]] == ["c"]

    def test_invalid_capacity_override(self, tmp_path: Path) -> None:
        events = write_events(tmp_path / "events.jsonl", [{"kind": "unhandled", "message": "a"}])

        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(events), "--capacity", "0"])

        assert result.exit_code == 1

    def test_out_of_order_events_rejected(self, tmp_path: Path) -> None:
        events = write_events(
            tmp_path / "events.jsonl",
            [
                {"kind": "unhandled", "message": "a", "at": 5.0},
                {"kind": "unhandled", "message": "b", "at": 4.0},
            ],
        )

        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(events)])

        assert result.exit_code == 1

    def test_missing_events_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(tmp_path / "none.jsonl")])

        assert result.exit_code == 1

    def test_console_report(self, tmp_path: Path) -> None:
        events = write_events(
            tmp_path / "events.jsonl",
            [{"kind": "dead_letter", "message": "dead", "at": 1.0}],
        )

        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(events), "--window-ms", "500"])

        assert result.exit_code == 0, result.output
        assert "dead_letter" in result.stdout
        assert "minimum estimate" in result.stdout
        assert "Replayed 1 events" in result.stdout

    def test_non_finite_times_skipped(self, tmp_path: Path) -> None:
        events = write_events(
            tmp_path / "events.jsonl",
            [
                {"kind": "unhandled", "message": "a", "at": 1.0},
                '{"kind": "unhandled", "message": "b", "at": NaN}',
                '{"kind": "unhandled", "message": "c", "at": Infinity}',
            ],
        )

        result = runner.invoke(
            app, ["--no-dotenv", "replay", "--events", str(events), "--window-ms", "60000", "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["replayed"] == 1
        assert report["skipped"] == 2
        assert report["at"] == 1.0
        assert [e["value"]["message"] for e in report["snapshot"]["unhandled"]] == ["a"]
        assert report["window"]["unhandled"] == {"count": 1, "is_minimum_estimate": True}

    def test_undecodable_line_skipped(self, tmp_path: Path) -> None:
        events = tmp_path / "events.jsonl"
        events.write_bytes(
            b'{"kind": "unhandled", "message": "a", "at": 1.0}\n'
            b"\xff\xfe\n"
            b'{"kind": "unhandled", "message": "b", "at": 2.0}\n'
        )

        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(events), "--format", "json"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["replayed"] == 2
        assert report["skipped"] == 1


class TestReplayLogging:
    def test_logs_go_to_stderr(self, tmp_path: Path) -> None:
        events = write_events(tmp_path / "events.jsonl", [{"kind": "dropped", "message": "m", "at": 1.0}, "not json"])

        result = runner.invoke(app, ["--no-dotenv", "replay", "--events", str(events), "--format", "json"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["skipped"] == 1
        assert "Dead letters monitoring started" in result.stderr
        assert "Skipping malformed replay event" in result.stderr

    def test_settings_level_and_format_applied(self, tmp_path: Path) -> None:
        settings = tmp_path / "periscope.yaml"
        settings.write_text("""
logging:
  level: WARNING
  json_output: true
""")
        events = write_events(tmp_path / "events.jsonl", [{"kind": "dropped", "message": "m", "at": 1.0}, "not json"])

        result = runner.invoke(
            app, ["--no-dotenv", "replay", "--events", str(events), "--settings", str(settings)]
        )

        assert result.exit_code == 0, result.output
        log_events = [json.loads(line)["event"] for line in result.stderr.splitlines() if line.strip()]
        assert log_events == ["Skipping malformed replay event"]

    def test_error_level_suppresses_info(self, tmp_path: Path) -> None:
        settings = tmp_path / "periscope.yaml"
        settings.write_text("""
logging:
  level: ERROR
""")
        events = write_events(tmp_path / "events.jsonl", [{"kind": "dropped", "message": "m", "at": 1.0}])

        result = runner.invoke(
            app, ["--no-dotenv", "replay", "--events", str(events), "--settings", str(settings)]
        )

        assert result.exit_code == 0, result.output
        assert "Dead letters monitoring started" not in result.stderr
        assert "Dead letters collector closed" not in result.stderr
        assert "Replayed 1 events" in result.stdout

    def test_verbose_flag_overrides_settings_level(self, tmp_path: Path) -> None:
        settings = tmp_path / "periscope.yaml"
        settings.write_text("""
logging:
  level: ERROR
""")
        events = write_events(tmp_path / "events.jsonl", [{"kind": "dropped", "message": "m", "at": 1.0}])

        result = runner.invoke(
            app, ["--no-dotenv", "-v", "replay", "--events", str(events), "--settings", str(settings)]
        )

        assert result.exit_code == 0, result.output
        assert "Dead letters collector started" in result.stderr
