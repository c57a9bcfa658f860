#!/usr/bin/env python3
"""
Tests for the command line interface.
"""

import json

import pytest

from Tracker.cli import build_parser, main
from Tracker.state_store.store import EventStore
from tests.fixtures.event_fixtures import SCENARIO_EXERCISE, SCENARIO_SLEEP, day


@pytest.fixture
def backup_file(tmp_path):
    """Backup holding the sleep/exercise scenario."""
    values = [
        {"eventId": 1, "date": day(i), "value": str(v)} for i, v in enumerate(SCENARIO_SLEEP)
    ] + [
        {"eventId": 2, "date": day(i), "value": "true" if v else "false"}
        for i, v in enumerate(SCENARIO_EXERCISE)
    ]
    data = {
        "version": "1.0.0",
        "exportDate": "2024-01-15T20:00:00",
        "events": [
            {"id": 1, "name": "Sleep", "type": "number", "unit": "hours", "order": 0},
            {"id": 2, "name": "Exercise", "type": "boolean", "order": 1},
        ],
        "eventValues": values,
    }
    path = tmp_path / "backup.json"
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def db_path(tmp_path, clean_env):
    clean_env.setenv("TRACKER_ERROR_LOG", str(tmp_path / "errors.log"))
    return tmp_path / "cli.db"


class TestParser:
    """Test argument parsing"""

    def test_report_arguments(self):
        args = build_parser().parse_args(["report", "--today", "2024-01-15", "--range", "7d"])

        assert args.command == "report"
        assert args.today.isoformat() == "2024-01-15"
        assert args.time_range == "7d"

    def test_invalid_date(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["report", "--today", "15/01/2024"])

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1


class TestCommands:
    """Test end-to-end command runs"""

    def test_import(self, db_path, backup_file, capsys):
        assert main(["--db", str(db_path), "import", str(backup_file)]) == 0

        store = EventStore(db_path)
        assert [e.name for e in store.get_events()] == ["Sleep", "Exercise"]
        assert "Imported 2 events and 30 values" in capsys.readouterr().out

    def test_import_invalid_file(self, db_path, tmp_path, capsys):
        broken = tmp_path / "broken.json"
        broken.write_text("{")

        assert main(["--db", str(db_path), "import", str(broken)]) == 1

    def test_import_missing_file(self, db_path, tmp_path):
        assert main(["--db", str(db_path), "import", str(tmp_path / "absent.json")]) == 1

    def test_import_malformed_value(self, db_path, tmp_path):
        backup = tmp_path / "partial.json"
        backup.write_text(json.dumps({
            "version": "1.0.0",
            "events": [{"id": 1, "name": "Sleep", "type": "number"}],
            "eventValues": [{"eventId": 1, "value": "7"}],
        }))

        assert main(["--db", str(db_path), "import", str(backup)]) == 1
        assert EventStore(db_path).get_events() == []

    def test_export(self, db_path, backup_file, tmp_path):
        main(["--db", str(db_path), "import", str(backup_file)])
        target = tmp_path / "out.json"

        assert main(["--db", str(db_path), "export", str(target)]) == 0
        assert len(json.loads(target.read_text())["eventValues"]) == 30

    def test_report(self, db_path, backup_file, capsys):
        main(["--db", str(db_path), "import", str(backup_file)])
        capsys.readouterr()

        assert main(["--db", str(db_path), "report", "--today", "2024-01-15"]) == 0

        out = capsys.readouterr().out
        assert "state_store: 30 values over 15 days" in out
        assert "Tracking streak:" in out
        assert "Event Summary" in out

    def test_report_empty_store(self, db_path, capsys):
        assert main(["--db", str(db_path), "report"]) == 0
        assert "No events tracked yet" in capsys.readouterr().out

    def test_patterns(self, db_path, backup_file, capsys):
        main(["--db", str(db_path), "import", str(backup_file)])
        capsys.readouterr()

        assert main(["--db", str(db_path), "patterns", "--today", "2024-01-15", "--range", "auto"]) == 0

        out = capsys.readouterr().out
        assert "History window: 30d" in out
        assert "Exercise 80%" in out

    def test_configuration_error(self, db_path, clean_env):
        clean_env.setenv("TRACKER_LOOKBACK_DAYS", "zero")
        assert main(["--db", str(db_path), "report"]) == 2
