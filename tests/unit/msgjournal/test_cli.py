"""
Tests for msgjournal CLI functionality.

These tests drive the commands end to end against a temporary database
and check both what is printed and what the exit code is.
"""
import json

import pytest

from msgjournal.cli import msgjournal

WORKER_MESSAGES = [
    {
        "message_id": "a",
        "sent": "2000-01-01T00:00:00Z",
        "worker_name": "w1",
        "response_to": "",
        "worker_event": {"event_name": 1, "event_message": "hello world"},
    },
    {
        "message_id": "b",
        "sent": "2000-01-01T00:05:00Z",
        "worker_name": "w2",
        "response_to": "a",
        "worker_event": {"event_name": 3, "event_data": {"message": "still busy", "step": 2}},
    },
]


@pytest.fixture(autouse=True)
def no_database_env(monkeypatch):
    monkeypatch.delenv("MSGJOURNAL_DATABASE", raising=False)


@pytest.fixture
def messages_file(temp_dir):
    path = temp_dir / "messages.jsonl"
    path.write_text("\n".join(json.dumps(m) for m in WORKER_MESSAGES) + "\n")
    return path


@pytest.fixture
def recorded_db(cli_runner, db_path, messages_file):
    """A journal database holding WORKER_MESSAGES."""
    result = cli_runner.invoke(
        msgjournal, ["record", "-d", str(db_path), "-i", str(messages_file)]
    )
    assert result.exit_code == 0, result.output
    return db_path


class TestRecord:
    """Test msgjournal record command."""

    def test_record_from_file(self, cli_runner, db_path, messages_file):
        result = cli_runner.invoke(
            msgjournal, ["record", "-d", str(db_path), "-i", str(messages_file)]
        )

        assert result.exit_code == 0
        assert "Recorded 2 journal entries" in result.output
        assert db_path.exists()

    def test_record_from_stdin(self, cli_runner, db_path):
        result = cli_runner.invoke(
            msgjournal,
            ["record", "-d", str(db_path)],
            input=json.dumps(WORKER_MESSAGES[0]) + "\n\n",
        )

        assert result.exit_code == 0
        assert "Recorded 1 journal entries" in result.output

    def test_invalid_line_rejected(self, cli_runner, db_path):
        lines = json.dumps(WORKER_MESSAGES[0]) + "\n{not json\n"

        result = cli_runner.invoke(msgjournal, ["record", "-d", str(db_path)], input=lines)

        assert result.exit_code == 1
        assert "invalid worker message on line 2" in result.output

    def test_invalid_message_rejected(self, cli_runner, db_path):
        result = cli_runner.invoke(
            msgjournal,
            ["record", "-d", str(db_path)],
            input=json.dumps({"message_id": "a"}) + "\n",
        )

        assert result.exit_code == 1
        assert "line 1" in result.output


class TestShow:
    """Test msgjournal show command."""

    def test_show_json(self, cli_runner, recorded_db):
        result = cli_runner.invoke(
            msgjournal, ["show", "-d", str(recorded_db), "--format", "json"]
        )

        assert result.exit_code == 0
        entries = json.loads(result.output)
        assert [e["message_id"] for e in entries] == ["a", "b"]
        assert entries[0] == {
            "message_id": "a",
            "response_to": "",
            "sent": "2000-01-01 00:00:00 +0000 UTC",
            "worker_event": "BEGIN",
            "worker_message": "hello world",
            "worker_name": "w1",
        }
        assert entries[1]["worker_event"] == "WORKING"
        assert json.loads(entries[1]["worker_data"]) == {"message": "still busy", "step": 2}

    def test_show_filters(self, cli_runner, recorded_db):
        by_worker = cli_runner.invoke(
            msgjournal, ["show", "-d", str(recorded_db), "-w", "w1", "--format", "json"]
        )
        since = cli_runner.invoke(
            msgjournal,
            [
                "show",
                "-d",
                str(recorded_db),
                "--from-time",
                "2000-01-01 00:05:00 +0000 UTC",
                "--format",
                "json",
            ],
        )

        assert [e["message_id"] for e in json.loads(by_worker.output)] == ["a"]
        assert [e["message_id"] for e in json.loads(since.output)] == ["b"]

    def test_show_truncates(self, cli_runner, recorded_db):
        result = cli_runner.invoke(
            msgjournal,
            ["show", "-d", str(recorded_db), "-m", "a", "-t", "5", "--format", "json"],
        )

        assert json.loads(result.output)[0]["worker_message"] == "hello..."

    def test_show_text(self, cli_runner, recorded_db):
        result = cli_runner.invoke(msgjournal, ["show", "-d", str(recorded_db), "-m", "a"])

        assert result.exit_code == 0
        assert result.output.strip() == (
            "a : 2000-01-01 00:00:00 +0000 UTC : w1 : ... : BEGIN : hello world"
        )

    def test_show_table(self, cli_runner, recorded_db):
        result = cli_runner.invoke(
            msgjournal, ["show", "-d", str(recorded_db), "--format", "table"]
        )

        lines = result.output.strip().splitlines()
        assert result.exit_code == 0
        assert lines[0].startswith("MESSAGE #")
        assert "WORKER MESSAGE" in lines[0]
        assert len(lines) == 3
        assert lines[1].startswith("0 ")
        assert "hello world" in lines[1]

    def test_show_empty(self, cli_runner, db_path):
        result = cli_runner.invoke(msgjournal, ["show", "-d", str(db_path)])

        assert result.exit_code == 0
        assert result.output == ""

    def test_session_start_scopes_entries(self, cli_runner, recorded_db):
        result = cli_runner.invoke(
            msgjournal,
            [
                "show",
                "-d",
                str(recorded_db),
                "--session-start",
                "2000-01-01T00:01:00Z",
                "--format",
                "json",
            ],
        )

        assert [e["message_id"] for e in json.loads(result.output)] == ["b"]

    def test_database_from_environment(self, cli_runner, recorded_db):
        result = cli_runner.invoke(
            msgjournal,
            ["show", "--format", "json"],
            env={"MSGJOURNAL_DATABASE": str(recorded_db)},
        )

        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 2

    def test_database_from_config(self, cli_runner, recorded_db, temp_dir):
        config_file = temp_dir / "msgjournal.yml"
        config_file.write_text(f"journal:\n  path: {recorded_db}\n")

        result = cli_runner.invoke(
            msgjournal, ["show", "-c", str(config_file), "--format", "json"]
        )

        assert result.exit_code == 0
        assert len(json.loads(result.output)) == 2

    def test_missing_database(self, cli_runner):
        result = cli_runner.invoke(msgjournal, ["show"])

        assert result.exit_code == 1
        assert "Error: cannot list message journal entries" in result.output

    def test_invalid_timestamp(self, cli_runner, recorded_db):
        result = cli_runner.invoke(
            msgjournal, ["show", "-d", str(recorded_db), "--until", "whenever"]
        )

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_negative_truncate_rejected(self, cli_runner, recorded_db):
        result = cli_runner.invoke(msgjournal, ["show", "-d", str(recorded_db), "-t", "-1"])

        assert result.exit_code == 2


class TestMigrate:
    """Test msgjournal migrate command."""

    def test_migrate_fresh_then_up_to_date(self, cli_runner, db_path):
        first = cli_runner.invoke(msgjournal, ["migrate", "-d", str(db_path)])
        second = cli_runner.invoke(msgjournal, ["migrate", "-d", str(db_path)])

        assert first.exit_code == 0
        assert "Applied migration 0001_create_journal" in first.output
        assert "Applied migration 0003_index_journal_sent" in first.output
        assert "Schema version: 3" in first.output

        assert second.exit_code == 0
        assert "Journal schema is up to date" in second.output
        assert "Entries: 0" in second.output

    def test_migrate_reports_entries(self, cli_runner, recorded_db):
        result = cli_runner.invoke(msgjournal, ["migrate", "-d", str(recorded_db)])

        assert "Entries: 2" in result.output

    def test_migrate_without_database(self, cli_runner):
        result = cli_runner.invoke(msgjournal, ["migrate"])

        assert result.exit_code == 1
        assert "No journal database given" in result.output
