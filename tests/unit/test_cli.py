"""Unit tests for the content-graph CLI."""

import json
from unittest.mock import MagicMock, patch

from content_graph.cli import main
from content_graph.lib.errors import ConfigurationError


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()


def test_stats_json_on_empty_memory_store(capsys):
    assert main(["--json", "--store", "memory", "stats"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["nodes"]["total"] == 0


def test_ingest_event_list(tmp_path, capsys, game_session_event, chat_event):
    events_file = tmp_path / "events.json"
    events_file.write_text(json.dumps([game_session_event, chat_event]))

    assert main(["--json", "--store", "memory", "ingest", str(events_file)]) == 0

    results = json.loads(capsys.readouterr().out)
    assert [r["nodes"] for r in results] == [3, 1]
    assert results[1]["concepts"] == 2
    assert all(r["steps_completed"] == r["steps_total"] for r in results)


def test_ingest_invalid_event_fails(tmp_path, capsys):
    events_file = tmp_path / "bad.json"
    events_file.write_text(json.dumps({"type": "game_session_completed", "data": {}}))

    assert main(["--store", "memory", "ingest", str(events_file)]) == 1
    assert "Error" in capsys.readouterr().err


def test_missing_file_fails(tmp_path, capsys):
    assert main(["--store", "memory", "ingest", str(tmp_path / "absent.json")]) == 1


def test_provider_failure_closes_store(capsys):
    store = MagicMock()
    with patch("content_graph.cli.create_graph_store", return_value=store), \
         patch("content_graph.cli.get_embedding_provider",
               side_effect=ConfigurationError("OPENAI_API_KEY is not set")):
        assert main(["stats"]) == 1

    store.close.assert_called_once()
    assert "OPENAI_API_KEY" in capsys.readouterr().err
