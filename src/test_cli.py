"""Tests for the command line interface."""

import pytest

from cli import main
from config import SyncConfig


@pytest.fixture
def offline_config(tmp_path):
    return SyncConfig(database_url=f"sqlite:///{tmp_path / 'gymlog.db'}")


def test_log_set_then_status(offline_config, capsys):
    assert (
        main(["log-set", "Bench Press", "--reps", "8", "--weight", "80"], offline_config)
        == 0
    )
    client_id = capsys.readouterr().out.strip()
    assert len(client_id) == 36

    assert main(["status"], offline_config) == 0
    out = capsys.readouterr().out
    assert "Server: not configured" in out
    assert "Pending: 1" in out


def test_complete_and_delete(offline_config, capsys):
    main(["log-cardio", "Treadmill", "--duration", "1200"], offline_config)
    client_id = capsys.readouterr().out.strip()

    assert main(["complete", client_id], offline_config) == 0
    assert main(["delete", client_id], offline_config) == 0
    main(["status"], offline_config)

    assert "Pending: 1" in capsys.readouterr().out


def test_unknown_record(offline_config, capsys):
    assert main(["complete", "missing"], offline_config) == 1
    assert "Record missing not found" in capsys.readouterr().out


def test_sync_without_server_fails(offline_config, capsys):
    assert main(["sync"], offline_config) == 1
    assert "Sync failed: No server URL or API key configured" in capsys.readouterr().out


def test_log_set_requires_reps(offline_config):
    with pytest.raises(SystemExit):
        main(["log-set", "Bench Press", "--weight", "80"], offline_config)
