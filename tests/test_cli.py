import pytest
from typer.testing import CliRunner

import main
from portal import config as config_module
from portal.services.directory_service import DirectoryService

runner = CliRunner()


@pytest.fixture(autouse=True)
def offline_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SQLITE_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("SUPABASE_URL", "")
    monkeypatch.setenv("MAIL_USERNAME", "")
    monkeypatch.setattr(config_module, "_config_instance", None)


def test_approvals_on_empty_store():
    result = runner.invoke(main.app, ["approvals", "--status", "pending"])
    assert result.exit_code == 0
    assert '"total": 0' in result.output


def test_delete_unknown_customer_is_complete():
    result = runner.invoke(main.app, ["delete-customer", "nobody"])
    assert result.exit_code == 0
    assert '"parent_deleted": true' in result.output


@pytest.mark.parametrize("payload", ["not json", '{"projectId": "p1"}'])
def test_notify_upload_rejects_bad_payload(payload):
    result = runner.invoke(main.app, ["notify-upload", payload])
    assert result.exit_code == 2


def test_notify_upload_for_unknown_project_is_skipped():
    result = runner.invoke(
        main.app,
        [
            "notify-upload",
            '{"projectId": "p1", "filePath": "a.pdf", "folderPath": "02_Plans", "fileName": "a.pdf"}',
        ],
    )
    assert result.exit_code == 0
    assert "project_not_found" in result.output


def test_sync_while_offline():
    result = runner.invoke(main.app, ["sync"])
    assert result.exit_code == 0
    assert "Synced 0 queued change(s)." in result.output


def test_notify_upload_survives_directory_outage(monkeypatch):
    def unavailable(self, project_id):
        raise ConnectionError("directory unavailable")

    monkeypatch.setattr(DirectoryService, "resolve_project", unavailable)
    result = runner.invoke(
        main.app,
        [
            "notify-upload",
            '{"projectId": "p1", "filePath": "a.pdf", "folderPath": "02_Plans", "fileName": "a.pdf"}',
        ],
    )
    assert result.exit_code == 0
    assert "internal_error" in result.output


def test_status_reports_offline_store():
    result = runner.invoke(main.app, ["status"])
    assert result.exit_code == 0
    assert '"online": false' in result.output
    assert '"customers": 0' in result.output
    assert '"sync_queue": {}' in result.output
