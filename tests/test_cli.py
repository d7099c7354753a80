"""CLI commands: config checks, status, fatal startup errors."""

from __future__ import annotations

from click.testing import CliRunner

from restake_keeper import cli as cli_module
from restake_keeper.models.records import RestakeResult

from tests.conftest import CONTRACT_ID, TEST_PUBLIC, TEST_SECRET

P = "RESTAKE_KEEPER_"

GOOD_ENV = {
    f"{P}CONTRACT_ID": CONTRACT_ID,
    f"{P}ACCOUNT_ADDRESS": TEST_PUBLIC,
    f"{P}SECRET": TEST_SECRET,
}


def test_check_config_ok(monkeypatch):
    for k, v in GOOD_ENV.items():
        monkeypatch.setenv(k, v)

    result = CliRunner().invoke(cli_module.cli, ["check-config"])

    assert result.exit_code == 0
    assert "Configuration OK" in result.output


def test_missing_config_exits_1_before_any_chain_call(monkeypatch):
    for k in GOOD_ENV:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.delenv(f"{P}WEBHOOK_URL", raising=False)

    started = []

    async def fake_run_daemon(cfg):
        started.append(cfg)

    monkeypatch.setattr(cli_module, "run_daemon", fake_run_daemon)

    result = CliRunner().invoke(cli_module.cli, ["run"])

    assert result.exit_code == 1
    assert "Missing required configuration" in result.output
    assert started == []


def test_startup_failure_is_notified(monkeypatch):
    monkeypatch.delenv(f"{P}SECRET", raising=False)
    monkeypatch.setenv(f"{P}WEBHOOK_URL", "https://hooks.example.com/x")
    sent = []

    class FakeNotifier:
        def __init__(self, url):
            self.url = url

        async def notify(self, message, is_error=False):
            sent.append((message, is_error))

    monkeypatch.setattr(cli_module, "WebhookNotifier", FakeNotifier)

    result = CliRunner().invoke(cli_module.cli, ["check-config"])

    assert result.exit_code == 1
    assert sent and sent[0][1] is True
    assert sent[0][0].startswith("Keeper failed to start")


def test_status_masks_secret(monkeypatch):
    for k, v in GOOD_ENV.items():
        monkeypatch.setenv(k, v)

    result = CliRunner().invoke(cli_module.cli, ["status"])

    assert result.exit_code == 0
    assert TEST_SECRET not in result.output
    assert "***configured***" in result.output
    assert CONTRACT_ID in result.output


def test_run_once_reports_failure(monkeypatch):
    for k, v in GOOD_ENV.items():
        monkeypatch.setenv(k, v)

    async def fake_run_keeper(self):
        return RestakeResult.failed(RuntimeError("nope"), attempts=[])

    monkeypatch.setattr(cli_module.KeeperDaemon, "run_keeper", fake_run_keeper)

    result = CliRunner().invoke(cli_module.cli, ["run-once"])

    assert result.exit_code == 1
    assert "nope" in result.output


def test_startup_failure_uses_toml_webhook(monkeypatch, tmp_path):
    for k in GOOD_ENV:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.delenv(f"{P}WEBHOOK_URL", raising=False)
    path = tmp_path / "keeper.toml"
    path.write_text('[notify]\nwebhook_url = "https://hooks.example.com/toml"\n')
    sent = []

    class FakeNotifier:
        def __init__(self, url):
            self.url = url

        async def notify(self, message, is_error=False):
            sent.append((self.url, message))

    monkeypatch.setattr(cli_module, "WebhookNotifier", FakeNotifier)

    result = CliRunner().invoke(cli_module.cli, ["-c", str(path), "check-config"])

    assert result.exit_code == 1
    assert len(sent) == 1
    assert sent[0][0] == "https://hooks.example.com/toml"
    assert sent[0][1].startswith("Keeper failed to start")
