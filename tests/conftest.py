"""Shared fixtures for restake_keeper tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key
from stellar_sdk import Keypair

from restake_keeper.daemon import KeeperDaemon
from restake_keeper.keeper.executor import RestakeExecutor
from restake_keeper.models.config import RunConfig

from tests.mocks import MockChainClient, MockNotifier, RecordingSleep

TEST_SECRET = "SBWVJTD3F5ETMVWCNI7MM4HUAPUSCUXXMUEJZJTPRWRJGXW2BF4SVQTK"
TEST_PUBLIC = Keypair.from_secret(TEST_SECRET).public_key

CONTRACT_ID = "CCEDYFIHUCJFITWEOT7BWUO2HBQQ72L244ZXQ4YNOC6FYRDN3MKDQFK7"

EXPLORER_BASE = "https://stellar.expert/explorer/testnet"


def stellar_expert_link(kind: str, id: str, label: str | None = None) -> str:
    """Build an HTML anchor to stellar.expert for the report."""
    url = f"{EXPLORER_BASE}/{kind}/{id}"
    text = label or f"{id[:8]}...{id[-4:]}"
    return f'<a href="{url}" target="_blank">{text}</a>'


# ── Report metadata & explorer links ─────────────────────────────


def pytest_configure(config):
    """Add network info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Stellar Testnet"
    meta["Restake Contract"] = CONTRACT_ID
    meta["Keeper Account"] = TEST_PUBLIC


def pytest_html_results_summary(prefix, summary, postfix):
    """Inject clickable Stellar explorer links into the report summary."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>Stellar Testnet Explorer Links</strong><br/>"
        f'Restake Contract: {stellar_expert_link("contract", CONTRACT_ID, CONTRACT_ID)}<br/>'
        f'Keeper Account: {stellar_expert_link("account", TEST_PUBLIC, TEST_PUBLIC)}'
        "</div>"
    )


def make_test_config(**overrides) -> RunConfig:
    """Build a RunConfig suitable for testing."""
    defaults = dict(
        rpc_url="https://soroban-testnet.stellar.org",
        network_passphrase="Test SDF Network ; September 2015",
        contract_id=CONTRACT_ID,
        account_address=TEST_PUBLIC,
        secret_key=TEST_SECRET,
        cron_schedule="0 */12 * * *",
        min_reward_threshold=10**18,
        max_retries=3,
        retry_delay=60.0,
        run_on_startup=False,
        webhook_url=None,
    )
    defaults.update(overrides)
    return RunConfig(**defaults)


@pytest.fixture
def test_config():
    """Default RunConfig for tests."""
    return make_test_config()


@pytest.fixture
def mock_chain():
    return MockChainClient()


@pytest.fixture
def mock_notifier():
    return MockNotifier()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
async def daemon(test_config, mock_chain, mock_notifier, recording_sleep):
    """Fully wired KeeperDaemon with mocked chain and notifier."""
    d = KeeperDaemon(test_config)
    await d.chain.close()
    d.chain = mock_chain
    d.notifier = mock_notifier
    d.executor = RestakeExecutor(
        max_retries=test_config.max_retries,
        retry_delay=test_config.retry_delay,
        sleep=recording_sleep,
    )
    return d
