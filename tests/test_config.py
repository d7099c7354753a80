"""Configuration loading and startup validation."""

from __future__ import annotations

import pytest
from stellar_sdk import Keypair

from restake_keeper.config import find_webhook_url, load_config, validate_config
from restake_keeper.errors import ConfigurationError

from tests.conftest import CONTRACT_ID, TEST_PUBLIC, TEST_SECRET, make_test_config

P = "RESTAKE_KEEPER_"


def _env(**overrides) -> dict[str, str]:
    env = {
        f"{P}CONTRACT_ID": CONTRACT_ID,
        f"{P}ACCOUNT_ADDRESS": TEST_PUBLIC,
        f"{P}SECRET": TEST_SECRET,
    }
    for key, value in overrides.items():
        if value is None:
            env.pop(f"{P}{key}", None)
        else:
            env[f"{P}{key}"] = value
    return env


def test_defaults_from_env_only():
    cfg = load_config(environ=_env())

    assert cfg.contract_id == CONTRACT_ID
    assert cfg.account_address == TEST_PUBLIC
    assert cfg.cron_schedule == "0 */12 * * *"
    assert cfg.min_reward_threshold == 10**18
    assert cfg.max_retries == 3
    assert cfg.retry_delay == 60.0
    assert cfg.run_on_startup is True
    assert cfg.webhook_url is None
    assert cfg.health_check_enabled is False


@pytest.mark.parametrize("missing", ["CONTRACT_ID", "ACCOUNT_ADDRESS", "SECRET"])
def test_each_required_field(missing):
    with pytest.raises(ConfigurationError, match="Missing required configuration"):
        load_config(environ=_env(**{missing: None}))


def test_all_missing_fields_listed():
    with pytest.raises(ConfigurationError) as info:
        load_config(environ={})

    msg = str(info.value)
    assert "contract_id" in msg
    assert "account_address" in msg
    assert "secret_key" in msg


def test_env_overrides_toml(tmp_path):
    path = tmp_path / "keeper.toml"
    path.write_text(
        "[chain]\n"
        f'contract_id = "{CONTRACT_ID}"\n'
        f'account_address = "{TEST_PUBLIC}"\n'
        "[keeper]\n"
        'cron_schedule = "*/5 * * * *"\n'
        "max_retries = 5\n"
        "retry_delay_ms = 1500\n"
        "run_on_startup = false\n"
        "[notify]\n"
        'webhook_url = "https://hooks.example.com/toml"\n'
        "[health]\n"
        "enabled = true\n"
        "port = 8080\n"
    )
    env = {
        f"{P}SECRET": TEST_SECRET,
        f"{P}MAX_RETRIES": "2",
        f"{P}WEBHOOK_URL": "https://hooks.example.com/env",
    }

    cfg = load_config(path, environ=env)

    assert cfg.cron_schedule == "*/5 * * * *"
    assert cfg.max_retries == 2
    assert cfg.retry_delay == 1.5
    assert cfg.run_on_startup is False
    assert cfg.webhook_url == "https://hooks.example.com/env"
    assert cfg.health_check_enabled is True
    assert cfg.health_check_port == 8080


def test_env_values_are_parsed():
    cfg = load_config(environ=_env(
        RETRY_DELAY="60000",
        MIN_REWARD_THRESHOLD="2000000000000000000",
        RUN_ON_STARTUP="false",
        ENABLE_HEALTH_CHECK="yes",
        HEALTH_CHECK_PORT="9000",
    ))

    assert cfg.retry_delay == 60.0
    assert cfg.min_reward_threshold == 2 * 10**18
    assert cfg.run_on_startup is False
    assert cfg.health_check_enabled is True
    assert cfg.health_check_port == 9000


def test_config_is_immutable():
    cfg = make_test_config()
    with pytest.raises(AttributeError):
        cfg.max_retries = 10  # type: ignore[misc]


@pytest.mark.parametrize(
    ("key", "value", "match"),
    [
        ("MAX_RETRIES", "lots", "expected an integer"),
        ("MAX_RETRIES", "-1", "max_retries"),
        ("RUN_ON_STARTUP", "maybe", "expected a boolean"),
        ("CRON_SCHEDULE", "every tuesday", "Invalid cron"),
        ("CRON_SCHEDULE", "0 0 30 2 *", "never matches"),
        ("HEALTH_CHECK_PORT", "70000", "health_check_port"),
    ],
)
def test_malformed_values_rejected(key, value, match):
    with pytest.raises(ConfigurationError, match=match):
        load_config(environ=_env(**{key: value}))


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("08", 8), (" 3 ", 3), ("0", 0), ("0x0A", 10)],
)
def test_integer_env_values(raw, expected):
    cfg = load_config(environ=_env(MAX_RETRIES=raw))
    assert cfg.max_retries == expected


def test_secret_must_match_account():
    other = Keypair.random().public_key
    with pytest.raises(ConfigurationError, match="does not match"):
        validate_config(make_test_config(account_address=other))


def test_invalid_secret_rejected():
    with pytest.raises(ConfigurationError, match="not a valid Stellar secret"):
        validate_config(make_test_config(secret_key="SNOTASECRET"))


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "nope.toml", environ=_env())


def test_redacted_masks_secrets():
    cfg = make_test_config(webhook_url="https://hooks.example.com/x")
    shown = cfg.redacted()

    assert TEST_SECRET not in str(shown)
    assert "hooks.example.com" not in str(shown)
    assert shown["secret_key"] == "***configured***"


def test_webhook_lookup_prefers_env(tmp_path):
    path = tmp_path / "keeper.toml"
    path.write_text('[notify]\nwebhook_url = "https://hooks.example.com/toml"\n')

    assert find_webhook_url(path, environ={}) == "https://hooks.example.com/toml"
    assert find_webhook_url(
        path, environ={f"{P}WEBHOOK_URL": "https://hooks.example.com/env"},
    ) == "https://hooks.example.com/env"


def test_webhook_lookup_tolerates_bad_files(tmp_path):
    broken = tmp_path / "broken.toml"
    broken.write_text("[notify\n")

    assert find_webhook_url(broken, environ={}) is None
    assert find_webhook_url(tmp_path / "missing.toml", environ={}) is None
    assert find_webhook_url(None, environ={}) is None
