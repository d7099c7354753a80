"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from stellar_sdk import Keypair

from restake_keeper.errors import ConfigurationError
from restake_keeper.keeper.scheduler import next_fire_time
from restake_keeper.models.config import RunConfig

ENV_PREFIX = "RESTAKE_KEEPER_"

REQUIRED_FIELDS = ("contract_id", "account_address", "secret_key")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _as_bool(name: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigurationError(f"{name}: expected a boolean, got {value!r}")


def _as_int(name: str, value: object) -> int:
    try:
        if not isinstance(value, str):
            return int(value)
        text = value.strip()
        # Decimal, leading zeros allowed; hex only with an explicit 0x
        if text.lower().lstrip("+-").startswith("0x"):
            return int(text, 16)
        return int(text, 10)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name}: expected an integer, got {value!r}") from None


def _as_float(name: str, value: object) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name}: expected a number, got {value!r}") from None


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> RunConfig:
    """Load and validate keeper configuration.

    Priority (highest wins):
        1. Environment variables (RESTAKE_KEEPER_SECRET, etc.)
        2. TOML config file
        3. Defaults from RunConfig

    Raises ConfigurationError on any missing or malformed setting.
    """
    env = os.environ if environ is None else environ

    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if not p.exists():
            raise ConfigurationError(f"Config file not found: {p}")
        try:
            with open(p, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"Invalid TOML in {p}: {exc}") from exc

    values: dict[str, object] = {}

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    for key in ("rpc_url", "network_passphrase", "contract_id", "account_address", "secret_key"):
        if v := chain.get(key):
            values[key] = str(v)
    if (v := chain.get("base_fee")) is not None:
        values["base_fee"] = _as_int("chain.base_fee", v)
    if (v := chain.get("finality_timeout")) is not None:
        values["finality_timeout"] = _as_float("chain.finality_timeout", v)
    if (v := chain.get("finality_poll_interval")) is not None:
        values["finality_poll_interval"] = _as_float("chain.finality_poll_interval", v)

    # ── Keeper section ─────────────────────────────────────
    keeper = raw.get("keeper", {})
    if v := keeper.get("cron_schedule"):
        values["cron_schedule"] = str(v)
    if (v := keeper.get("min_reward_threshold")) is not None:
        values["min_reward_threshold"] = _as_int("keeper.min_reward_threshold", v)
    if (v := keeper.get("max_retries")) is not None:
        values["max_retries"] = _as_int("keeper.max_retries", v)
    if (v := keeper.get("retry_delay_ms")) is not None:
        values["retry_delay"] = _as_float("keeper.retry_delay_ms", v) / 1000
    if (v := keeper.get("run_on_startup")) is not None:
        values["run_on_startup"] = _as_bool("keeper.run_on_startup", v)
    if (v := keeper.get("token_decimals")) is not None:
        values["token_decimals"] = _as_int("keeper.token_decimals", v)

    # ── Notify / health / logging sections ─────────────────
    notify = raw.get("notify", {})
    if v := notify.get("webhook_url"):
        values["webhook_url"] = str(v)

    health = raw.get("health", {})
    if (v := health.get("enabled")) is not None:
        values["health_check_enabled"] = _as_bool("health.enabled", v)
    if (v := health.get("port")) is not None:
        values["health_check_port"] = _as_int("health.port", v)

    logging_cfg = raw.get("logging", {})
    if v := logging_cfg.get("level"):
        values["log_level"] = str(v)
    if v := logging_cfg.get("file"):
        values["log_file"] = str(Path(str(v)).expanduser())

    # ── Environment variable overrides (highest priority) ──
    def env_get(name: str) -> str | None:
        v = env.get(f"{env_prefix}{name}")
        return v if v not in (None, "") else None

    if v := env_get("RPC_URL"):
        values["rpc_url"] = v
    if v := env_get("NETWORK_PASSPHRASE"):
        values["network_passphrase"] = v
    if v := env_get("CONTRACT_ID"):
        values["contract_id"] = v
    if v := env_get("ACCOUNT_ADDRESS"):
        values["account_address"] = v
    if v := env_get("SECRET"):
        values["secret_key"] = v
    if v := env_get("CRON_SCHEDULE"):
        values["cron_schedule"] = v
    if v := env_get("MIN_REWARD_THRESHOLD"):
        values["min_reward_threshold"] = _as_int("MIN_REWARD_THRESHOLD", v)
    if v := env_get("MAX_RETRIES"):
        values["max_retries"] = _as_int("MAX_RETRIES", v)
    if v := env_get("RETRY_DELAY"):
        values["retry_delay"] = _as_float("RETRY_DELAY", v) / 1000  # milliseconds
    if v := env_get("WEBHOOK_URL"):
        values["webhook_url"] = v
    if v := env_get("RUN_ON_STARTUP"):
        values["run_on_startup"] = _as_bool("RUN_ON_STARTUP", v)
    if v := env_get("ENABLE_HEALTH_CHECK"):
        values["health_check_enabled"] = _as_bool("ENABLE_HEALTH_CHECK", v)
    if v := env_get("HEALTH_CHECK_PORT"):
        values["health_check_port"] = _as_int("HEALTH_CHECK_PORT", v)
    if v := env_get("LOG_LEVEL"):
        values["log_level"] = v
    if v := env_get("LOG_FILE"):
        values["log_file"] = str(Path(v).expanduser())

    cfg = RunConfig(**values)
    validate_config(cfg)
    return cfg


def validate_config(cfg: RunConfig) -> None:
    """Raise ConfigurationError if the configuration cannot run a keeper."""
    missing = [name for name in REQUIRED_FIELDS if not getattr(cfg, name)]
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    if cfg.max_retries < 0:
        raise ConfigurationError(f"max_retries must be >= 0, got {cfg.max_retries}")
    if cfg.retry_delay < 0:
        raise ConfigurationError(f"retry_delay must be >= 0, got {cfg.retry_delay}")
    if cfg.min_reward_threshold < 0:
        raise ConfigurationError("min_reward_threshold must be >= 0")
    if cfg.finality_timeout <= 0:
        raise ConfigurationError("finality_timeout must be > 0")
    if not 1 <= cfg.health_check_port <= 65535:
        raise ConfigurationError(f"health_check_port out of range: {cfg.health_check_port}")
    try:
        next_fire_time(cfg.cron_schedule)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid cron schedule: {exc}") from None

    try:
        keypair = Keypair.from_secret(cfg.secret_key)
    except Exception:
        raise ConfigurationError("secret_key is not a valid Stellar secret seed") from None
    if keypair.public_key != cfg.account_address:
        raise ConfigurationError(
            "secret_key does not match account_address "
            f"(derives {keypair.public_key[:8]}..., configured {cfg.account_address[:8]}...)"
        )


def find_webhook_url(
    config_path: str | Path | None = None,
    env_prefix: str = ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Best-effort webhook lookup for reporting a config that failed to load.

    Environment first, then ``[notify] webhook_url`` in the TOML file.
    Never raises: an unreadable file just means no webhook.
    """
    env = os.environ if environ is None else environ
    if url := env.get(f"{env_prefix}WEBHOOK_URL"):
        return url
    if config_path is None:
        return None
    try:
        with open(Path(config_path).expanduser(), "rb") as f:
            raw = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return None
    notify = raw.get("notify")
    url = notify.get("webhook_url") if isinstance(notify, dict) else None
    return str(url) if url else None
