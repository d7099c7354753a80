"""Configuration model for the keeper."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_RPC_URL = "https://soroban-testnet.stellar.org"
DEFAULT_NETWORK_PASSPHRASE = "Test SDF Network ; September 2015"
DEFAULT_CRON_SCHEDULE = "0 */12 * * *"  # every 12 hours
DEFAULT_MIN_REWARD_THRESHOLD = 10**18  # 1 token at 18 decimals


@dataclass(frozen=True)
class RunConfig:
    """Complete keeper configuration. Built once at startup, never mutated."""

    # Chain
    rpc_url: str = DEFAULT_RPC_URL
    network_passphrase: str = DEFAULT_NETWORK_PASSPHRASE
    contract_id: str = ""  # restake contract ID
    account_address: str = ""  # G... address the keeper signs for
    secret_key: str = ""  # loaded from env var RESTAKE_KEEPER_SECRET
    base_fee: int = 100  # stroops
    finality_timeout: float = 120.0  # seconds
    finality_poll_interval: float = 2.0  # seconds

    # Automation
    cron_schedule: str = DEFAULT_CRON_SCHEDULE
    min_reward_threshold: int = DEFAULT_MIN_REWARD_THRESHOLD  # smallest unit
    max_retries: int = 3
    retry_delay: float = 60.0  # seconds
    run_on_startup: bool = True
    token_decimals: int = 18

    # Monitoring
    webhook_url: str | None = None
    health_check_enabled: bool = False
    health_check_port: int = 3000

    # Logging
    log_level: str = "info"
    log_file: str | None = None

    def redacted(self) -> dict[str, object]:
        """Key settings for display, with the signing secret masked."""
        return {
            "rpc_url": self.rpc_url,
            "contract_id": self.contract_id or "(not set)",
            "account_address": self.account_address or "(not set)",
            "secret_key": "***configured***" if self.secret_key else "(not set)",
            "cron_schedule": self.cron_schedule,
            "min_reward_threshold": self.min_reward_threshold,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "run_on_startup": self.run_on_startup,
            "webhook_url": "***configured***" if self.webhook_url else "(not set)",
            "health_check": (
                f"port {self.health_check_port}" if self.health_check_enabled else "disabled"
            ),
        }
