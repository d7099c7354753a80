"""Keeper daemon - wires all components together and owns the tick."""

from __future__ import annotations

import asyncio
import logging
import signal
import time

from stellar_sdk import Keypair

from restake_keeper.api.health import HealthServer
from restake_keeper.interfaces import ChainClient, Notifier
from restake_keeper.keeper.executor import RestakeExecutor, format_amount
from restake_keeper.keeper.scheduler import CronScheduler, ScheduledJob
from restake_keeper.models.config import RunConfig
from restake_keeper.models.records import RestakeResult
from restake_keeper.notify.webhook import WebhookNotifier
from restake_keeper.policy.gate import RewardGate
from restake_keeper.stellar.client import SorobanChainClient

log = logging.getLogger(__name__)


class KeeperDaemon:
    """Scheduled claim-and-restake keeper.

    Each tick runs gate -> executor -> notifier. Ticks never overlap:
    a tick fired while another is in flight is skipped, so the restake
    call is never submitted twice concurrently.
    """

    def __init__(self, cfg: RunConfig) -> None:
        self._cfg = cfg
        self._start_time = time.monotonic()
        self._stop_event = asyncio.Event()
        self._tick_lock = asyncio.Lock()

        keypair = Keypair.from_secret(cfg.secret_key)

        # Core components
        self.chain: ChainClient = SorobanChainClient(
            contract_id=cfg.contract_id,
            rpc_url=cfg.rpc_url,
            network_passphrase=cfg.network_passphrase,
            keypair=keypair,
            base_fee=cfg.base_fee,
            finality_timeout=cfg.finality_timeout,
            poll_interval=cfg.finality_poll_interval,
        )
        self.gate = RewardGate()
        self.executor = RestakeExecutor(
            max_retries=cfg.max_retries,
            retry_delay=cfg.retry_delay,
        )
        self.notifier: Notifier = WebhookNotifier(cfg.webhook_url)
        self.scheduler = CronScheduler(
            cfg.cron_schedule,
            self.run_keeper,
            run_on_startup=cfg.run_on_startup,
        )
        self.health: HealthServer | None = None
        if cfg.health_check_enabled:
            self.health = HealthServer(cfg.health_check_port, start_time=self._start_time)

        self.job: ScheduledJob | None = None
        self.last_result: RestakeResult | None = None
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self._tick_lock.locked()

    async def start(self) -> None:
        """Start the schedule and block until stop() is requested."""
        log.info("Restake Keeper starting...")
        log.info("  Account: %s", self._cfg.account_address)
        log.info("  Contract: %s", self._cfg.contract_id)
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  Schedule: %s", self._cfg.cron_schedule)
        log.info("  Retries: %d (delay %gs)", self._cfg.max_retries, self._cfg.retry_delay)

        try:
            if self.health:
                await self.health.start()

            self.job = await self.scheduler.start()
            if not self._stop_event.is_set():
                await self._notify("Restake Keeper started successfully")

            await self._stop_event.wait()
        finally:
            self.scheduler.cancel()
            if self.health:
                await self.health.stop()
            await self.chain.close()
            log.info("Keeper shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._stop_event.set()

    async def run_keeper(self) -> RestakeResult | None:
        """Run one tick. Returns None when the tick was skipped or aborted."""
        if self._tick_lock.locked():
            self.skipped_ticks += 1
            log.warning("Keeper run already in progress, skipping this tick")
            return None

        async with self._tick_lock:
            log.info("Starting keeper run...")
            try:
                proceed = await self.gate.should_run(
                    self.chain, self._cfg.min_reward_threshold,
                )
                if not proceed:
                    log.info("Pending rewards below threshold. Skipping this run.")
                    return None
                result = await self.executor.execute(self.chain)
            except Exception as exc:
                log.error("Keeper run failed: %s", exc, exc_info=True)
                await self._notify(f"Keeper run failed: {exc}", is_error=True)
                return None

            self.last_result = result
            if result.success:
                amount = result.amount or 0
                message = (
                    "Auto-restake successful! Amount restaked: "
                    f"{format_amount(amount, self._cfg.token_decimals)} "
                    f"({amount} base units, tx {result.tx_id})"
                )
                log.info(
                    "Keeper run completed successfully: amount=%d tx=%s attempts=%d",
                    amount, result.tx_id, result.attempts_made,
                )
                await self._notify(message)
            else:
                message = (
                    f"Auto-restake failed after {result.attempts_made} attempts: "
                    f"{result.last_error}"
                )
                log.error("Keeper run failed: %s", message)
                await self._notify(message, is_error=True)
            return result

    async def _notify(self, message: str, is_error: bool = False) -> None:
        try:
            await self.notifier.notify(message, is_error)
        except Exception as exc:
            log.error("Notifier raised: %s", exc)


async def run_daemon(cfg: RunConfig) -> None:
    """Entry point for running the daemon."""
    daemon = KeeperDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler(sig: signal.Signals) -> None:
        log.info("%s received, shutting down gracefully...", sig.name)
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler, sig)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await daemon.start()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass
