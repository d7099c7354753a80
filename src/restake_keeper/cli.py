"""CLI entry point for the restake keeper."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click

from restake_keeper.config import find_webhook_url, load_config
from restake_keeper.daemon import KeeperDaemon, run_daemon
from restake_keeper.errors import ConfigurationError
from restake_keeper.keeper.executor import format_amount
from restake_keeper.models.config import RunConfig
from restake_keeper.notify.webhook import WebhookNotifier

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _setup_logging(verbose: bool, cfg: RunConfig | None = None) -> None:
    """Console logging, plus combined/error log files when log_file is set."""
    level_name = "debug" if verbose else (cfg.log_level if cfg else "info")
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT, force=True)

    if cfg is None or not cfg.log_file:
        return

    combined = Path(cfg.log_file)
    combined.parent.mkdir(parents=True, exist_ok=True)
    errors = combined.with_name(f"{combined.stem}.error{combined.suffix or '.log'}")

    root = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)
    for path, handler_level in ((combined, level), (errors, logging.ERROR)):
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)


def _load_or_exit(ctx: click.Context) -> RunConfig:
    """Load config; on failure report it (and notify if possible) and exit 1."""
    try:
        return load_config(ctx.obj["config_path"])
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        logging.getLogger(__name__).error("Fatal configuration error: %s", exc)
        webhook_url = find_webhook_url(ctx.obj["config_path"])
        if webhook_url:
            asyncio.run(
                WebhookNotifier(webhook_url).notify(
                    f"Keeper failed to start: {exc}", is_error=True,
                )
            )
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """restake-keeper - scheduled claim-and-restake keeper."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the keeper and run on the configured cron schedule."""
    cfg = _load_or_exit(ctx)
    _setup_logging(ctx.obj["verbose"], cfg)

    click.echo(f"Starting restake keeper (schedule: {cfg.cron_schedule})")
    asyncio.run(run_daemon(cfg))


@cli.command("run-once")
@click.pass_context
def run_once(ctx: click.Context) -> None:
    """Execute a single keeper run and exit (1 if it failed)."""
    cfg = _load_or_exit(ctx)
    _setup_logging(ctx.obj["verbose"], cfg)

    async def _once():
        daemon = KeeperDaemon(cfg)
        try:
            return await daemon.run_keeper()
        finally:
            await daemon.chain.close()

    result = asyncio.run(_once())
    if result is None:
        click.echo("Keeper run did not complete")
        sys.exit(1)
    if result.success:
        click.echo(
            f"Restaked {format_amount(result.amount or 0, cfg.token_decimals)} "
            f"in {result.attempts_made} attempt(s), tx {result.tx_id}"
        )
    else:
        click.echo(
            f"Restake failed after {result.attempts_made} attempt(s): {result.last_error}",
            err=True,
        )
        sys.exit(1)


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the effective configuration (secrets masked)."""
    cfg = _load_or_exit(ctx)
    for key, value in cfg.redacted().items():
        click.echo(f"{key + ':':<22}{value}")


@cli.command("check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Validate configuration and exit 0 if it is usable."""
    _load_or_exit(ctx)
    click.echo("Configuration OK")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
