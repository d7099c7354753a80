"""Keeper core: restake execution and cadence scheduling."""

from restake_keeper.keeper.executor import RestakeExecutor, extract_amount, format_amount
from restake_keeper.keeper.scheduler import CronScheduler, ScheduledJob, next_fire_time

__all__ = [
    "RestakeExecutor", "extract_amount", "format_amount",
    "CronScheduler", "ScheduledJob", "next_fire_time",
]
