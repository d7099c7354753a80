"""HTTP surfaces."""

from restake_keeper.api.health import HealthServer

__all__ = ["HealthServer"]
