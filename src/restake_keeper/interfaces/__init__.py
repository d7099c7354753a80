"""Protocol interfaces for restake_keeper components."""

from restake_keeper.interfaces.chain import ChainClient
from restake_keeper.interfaces.notifier import Notifier

__all__ = ["ChainClient", "Notifier"]
