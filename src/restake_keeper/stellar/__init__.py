"""Stellar/Soroban integration components."""

from restake_keeper.stellar.client import SorobanChainClient
from restake_keeper.stellar.events import RESTAKE_EXECUTED_SELECTOR

__all__ = ["SorobanChainClient", "RESTAKE_EXECUTED_SELECTOR"]
