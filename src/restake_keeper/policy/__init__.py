"""Run policy."""

from restake_keeper.policy.gate import RewardGate

__all__ = ["RewardGate"]
