"""restake_keeper - scheduled claim-and-restake keeper for a Soroban contract."""

__version__ = "0.1.0"
