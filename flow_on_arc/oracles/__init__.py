"""Price oracles."""
from .lending_pool import LendingPoolOracle

__all__ = ["LendingPoolOracle"]
