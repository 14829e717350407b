"""Flow On Arc: swap, lending, liquidity and stats core for the Arc testnet dApp."""

__version__ = "0.1.0"
