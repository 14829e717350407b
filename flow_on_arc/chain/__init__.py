"""Arc chain access: RPC client, contract gateway, signer and routing."""
from .client import ArcClient, PendingTransaction
from .gateway import ArcGateway
from .routing import swap_path
from .signer import LocalSigner

__all__ = ["ArcClient", "ArcGateway", "LocalSigner", "PendingTransaction", "swap_path"]
