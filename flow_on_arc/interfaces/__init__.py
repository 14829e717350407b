"""Protocol interfaces for the Flow On Arc core."""
from .gateway import ContractGateway
from .notifier import Notifier
from .price_oracle import PriceOracle
from .signer import Signer

__all__ = ["ContractGateway", "Notifier", "PriceOracle", "Signer"]
