"""Pricing, impact and submission policy."""
from .engine import NO_LIQUIDITY, PricingEngine
from .policy import MIN_TRANSACTION_USD, validate_submission

__all__ = ["NO_LIQUIDITY", "MIN_TRANSACTION_USD", "PricingEngine", "validate_submission"]
