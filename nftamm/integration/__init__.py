"""
Integration shell: custody, authorization and the market engine
"""

from .authorization import (
    AllowAllAuthorizer,
    AuthorizationError,
    BlsAuthorizer,
    sign_operation,
    signer_for,
)
from .custody import CustodyError, InMemoryCustody, InMemoryReclaimer, ReclaimError
from .market_engine import EngineResult, MarketEngine, log_pool

__all__ = [
    "AllowAllAuthorizer",
    "AuthorizationError",
    "BlsAuthorizer",
    "sign_operation",
    "signer_for",
    "CustodyError",
    "InMemoryCustody",
    "InMemoryReclaimer",
    "ReclaimError",
    "EngineResult",
    "MarketEngine",
    "log_pool",
]
