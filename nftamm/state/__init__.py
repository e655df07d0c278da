"""
State records for the pool marketplace
"""

from .balances import BalanceTable, DEFAULT_ADDRESS, PAYMENT_ASSET
from .metadata import (
    AssetMetadata,
    Collection,
    Creator,
    EditionMarker,
    InMemoryMetadataProvider,
    MetadataProvider,
    MetadataProviderError,
    TokenStandard,
)
from .pools import (
    Allowlist,
    AllowlistKind,
    CurveKind,
    MarketState,
    Pool,
    SellState,
    compute_pool_key,
)

__all__ = [
    "BalanceTable",
    "DEFAULT_ADDRESS",
    "PAYMENT_ASSET",
    "AssetMetadata",
    "Collection",
    "Creator",
    "EditionMarker",
    "InMemoryMetadataProvider",
    "MetadataProvider",
    "MetadataProviderError",
    "TokenStandard",
    "Allowlist",
    "AllowlistKind",
    "CurveKind",
    "MarketState",
    "Pool",
    "SellState",
    "compute_pool_key",
]
