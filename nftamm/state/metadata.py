"""
Parsed asset metadata and the provider interface that supplies it.

The core treats metadata as read-only, already-validated input. Providers
load metadata for one mint at a time; accessors fail loudly if asked about a
different mint than the one loaded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from .balances import Address, AssetId


class TokenStandard(Enum):
    NON_FUNGIBLE = "NonFungible"
    FUNGIBLE_ASSET = "FungibleAsset"
    FUNGIBLE = "Fungible"
    NON_FUNGIBLE_EDITION = "NonFungibleEdition"
    PROGRAMMABLE_NON_FUNGIBLE = "ProgrammableNonFungible"


@dataclass(frozen=True)
class Creator:
    address: Address
    verified: bool
    share: int

    def __post_init__(self) -> None:
        if not isinstance(self.share, int) or isinstance(self.share, bool):
            raise TypeError("share must be an int")
        if not (0 <= self.share <= 100):
            raise ValueError(f"share must be in [0, 100]: {self.share}")


@dataclass(frozen=True)
class Collection:
    key: Address
    verified: bool


@dataclass(frozen=True)
class AssetMetadata:
    """
    Attributes:
        mint: The asset's own identifier
        uri: Off-chain metadata URI (may carry padding)
        seller_fee_basis_points: Declared creator royalty rate
        creators: Royalty beneficiaries in declared order, or None
        collection: Collection reference, or None
        token_standard: Token standard marker, or None when unknown
        rule_set: Transfer rule set for programmable assets
    """
    mint: AssetId
    uri: str = ""
    seller_fee_basis_points: int = 0
    creators: Optional[Tuple[Creator, ...]] = None
    collection: Optional[Collection] = None
    token_standard: Optional[TokenStandard] = None
    rule_set: Optional[Address] = None

    def __post_init__(self) -> None:
        bp = self.seller_fee_basis_points
        if not isinstance(bp, int) or isinstance(bp, bool):
            raise TypeError("seller_fee_basis_points must be an int")
        if not (0 <= bp <= 10_000):
            raise ValueError(f"seller_fee_basis_points must be in [0, 10000]: {bp}")
        if self.creators is not None:
            creators = tuple(self.creators)
            object.__setattr__(self, "creators", creators)
            if creators:
                total = sum(c.share for c in creators)
                if total != 100:
                    raise ValueError(f"creator shares must sum to 100, got {total}")


@dataclass(frozen=True)
class EditionMarker:
    """
    Raw edition-marker account data. An empty account (no data) means the
    asset has no master edition yet; otherwise the first byte is the version tag.
    """
    data: bytes = b""

    @property
    def is_empty(self) -> bool:
        return len(self.data) == 0

    @property
    def version(self) -> Optional[int]:
        return None if self.is_empty else self.data[0]


class MetadataProviderError(Exception):
    """Raised when metadata is requested before loading or for the wrong mint."""


class MetadataProvider(ABC):
    @abstractmethod
    def load(self, mint: AssetId) -> None: ...

    @abstractmethod
    def get_loaded_mint(self) -> Optional[AssetId]: ...

    @abstractmethod
    def get_metadata(self, mint: AssetId) -> AssetMetadata: ...

    def check_metadata_mint(self, mint: AssetId) -> None:
        loaded = self.get_loaded_mint()
        if loaded is None:
            raise MetadataProviderError("no metadata loaded")
        if loaded != mint:
            raise MetadataProviderError("mint mismatch")

    def get_creators(self, mint: AssetId) -> Tuple[Creator, ...]:
        return self.get_metadata(mint).creators or ()

    def get_token_standard(self, mint: AssetId) -> Optional[TokenStandard]:
        return self.get_metadata(mint).token_standard

    def get_ruleset(self, mint: AssetId) -> Optional[Address]:
        return self.get_metadata(mint).rule_set


class InMemoryMetadataProvider(MetadataProvider):
    """Provider backed by a dict of mint -> AssetMetadata."""

    def __init__(self, registry: Optional[Mapping[AssetId, AssetMetadata]] = None) -> None:
        self._registry: Dict[AssetId, AssetMetadata] = dict(registry or {})
        self._loaded: Optional[AssetMetadata] = None

    def register(self, metadata: AssetMetadata) -> None:
        self._registry[metadata.mint] = metadata

    def load(self, mint: AssetId) -> None:
        try:
            self._loaded = self._registry[mint]
        except KeyError:
            raise MetadataProviderError(f"no metadata for mint {mint}") from None

    def get_loaded_mint(self) -> Optional[AssetId]:
        return None if self._loaded is None else self._loaded.mint

    def get_metadata(self, mint: AssetId) -> AssetMetadata:
        if self._loaded is None:
            raise MetadataProviderError("no metadata loaded")
        self.check_metadata_mint(mint)
        return self._loaded
