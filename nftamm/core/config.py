"""
Protocol-wide limits for the marketplace core.

`MarketConfig` is an immutable value passed into every pricing/fee/ledger
call. Defaults match the deployed protocol; deployments can override them
from a YAML file with `load_market_config()`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Union

import yaml

from ..state.balances import PAYMENT_ASSET
from .checked import BPS_DENOM, I16_MAX, U64_MAX

# Smallest payment unit per whole payment token.
UNITS_PER_TOKEN = 1_000_000_000

ALLOWLIST_MAX_LEN = 6


@dataclass(frozen=True)
class MarketConfig:
    # Ceiling for a single fulfillment's curve total.
    max_total_price: int = 8_000_000 * UNITS_PER_TOKEN
    # Ceiling on an asset's declared royalty rate.
    max_metadata_creator_royalty_bp: int = 2_500
    # Bound on |maker_fee_bp|, taker_fee_bp and their sum.
    max_referral_fee_bp: int = 500
    max_lp_fee_bp: int = 1_000
    # Creator payouts that would leave the recipient at or below this are skipped.
    min_rent_balance: int = 890_880
    payment_asset: str = PAYMENT_ASSET

    def __post_init__(self) -> None:
        for name in (
            "max_total_price",
            "max_metadata_creator_royalty_bp",
            "max_referral_fee_bp",
            "max_lp_fee_bp",
            "min_rent_balance",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if not (0 < self.max_total_price <= U64_MAX):
            raise ValueError(f"max_total_price must be in (0, {U64_MAX}]")
        if self.max_metadata_creator_royalty_bp > BPS_DENOM:
            raise ValueError(f"max_metadata_creator_royalty_bp must be <= {BPS_DENOM}")
        if self.max_lp_fee_bp > BPS_DENOM:
            raise ValueError(f"max_lp_fee_bp must be <= {BPS_DENOM}")
        if self.max_referral_fee_bp > I16_MAX:
            raise ValueError(f"max_referral_fee_bp must be <= {I16_MAX}")
        if not isinstance(self.payment_asset, str) or not self.payment_asset:
            raise ValueError("payment_asset must be a non-empty string")


DEFAULT_CONFIG = MarketConfig()


def market_config_from_mapping(obj: Mapping[str, Any]) -> MarketConfig:
    """Build a config from a plain mapping; unknown keys are rejected."""
    if not isinstance(obj, Mapping):
        raise TypeError("market config must be a mapping")
    known = {f.name for f in fields(MarketConfig)}
    unknown = sorted(set(obj) - known)
    if unknown:
        raise ValueError(f"unknown market config keys: {', '.join(unknown)}")
    return MarketConfig(**dict(obj))


def load_market_config(path: Union[str, Path]) -> MarketConfig:
    """
    Load a `MarketConfig` from YAML.

    The file may hold the fields at top level or under a `market:` key.
    An empty file yields the defaults.
    """
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return DEFAULT_CONFIG
    if not isinstance(obj, Mapping):
        raise TypeError("market config YAML must be a mapping")
    if "market" in obj:
        obj = obj["market"] or {}
    return market_config_from_mapping(obj)
