"""Error types for the pool marketplace core.

Every failure the core can report is a ``MarketError`` carrying one
``ErrorCode``. Errors abort the whole operation; callers decide whether to
retry with corrected inputs.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class ErrorCode(Enum):
    NUMERIC_OVERFLOW = "NumericOverflow"
    INVALID_CURVE_TYPE = "InvalidCurveType"
    INVALID_CURVE_DELTA = "InvalidCurveDelta"
    INVALID_ALLOW_LISTS = "InvalidAllowLists"
    UNEXPECTED_METADATA_URI = "UnexpectedMetadataUri"
    INVALID_MASTER_EDITION = "InvalidMasterEdition"
    INVALID_METADATA_CREATOR_ROYALTY = "InvalidMetadataCreatorRoyalty"
    NOT_ENOUGH_BALANCE = "NotEnoughBalance"
    INVALID_CREATOR_ADDRESS = "InvalidCreatorAddress"
    INVALID_MAKER_OR_TAKER_FEE_BP = "InvalidMakerOrTakerFeeBP"
    INVALID_LP_FEE = "InvalidLPFee"
    INVALID_BP = "InvalidBP"
    INVALID_REQUESTED_PRICE = "InvalidRequestedPrice"
    INVALID_TOKEN_STANDARD = "InvalidTokenStandard"
    INVALID_MIP1_ASSET_PARAMS = "InvalidMip1AssetParams"
    UNKNOWN_POOL = "UnknownPool"
    POOL_ALREADY_EXISTS = "PoolAlreadyExists"
    NOT_EMPTY_SELL_SIDE = "NotEmptySellSide"


class MarketError(Exception):
    """Raised when an operation is rejected by the core."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code.value}: {message}" if message else code.value)


class MarketInvariantError(Exception):
    """Raised when a post-state violates one or more ledger invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
