"""
Allowlist eligibility matching.

A pool's allowlist entries are unioned: an asset is eligible when any one
entry matches it structurally. The metadata-URI-prefix kind is different:
it never matches on its own, but when present it constrains every trade
that supplies a prefix. Eligibility is opt-in; an empty set, or a set of
only placeholder entries, never matches.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..state.balances import AssetId
from ..state.metadata import AssetMetadata, EditionMarker, TokenStandard
from ..state.pools import Allowlist, AllowlistKind
from .config import ALLOWLIST_MAX_LEN
from .errors import ErrorCode, MarketError

# Version tags of the two recognized master-edition layouts.
MASTER_EDITION_VERSIONS = frozenset({2, 6})


def check_allowlists(allowlists: Sequence[Allowlist]) -> None:
    """Validate a pool's allowlist configuration (create/update time)."""
    if len(allowlists) > ALLOWLIST_MAX_LEN:
        raise MarketError(ErrorCode.INVALID_ALLOW_LISTS, f"at most {ALLOWLIST_MAX_LEN} entries")
    for entry in allowlists:
        if not entry.valid():
            raise MarketError(ErrorCode.INVALID_ALLOW_LISTS, f"invalid entry: kind={entry.kind!r}")


def check_master_edition(marker: EditionMarker) -> bool:
    return marker.version in MASTER_EDITION_VERSIONS


def check_allowlists_for_mint(
    allowlists: Sequence[Allowlist],
    mint: AssetId,
    metadata: AssetMetadata,
    master_edition: Optional[EditionMarker] = None,
    allowlist_aux: Optional[str] = None,
) -> AssetMetadata:
    """
    Decide whether `mint` may trade against a pool with `allowlists`.

    Returns the metadata on success so callers can chain fee computation.

    Raises:
        MarketError(InvalidMasterEdition): non-empty edition marker with an unknown version
        MarketError(UnexpectedMetadataUri): URI does not start with the supplied prefix
        MarketError(InvalidAllowLists): no entry matched, or a malformed entry was reached
    """
    if metadata.mint != mint:
        raise ValueError(f"metadata is for {metadata.mint}, not {mint}")

    if master_edition is not None and not master_edition.is_empty:
        if not check_master_edition(master_edition):
            raise MarketError(ErrorCode.INVALID_MASTER_EDITION, f"version={master_edition.version}")

    if allowlist_aux is not None and any(a.kind == AllowlistKind.METADATA_URI_PREFIX for a in allowlists):
        # URIs are stored with padding.
        if not metadata.uri.strip().startswith(allowlist_aux):
            raise MarketError(
                ErrorCode.UNEXPECTED_METADATA_URI,
                f"expected prefix |{allowlist_aux}| but got |{metadata.uri}|",
            )

    for entry in allowlists:
        kind = entry.kind
        if kind == AllowlistKind.EMPTY:
            continue
        if kind == AllowlistKind.FIRST_VERIFIED_CREATOR:
            creators = metadata.creators
            if creators and creators[0].address == entry.value and creators[0].verified:
                return metadata
        elif kind == AllowlistKind.MINT:
            if mint == entry.value:
                return metadata
        elif kind == AllowlistKind.VERIFIED_COLLECTION:
            collection = metadata.collection
            if collection is not None and collection.key == entry.value and collection.verified:
                return metadata
        elif kind == AllowlistKind.METADATA_URI_PREFIX:
            # checked above; a constraint, not a match
            continue
        else:
            raise MarketError(ErrorCode.INVALID_ALLOW_LISTS, f"unknown kind {kind!r}")

    raise MarketError(ErrorCode.INVALID_ALLOW_LISTS, f"no allowlist entry matched {mint}")


def assert_is_programmable(metadata: AssetMetadata) -> None:
    if metadata.token_standard is not TokenStandard.PROGRAMMABLE_NON_FUNGIBLE:
        raise MarketError(ErrorCode.INVALID_TOKEN_STANDARD, f"token_standard={metadata.token_standard}")
