from __future__ import annotations

import pytest

from nftamm.state.metadata import (
    AssetMetadata,
    Creator,
    EditionMarker,
    InMemoryMetadataProvider,
    MetadataProviderError,
    TokenStandard,
)

MINT = "0x" + "11" * 32
OTHER = "0x" + "22" * 32
CREATOR = "0x" + "a1" * 32
RULES = "0x" + "ee" * 32


def _metadata() -> AssetMetadata:
    return AssetMetadata(
        mint=MINT,
        uri="https://example.org/1.json",
        seller_fee_basis_points=500,
        creators=[Creator(address=CREATOR, verified=True, share=100)],
        token_standard=TokenStandard.PROGRAMMABLE_NON_FUNGIBLE,
        rule_set=RULES,
    )


class TestAssetMetadata:
    def test_creator_shares_must_sum_to_100(self) -> None:
        with pytest.raises(ValueError):
            AssetMetadata(mint=MINT, creators=(Creator(CREATOR, True, 60), Creator(OTHER, True, 30)))

    def test_creators_become_tuple(self) -> None:
        assert isinstance(_metadata().creators, tuple)

    def test_royalty_bp_range(self) -> None:
        with pytest.raises(ValueError):
            AssetMetadata(mint=MINT, seller_fee_basis_points=10_001)

    def test_creator_share_range(self) -> None:
        with pytest.raises(ValueError):
            Creator(CREATOR, True, 101)


def test_edition_marker_version() -> None:
    assert EditionMarker().is_empty
    assert EditionMarker().version is None
    assert EditionMarker(bytes([6, 1, 2])).version == 6


class TestProvider:
    def test_accessors_require_loaded_mint(self) -> None:
        provider = InMemoryMetadataProvider({MINT: _metadata()})
        with pytest.raises(MetadataProviderError, match="no metadata loaded"):
            provider.get_creators(MINT)
        with pytest.raises(MetadataProviderError, match="no metadata loaded"):
            provider.get_metadata(MINT)

        provider.load(MINT)
        assert provider.get_loaded_mint() == MINT
        assert provider.get_creators(MINT)[0].address == CREATOR
        assert provider.get_token_standard(MINT) is TokenStandard.PROGRAMMABLE_NON_FUNGIBLE
        assert provider.get_ruleset(MINT) == RULES

    def test_mint_mismatch(self) -> None:
        provider = InMemoryMetadataProvider({MINT: _metadata()})
        provider.load(MINT)
        with pytest.raises(MetadataProviderError, match="mint mismatch"):
            provider.get_metadata(OTHER)

    def test_unknown_mint(self) -> None:
        provider = InMemoryMetadataProvider()
        with pytest.raises(MetadataProviderError):
            provider.load(MINT)
        provider.register(_metadata())
        provider.load(MINT)
        assert provider.get_metadata(MINT).seller_fee_basis_points == 500
