from __future__ import annotations

import pytest

from nftamm.core.config import DEFAULT_CONFIG, MarketConfig, load_market_config, market_config_from_mapping


def test_defaults() -> None:
    assert DEFAULT_CONFIG.max_total_price == 8_000_000 * 10**9
    assert DEFAULT_CONFIG.max_metadata_creator_royalty_bp == 2_500
    assert DEFAULT_CONFIG.max_referral_fee_bp == 500
    assert DEFAULT_CONFIG.max_lp_fee_bp == 1_000
    assert DEFAULT_CONFIG.min_rent_balance == 890_880


def test_load_top_level_yaml(tmp_path) -> None:
    path = tmp_path / "market.yaml"
    path.write_text("max_referral_fee_bp: 250\nmin_rent_balance: 0\n", encoding="utf-8")
    cfg = load_market_config(path)
    assert cfg.max_referral_fee_bp == 250
    assert cfg.min_rent_balance == 0
    assert cfg.max_lp_fee_bp == DEFAULT_CONFIG.max_lp_fee_bp


def test_load_nested_yaml(tmp_path) -> None:
    path = tmp_path / "market.yaml"
    path.write_text("market:\n  max_total_price: 1000000\n", encoding="utf-8")
    assert load_market_config(str(path)).max_total_price == 1_000_000


def test_empty_yaml_gives_defaults(tmp_path) -> None:
    path = tmp_path / "market.yaml"
    path.write_text("", encoding="utf-8")
    assert load_market_config(path) == DEFAULT_CONFIG


def test_unknown_keys_rejected(tmp_path) -> None:
    path = tmp_path / "market.yaml"
    path.write_text("max_lp_fee: 10\n", encoding="utf-8")
    with pytest.raises(ValueError, match="max_lp_fee"):
        load_market_config(path)


def test_non_mapping_yaml_rejected(tmp_path) -> None:
    path = tmp_path / "market.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(TypeError):
        load_market_config(path)


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_total_price": 0},
        {"max_total_price": 1 << 64},
        {"max_lp_fee_bp": 10_001},
        {"max_metadata_creator_royalty_bp": -1},
        {"max_referral_fee_bp": True},
        {"payment_asset": ""},
    ],
)
def test_invalid_values_rejected(overrides: dict) -> None:
    with pytest.raises((TypeError, ValueError)):
        market_config_from_mapping(overrides)


def test_config_is_frozen() -> None:
    with pytest.raises(Exception):
        MarketConfig().max_lp_fee_bp = 5  # type: ignore[misc]
