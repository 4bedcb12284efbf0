import pytest

from game.errors import ConfigurationError
from game.systems.tier_catalog import (
    QUALITY_TIERS,
    SEARCH_TIERS,
    TierDefinition,
    credit_fee_modifier,
    effective_success,
    get_inspection_tier,
    get_quality,
    get_tier,
)


def test_lookup_known_ids():
    assert get_tier("regional").fee_fraction == 0.06
    assert get_quality("excellent").max_condition == 0.95
    assert get_inspection_tier("standard").duration_hours == 6


@pytest.mark.parametrize(
    "lookup, bad_id",
    [(get_tier, "galactic"), (get_quality, "mint"), (get_inspection_tier, "xray")],
)
def test_unknown_ids_raise_configuration_error(lookup, bad_id):
    with pytest.raises(ConfigurationError):
        lookup(bad_id)


def test_tier_ladder_trades_fee_for_odds():
    local, regional, national = SEARCH_TIERS["local"], SEARCH_TIERS["regional"], SEARCH_TIERS["national"]
    assert local.fee_fraction < regional.fee_fraction < national.fee_fraction
    assert local.base_success < regional.base_success < national.base_success
    assert local.min_days == local.max_days == 1
    assert (regional.min_days, regional.max_days) == (1, 2)
    assert (national.min_days, national.max_days) == (2, 4)


def test_effective_success_is_clamped():
    sure_thing = TierDefinition("x", "X", 0.1, 1, 1, 0.95, 0.5)
    long_shot = TierDefinition("y", "Y", 0.1, 1, 1, 0.0, 0.5)
    assert effective_success(sure_thing, QUALITY_TIERS["poor"]) == 0.95
    assert effective_success(long_shot, QUALITY_TIERS["excellent"]) == 0.05


def test_effective_success_unclamped_in_range():
    assert effective_success(SEARCH_TIERS["regional"], QUALITY_TIERS["fair"]) == pytest.approx(0.55)


@pytest.mark.parametrize(
    "score, modifier",
    [
        (850, -0.15),
        (750, -0.15),
        (749, -0.08),
        (700, -0.08),
        (699, 0.0),
        (650, 0.0),
        (600, 0.10),
        (599, 0.20),
        (0, 0.20),
    ],
)
def test_credit_fee_modifier_bands(score, modifier):
    assert credit_fee_modifier(score) == modifier


def test_inspection_cost_is_capped():
    quick = get_inspection_tier("quick")
    assert quick.cost_for(10_000) == 1200
    assert quick.cost_for(1_000_000) == 2500
    assert get_inspection_tier("comprehensive").cost_for(2_000_000) == 10_000
