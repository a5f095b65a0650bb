import logging
import re
from dataclasses import replace

import pytest
from freezegun import freeze_time

from varprice.keys import variant_key
from varprice.types import OptionDefinition, Variant
from varprice.variants import (
    calculate_base_price,
    generate_variant_id,
    generate_variant_title,
    generate_variants,
    merge_variants,
    merge_variants_detailed,
    recompute_variants,
    validate_variants,
)


def _keys(variants):
    return [variant_key(variant.options) for variant in variants]


def test_two_by_two_generates_four_in_declared_order(color_size_options):
    variants = generate_variants(color_size_options)

    assert [variant.title for variant in variants] == ["Rojo / S", "Rojo / M", "Azul / S", "Azul / M"]
    assert [variant.options for variant in variants] == [
        {"Color": "Rojo", "Talla": "S"},
        {"Color": "Rojo", "Talla": "M"},
        {"Color": "Azul", "Talla": "S"},
        {"Color": "Azul", "Talla": "M"},
    ]


def test_generated_stubs_are_zero_priced_and_active(color_size_options):
    for variant in generate_variants(color_size_options):
        assert variant.price == 0
        assert variant.compare_price is None
        assert variant.sku is None
        assert variant.stock_quantity == 0
        assert variant.is_active is True


def test_generated_ids_are_unique(color_size_options):
    ids = [variant.id for variant in generate_variants(color_size_options)]

    assert len(set(ids)) == len(ids)


@pytest.mark.parametrize(
    "value_counts",
    [
        pytest.param([1], id="single"),
        pytest.param([3, 2], id="three-by-two"),
        pytest.param([2, 2, 3], id="three-axes"),
    ],
)
def test_variant_count_is_product_of_value_counts(value_counts):
    options = [
        {"name": f"Opt{axis}", "values": [f"v{i}" for i in range(count)]}
        for axis, count in enumerate(value_counts)
    ]
    expected = 1
    for count in value_counts:
        expected *= count

    variants = generate_variants(options)

    assert len(variants) == expected
    assert len(set(_keys(variants))) == expected
    for variant in variants:
        assert set(variant.options) == {option["name"] for option in options}


def test_unusable_options_are_skipped():
    options = [
        {"name": "Color", "values": ["Rojo", "Azul"]},
        {"name": "", "values": ["x"]},
        {"name": "Talla", "values": []},
    ]

    variants = generate_variants(options)

    assert [variant.options for variant in variants] == [{"Color": "Rojo"}, {"Color": "Azul"}]


@pytest.mark.parametrize("options", [[], None, "Color", [{"name": "", "values": []}]])
def test_no_usable_options_yields_no_variants(options):
    assert generate_variants(options) == []


def test_generate_accepts_option_definitions():
    variants = generate_variants([OptionDefinition("Sabor", ("Chocolate",))])

    assert [variant.title for variant in variants] == ["Chocolate"]


def test_variant_id_shape():
    assert re.fullmatch(r"var_[0-9a-z]+_[0-9a-f]{9}", generate_variant_id())
    assert generate_variant_id("sku").startswith("sku_")


@freeze_time("2024-03-01 12:00:00")
def test_variant_ids_share_time_stamp_but_not_suffix():
    first = generate_variant_id().split("_")
    second = generate_variant_id().split("_")

    assert first[1] == second[1]
    assert int(first[1], 36) == 1709294400000
    assert first[2] != second[2]


def test_title_follows_product_option_order():
    options = (OptionDefinition("Color", ("Rojo",)), OptionDefinition("Talla", ("M",)))

    assert generate_variant_title({"Talla": "M", "Color": "Rojo"}, options) == "Rojo / M"
    assert generate_variant_title({"Talla": "M", "Color": "Rojo"}) == "M / Rojo"
    assert generate_variant_title({}) == ""


def test_adding_a_value_preserves_existing_commercial_data(color_size_options):
    existing = [
        replace(variant, price=50000, sku=f"SKU-{index}", stock_quantity=4)
        for index, variant in enumerate(generate_variants(color_size_options))
    ]
    widened = [color_size_options[0], {"name": "Talla", "values": ["S", "M", "L"]}]

    merged = merge_variants(existing, generate_variants(widened))

    assert len(merged) == 6
    by_title = {variant.title: variant for variant in merged}
    for stored in existing:
        carried = by_title[stored.title]
        assert carried.id == stored.id
        assert carried.price == 50000
        assert carried.sku == stored.sku
        assert carried.stock_quantity == 4
    assert by_title["Rojo / L"].price == 0
    assert by_title["Azul / L"].price == 0


def test_merge_matches_by_key_not_title():
    stored = Variant(id="v1", title="old title", options={"Talla": "M", "Color": "Rojo"}, price=9000)
    fresh = Variant(id="new", title="Rojo / M", options={"Color": "Rojo", "Talla": "M"})

    merged = merge_variants([stored], [fresh])

    assert merged == [replace(stored, title="Rojo / M", options={"Color": "Rojo", "Talla": "M"})]


def test_merge_with_empty_existing_returns_fresh(color_size_options):
    fresh = generate_variants(color_size_options)

    assert merge_variants([], fresh) == fresh
    assert merge_variants(None, fresh) == fresh


def test_merge_with_empty_fresh_returns_nothing(color_size_options):
    existing = generate_variants(color_size_options)

    assert merge_variants(existing, []) == []


def test_merge_is_idempotent(color_size_options):
    existing = [replace(variant, price=1000) for variant in generate_variants(color_size_options)]
    fresh = generate_variants(color_size_options)

    once = merge_variants(existing, fresh)

    assert merge_variants(once, fresh) == once


def test_merge_preserves_fresh_order(color_size_options):
    existing = list(reversed(generate_variants(color_size_options)))
    fresh = generate_variants(color_size_options)

    merged = merge_variants(existing, fresh)

    assert _keys(merged) == _keys(fresh)


def test_detailed_merge_reports_orphans(color_size_options, caplog):
    existing = generate_variants(color_size_options)
    narrowed = [color_size_options[0], {"name": "Talla", "values": ["M"]}]

    with caplog.at_level(logging.WARNING, logger="varprice.variants"):
        result = merge_variants_detailed(existing, generate_variants(narrowed))

    assert [variant.title for variant in result.variants] == ["Rojo / M", "Azul / M"]
    assert [variant.title for variant in result.orphaned] == ["Rojo / S", "Azul / S"]
    assert "orphaned 2 persisted variant(s)" in caplog.text


def test_detailed_merge_with_no_fresh_orphans_everything(color_size_options):
    existing = generate_variants(color_size_options)

    result = merge_variants_detailed(existing, [])

    assert result.variants == []
    assert result.orphaned == existing


def test_recompute_merges_against_persisted(color_size_options):
    existing = [replace(variant, price=12000) for variant in generate_variants(color_size_options)]

    result = recompute_variants(color_size_options, existing)

    assert [variant.id for variant in result.variants] == [variant.id for variant in existing]
    assert result.orphaned == []


def test_recompute_with_invalid_options_orphans_everything(color_size_options):
    existing = generate_variants(color_size_options)
    broken = color_size_options + [{"name": "color", "values": ["Verde"]}]

    result = recompute_variants(broken, existing)

    assert result.variants == []
    assert len(result.orphaned) == 4


def test_validate_variants_rules():
    result = validate_variants([Variant(id="a", title="Rojo", options={}, price=-1)])

    assert result.errors == (
        "Rojo: invalid price",
        "Rojo: missing options",
        "At least one variant must have a price greater than 0",
    )
    assert validate_variants([]).errors == (
        "At least one variant is required",
        "At least one variant must have a price greater than 0",
    )
    assert validate_variants("nope").errors == ("Variants must be a list",)


def test_validate_variants_accepts_priced_set(color_size_options):
    variants = [replace(variant, price=1000) for variant in generate_variants(color_size_options)]

    assert validate_variants(variants).valid is True


def test_base_price_is_lowest_positive_active_price():
    variants = [
        Variant(id="a", title="A", options={"x": "a"}, price=0),
        Variant(id="b", title="B", options={"x": "b"}, price=18000),
        Variant(id="c", title="C", options={"x": "c"}, price=9000, is_active=False),
        Variant(id="d", title="D", options={"x": "d"}, price=15000),
    ]

    assert calculate_base_price(variants) == 15000
    assert calculate_base_price([]) == 0


def test_regenerating_keeps_priced_variant_and_adds_new_color(color_size_options):
    existing = [
        replace(variant, price=20000, stock_quantity=5) if variant.title == "Rojo / S" else variant
        for variant in generate_variants(color_size_options)
    ]

    same = merge_variants(existing, generate_variants(color_size_options))
    rojo_s = next(variant for variant in same if variant.options == {"Color": "Rojo", "Talla": "S"})
    assert (rojo_s.price, rojo_s.stock_quantity) == (20000, 5)

    with_verde = [{"name": "Color", "values": ["Rojo", "Azul", "Verde"]}, color_size_options[1]]
    merged = merge_variants(existing, generate_variants(with_verde))

    by_title = {variant.title: variant for variant in merged}
    assert len(merged) == 6
    assert (by_title["Rojo / S"].price, by_title["Rojo / S"].stock_quantity) == (20000, 5)
    assert by_title["Verde / S"].price == 0
    assert by_title["Verde / M"].price == 0
    assert by_title["Verde / S"].id not in {variant.id for variant in existing}


def test_persisted_variants_sharing_a_key_are_all_accounted_for(caplog):
    first = Variant(id="a", title="Rojo", options={"Color": "Rojo"}, price=100)
    second = Variant(id="b", title="Rojo", options={"Color": "Rojo"}, price=200)
    fresh = generate_variants([{"name": "Color", "values": ["Rojo"]}])

    with caplog.at_level(logging.WARNING, logger="varprice.variants"):
        result = merge_variants_detailed([first, second], fresh)

    assert [variant.id for variant in result.variants] == ["b"]
    assert result.orphaned == [first]
    assert "share key Color=Rojo" in caplog.text
