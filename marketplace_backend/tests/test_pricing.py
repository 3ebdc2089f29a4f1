from decimal import Decimal

import pytest

from marketplace.pricing import effective_price_cents, format_price, parse_price_range, to_cents, variant_price_cents


@pytest.mark.parametrize(
    "value, expected",
    [
        (1299, 1299),
        (12.99, 1299),
        ("19.99", 1999),
        (" 2500 ", 2500),
        (Decimal("1500.00"), 1500),
        (Decimal("9.995"), 1000),
        (0, 0),
    ],
)
def test_to_cents_treats_integral_values_as_cents_and_fractions_as_dollars(value, expected):
    assert to_cents(value) == expected


@pytest.mark.parametrize("value", [None, "", "abc", True, float("nan"), float("inf"), [12]])
def test_to_cents_returns_default_for_unusable_values(value):
    assert to_cents(value) == 0
    assert to_cents(value, default=None) is None


def test_format_price():
    assert format_price(129999) == "$1,299.99"
    assert format_price(1200, "ttd") == "TT$12.00"
    assert format_price(500, "XYZ") == "XYZ 5.00"
    assert format_price(0) == "$0.00"
    assert format_price(None) is None


def test_variant_price_prefers_sale_price():
    assert variant_price_cents({"price_in_cents": 1200, "sale_price_in_cents": 999}) == 999
    assert variant_price_cents({"price_in_cents": 1200, "sale_price_in_cents": None}) == 1200
    assert variant_price_cents({"price": "12.50"}) == 1250
    assert variant_price_cents({}) is None


def test_effective_price_uses_first_variant_then_base_price():
    product = {"base_price": 1500, "variants": [{"price_in_cents": 1200}, {"price_in_cents": 800}]}
    assert effective_price_cents(product) == (1200, "variant")
    assert effective_price_cents(product, {"price_in_cents": 800}) == (800, "variant")
    assert effective_price_cents({"base_price": 1500, "variants": [{"price_in_cents": None}]}) == (1500, "base")
    assert effective_price_cents({"base_price": 9.99, "variants": []}) == (999, "base")
    assert effective_price_cents({}) == (0, "default")


@pytest.mark.parametrize(
    "token, expected",
    [
        (None, (None, None)),
        ("all", (None, None)),
        ("under-50", (None, 5000)),
        ("over-100", (10000, None)),
        ("25-50", (2500, 5000)),
        ("$25-$50", (2500, 5000)),
        ("cheap", (None, None)),
        ("10-", (None, None)),
    ],
)
def test_parse_price_range(token, expected):
    assert parse_price_range(token) == expected
