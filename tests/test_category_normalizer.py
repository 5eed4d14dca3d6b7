import pytest

from anita.core.categories import CANONICAL_CATEGORIES
from anita.services.category_normalizer import lookup, normalize


def test_food_delivery_is_dining_not_groceries():
    assert normalize("FOOD DELIVERY") == "Dining Out"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("groceries", "Groceries"),
        ("Burger King", "Dining Out"),
        ("utilities", "Electricity"),
        ("gas station", "Gas & Fuel"),
        ("gas bill", "Gas & Heating"),
        ("dining out", "Dining Out"),
        ("credit card payment", "Debts"),
        ("paycheck", "Salary"),
    ],
)
def test_table_tiers(raw, expected):
    assert normalize(raw) == expected


@pytest.mark.parametrize("label", CANONICAL_CATEGORIES)
def test_canonical_labels_are_fixed_points(label):
    assert normalize(label) == label
    assert normalize(label.upper()) == label


def test_unknown_all_caps_is_title_cased():
    assert normalize("PET SUPPLIES") == "Pet Supplies"


def test_unknown_lower_gets_first_letter_upper():
    assert normalize("pet supplies") == "Pet supplies"


def test_strict_collapses_unknown_to_other():
    assert normalize("PET SUPPLIES", strict=True) == "Other"
    assert normalize("Groceries", strict=True) == "Groceries"


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_is_other(raw):
    assert normalize(raw) == "Other"
    assert normalize(raw, strict=True) == "Other"


def test_short_values_do_not_reverse_match():
    assert lookup("a") is None
    assert lookup("xyz") is None


def test_lookup_returns_none_when_tables_miss():
    assert lookup("pet supplies") is None
    assert lookup("groceries") == "Groceries"


@pytest.mark.parametrize(
    "raw", ["FOOD DELIVERY", "rent", "Spotify", "PET SUPPLIES", "misc", "wage"]
)
def test_strict_range_is_closed(raw):
    assert normalize(raw, strict=True) in CANONICAL_CATEGORIES


def test_forward_only_lookup():
    assert lookup("tax") == "Rideshare & Taxi"
    assert lookup("tax", reverse=False) is None
    assert lookup("car", reverse=False) is None
    assert lookup("taxi ride", reverse=False) == "Rideshare & Taxi"
    assert lookup("Personal Care", reverse=False) == "Personal Care"
