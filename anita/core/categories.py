"""
Canonical transaction categories.

The category set is closed: classifier and normalizer output must always be one
of CANONICAL_CATEGORIES. Income has its own sub-vocabulary; expense labels and
income labels never cross over.
"""

from __future__ import annotations

from typing import Literal, Optional

TxnType = Literal["income", "expense"]

CANONICAL_CATEGORIES: tuple[str, ...] = (
    # Housing
    "Rent",
    "Mortgage",
    # Utilities
    "Electricity",
    "Water & Sewage",
    "Gas & Heating",
    "Internet & Phone",
    # Food
    "Groceries",
    "Dining Out",
    # Transportation
    "Gas & Fuel",
    "Public Transportation",
    "Rideshare & Taxi",
    "Parking & Tolls",
    # Subscriptions
    "Streaming Services",
    "Software & Apps",
    # Shopping
    "Shopping",
    "Clothing & Fashion",
    # Entertainment
    "Entertainment",
    # Health
    "Medical & Healthcare",
    "Fitness & Gym",
    # Personal care / education
    "Personal Care",
    "Education",
    # Loans, debts & leasing
    "Loan Payments",
    "Debts",
    "Leasing",
    # Income
    "Salary",
    "Freelance & Side Income",
    # Fallback
    "Other",
)

INCOME_CATEGORIES: frozenset[str] = frozenset({"Salary", "Freelance & Side Income"})
EXPENSE_CATEGORIES: frozenset[str] = frozenset(CANONICAL_CATEGORIES) - INCOME_CATEGORIES

DEFAULT_EXPENSE_CATEGORY = "Other"
DEFAULT_INCOME_CATEGORY = "Salary"

# Quick-service and casual dining brands. A chain name alone is a strong enough
# signal to override every keyword rule.
RESTAURANT_CHAINS: tuple[str, ...] = (
    "burger king",
    "mcdonalds",
    "mcdonald",
    "kfc",
    "subway",
    "dominos",
    "domino",
    "papa johns",
    "taco bell",
    "wendys",
    "chipotle",
    "panera",
    "olive garden",
    "outback",
    "applebees",
    "chilis",
    "red lobster",
    "ihop",
    "dennys",
    "waffle house",
    "dunkin",
    "dunkin donuts",
    "five guys",
    "shake shack",
    "in-n-out",
    "whataburger",
    "jack in the box",
    "arbys",
    "panda express",
    "pizza hut",
    "little caesars",
)

_BY_LOWER = {c.lower(): c for c in CANONICAL_CATEGORIES}


def canonical_label(value: Optional[str]) -> Optional[str]:
    """Case-insensitive lookup of a canonical label; None when not in the set."""
    if not value:
        return None
    return _BY_LOWER.get(value.strip().lower())


def default_category(txn_type: TxnType) -> str:
    return DEFAULT_INCOME_CATEGORY if txn_type == "income" else DEFAULT_EXPENSE_CATEGORY


def allowed_categories(txn_type: TxnType) -> frozenset[str]:
    return INCOME_CATEGORIES if txn_type == "income" else EXPENSE_CATEGORIES


def is_allowed(label: Optional[str], txn_type: TxnType) -> bool:
    return bool(label) and label in allowed_categories(txn_type)
