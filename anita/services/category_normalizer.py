"""
Category value normalization.

Used when a category arrives already semi-structured (operator-entered, echoed
back by the assistant, stored by an older client) rather than as free text.

Resolution tiers, first hit wins:
  1. Restaurant chain override (two-way containment)
  2. Ordered context phrases, most specific first
  3. Exact synonym lookup
  4. Fuzzy two-way containment against the synonym dictionary
  5. Casing heuristic ("PET SUPPLIES" -> "Pet Supplies", "pet supplies" -> "Pet supplies")

Unlike the classifier, tier 5 keeps plausible unknown categories instead of
collapsing them to "Other". Pass ``strict=True`` for a closed-range result.

Examples:
  "FOOD DELIVERY"   -> "Dining Out"
  "groceries"       -> "Groceries"
  "Burger King"     -> "Dining Out"
  "utilities"       -> "Electricity"
  "PET SUPPLIES"    -> "Pet Supplies"   (strict: "Other")
"""

from __future__ import annotations

from typing import Optional

from anita.core.categories import (
    DEFAULT_EXPENSE_CATEGORY,
    RESTAURANT_CHAINS,
    canonical_label,
)

# Reverse containment ("phrase contains value") is only trusted for values at
# least this long; otherwise "a" would match half the table.
MIN_REVERSE_MATCH_LEN = 3

# Checked in order; longer phrases before the shorter ones they contain.
CONTEXT_PHRASES: list[tuple[str, str]] = [
    # Dining Out (before "food" -> Groceries)
    ("food delivery", "Dining Out"),
    ("dining out", "Dining Out"),
    ("takeout", "Dining Out"),
    ("take out", "Dining Out"),
    ("fast food", "Dining Out"),
    ("restaurant", "Dining Out"),
    ("cafe", "Dining Out"),
    ("coffee shop", "Dining Out"),
    ("pizza", "Dining Out"),
    ("delivery", "Dining Out"),
    ("lunch", "Dining Out"),
    ("dinner", "Dining Out"),
    ("breakfast", "Dining Out"),
    # Groceries
    ("grocerries", "Groceries"),
    ("groceries", "Groceries"),
    ("grocery", "Groceries"),
    ("supermarket", "Groceries"),
    ("food shop", "Groceries"),
    ("food store", "Groceries"),
    # Personal care
    ("haircut", "Personal Care"),
    ("salon", "Personal Care"),
    ("barber", "Personal Care"),
    ("personal care", "Personal Care"),
    # Streaming
    ("streaming services", "Streaming Services"),
    ("streaming", "Streaming Services"),
    ("netflix", "Streaming Services"),
    ("spotify", "Streaming Services"),
    ("subscription", "Streaming Services"),
    # Transport
    ("rideshare & taxi", "Rideshare & Taxi"),
    ("rideshare", "Rideshare & Taxi"),
    ("uber", "Rideshare & Taxi"),
    ("lyft", "Rideshare & Taxi"),
    ("taxi", "Rideshare & Taxi"),
    ("public transportation", "Public Transportation"),
    ("gas & heating", "Gas & Heating"),
    ("gas bill", "Gas & Heating"),
    ("heating", "Gas & Heating"),
    ("gas & fuel", "Gas & Fuel"),
    ("gasoline", "Gas & Fuel"),
    ("gas station", "Gas & Fuel"),
    ("gas", "Gas & Fuel"),
    ("fuel", "Gas & Fuel"),
    # Income
    ("freelance & side income", "Freelance & Side Income"),
    ("freelance", "Freelance & Side Income"),
    ("side income", "Freelance & Side Income"),
    ("salary", "Salary"),
    ("paycheck", "Salary"),
    ("wage", "Salary"),
]

STANDARD_CATEGORIES: dict[str, str] = {
    # Housing
    "rent": "Rent",
    "mortgage": "Mortgage",
    "housing": "Rent",
    # Utilities
    "electricity": "Electricity",
    "electric": "Electricity",
    "water": "Water & Sewage",
    "sewage": "Water & Sewage",
    "gas": "Gas & Heating",
    "heating": "Gas & Heating",
    "internet": "Internet & Phone",
    "phone": "Internet & Phone",
    "utilities": "Electricity",
    # Food
    "groceries": "Groceries",
    "grocery": "Groceries",
    "food": "Groceries",
    "dining": "Dining Out",
    "dining out": "Dining Out",
    "restaurant": "Dining Out",
    "cafe": "Dining Out",
    "coffee": "Dining Out",
    "pizza": "Dining Out",
    "lunch": "Dining Out",
    "dinner": "Dining Out",
    "breakfast": "Dining Out",
    "burger": "Dining Out",
    "fast food": "Dining Out",
    "takeout": "Dining Out",
    "delivery": "Dining Out",
    # Transportation
    "transportation": "Gas & Fuel",
    "transport": "Gas & Fuel",
    "gas & fuel": "Gas & Fuel",
    "fuel": "Gas & Fuel",
    "gasoline": "Gas & Fuel",
    "public transportation": "Public Transportation",
    "bus": "Public Transportation",
    "train": "Public Transportation",
    "metro": "Public Transportation",
    "rideshare": "Rideshare & Taxi",
    "rideshare & taxi": "Rideshare & Taxi",
    "uber": "Rideshare & Taxi",
    "lyft": "Rideshare & Taxi",
    "taxi": "Rideshare & Taxi",
    "cab": "Rideshare & Taxi",
    "parking": "Parking & Tolls",
    "parking & tolls": "Parking & Tolls",
    "toll": "Parking & Tolls",
    # Subscriptions
    "streaming services": "Streaming Services",
    "streaming": "Streaming Services",
    "netflix": "Streaming Services",
    "spotify": "Streaming Services",
    "disney": "Streaming Services",
    "subscription": "Streaming Services",
    "software & apps": "Software & Apps",
    "software": "Software & Apps",
    "app": "Software & Apps",
    # Shopping
    "shopping": "Shopping",
    "clothing": "Clothing & Fashion",
    "clothing & fashion": "Clothing & Fashion",
    "fashion": "Clothing & Fashion",
    "clothes": "Clothing & Fashion",
    "shoes": "Clothing & Fashion",
    # Entertainment
    "entertainment": "Entertainment",
    "movie": "Entertainment",
    "cinema": "Entertainment",
    "concert": "Entertainment",
    "game": "Entertainment",
    "fishing": "Entertainment",
    "hobby": "Entertainment",
    "hobbies": "Entertainment",
    # Health
    "medical": "Medical & Healthcare",
    "medical & healthcare": "Medical & Healthcare",
    "healthcare": "Medical & Healthcare",
    "doctor": "Medical & Healthcare",
    "pharmacy": "Medical & Healthcare",
    "medicine": "Medical & Healthcare",
    "hospital": "Medical & Healthcare",
    "fitness": "Fitness & Gym",
    "fitness & gym": "Fitness & Gym",
    "gym": "Fitness & Gym",
    "workout": "Fitness & Gym",
    "sports": "Fitness & Gym",
    # Personal care
    "personal care": "Personal Care",
    "haircut": "Personal Care",
    "salon": "Personal Care",
    "barber": "Personal Care",
    "grooming": "Personal Care",
    "spa": "Personal Care",
    "toilette": "Personal Care",
    "toiletries": "Personal Care",
    "hygiene": "Personal Care",
    # Education
    "education": "Education",
    "tuition": "Education",
    "course": "Education",
    "school": "Education",
    # Loans, debts & leasing
    "loan payments": "Loan Payments",
    "loan": "Loan Payments",
    "loan payment": "Loan Payments",
    "debts": "Debts",
    "debt": "Debts",
    "credit card": "Debts",
    "credit card payment": "Debts",
    "leasing": "Leasing",
    "lease payment": "Leasing",
    "car lease": "Leasing",
    "vehicle lease": "Leasing",
    "equipment lease": "Leasing",
    # Income
    "salary": "Salary",
    "income": "Salary",
    "paycheck": "Salary",
    "wage": "Salary",
    "freelance": "Freelance & Side Income",
    "freelance & side income": "Freelance & Side Income",
    "side income": "Freelance & Side Income",
    "bonus": "Freelance & Side Income",
    # Other
    "other": "Other",
    "misc": "Other",
    "miscellaneous": "Other",
}


def _contains(value: str, key: str, reverse: bool = True) -> bool:
    if key in value:
        return True
    return reverse and len(value) >= MIN_REVERSE_MATCH_LEN and value in key


def _fix_casing(value: str) -> str:
    if value == value.upper() and len(value) > 1:
        return value.title()
    return value[:1].upper() + value[1:].lower()


def lookup(raw: Optional[str], *, reverse: bool = True) -> Optional[str]:
    """Resolve tiers 1-4 only; None when nothing in the tables matches.

    With ``reverse=False`` a table key must occur inside the value; the value is
    never searched for inside longer keys ("tax" does not hit "taxi").
    """
    if not raw or not raw.strip():
        return None
    lowered = raw.strip().lower()

    for chain in RESTAURANT_CHAINS:
        if _contains(lowered, chain, reverse):
            return "Dining Out"

    for phrase, category in CONTEXT_PHRASES:
        if _contains(lowered, phrase, reverse):
            return category

    exact = STANDARD_CATEGORIES.get(lowered)
    if exact:
        return exact

    for key, category in STANDARD_CATEGORIES.items():
        if _contains(lowered, key, reverse):
            return category

    return None


def normalize(raw: Optional[str], *, strict: bool = False) -> str:
    """
    Canonicalize a category value.

    Args:
        raw: Category label as stored, typed, or echoed by the assistant
        strict: collapse unrecognized values to "Other" instead of re-casing them

    Returns:
        A canonical label, or (non-strict) the re-cased input when nothing matched
    """
    if not raw or not raw.strip():
        return DEFAULT_EXPENSE_CATEGORY

    found = lookup(raw)
    if found:
        return found

    cased = _fix_casing(raw.strip())
    canonical = canonical_label(cased)
    if canonical:
        return canonical
    return DEFAULT_EXPENSE_CATEGORY if strict else cased
