# anita/services/category_classifier.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from anita.core.categories import RESTAURANT_CHAINS, TxnType, default_category


@dataclass(frozen=True)
class CategoryRule:
    """One row of the ordered keyword table.

    ``keywords``: at least one must occur in the text.
    ``with_any``: companion words. When given without ``without_any`` one of them
    must co-occur (e.g. "gas" only means heating next to "home").
    ``without_any``: veto words, ignored when a companion co-occurs (e.g. "gas"
    means fuel unless "heating" appears without "car" or "station").
    ``txn_type``: restricts the rule to one transaction type.
    """

    id: str
    category: str
    keywords: tuple[str, ...]
    with_any: tuple[str, ...] = ()
    without_any: tuple[str, ...] = ()
    txn_type: Optional[TxnType] = "expense"

    def applies_to(self, txn_type: TxnType) -> bool:
        return self.txn_type is None or self.txn_type == txn_type

    def matches(self, text: str) -> bool:
        if not any(k in text for k in self.keywords):
            return False
        has_companion = any(w in text for w in self.with_any)
        if self.with_any and not self.without_any:
            return has_companion
        if self.without_any and not has_companion:
            return not any(w in text for w in self.without_any)
        return True


# Order is priority: more specific vocabularies come before the looser ones that
# would otherwise shadow them ("food delivery" is dining before "food" is groceries).
CLASSIFIER_RULES: list[CategoryRule] = [
    CategoryRule("restaurant_chain", "Dining Out", RESTAURANT_CHAINS),
    CategoryRule(
        "dining",
        "Dining Out",
        (
            "pizza", "burger", "restaurant", "cafe", "dining", "lunch", "dinner",
            "breakfast", "takeout", "take out", "delivery", "food delivery",
            "fast food", "drive thru", "drive-through", "coffee", "starbucks",
        ),
    ),
    CategoryRule(
        "groceries",
        "Groceries",
        ("grocery", "groceries", "supermarket", "food store", "food shopping", "food"),
    ),
    CategoryRule("rideshare", "Rideshare & Taxi", ("uber", "lyft", "taxi", "cab", "rideshare")),
    CategoryRule(
        "public_transport",
        "Public Transportation",
        ("bus", "train", "subway", "metro", "transit"),
    ),
    CategoryRule(
        "fuel",
        "Gas & Fuel",
        ("gas", "fuel", "gasoline", "petrol", "diesel"),
        with_any=("station", "car", "vehicle"),
        without_any=("heating", "home", "house", "bill"),
    ),
    CategoryRule("parking", "Parking & Tolls", ("parking", "toll")),
    CategoryRule(
        "leasing",
        "Leasing",
        ("car lease", "vehicle lease", "equipment lease", "leasing"),
    ),
    CategoryRule("mortgage", "Mortgage", ("mortgage", "home loan")),
    CategoryRule("rent", "Rent", ("rent", "apartment", "lease", "landlord")),
    CategoryRule("loan", "Loan Payments", ("loan",)),
    CategoryRule("debt", "Debts", ("debt", "credit card")),
    CategoryRule("electricity", "Electricity", ("electricity", "electric", "power", "energy")),
    CategoryRule("water", "Water & Sewage", ("water", "sewage", "sewer")),
    CategoryRule("heating", "Gas & Heating", ("heating", "natural gas", "gas bill")),
    CategoryRule("home_gas", "Gas & Heating", ("gas",), with_any=("home", "house")),
    CategoryRule(
        "internet_phone",
        "Internet & Phone",
        ("internet", "phone", "mobile", "broadband", "wifi", "cellular"),
    ),
    CategoryRule(
        "streaming",
        "Streaming Services",
        ("netflix", "spotify", "disney", "streaming", "hulu", "amazon prime"),
    ),
    CategoryRule(
        "software",
        "Software & Apps",
        ("software", "app subscription", "saas", "cloud service"),
    ),
    CategoryRule(
        "clothing",
        "Clothing & Fashion",
        ("clothing", "clothes", "shoes", "fashion", "apparel", "wardrobe"),
    ),
    CategoryRule("shopping", "Shopping", ("shopping", "store", "retail")),
    CategoryRule(
        "entertainment",
        "Entertainment",
        ("movie", "cinema", "concert", "event", "game", "entertainment"),
    ),
    CategoryRule(
        "medical",
        "Medical & Healthcare",
        ("doctor", "medical", "pharmacy", "medicine", "hospital", "clinic", "healthcare"),
    ),
    CategoryRule(
        "fitness",
        "Fitness & Gym",
        ("gym", "fitness", "workout", "exercise", "sports", "yoga", "pilates"),
    ),
    CategoryRule(
        "personal_care",
        "Personal Care",
        (
            "haircut", "salon", "barber", "grooming", "spa", "toilette",
            "toiletries", "hygiene", "personal care",
        ),
    ),
    CategoryRule(
        "education",
        "Education",
        ("tuition", "course", "education", "certification", "learning", "school"),
    ),
    # Income vocabulary. Freelance first: "freelance payment" must not fall into "pay".
    CategoryRule(
        "freelance",
        "Freelance & Side Income",
        ("freelance", "side income", "gig", "bonus", "commission"),
        txn_type="income",
    ),
    CategoryRule(
        "salary",
        "Salary",
        ("salary", "paycheck", "wage", "pay"),
        txn_type="income",
    ),
]


def match_category(
    text: Optional[str],
    txn_type: TxnType,
    rules: Optional[list[CategoryRule]] = None,
) -> Optional[str]:
    """Walk the rule table; return the first matching category or None."""
    if not text or not text.strip():
        return None
    lowered = text.lower().strip()
    for rule in CLASSIFIER_RULES if rules is None else rules:
        if rule.applies_to(txn_type) and rule.matches(lowered):
            return rule.category
    return None


def classify(free_text: Optional[str], txn_type: TxnType) -> str:
    """
    Map free-text category hints to a canonical category.

    Never fails: unmatched income falls back to "Salary", unmatched expenses
    to "Other".

    Examples:
        classify("Burger King drive thru", "expense") -> "Dining Out"
        classify("gas station fill-up", "expense") -> "Gas & Fuel"
        classify("1200", "income") -> "Salary"
    """
    return match_category(free_text, txn_type) or default_category(txn_type)
