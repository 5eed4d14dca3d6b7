"""System prompt for the finance assistant, grounded in the user's stored totals."""

from typing import Mapping, Optional

from anita.core.categories import EXPENSE_CATEGORIES, INCOME_CATEGORIES

BASE_PROMPT = "You are ANITA, a helpful and friendly personal finance AI assistant."

CONFIRMATION_RULES = """When the user wants to record a transaction:
- Ask for anything missing (amount, what it was for) one question at a time.
- Once saved, confirm in exactly one sentence of the form:
  "I've added your expense of {symbol}21.00 for Personal Care (Haircut)."
  or "I've added your income of {symbol}1,200.00 for Salary."
- Only use these expense categories: {expense}.
- Only use these income categories: {income}.
- Never say a transaction was added before every detail is known."""


def build_system_prompt(
    totals: Optional[Mapping[str, float]] = None, currency_symbol: str = "$"
) -> str:
    parts = [BASE_PROMPT]
    if totals and totals.get("count"):
        parts.append(
            "Financial snapshot: "
            f"income {currency_symbol}{totals.get('income', 0):,.2f}, "
            f"expenses {currency_symbol}{totals.get('expense', 0):,.2f}, "
            f"balance {currency_symbol}{totals.get('balance', 0):,.2f} "
            f"across {int(totals['count'])} transactions."
        )
    parts.append(
        CONFIRMATION_RULES.format(
            symbol=currency_symbol,
            expense=", ".join(sorted(EXPENSE_CATEGORIES)),
            income=", ".join(sorted(INCOME_CATEGORIES)),
        )
    )
    return "\n\n".join(parts)
