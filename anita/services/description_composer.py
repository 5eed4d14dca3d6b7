"""
Transaction description composer.

Turns a noisy utterance into a short label for the transaction list:
  "10 Euros on Pizza"               -> "Pizza"
  "I spent 37 euros on groceries"   -> "Groceries"
  "1200" (income, Salary)           -> "Salary"
  "21 on the haircut"               -> "Haircut"

Two stages: an optional completion-backed enhancer, and a deterministic cleanup
that always produces a label. The enhancer never raises; any failure falls
through to the cleanup.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Optional, Protocol, Union

from anita.core.categories import DEFAULT_EXPENSE_CATEGORY, TxnType
from anita.metrics import COMPLETION_FAILURES, DESCRIPTION_SOURCE
from anita.utils.llm import CompletionError, TextCompletionClient

log = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 50
ELLIPSIS = "..."

Amount = Union[Decimal, float, int, None]

_BARE_NUMBER_RE = re.compile(r"^\d+([.,]\d+)?$")
_FILLER_RE = re.compile(
    r"\b(spent|paid|received|got|earned|made|on|for|as|euros?|dollars?|bucks|pounds?|usd|eur|gbp)\b",
    re.IGNORECASE,
)
_CURRENCY_RE = re.compile(r"[$€£¥₹]")
_AMOUNT_RE = re.compile(r"\d+(?:[.,]\d+)*")
_STARTER_RE = re.compile(r"^(?:i|i've|ive|i have|we|my|das|der|die|the|a|an)\s+", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")
_EDGE_PUNCT = " .,;:!?-\"'"

FILLER_WORDS = frozenset(
    {
        "on", "for", "spent", "paid", "received", "got", "earned", "made",
        "euro", "euros", "dollar", "dollars", "bucks", "usd", "eur", "gbp",
    }
)


def _truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def _generic_label(txn_type: TxnType, category: Optional[str]) -> str:
    if category and category != DEFAULT_EXPENSE_CATEGORY:
        return category
    return "Income" if txn_type == "income" else "Expense"


def is_clean(text: Optional[str]) -> bool:
    """One or two plain words, no amounts, currency or filler vocabulary."""
    trimmed = (text or "").strip()
    if not trimmed or _BARE_NUMBER_RE.match(trimmed):
        return False
    words = trimmed.split()
    if len(words) > 2:
        return False
    for w in words:
        lw = w.lower().strip(_EDGE_PUNCT)
        if lw in FILLER_WORDS or _CURRENCY_RE.search(w) or any(ch.isdigit() for ch in w):
            return False
    return True


def strip_filler(text: Optional[str]) -> str:
    """Remove filler words, currency markers, amounts and sentence starters."""
    cleaned = _FILLER_RE.sub(" ", (text or "").strip())
    cleaned = _CURRENCY_RE.sub(" ", cleaned)
    cleaned = _AMOUNT_RE.sub(" ", cleaned)
    cleaned = _WS_RE.sub(" ", cleaned).strip(_EDGE_PUNCT)
    # Starters can stack ("I the ..."), strip until stable
    prev = None
    while prev != cleaned:
        prev = cleaned
        cleaned = _STARTER_RE.sub("", cleaned).strip(_EDGE_PUNCT)
    return cleaned


class DescriptionStrategy(Protocol):
    def describe(
        self, raw_text: str, txn_type: TxnType, amount: Amount, category: str
    ) -> Optional[str]: ...


class CleanupDescriber:
    """Deterministic fallback; always returns a non-empty label."""

    def __init__(self, max_length: int = DEFAULT_MAX_LENGTH):
        if max_length < 1:
            raise ValueError("max_length must be at least 1")
        self.max_length = max_length

    def describe(
        self, raw_text: str, txn_type: TxnType, amount: Amount, category: str
    ) -> str:
        trimmed = (raw_text or "").strip()
        if not trimmed or _BARE_NUMBER_RE.match(trimmed):
            return _truncate(_generic_label(txn_type, category), self.max_length)

        cleaned = strip_filler(trimmed)
        if len(cleaned) < 2:
            return _truncate(_generic_label(txn_type, category), self.max_length)
        cleaned = cleaned[0].upper() + cleaned[1:].lower()
        return _truncate(cleaned, self.max_length)


DESCRIPTION_PROMPT = """Generate a clean, concise transaction description for a mobile finance app.

USER INPUT: "{user_input}"
TRANSACTION TYPE: {txn_type}
AMOUNT: {amount}
CATEGORY: {category}

Generate a SHORT, CLEAN description (2-5 words max) that clearly describes what this transaction is about.

Rules:
- Remove filler words like "I spent", "on", "Euros", currency symbols, amounts
- Extract the core item/service (e.g., "Pizza", "Groceries", "Salary", "Rent")
- For income: use professional terms (e.g., "Salary", "Freelance Payment", "Bonus")
- For expenses: use the item/service name (e.g., "Pizza", "Groceries", "Gas", "Rent")
- Don't include amounts or currency in the description
- If the input is just a number, infer what it likely is based on type and category

Examples:
- "10 Euros on Pizza" -> Pizza
- "1200" (income, Salary category) -> Salary
- "I spent 37 Euros on groceries" -> Groceries
- "Das 1200 as income" -> Salary
- "1,50 on Toilette" -> Toiletries
- "paid rent" -> Rent

Return ONLY the description, nothing else."""


class CompletionDescriber:
    """Asks a completion service for a 2-5 word label; None on any failure."""

    max_words = 8

    def __init__(
        self,
        client: TextCompletionClient,
        *,
        max_length: int = DEFAULT_MAX_LENGTH,
        max_tokens: int = 20,
        temperature: float = 0.3,
        currency_symbol: str = "$",
    ):
        self.client = client
        self.max_length = max_length
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.currency_symbol = currency_symbol

    def build_prompt(
        self, raw_text: str, txn_type: TxnType, amount: Amount, category: str
    ) -> str:
        amt = f"{self.currency_symbol}{Decimal(str(amount or 0)):.2f}"
        return DESCRIPTION_PROMPT.format(
            user_input=raw_text, txn_type=txn_type, amount=amt, category=category
        )

    def _validate(self, text: str) -> tuple[Optional[str], Optional[str]]:
        out = text.strip().strip("\"'`").strip().rstrip(".").strip()
        if not out:
            return None, "empty"
        if "\n" in out:
            return None, "malformed"
        if len(out) > self.max_length or len(out.split()) > self.max_words:
            return None, "too_long"
        return out, None

    def describe(
        self, raw_text: str, txn_type: TxnType, amount: Amount, category: str
    ) -> Optional[str]:
        prompt = self.build_prompt(raw_text, txn_type, amount, category)
        try:
            generated = self.client.complete(prompt, self.max_tokens, self.temperature)
        except CompletionError as e:
            log.warning("description enhancer failed: %s", e, extra={"reason": e.reason})
            COMPLETION_FAILURES.labels(reason=e.reason).inc()
            return None
        except Exception as e:  # third-party client bugs must not break ingestion
            log.warning("description enhancer error: %s", e, extra={"reason": "error"})
            COMPLETION_FAILURES.labels(reason="error").inc()
            return None

        valid, reason = self._validate(generated or "")
        if valid is None:
            log.warning(
                "description enhancer returned unusable text",
                extra={"reason": reason, "length": len(generated or "")},
            )
            COMPLETION_FAILURES.labels(reason=reason).inc()
        return valid


class DescriptionComposer:
    """Clean input passes through; otherwise try the enhancer, else the cleanup."""

    def __init__(
        self,
        enhancer: Optional[DescriptionStrategy] = None,
        fallback: Optional[CleanupDescriber] = None,
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        if max_length < 1:
            raise ValueError("max_length must be at least 1")
        self.enhancer = enhancer
        self.max_length = max_length
        self.fallback = fallback or CleanupDescriber(max_length=max_length)

    def compose(
        self,
        raw_text: Optional[str],
        txn_type: TxnType,
        amount: Amount,
        category: Optional[str],
    ) -> str:
        text = (raw_text or "").strip()
        cat = category or DEFAULT_EXPENSE_CATEGORY
        if is_clean(text):
            DESCRIPTION_SOURCE.labels(source="clean").inc()
            return _truncate(text, self.max_length)

        if self.enhancer is not None:
            enhanced = self.enhancer.describe(text, txn_type, amount, cat)
            if enhanced:
                DESCRIPTION_SOURCE.labels(source="completion").inc()
                return _truncate(enhanced, self.max_length)

        DESCRIPTION_SOURCE.labels(source="fallback").inc()
        return self.fallback.describe(text, txn_type, amount, cat)


def build_description_composer(
    client: Optional[TextCompletionClient] = None,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> DescriptionComposer:
    enhancer = CompletionDescriber(client, max_length=max_length) if client else None
    return DescriptionComposer(enhancer=enhancer, max_length=max_length)


def compose_description(
    raw_text: Optional[str],
    txn_type: TxnType,
    amount: Amount,
    category: Optional[str],
) -> str:
    """Deterministic composition (no completion service)."""
    return DescriptionComposer().compose(raw_text, txn_type, amount, category)
