"""
Confirmation extractor.

Watches the assistant's latest reply for a completed-transaction confirmation
("I've added your expense of $21.00 for Personal Care (Haircut).") and turns it
into an ExtractedTransaction. Only the reply decides whether a transaction
happened and how much it was; the transcript is consulted for the category and
description when the reply leaves them out.

False negatives are preferred: ambiguous wording, ambiguous type or ambiguous
amounts yield None and nothing gets persisted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Iterable, Literal, Optional, Sequence, TypeVar

from anita.core.categories import (
    CANONICAL_CATEGORIES,
    TxnType,
    default_category,
    is_allowed,
)
from anita.metrics import TRANSACTIONS_EXTRACTED
from anita.services.category_classifier import match_category
from anita.services.category_normalizer import lookup
from anita.services.description_composer import DescriptionComposer, strip_filler
from anita.utils.amounts import parse_amount

log = logging.getLogger(__name__)

T = TypeVar("T")

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str


@dataclass(frozen=True)
class ExtractedTransaction:
    type: TxnType
    amount: Decimal
    category: str
    description: str

    def as_dict(self) -> dict:
        return {
            "type": self.type,
            "amount": float(self.amount),
            "category": self.category,
            "description": self.description,
        }


@dataclass(frozen=True)
class Confirmation:
    sentence: str
    amount: Decimal


# --- sentence level ---------------------------------------------------------

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|\n+")
_COMPLETION_VERB_RE = re.compile(r"\b(added|recorded|logged|saved|noted|tracked)\b", re.I)
_REQUEST_RE = re.compile(
    r"\b(please (provide|confirm|tell|share|specify|choose|select)|could you|can you|"
    r"would you like|should i|shall i|do you want|let me know|is that (correct|right))\b",
    re.I,
)
_NEGATION_RE = re.compile(r"\b(not|never|unable)\b|n't\b", re.I)

_INCOME_RE = re.compile(r"\b(income|salary|earnings|paycheck)\b", re.I)
_EXPENSE_RE = re.compile(r"\b(expenses?|spent|spending|expenditures?)\b", re.I)

_NUM = r"\d[\d.,]*\d|\d"
_SYMBOL = r"(?:[A-Z]{0,2}\$|€|£|¥|₹)"
_CODE = r"(?:USD|EUR|GBP|CAD|AUD|CHF|INR|JPY|dollars?|euros?|pounds?|bucks)"
_CURRENCY_BEFORE_RE = re.compile(rf"(?:{_SYMBOL}|\b{_CODE})\s?(?P<num>{_NUM})", re.I)
_CURRENCY_AFTER_RE = re.compile(rf"(?P<num>{_NUM})\s?(?:{_SYMBOL}|{_CODE}\b)", re.I)
_PLAIN_NUMBER_RE = re.compile(rf"(?<![\w.,])(?P<num>{_NUM})(?![\w])")

# "for Personal Care", "under Groceries", stopping at punctuation, a
# parenthetical or a trailing clause ("to your expenses", "on Monday").
_FOR_PHRASE_RE = re.compile(
    r"\b(?:for|under)\s+(?:the\s+|your\s+)?(?:category\s+)?[\"'“‘]?"
    r"(?P<hint>[^.,;!?()\"“”]+?)[\"'”’]?\s*"
    r"(?=\(|[.,;!?]|\s+-\s+|\s+(?:category|to|on|at|from|today|yesterday)\b|$)",
    re.I,
)
_IN_CATEGORY_RE = re.compile(
    r"\b(?:in|to|under)\s+(?:the|your)\s+[\"'“‘]?(?P<hint>[^.,;!?()\"“”]+?)[\"'”’]?\s+category\b",
    re.I,
)
_PAREN_RE = re.compile(r"\(([^()]{1,60})\)")
_EXAMPLE_INTRO_RE = re.compile(r"^\s*(e\.g\.|i\.e\.|for example|such as|about|approx)", re.I)


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text or "") if s and s.strip()]


def extract_amount(sentence: str) -> Optional[Decimal]:
    """Currency-adjacent number first (earliest wins); else the only number."""
    hits = [m for rx in (_CURRENCY_BEFORE_RE, _CURRENCY_AFTER_RE) for m in rx.finditer(sentence)]
    if hits:
        first = min(hits, key=lambda m: m.start("num"))
        return parse_amount(first.group("num"))
    plain = [m.group("num") for m in _PLAIN_NUMBER_RE.finditer(sentence)]
    if len(plain) != 1:
        return None
    return parse_amount(plain[0])


def _is_confirmation_sentence(sentence: str) -> bool:
    if sentence.rstrip().endswith("?"):
        return False
    if not _COMPLETION_VERB_RE.search(sentence):
        return False
    if _REQUEST_RE.search(sentence) or _NEGATION_RE.search(sentence):
        return False
    return True


def find_confirmation(reply: Optional[str]) -> Optional[Confirmation]:
    """First sentence that reports a completed save together with an amount."""
    for sentence in split_sentences(reply or ""):
        if not _is_confirmation_sentence(sentence):
            continue
        amount = extract_amount(sentence)
        if amount is not None and amount > 0:
            return Confirmation(sentence=sentence, amount=amount)
    return None


def detect_type(sentence: str) -> Optional[TxnType]:
    income = bool(_INCOME_RE.search(sentence))
    expense = bool(_EXPENSE_RE.search(sentence))
    if income == expense:
        return None
    return "income" if income else "expense"


def _clean_hint(hint: str) -> str:
    return hint.strip().strip("\"'“”‘’").strip()


def category_hints(sentence: str) -> list[str]:
    hints = [_clean_hint(m.group("hint")) for m in _IN_CATEGORY_RE.finditer(sentence)]
    hints += [_clean_hint(m.group("hint")) for m in _FOR_PHRASE_RE.finditer(sentence)]
    return [h for h in hints if h]


def parenthetical(sentence: str) -> Optional[str]:
    for m in _PAREN_RE.finditer(sentence):
        inner = m.group(1).strip()
        if not inner or _EXAMPLE_INTRO_RE.match(inner) or any(ch.isdigit() for ch in inner):
            continue
        return inner
    return None


def resolve_category_hint(hint: Optional[str], txn_type: TxnType) -> Optional[str]:
    """Canonical label for a hint, only if it is allowed for the type."""
    if not hint:
        return None
    found = lookup(hint, reverse=False)
    if found and is_allowed(found, txn_type):
        return found
    return match_category(hint, txn_type)


# --- transcript walk --------------------------------------------------------

_QUOTED_RE = re.compile(r"(?<![A-Za-z])[\"'“‘]([^\"'“”‘’\n]{2,40})[\"'”’](?![A-Za-z])")
_EXAMPLES_RE = re.compile(
    r"\((?:e\.g\.|i\.e\.|for example|such as)[^)]*\)|\b(?:e\.g\.|for example|such as)[^.!?]*",
    re.I,
)
# Acknowledgements plus the polite and action words that go with them; a user
# turn made only of these ("Yes, please add it", "you pick") carries no item.
_ACK_WORDS = frozenset(
    {
        "yes", "yeah", "yep", "yup", "sure", "ok", "okay", "correct", "right",
        "confirm", "confirmed", "no", "nope", "please", "thanks", "thank", "you",
        "that's", "thats", "that", "this", "it", "is", "go", "ahead", "do", "exactly",
        "perfect", "great", "fine", "good", "sounds", "looks", "works", "alright",
        "cool", "add", "save", "log", "record", "track", "pick",
        "choose", "decide", "whatever", "up", "to", "me", "just", "and", "the", "a",
        "an", "now", "with", "all", "i", "i'm", "im", "agree", "done", "of", "course",
    }
)
_INTENT_RE = re.compile(
    r"\b(add|adding|log|record|track|enter|save|new)\b.*\b(expenses?|income|transactions?|spending)\b",
    re.I,
)
_WORD_RE = re.compile(r"[\w']+")
# "Options: Shopping, Personal Care, Entertainment" or "choose from ..." up to the
# end of the sentence.
_OPTION_LIST_RE = re.compile(
    r"\b(?:options?|choices|choose from|pick from|select from|one of)\b\s*:?[^.!?\n]*",
    re.I,
)


def turns_from_messages(messages: Iterable[Any]) -> list[ConversationTurn]:
    """Wire messages (dicts or objects with role/content) to user/assistant turns."""
    out: list[ConversationTurn] = []
    for m in messages:
        if isinstance(m, ConversationTurn):
            out.append(m)
            continue
        role = m.get("role") if isinstance(m, dict) else getattr(m, "role", None)
        if isinstance(m, dict):
            text = m.get("content", m.get("text"))
        else:
            text = getattr(m, "content", getattr(m, "text", None))
        if role in ("user", "assistant") and isinstance(text, str):
            out.append(ConversationTurn(role=role, text=text))
    return out


def recent_turns(
    transcript: Sequence[ConversationTurn], latest_reply: Optional[str]
) -> list[ConversationTurn]:
    """Newest-first turns belonging to the transaction being confirmed.

    The reply under evaluation is skipped when it is already the last turn; the
    walk stops at the previous assistant confirmation.
    """
    turns = list(transcript)
    if (
        turns
        and turns[-1].role == "assistant"
        and turns[-1].text.strip() == (latest_reply or "").strip()
    ):
        turns = turns[:-1]
    out: list[ConversationTurn] = []
    for turn in reversed(turns):
        if turn.role == "assistant" and find_confirmation(turn.text) is not None:
            break
        out.append(turn)
    return out


def find_recent(
    turns: Iterable[ConversationTurn], probe: Callable[[ConversationTurn], Optional[T]]
) -> Optional[T]:
    for turn in turns:
        found = probe(turn)
        if found is not None:
            return found
    return None


def mentioned_categories(text: str) -> set[str]:
    """Canonical labels named verbatim in the text."""
    lowered = (text or "").lower()
    return {
        c
        for c in CANONICAL_CATEGORIES
        if re.search(rf"\b{re.escape(c.lower())}\b", lowered)
    }


def category_probe(txn_type: TxnType) -> Callable[[ConversationTurn], Optional[str]]:
    def probe(turn: ConversationTurn) -> Optional[str]:
        text = _EXAMPLES_RE.sub(" ", turn.text or "")
        if turn.role == "assistant":
            # A menu of labels is a question, not an answer
            text = _OPTION_LIST_RE.sub(" ", text)
            for m in _QUOTED_RE.finditer(text):
                found = resolve_category_hint(m.group(1).strip(" ."), txn_type)
                if found:
                    return found
            if len(mentioned_categories(text)) > 1:
                return None
        return match_category(text, txn_type)

    return probe


def is_affirmation(text: str) -> bool:
    words = _WORD_RE.findall((text or "").lower())
    return bool(words) and all(w in _ACK_WORDS for w in words)


def description_probe(turn: ConversationTurn) -> Optional[str]:
    if turn.role != "user":
        return None
    text = (turn.text or "").strip()
    if not text or is_affirmation(text) or _INTENT_RE.search(text):
        return None
    cleaned = strip_filler(text)
    if len(cleaned) < 2:
        return None
    if all(w in _ACK_WORDS for w in _WORD_RE.findall(cleaned.lower())):
        return None
    return text


# --- extractor --------------------------------------------------------------


class ConfirmationExtractor:
    """Transcript + latest reply -> ExtractedTransaction or None. No I/O of its own."""

    def __init__(self, composer: Optional[DescriptionComposer] = None):
        self.composer = composer or DescriptionComposer()

    def extract(
        self, transcript: Sequence[ConversationTurn], latest_reply: Optional[str]
    ) -> Optional[ExtractedTransaction]:
        confirmation = find_confirmation(latest_reply)
        if confirmation is None:
            return None
        txn_type = detect_type(confirmation.sentence)
        if txn_type is None:
            log.info("confirmation without unambiguous type ignored")
            return None

        turns = recent_turns(transcript, latest_reply)

        category = None
        unresolved_hint = None
        for hint in category_hints(confirmation.sentence):
            category = resolve_category_hint(hint, txn_type)
            if category:
                break
            unresolved_hint = unresolved_hint or hint
        if category is None:
            category = find_recent(turns, category_probe(txn_type))
        if category is None:
            category = default_category(txn_type)

        raw_description = (
            parenthetical(confirmation.sentence)
            or unresolved_hint
            or find_recent(turns, description_probe)
            or ""
        )
        description = self.composer.compose(
            raw_description, txn_type, confirmation.amount, category
        )

        TRANSACTIONS_EXTRACTED.labels(type=txn_type).inc()
        log.info(
            "transaction confirmed in reply",
            extra={"type": txn_type, "category": category},
        )
        return ExtractedTransaction(
            type=txn_type,
            amount=confirmation.amount,
            category=category,
            description=description,
        )


def extract_transaction(
    transcript: Sequence[ConversationTurn],
    latest_reply: Optional[str],
    composer: Optional[DescriptionComposer] = None,
) -> Optional[ExtractedTransaction]:
    return ConfirmationExtractor(composer).extract(transcript, latest_reply)
