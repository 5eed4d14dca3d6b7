"""Prometheus metrics for the ingestion pipeline and admission guard."""

from prometheus_client import Counter

ADMISSION_DECISIONS = Counter(
    "anita_admission_decisions_total",
    "Admission guard decisions by route",
    ["route", "outcome"],  # outcome=admitted|rejected
)

TRANSACTIONS_EXTRACTED = Counter(
    "anita_transactions_extracted_total",
    "Transactions recognised in assistant confirmations",
    ["type"],  # type=income|expense
)

DESCRIPTION_SOURCE = Counter(
    "anita_description_source_total",
    "Which stage produced a transaction description",
    ["source"],  # source=clean|completion|fallback
)

COMPLETION_FAILURES = Counter(
    "anita_completion_failures_total",
    "Description enhancer failures that fell back to deterministic cleanup",
    ["reason"],  # reason=timeout|transport|http|malformed|empty|too_long|error
)

# Prime label series so they appear immediately in /metrics
for _outcome in ("admitted", "rejected"):
    ADMISSION_DECISIONS.labels(route="chat-completion", outcome=_outcome).inc(0)
for _type in ("income", "expense"):
    TRANSACTIONS_EXTRACTED.labels(type=_type).inc(0)
for _source in ("clean", "completion", "fallback"):
    DESCRIPTION_SOURCE.labels(source=_source).inc(0)
