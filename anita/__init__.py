"""ANITA backend: conversational transaction ingestion for the finance assistant."""

__version__ = "0.1.0"
