"""Scribe - transcript ingestion and meeting summarization API."""

__version__ = "0.1.0"
