"""Pydantic request/response schemas for the Scribe API."""
