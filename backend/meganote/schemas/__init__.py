"""Pydantic request/response schemas (API contract)."""
