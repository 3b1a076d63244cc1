"""Pydantic models of the response envelopes shared by every endpoint."""
