"""Helpers building orjson-serialized success and problem responses."""
