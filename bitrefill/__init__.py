"""Async client for the Bitrefill v2 marketplace API."""

__version__ = "0.1.0"
