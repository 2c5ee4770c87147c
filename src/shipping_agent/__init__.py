"""Shipping agent: a chat endpoint that quotes, books and tracks cargo shipments."""

__version__ = "0.1.0"
