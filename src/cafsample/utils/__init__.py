"""Utility modules for the cafsample application."""

from .nonce import generate_nonce

__all__ = ["generate_nonce"]
