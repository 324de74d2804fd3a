"""cafsample CLI package.

This package provides the command-line interface for running the demo server
and managing the CBPII member and its keys.
"""

from .main import app, main

__all__ = ["app", "main"]
