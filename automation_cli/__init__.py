"""Operator tooling for a local automation oracle network."""

__version__ = "0.1.0"

__all__ = ["__version__"]
