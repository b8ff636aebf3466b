"""Multi-source NBA player statistics aggregation."""

__version__ = "0.1.0"
