"""Multi-source air quality index aggregation."""

__version__ = "0.1.0"
