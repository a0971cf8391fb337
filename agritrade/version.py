"""Version information for agritrade."""

__version__ = "0.3.0"
