"""Interactive command-line client for the Stellar network."""

__version__ = "1.1.0"
