"""Task notification, visibility and reminder engine."""

__version__ = "0.3.0"
