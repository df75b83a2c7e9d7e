"""Research, generate and publish long-form articles through a real browser."""

__version__ = "0.1.0"
