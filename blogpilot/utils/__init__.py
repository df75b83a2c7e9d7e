"""Utility exports."""

from .file_helper import ensure_parent, slugify, write_text_atomic
from .html import html_to_text
from .logging import configure_logging, get_logger

__all__ = [
    "ensure_parent",
    "slugify",
    "write_text_atomic",
    "html_to_text",
    "configure_logging",
    "get_logger",
]
