"""
Utility Module for pdfquery.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exceptions
    - Common helpers
"""

from .logger import setup_logger, get_logger
from .helpers import ensure_directory, generate_timestamp, now_ms

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'generate_timestamp',
    'now_ms'
]
