"""
Shared Utilities

Common functions used across all modules.
"""

from src.utils.io import save_json, to_json
from src.utils.logging_config import setup_logging

__all__ = [
    "save_json",
    "setup_logging",
    "to_json",
]
