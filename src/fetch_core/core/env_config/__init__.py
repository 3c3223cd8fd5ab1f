"""
Environment configuration for fetch-core.

Example:
    >>> from fetch_core.core.env_config import load_from_env
    >>> config = load_from_env()
"""

from .loader import load_from_env
from .validator import FetchSettings

__all__ = [
    "load_from_env",
    "FetchSettings",
]
