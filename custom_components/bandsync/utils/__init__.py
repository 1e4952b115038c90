# File: utils/__init__.py
"""Pure Python utilities for BandSync.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Submodules:
    - dt_utils: Date/time parsing, timezone conversion, weekday numbering

Usage:
    from . import dt_utils
    from .dt_utils import dt_parse
"""

from . import dt_utils

__all__ = ["dt_utils"]
