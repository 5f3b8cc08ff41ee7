"""
Utility functions for the BrainBites time economy
"""

import logging
import math
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


def format_time(seconds: int) -> str:
    """Format a balance for display: 1h 5m, 3m 20s or 45s (sign dropped)"""
    abs_seconds = abs(int(seconds))
    hours = abs_seconds // 3600
    minutes = (abs_seconds % 3600) // 60
    secs = abs_seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    elif minutes > 0:
        return f"{minutes}m {secs}s"
    else:
        return f"{secs}s"


def fire_and_forget(func: Callable[..., Any], *args, **kwargs) -> None:
    """Call an external collaborator without letting its failure escape"""
    try:
        func(*args, **kwargs)
    except Exception as e:
        name = getattr(func, "__qualname__", repr(func))
        logger.error(f"Error in {name}: {e}", exc_info=True)


def calculate_percentage(part: int, total: int) -> int:
    """Percentage rounded half up, 0 when total is 0"""
    if total <= 0:
        return 0
    return math.floor(part / total * 100 + 0.5)
