"""
Formatting utilities for photocull.

Provides human-readable formatting for numbers, time estimates, file sizes
and similarity scores.
"""

from __future__ import annotations

from ..models import format_size


def format_number(n: int) -> str:
    """
    Format large numbers with commas for readability.

    Examples:
        >>> format_number(1234567)
        '1,234,567'
    """
    return f"{n:,}"


def format_time_estimate(seconds: float) -> str:
    """
    Format a duration for log lines.

    Short durations keep one decimal so quick cached rescans do not all
    read "0s".

    Examples:
        >>> format_time_estimate(0.42)
        '0.4s'
        >>> format_time_estimate(45)
        '45s'
        >>> format_time_estimate(150)
        '2m 30s'
        >>> format_time_estimate(3665)
        '1h 1m'
    """
    if seconds < 10:
        return f"{seconds:.1f}s"
    if seconds < 60:
        return f"{int(seconds)}s"
    if seconds < 3600:
        return f"{int(seconds / 60)}m {int(seconds % 60)}s"
    hours = int(seconds / 3600)
    minutes = int((seconds % 3600) / 60)
    return f"{hours}h {minutes}m"


def format_similarity(similarity: float) -> str:
    """
    Format a 0-1 similarity as a percentage.

    Examples:
        >>> format_similarity(0.8789)
        '87.9%'
    """
    return f"{similarity * 100:.1f}%"


__all__ = ['format_number', 'format_time_estimate', 'format_size', 'format_similarity']
