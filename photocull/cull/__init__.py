"""
Cull engine for photocull.

Public API:
- plan: Compute per-group move/delete operations (pure, no filesystem access)
- execute: Run plans and record each group in the history log
- summarize: Count per-file results by status
"""

from __future__ import annotations

from .planner import plan, suffixed_path
from .executor import DestinationReservations, execute, summarize

__all__ = [
    'plan',
    'suffixed_path',
    'execute',
    'summarize',
    'DestinationReservations',
]
