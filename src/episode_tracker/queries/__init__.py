"""Queries package - read-only operations for viewing progress.

Provides query objects for reading stored progress without modifying
state. Used by the CLI for 'list', 'show' and 'stats' commands.
"""

from .progress import ProgressQuery
from .stats import StatsQuery

__all__ = ['ProgressQuery', 'StatsQuery']
