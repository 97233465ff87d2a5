"""Workflows package - orchestrators for multi-step operations.

Implements the Command/Orchestrator pattern: load a record, run a
tracker transition, persist the result.
"""

from .tracking import TrackingWorkflow, StartResult

__all__ = ['TrackingWorkflow', 'StartResult']
