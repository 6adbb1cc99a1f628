"""
StreamShare - Source Package

A small shared-expense tracker for households that split recurring
subscription costs (streaming services and the like) between members
and track who has paid for each month.

PRINCIPLES:
1. Allocation is a pure computation over a snapshot
2. Only the orchestrator mutates the snapshot
3. A failed write leaves the previous valid state in place
4. Storage layer is swappable
"""

__version__ = "1.1.0"
__author__ = "StreamShare Team"
