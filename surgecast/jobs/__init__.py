"""Background jobs"""

from .scheduler import RefreshFailure, RefreshScheduler, RefreshSummary, next_boundary

__all__ = ["RefreshFailure", "RefreshScheduler", "RefreshSummary", "next_boundary"]
