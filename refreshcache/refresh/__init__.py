"""refreshcache.refresh

Background refresh of registered keys.
"""

from .scheduler import RefreshOutcome, RefreshScheduler

__all__ = ["RefreshOutcome", "RefreshScheduler"]
