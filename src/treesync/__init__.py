"""
treesync - publish a directory to a git branch.

Copies build output into a checkout and pushes it, retrying when concurrent
jobs publish to the same branch.
"""

__version__ = "0.3.0"

# Re-export the core API for convenience
from treesync.core.config.models import SyncConfig
from treesync.core.sync import PublishReport, SyncRequest, synchronize

__all__ = ["PublishReport", "SyncConfig", "SyncRequest", "synchronize", "__version__"]
