"""
pv_reaper: Reclaim the EBS volumes behind Kubernetes PersistentVolumes.

Strips finalizers from and deletes every EBS-backed PersistentVolume in the
current cluster, then waits (bounded by a deadline) until EC2 confirms the
backing volumes are gone.
"""

from .cleanup import cleanup
from .context import Context
from .errors import (
    ClusterError,
    ContextCancelledError,
    MissingDeadlineError,
    ReaperError,
    VolumeQueryError,
    VolumesNotDeletedError,
)

__version__ = "0.1.0"

__all__ = [
    "ClusterError",
    "Context",
    "ContextCancelledError",
    "MissingDeadlineError",
    "ReaperError",
    "VolumeQueryError",
    "VolumesNotDeletedError",
    "cleanup",
]
