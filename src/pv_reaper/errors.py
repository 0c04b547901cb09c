"""
Exceptions raised by pv-reaper.

ClusterError and MissingDeadlineError are fatal. VolumesNotDeletedError is
the only partial outcome: PersistentVolumes were removed but some EBS
volumes were still present when time ran out, and re-running is safe.
"""

from __future__ import annotations

from typing import Iterable


class ReaperError(Exception):
    """Base class for all pv-reaper errors."""


class MissingDeadlineError(ReaperError):
    """Cleanup was started with a context that carries no deadline."""

    def __init__(self, message: str = "no deadline set on the context passed to cleanup()") -> None:
        super().__init__(message)


class ClusterError(ReaperError):
    """Listing, patching or deleting PersistentVolumes failed."""

    def __init__(self, message: str, forbidden: bool = False) -> None:
        super().__init__(message)
        self.forbidden = forbidden


class VolumeQueryError(ReaperError):
    """DescribeVolumes failed for a reason other than the volume being absent."""

    def __init__(self, volume_id: str, message: str) -> None:
        super().__init__(message)
        self.volume_id = volume_id


class ContextCancelledError(ReaperError):
    """The context was cancelled or hit its deadline during a provider call."""


class VolumesNotDeletedError(ReaperError):
    """Some tracked EBS volumes still existed when the deadline passed."""

    def __init__(self, volume_ids: Iterable[str], cancelled: bool = False) -> None:
        self.volume_ids = list(volume_ids)
        self.cancelled = cancelled
        reason = "cancelled while waiting" if cancelled else "deadline surpassed waiting"
        super().__init__(
            f"{reason} for AWS EBS volumes to be deleted: {', '.join(self.volume_ids)}"
        )
