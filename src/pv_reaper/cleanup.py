"""
Cleanup logic: unprotect and delete EBS-backed PVs, then wait for EBS.

unprotect_and_delete() removes finalizers from and deletes every EBS-backed
PersistentVolume, returning the EBS volume ids to track. wait_for_deletion()
polls EC2 until those volumes are gone or the context's deadline passes.
cleanup() runs both after checking that a deadline was supplied.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol

from .config import POLL_INTERVAL_SECONDS, PROVISIONED_BY_ANNOTATION
from .context import Context
from .errors import (
    ClusterError,
    ContextCancelledError,
    MissingDeadlineError,
    VolumeQueryError,
    VolumesNotDeletedError,
)
from .kubectl import KubectlError
from .volumes import PersistentVolumeRecord, Provisioner, classify, volume_id_for

logger = logging.getLogger(__name__)


class ClusterVolumes(Protocol):
    """PersistentVolume access; failures raise KubectlError."""

    def list(self) -> list[PersistentVolumeRecord]: ...

    def update(self, record: PersistentVolumeRecord) -> None: ...

    def delete(self, name: str) -> None: ...


class VolumeChecker(Protocol):
    """EBS existence check; failures raise VolumeQueryError or ContextCancelledError."""

    def volume_exists(self, ctx: Context, volume_id: str) -> bool: ...


def _cluster_error(message: str, exc: KubectlError, verb: str) -> ClusterError:
    message = f"{message}: {exc}"
    if exc.forbidden:
        message = (
            f"{message} (deleting a cluster requires permission to {verb} "
            "Kubernetes Persistent Volumes)"
        )
    return ClusterError(message, forbidden=exc.forbidden)


def unprotect_and_delete(
    cluster: ClusterVolumes,
    log: Optional[logging.Logger] = None,
) -> list[str]:
    """
    Remove finalizers from and delete every EBS-backed PersistentVolume.

    PVs that are not EBS-backed are skipped and never modified. The first
    failing list, patch or delete aborts the whole run.

    Args:
        cluster: PersistentVolume access (see ClusterVolumes).
        log: Receives per-PV progress; defaults to this module's logger.

    Returns:
        EBS volume ids in discovery order, without duplicates.

    Raises:
        ClusterError: A kubectl call failed; ``forbidden`` is set when it was
            a permissions problem.
    """
    log = log or logger
    try:
        records = cluster.list()
    except KubectlError as exc:
        raise _cluster_error("cannot list Kubernetes Persistent Volumes", exc, "list") from exc

    tracked: dict[str, None] = {}
    for record in records:
        volume_id = volume_id_for(record)
        if volume_id is None:
            if classify(record) is Provisioner.UNRECOGNIZED:
                log.debug(
                    "PV %s is not EBS, it is '%s': '%s', skip",
                    record.name,
                    PROVISIONED_BY_ANNOTATION,
                    record.provisioned_by,
                )
            else:
                log.warning(
                    "PV %s is provisioned by '%s' but has no EBS volume id, skip",
                    record.name,
                    record.provisioned_by,
                )
            continue
        tracked[volume_id] = None

        # Remove deletion protection.
        record.finalizers = []
        log.debug("updating Kubernetes Persistent Volume (setting finalizers to null) %s", record.name)
        try:
            cluster.update(record)
        except KubectlError as exc:
            raise _cluster_error(
                f"cannot update Kubernetes Persistent Volume {record.name}", exc, "patch"
            ) from exc

        log.debug("deleting Kubernetes Persistent Volume %s", record.name)
        try:
            cluster.delete(record.name)
        except KubectlError as exc:
            raise _cluster_error(
                f"cannot delete Kubernetes Persistent Volume {record.name}", exc, "delete"
            ) from exc

    log.info("deleted %d EBS-backed Kubernetes Persistent Volume(s)", len(tracked))
    return list(tracked)


def wait_for_deletion(
    ctx: Context,
    volumes: VolumeChecker,
    volume_ids: Iterable[str],
    poll_interval: float = POLL_INTERVAL_SECONDS,
    log: Optional[logging.Logger] = None,
) -> None:
    """
    Poll EC2 until every volume in ``volume_ids`` is gone.

    Each sweep checks every remaining id once. Absent volumes are dropped for
    good; query failures are logged and retried on the next sweep. Between
    sweeps the loop sleeps ``poll_interval``, waking early if ctx is
    cancelled or its deadline passes.

    Raises:
        VolumesNotDeletedError: Volumes remained when ctx was done.
    """
    log = log or logger
    remaining = list(dict.fromkeys(volume_ids))
    while remaining and not ctx.done():
        still_present = []
        for index, volume_id in enumerate(remaining):
            try:
                exists = volumes.volume_exists(ctx, volume_id)
            except ContextCancelledError:
                still_present.extend(remaining[index:])
                break
            except VolumeQueryError as exc:
                log.warning(
                    "error when checking existence of AWS EBS volume %s: %s", volume_id, exc
                )
                still_present.append(volume_id)
                continue
            if exists:
                still_present.append(volume_id)
            else:
                log.debug("AWS EBS volume %s was deleted", volume_id)
        remaining = still_present
        if remaining:
            ctx.wait(poll_interval)

    if remaining:
        raise VolumesNotDeletedError(remaining, cancelled=ctx.cancelled)


def cleanup(
    ctx: Context,
    cluster: ClusterVolumes,
    volumes: VolumeChecker,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    log: Optional[logging.Logger] = None,
) -> None:
    """
    Delete all EBS-backed PersistentVolumes and wait for their EBS volumes to go.

    Args:
        ctx: Must carry a deadline; bounds polling and every EC2 call.
        cluster: PersistentVolume access.
        volumes: EBS existence check.
        poll_interval: Seconds between sweeps over the remaining volumes.
        log: Diagnostics sink; defaults to this module's logger.

    Raises:
        MissingDeadlineError: ctx has no deadline; nothing was touched.
        ClusterError: Listing, patching or deleting a PV failed.
        VolumesNotDeletedError: Some volumes still existed at the deadline.
    """
    log = log or logger
    if ctx.deadline is None:
        raise MissingDeadlineError()

    volume_ids = unprotect_and_delete(cluster, log=log)
    wait_for_deletion(ctx, volumes, volume_ids, poll_interval=poll_interval, log=log)
    log.info("all %d tracked AWS EBS volume(s) are deleted", len(volume_ids))
