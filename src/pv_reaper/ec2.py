"""
EBS volume existence checks against EC2.

EbsVolumeAPI answers one question per volume id: does EC2 still have it?
Calls are bounded by a Context, so cancelling the context (or reaching its
deadline) abandons a DescribeVolumes request that is still in flight.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import (
    EC2_CONNECT_TIMEOUT_SECONDS,
    EC2_MAX_ATTEMPTS,
    EC2_READ_TIMEOUT_SECONDS,
    VOLUME_NOT_FOUND_CODE,
    VOLUME_STATE_DELETED,
)
from .context import Context
from .errors import ContextCancelledError, VolumeQueryError

# How often a waiting caller re-checks its context while a request is in flight.
_CANCEL_CHECK_SECONDS = 0.1


def create_ec2_client(region: Optional[str] = None, profile: Optional[str] = None):
    """
    Build a boto3 EC2 client with bounded timeouts.

    Args:
        region: AWS region; boto3's default resolution applies when None.
        profile: Named AWS profile; the default credential chain applies when None.
    """
    session = boto3.session.Session(profile_name=profile, region_name=region)
    return session.client(
        "ec2",
        config=Config(
            connect_timeout=EC2_CONNECT_TIMEOUT_SECONDS,
            read_timeout=EC2_READ_TIMEOUT_SECONDS,
            retries={"max_attempts": EC2_MAX_ATTEMPTS, "mode": "standard"},
        ),
    )


class EbsVolumeAPI:
    """
    Context-bounded DescribeVolumes over a boto3 EC2 client.

    Each request runs on a daemon thread while the caller waits on the
    context. An abandoned request is left to finish on its own and never
    holds up interpreter exit.
    """

    def __init__(self, ec2_client) -> None:
        self.ec2 = ec2_client

    def _call(self, ctx: Context, fn: Callable[..., Any], **kwargs: Any) -> Any:
        if ctx.done():
            raise ContextCancelledError("context done before calling EC2")
        outcome: dict[str, Any] = {}
        finished = threading.Event()

        def run() -> None:
            try:
                outcome["result"] = fn(**kwargs)
            except Exception as exc:
                outcome["error"] = exc
            finally:
                finished.set()

        threading.Thread(target=run, name="pv-reaper-ec2", daemon=True).start()
        while not finished.wait(_CANCEL_CHECK_SECONDS):
            if ctx.done():
                raise ContextCancelledError("context done while waiting for EC2")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    def describe_volume(self, ctx: Context, volume_id: str) -> Optional[str]:
        """
        Return the EC2 state of one volume, or None if EC2 does not know it.

        Raises:
            VolumeQueryError: DescribeVolumes failed for any other reason.
            ContextCancelledError: ctx was cancelled or expired.
        """
        try:
            result = self._call(ctx, self.ec2.describe_volumes, VolumeIds=[volume_id])
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == VOLUME_NOT_FOUND_CODE:
                return None
            raise VolumeQueryError(volume_id, f"cannot describe EBS volume {volume_id}: {exc}") from exc
        except BotoCoreError as exc:
            raise VolumeQueryError(volume_id, f"cannot describe EBS volume {volume_id}: {exc}") from exc

        volumes = result.get("Volumes") or []
        if not volumes:
            return None
        return volumes[0].get("State")

    def volume_exists(self, ctx: Context, volume_id: str) -> bool:
        """False once EC2 reports the volume as not found or in the deleted state."""
        state = self.describe_volume(ctx, volume_id)
        if state is None or state == VOLUME_STATE_DELETED:
            return False
        return True
