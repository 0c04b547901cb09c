"""
Kubectl invocation and PersistentVolume access.

All cluster access goes through subprocess kubectl calls. This module
provides a small wrapper plus PersistentVolumeAPI, which lists, patches
and deletes PersistentVolumes and reports failures as KubectlError.
"""

from __future__ import annotations

import json
import re
import subprocess
from typing import Optional

from .config import KUBECTL_TIMEOUT_SECONDS
from .volumes import PersistentVolumeRecord

# kubectl prints the API status reason, e.g. "Error from server (Forbidden): ...".
_FORBIDDEN_RE = re.compile(r"Error from server \(Forbidden\)")


class KubectlError(Exception):
    """A kubectl invocation exited non-zero or returned unusable output."""

    def __init__(self, message: str, stderr: str = "") -> None:
        super().__init__(message)
        self.stderr = stderr

    @property
    def forbidden(self) -> bool:
        """True when the API server rejected the request for lack of RBAC permissions."""
        return _FORBIDDEN_RE.search(self.stderr) is not None


def run_kubectl(
    args: list[str],
    context: Optional[str] = None,
    capture: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run kubectl with the given args.

    Args:
        args: List of arguments (e.g. ["get", "persistentvolumes", "-o", "json"]).
        context: Optional kubeconfig context; the current context is used otherwise.
        capture: If True, capture stdout/stderr; otherwise inherit from process.

    Returns:
        CompletedProcess with returncode, stdout, stderr.

    Raises:
        KubectlError: kubectl could not be started or ran longer than
            KUBECTL_TIMEOUT_SECONDS.
    """
    cmd = ["kubectl"]
    if context:
        cmd.extend(["--context", context])
    cmd.extend(args)
    try:
        return subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            timeout=KUBECTL_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired as exc:
        raise KubectlError(f"kubectl {args[0]} timed out after {KUBECTL_TIMEOUT_SECONDS}s") from exc
    except OSError as exc:
        raise KubectlError(f"cannot run kubectl: {exc}") from exc


def _check(result: subprocess.CompletedProcess) -> subprocess.CompletedProcess:
    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        raise KubectlError(stderr or f"kubectl exited with status {result.returncode}", stderr)
    return result


class PersistentVolumeAPI:
    """
    PersistentVolume operations against the cluster selected by ``context``.

    Every method raises KubectlError on failure; check ``forbidden`` to tell
    missing permissions apart from other faults.
    """

    def __init__(self, context: Optional[str] = None) -> None:
        self.context = context

    def list(self) -> list[PersistentVolumeRecord]:
        result = _check(
            run_kubectl(["get", "persistentvolumes", "-o", "json"], context=self.context)
        )
        try:
            obj = json.loads(result.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise KubectlError(f"invalid JSON from kubectl get persistentvolumes: {exc}") from exc
        return [PersistentVolumeRecord.from_dict(item) for item in obj.get("items", [])]

    def update(self, record: PersistentVolumeRecord) -> None:
        """Persist the record's finalizers (an empty list clears them)."""
        patch = {"metadata": {"finalizers": record.finalizers or None}}
        _check(
            run_kubectl(
                [
                    "patch",
                    "persistentvolume",
                    record.name,
                    "--type=merge",
                    "-p",
                    json.dumps(patch),
                ],
                context=self.context,
            )
        )

    def delete(self, name: str) -> None:
        # Returns once the API server accepts the delete, not once the object is gone.
        _check(
            run_kubectl(
                ["delete", "persistentvolume", name, "--wait=false"],
                context=self.context,
            )
        )
