"""Shared fakes for pv-reaper tests."""

from __future__ import annotations

import pytest

from pv_reaper.context import Context
from pv_reaper.kubectl import KubectlError
from pv_reaper.volumes import PersistentVolumeRecord


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class ManualContext(Context):
    """Context on a FakeClock whose wait() advances time instead of sleeping."""

    def __init__(self, deadline, clock: FakeClock) -> None:
        super().__init__(deadline=deadline, clock=clock)
        self.clock = clock
        self.waits: list[float] = []

    def wait(self, seconds: float) -> bool:
        self.waits.append(seconds)
        remaining = self.remaining()
        self.clock.now += seconds if remaining is None else min(seconds, remaining)
        return self.done()


class FakeCluster:
    """In-memory PersistentVolume store recording every call."""

    def __init__(self, records, failures=None) -> None:
        self.records = list(records)
        self.failures = failures or {}
        self.calls: list[tuple] = []

    def list(self):
        self.calls.append(("list",))
        if "list" in self.failures:
            raise self.failures["list"]
        return self.records

    def update(self, record):
        self.calls.append(("update", record.name, list(record.finalizers)))
        if ("update", record.name) in self.failures:
            raise self.failures[("update", record.name)]

    def delete(self, name):
        self.calls.append(("delete", name))
        if ("delete", name) in self.failures:
            raise self.failures[("delete", name)]


class FakeVolumes:
    """
    Scripted existence checks.

    ``outcomes`` maps a volume id to a list of results (bool or exception),
    consumed one per call; the last one repeats.
    """

    def __init__(self, outcomes=None) -> None:
        self.outcomes = {k: list(v) for k, v in (outcomes or {}).items()}
        self.calls: list[str] = []

    def volume_exists(self, ctx, volume_id):
        self.calls.append(volume_id)
        script = self.outcomes.get(volume_id, [False])
        outcome = script.pop(0) if len(script) > 1 else script[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def csi_pv(name, handle, finalizers=("kubernetes.io/pv-protection",), driver="ebs.csi.aws.com"):
    return PersistentVolumeRecord(
        name=name,
        annotations={"pv.kubernetes.io/provisioned-by": driver},
        finalizers=list(finalizers),
        csi_volume_handle=handle,
    )


def in_tree_pv(name, volume_id, finalizers=("kubernetes.io/pv-protection",)):
    return PersistentVolumeRecord(
        name=name,
        annotations={"pv.kubernetes.io/provisioned-by": "kubernetes.io/aws-ebs"},
        finalizers=list(finalizers),
        aws_ebs_volume_id=volume_id,
    )


def other_pv(name, provisioner="nfs.csi.k8s.io"):
    annotations = {"pv.kubernetes.io/provisioned-by": provisioner} if provisioner else {}
    return PersistentVolumeRecord(
        name=name,
        annotations=annotations,
        finalizers=["kubernetes.io/pv-protection"],
        csi_volume_handle="nfs-share-1",
    )


def forbidden(verb="patch"):
    return KubectlError(
        f'persistentvolumes "pv" is forbidden: User "ci" cannot {verb} resource',
        stderr=f'Error from server (Forbidden): persistentvolumes "pv" is forbidden: User "ci" cannot {verb} resource',
    )


@pytest.fixture
def clock():
    return FakeClock(now=1000.0)


@pytest.fixture
def ctx(clock):
    """Context with 60 seconds left on a fake clock."""
    return ManualContext(deadline=clock.now + 60, clock=clock)
