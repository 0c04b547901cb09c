"""Tests for kubectl-backed PersistentVolume access."""

import json
import subprocess

import pytest

from pv_reaper import kubectl
from pv_reaper.kubectl import KubectlError, PersistentVolumeAPI
from pv_reaper.volumes import PersistentVolumeRecord

PV_LIST = {
    "apiVersion": "v1",
    "kind": "List",
    "items": [
        {
            "metadata": {
                "name": "pvc-1",
                "annotations": {"pv.kubernetes.io/provisioned-by": "ebs.csi.aws.com"},
                "finalizers": ["kubernetes.io/pv-protection"],
            },
            "spec": {"csi": {"volumeHandle": "vol-1"}},
        },
        {"metadata": {"name": "local-1"}, "spec": {"local": {"path": "/mnt/disk"}}},
    ],
}


@pytest.fixture
def fake_run(monkeypatch):
    """Replace subprocess.run; set .result to control the CompletedProcess."""
    calls = []

    def run(cmd, **kwargs):
        calls.append(cmd)
        return run.result

    run.calls = calls
    run.result = subprocess.CompletedProcess([], 0, stdout="", stderr="")
    monkeypatch.setattr(kubectl.subprocess, "run", run)
    return run


def test_list_parses_persistent_volumes(fake_run):
    fake_run.result = subprocess.CompletedProcess([], 0, stdout=json.dumps(PV_LIST), stderr="")
    records = PersistentVolumeAPI().list()
    assert fake_run.calls == [["kubectl", "get", "persistentvolumes", "-o", "json"]]
    assert [r.name for r in records] == ["pvc-1", "local-1"]
    assert records[0].csi_volume_handle == "vol-1"


def test_context_is_passed_to_kubectl(fake_run):
    fake_run.result = subprocess.CompletedProcess([], 0, stdout='{"items": []}', stderr="")
    assert PersistentVolumeAPI(context="staging").list() == []
    assert fake_run.calls[0][:3] == ["kubectl", "--context", "staging"]


def test_list_rejects_invalid_json(fake_run):
    fake_run.result = subprocess.CompletedProcess([], 0, stdout="not json", stderr="")
    with pytest.raises(KubectlError, match="invalid JSON"):
        PersistentVolumeAPI().list()


def test_update_clears_finalizers_with_merge_patch(fake_run):
    PersistentVolumeAPI().update(PersistentVolumeRecord(name="pvc-1", finalizers=[]))
    cmd = fake_run.calls[0]
    assert cmd[:5] == ["kubectl", "patch", "persistentvolume", "pvc-1", "--type=merge"]
    assert cmd[5] == "-p"
    assert json.loads(cmd[6]) == {"metadata": {"finalizers": None}}


def test_delete_does_not_wait_for_removal(fake_run):
    PersistentVolumeAPI().delete("pvc-1")
    assert fake_run.calls == [["kubectl", "delete", "persistentvolume", "pvc-1", "--wait=false"]]


def test_forbidden_failure(fake_run):
    fake_run.result = subprocess.CompletedProcess(
        [],
        1,
        stdout="",
        stderr='Error from server (Forbidden): persistentvolumes "pvc-1" is forbidden: '
        'User "ci" cannot delete resource "persistentvolumes"\n',
    )
    with pytest.raises(KubectlError) as excinfo:
        PersistentVolumeAPI().delete("pvc-1")
    assert excinfo.value.forbidden
    assert "cannot delete resource" in str(excinfo.value)


def test_other_failure_is_not_forbidden(fake_run):
    fake_run.result = subprocess.CompletedProcess(
        [], 1, stdout="", stderr="The connection to the server localhost:8080 was refused"
    )
    with pytest.raises(KubectlError) as excinfo:
        PersistentVolumeAPI().list()
    assert not excinfo.value.forbidden


def test_failure_without_stderr_reports_status(fake_run):
    fake_run.result = subprocess.CompletedProcess([], 3, stdout="", stderr="")
    with pytest.raises(KubectlError, match="status 3"):
        PersistentVolumeAPI().delete("pvc-1")


def test_not_found_on_pv_named_forbidden_is_not_forbidden(fake_run):
    fake_run.result = subprocess.CompletedProcess(
        [], 1, stdout="", stderr='Error from server (NotFound): persistentvolumes "forbidden-data" not found\n'
    )
    with pytest.raises(KubectlError) as excinfo:
        PersistentVolumeAPI().delete("forbidden-data")
    assert not excinfo.value.forbidden


def test_kubectl_timeout_raises_kubectl_error(monkeypatch):
    def run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(kubectl.subprocess, "run", run)
    with pytest.raises(KubectlError, match="timed out after 60s") as excinfo:
        PersistentVolumeAPI().list()
    assert not excinfo.value.forbidden


def test_missing_kubectl_raises_kubectl_error(monkeypatch):
    def run(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "kubectl")

    monkeypatch.setattr(kubectl.subprocess, "run", run)
    with pytest.raises(KubectlError, match="cannot run kubectl"):
        PersistentVolumeAPI().delete("pvc-1")
