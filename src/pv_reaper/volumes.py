"""
PersistentVolume records and EBS volume id derivation.

A PersistentVolume is EBS-backed when its provisioned-by annotation names
the EBS CSI driver or the legacy in-tree aws-ebs plugin. Anything else is
left alone.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional

from .config import CSI_PROVISIONERS, IN_TREE_PROVISIONERS, PROVISIONED_BY_ANNOTATION


class Provisioner(enum.Enum):
    CSI = "csi"
    IN_TREE = "in-tree"
    UNRECOGNIZED = "unrecognized"


@dataclass
class PersistentVolumeRecord:
    """The fields of a PersistentVolume that cleanup reads or mutates."""

    name: str
    annotations: dict[str, str] = field(default_factory=dict)
    finalizers: list[str] = field(default_factory=list)
    csi_volume_handle: Optional[str] = None
    aws_ebs_volume_id: Optional[str] = None

    @classmethod
    def from_dict(cls, obj: dict) -> "PersistentVolumeRecord":
        """
        Build a record from a PersistentVolume as returned by kubectl -o json.

        Args:
            obj: PersistentVolume JSON ({"metadata": ..., "spec": ...}).
        """
        meta = obj.get("metadata", {})
        spec = obj.get("spec", {})
        return cls(
            name=meta.get("name", ""),
            annotations=dict(meta.get("annotations") or {}),
            finalizers=list(meta.get("finalizers") or []),
            csi_volume_handle=(spec.get("csi") or {}).get("volumeHandle"),
            aws_ebs_volume_id=(spec.get("awsElasticBlockStore") or {}).get("volumeID"),
        )

    @property
    def provisioned_by(self) -> str:
        return self.annotations.get(PROVISIONED_BY_ANNOTATION, "")


def classify(record: PersistentVolumeRecord) -> Provisioner:
    """Classify a PersistentVolume by its provisioned-by annotation."""
    provisioner = record.provisioned_by
    if provisioner in CSI_PROVISIONERS:
        return Provisioner.CSI
    if provisioner in IN_TREE_PROVISIONERS:
        return Provisioner.IN_TREE
    return Provisioner.UNRECOGNIZED


def volume_id_for(record: PersistentVolumeRecord) -> Optional[str]:
    """
    Return the EBS volume id backing a PersistentVolume, or None.

    CSI volumes use the volume handle as-is. In-tree volumes store a
    URI-like ``aws://<zone>/<volume-id>``; only the part after the last
    slash is the id. None means the PV is not EBS-backed (or its spec lacks
    the expected field) and must not be touched.
    """
    kind = classify(record)
    if kind is Provisioner.CSI:
        volume_id = record.csi_volume_handle
    elif kind is Provisioner.IN_TREE:
        volume_id = record.aws_ebs_volume_id
        if volume_id:
            volume_id = volume_id.rsplit("/", 1)[-1]
    else:
        return None
    return volume_id or None
