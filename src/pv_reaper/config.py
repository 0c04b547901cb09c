"""
Constants for pv-reaper.

Defines the PersistentVolume annotation and provisioner names that mark a
volume as EBS-backed, the EC2 codes and states that mean a volume is gone,
and the timing used while waiting for volumes to disappear.
"""

# Annotation recording which provisioner created a PersistentVolume.
PROVISIONED_BY_ANNOTATION = "pv.kubernetes.io/provisioned-by"

# EBS CSI driver names (volume id is spec.csi.volumeHandle).
CSI_PROVISIONERS = frozenset({"aws-ebs-csi-driver", "ebs.csi.aws.com"})

# Legacy in-tree plugin (volume id is the last segment of
# spec.awsElasticBlockStore.volumeID, e.g. aws://us-east-1a/vol-0abc).
IN_TREE_PROVISIONERS = frozenset({"kubernetes.io/aws-ebs"})

# EC2 error code returned by DescribeVolumes for an unknown volume id.
VOLUME_NOT_FOUND_CODE = "InvalidVolume.NotFound"

# Terminal EC2 volume state; the record may linger briefly after deletion.
VOLUME_STATE_DELETED = "deleted"

# Seconds between sweeps over the remaining volumes. Fixed to stay well
# inside EC2 API rate limits.
POLL_INTERVAL_SECONDS = 2.0

# Per-invocation kubectl timeout.
KUBECTL_TIMEOUT_SECONDS = 60

# Default overall deadline for the CLI.
DEFAULT_TIMEOUT_SECONDS = 300

# botocore client timeouts (seconds) and retry attempts for EC2 calls.
EC2_CONNECT_TIMEOUT_SECONDS = 10
EC2_READ_TIMEOUT_SECONDS = 30
EC2_MAX_ATTEMPTS = 3
