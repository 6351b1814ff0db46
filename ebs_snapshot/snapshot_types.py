from dataclasses import dataclass, field, asdict
from typing import Dict, Optional

from kubernetes import client


# Kubernetes core objects consumed and produced by the plugin
ObjectMeta = client.V1ObjectMeta
PersistentVolume = client.V1PersistentVolume
PersistentVolumeSpec = client.V1PersistentVolumeSpec
PersistentVolumeClaim = client.V1PersistentVolumeClaim
PersistentVolumeClaimSpec = client.V1PersistentVolumeClaimSpec
ResourceRequirements = client.V1VolumeResourceRequirements
LabelSelector = client.V1LabelSelector
EBSVolumeSource = client.V1AWSElasticBlockStoreVolumeSource


@dataclass(frozen=True)
class AWSElasticBlockStoreSnapshotSource:
    snapshot_id: str


@dataclass(frozen=True)
class VolumeSnapshotDataSource:
    aws_elastic_block_store: Optional[AWSElasticBlockStoreSnapshotSource] = None

    @classmethod
    def from_dict(cls, data: dict) -> "VolumeSnapshotDataSource":
        """Load from the VolumeSnapshotData resource layout, eg {"awsElasticBlockStore": {"snapshotId": ...}}"""
        if not (ebs := data.get("awsElasticBlockStore")):
            return cls()
        return cls(aws_elastic_block_store=AWSElasticBlockStoreSnapshotSource(snapshot_id=ebs.get("snapshotId", "")))

    def to_dict(self) -> dict:
        if not self.aws_elastic_block_store:
            return {}
        return {"awsElasticBlockStore": {"snapshotId": self.aws_elastic_block_store.snapshot_id}}


@dataclass(frozen=True)
class VolumeSnapshotData:
    spec: VolumeSnapshotDataSource
    name: Optional[str] = None


@dataclass
class VolumeCreationConfig:
    """Options of a new EBS disk restored from a snapshot"""

    capacity_gb: int
    snapshot_id: str
    tags: Dict[str, str] = field(default_factory=dict)
    pvc_name: Optional[str] = None
    volume_type: Optional[str] = None
    availability_zone: Optional[str] = None
    iops_per_gb: Optional[int] = None
    encrypted: Optional[bool] = None
    kms_key_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProvisionedVolume:
    volume_source: EBSVolumeSource
    labels: Dict[str, str] = field(default_factory=dict)

    @property
    def volume_id(self) -> str:
        return self.volume_source.volume_id

    def to_dict(self) -> dict:
        return dict(
            awsElasticBlockStore=dict(
                volumeID=self.volume_source.volume_id,
                fsType=self.volume_source.fs_type,
                partition=self.volume_source.partition,
                readOnly=self.volume_source.read_only,
            ),
            labels=dict(self.labels),
        )
