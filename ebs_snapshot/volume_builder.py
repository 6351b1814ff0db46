from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Tuple, final

from . import snapshot_types as types
from .configuration import FS_TYPE, PARTITION, READ_ONLY, VOLUME_NAME_PREFIX, MAX_TAG_LENGTH
from .exceptions import InvalidSpec, InvalidSource, InvalidParameter, UnsupportedSelector
from .logging import logger
from .utils import bytes_to_gib, generate_volume_name, parse_bool, parse_int, quantity_to_bytes


def _parse_iops_per_gb(value: str) -> int:
    try:
        return parse_int(value)
    except ValueError as exc:
        raise InvalidParameter(f"invalid iopsPerGB value {value!r}, must be integer between 1 and 30: {exc}")


def _parse_encrypted(value: str) -> bool:
    try:
        return parse_bool(value)
    except ValueError as exc:
        raise InvalidParameter(f"invalid encrypted boolean value {value!r}, must be true or false: {exc}")


# Lowercase parameter name -> (VolumeCreationConfig field, parser)
PARAMETERS: Dict[str, Tuple[str, Callable[[str], object]]] = {
    "type": ("volume_type", str),
    "zone": ("availability_zone", str),
    "iopspergb": ("iops_per_gb", _parse_iops_per_gb),
    "encrypted": ("encrypted", _parse_encrypted),
    "kmskeyid": ("kms_key_id", str),
}


def parse_parameters(parameters: Optional[Mapping[str, str]]) -> dict:
    """
    Convert StorageClass parameters (case-insensitive keys) to VolumeCreationConfig fields.
    Only syntax is checked here, whether values are acceptable (iops range, zone existence etc)
    is up to the cloud backend.
    """
    options = {}
    for key, value in (parameters or {}).items():
        try:
            fld, parse = PARAMETERS[key.lower()]
        except KeyError:
            raise InvalidParameter(f"invalid option {key!r}") from None
        options[fld] = parse(value)
    return options


def get_snapshot_id(snapshot_data: Optional[types.VolumeSnapshotData]) -> str:
    if snapshot_data is None or snapshot_data.spec is None or not snapshot_data.spec.aws_elastic_block_store:
        raise InvalidSource("failed to retrieve Snapshot spec")
    if not (snapshot_id := snapshot_data.spec.aws_elastic_block_store.snapshot_id):
        raise InvalidSource("snapshot spec has an empty snapshot id")
    return snapshot_id


def get_requested_bytes(pvc: types.PersistentVolumeClaim) -> int:
    resources = pvc.spec.resources if pvc.spec is not None else None
    requests = (resources.requests if resources is not None else None) or {}
    if (capacity := requests.get("storage")) is None:
        raise InvalidSpec(f"claim {pvc.metadata and pvc.metadata.name!r} has no storage request")
    try:
        requested_bytes = quantity_to_bytes(capacity)
    except ValueError as exc:
        raise InvalidSpec(f"invalid storage request {capacity!r}: {exc}")
    if requested_bytes < 0:
        raise InvalidSpec(f"storage request must not be negative, got {capacity!r}")
    return requested_bytes


@final
@dataclass
class VolumeFromSnapshotBuilder:
    """Provision new EBS volume from existing snapshot."""

    # Required
    backend: "CloudBackend"
    snapshot_id: str
    pv_name: str
    requested_bytes: int

    # Optional
    pvc_name: Optional[str] = None
    options: dict = field(default_factory=dict)  # Parsed StorageClass parameters

    @classmethod
    def from_parameters(
            cls,
            backend,
            snapshot_data,
            pvc,
            pv_name,
            parameters,
    ) -> "VolumeFromSnapshotBuilder":
        """Validate restore request and return builder instance."""
        snapshot_id = get_snapshot_id(snapshot_data)
        if pvc is None:
            raise InvalidSpec("nil pvc")
        if pvc.spec and pvc.spec.selector is not None:
            raise UnsupportedSelector()

        return cls(
            backend=backend,
            snapshot_id=snapshot_id,
            pv_name=pv_name,
            requested_bytes=get_requested_bytes(pvc),
            pvc_name=pvc.metadata.name if pvc.metadata else None,
            options=parse_parameters(parameters),
        )

    def build_volume_name(self) -> str:
        return generate_volume_name(VOLUME_NAME_PREFIX, self.pv_name, MAX_TAG_LENGTH)

    def get_requested_capacity(self) -> int:
        """Requested capacity in GiB. AWS allocates whole gigabytes so round up."""
        return bytes_to_gib(self.requested_bytes)

    def build_volume_config(self) -> types.VolumeCreationConfig:
        return types.VolumeCreationConfig(
            capacity_gb=self.get_requested_capacity(),
            tags={"Name": self.build_volume_name()},
            pvc_name=self.pvc_name,
            snapshot_id=self.snapshot_id,
            **self.options,
        )

    def get_labels(self, volume_id: str) -> dict:
        try:
            return self.backend.get_volume_labels(volume_id)
        except Exception as exc:
            # The volume exists at this point. Failing here would leak it.
            logger.error(f"error building labels for new EBS volume {volume_id!r}: {exc}")
            return {}

    def build_volume(self) -> types.ProvisionedVolume:
        """Main build entrypoint."""
        config = self.build_volume_config()
        try:
            volume_id = self.backend.create_disk(config)
        except Exception as exc:
            logger.info(f"Error creating EBS Disk volume: {exc}")
            raise
        logger.info(f"Successfully created EBS Disk volume {volume_id}")

        return types.ProvisionedVolume(
            volume_source=types.EBSVolumeSource(
                volume_id=volume_id,
                fs_type=FS_TYPE,
                partition=PARTITION,
                read_only=READ_ONLY,
            ),
            labels=self.get_labels(volume_id),
        )
