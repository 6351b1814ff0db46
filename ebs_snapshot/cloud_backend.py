import re
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from importlib.metadata import entry_points
from uuid import uuid4

from easypy.bunch import Bunch
from easypy.caching import locking_cache

from .configuration import Config
from .exceptions import SnapshotNotFound, VolumeNotFound, InvalidVolumeOptions, UnknownBackend
from .logging import logger
from . import snapshot_types as types


BACKENDS_GROUP = "ebs_snapshot.backends"

SNAPSHOT_ID = re.compile(r"snap-[0-9a-f]{17}")
VOLUME_ID = re.compile(r"vol-[0-9a-f]{17}")

ZONE_LABEL = "failure-domain.beta.kubernetes.io/zone"
REGION_LABEL = "failure-domain.beta.kubernetes.io/region"


class CloudBackend(ABC):
    """
    Block storage operations the snapshot plugin relies on.
    Implementations raise BackendFailure (or subclasses) on errors.
    """

    @abstractmethod
    def create_snapshot(self, volume_id: str) -> str:
        """Snapshot the volume and return the new snapshot id"""

    @abstractmethod
    def delete_snapshot(self, snapshot_id: str) -> bool:
        """Delete snapshot. Return False if there was nothing to delete"""

    @abstractmethod
    def create_disk(self, config: types.VolumeCreationConfig) -> str:
        """Create a volume according to `config` and return its id"""

    @abstractmethod
    def get_volume_labels(self, volume_id: str) -> dict:
        """Topology labels of the volume"""


def available_backends() -> dict:
    backends = {"fake": FakeCloudBackend}
    backends.update((ep.name, ep) for ep in entry_points(group=BACKENDS_GROUP))
    return backends


def create_cloud_backend(name: str = None, config: Config = None) -> CloudBackend:
    """Instantiate backend by name (built-in or registered under BACKENDS_GROUP entry points)"""
    if config is None:
        config = Config()
    name = name or config.backend
    backends = available_backends()
    try:
        backend_cls = backends[name]
    except KeyError:
        raise UnknownBackend(name=name, available="|".join(sorted(backends))) from None
    if hasattr(backend_cls, "load"):
        backend_cls = backend_cls.load()
    backend = backend_cls.create(config=config)
    logger.info(f"Cloud backend {name!r} has been instantiated.")
    return backend


class FakeCloudBackend(CloudBackend):
    """
    CloudBackend simulation for tests and local runs.
    Snapshots and volumes are stored as json records under Config.fake_store.
    """

    MIN_IOPS_PER_GB = 1
    MAX_IOPS_PER_GB = 50

    def __init__(self, config: Config):
        self.config = config
        self.snapshot_store = config.fake_snapshot_store
        self.volume_store = config.fake_volume_store
        self.snapshot_store.mkdir()
        self.volume_store.mkdir()

    @classmethod
    def create(cls, config: Config):
        return cls(config)

    @staticmethod
    def _new_id(prefix: str) -> str:
        return f"{prefix}-{uuid4().hex[:17]}"

    def _write(self, path, record: dict):
        with path.open("w") as f:
            json.dump(record, f)

    def _read(self, path) -> Bunch:
        with path.open("r") as f:
            return Bunch.from_dict(json.load(f))

    def _snapshot_path(self, snapshot_id: str):
        """Record path, or None for ids this backend never issues"""
        if SNAPSHOT_ID.fullmatch(snapshot_id):
            return self.snapshot_store[snapshot_id]

    def _volume_path(self, volume_id: str):
        if VOLUME_ID.fullmatch(volume_id):
            return self.volume_store[volume_id]

    def get_snapshot(self, snapshot_id: str) -> Bunch:
        path = self._snapshot_path(snapshot_id)
        if path is None or not path.exists():
            raise SnapshotNotFound(snapshot_id=snapshot_id)
        return self._read(path)

    def get_volume(self, volume_id: str) -> Bunch:
        path = self._volume_path(volume_id)
        if path is None or not path.exists():
            raise VolumeNotFound(volume_id=volume_id)
        return self._read(path)

    def create_snapshot(self, volume_id: str) -> str:
        snapshot_id = self._new_id("snap")
        self._write(self.snapshot_store[snapshot_id], dict(
            id=snapshot_id,
            source_volume_id=volume_id,
            created=datetime.now(timezone.utc).isoformat(),
        ))
        logger.info(f"Created snapshot {snapshot_id} of {volume_id}")
        return snapshot_id

    def delete_snapshot(self, snapshot_id: str) -> bool:
        path = self._snapshot_path(snapshot_id)
        if path is None or not path.exists():
            logger.info(f"Snapshot {snapshot_id} does not exist or already deleted")
            return False
        path.delete()
        logger.info(f"Deleted snapshot {snapshot_id}")
        return True

    def _validate(self, config: types.VolumeCreationConfig):
        if config.capacity_gb < 1:
            raise InvalidVolumeOptions(reason=f"capacity must be at least 1 GiB, got {config.capacity_gb}")
        if config.iops_per_gb is not None:
            if config.volume_type != "io1":
                raise InvalidVolumeOptions(reason=f"iopsPerGB is only supported for io1 volumes, got {config.volume_type!r}")
            if not self.MIN_IOPS_PER_GB <= config.iops_per_gb <= self.MAX_IOPS_PER_GB:
                raise InvalidVolumeOptions(
                    reason=f"iopsPerGB must be between {self.MIN_IOPS_PER_GB} and {self.MAX_IOPS_PER_GB}, "
                           f"got {config.iops_per_gb}"
                )
        if config.kms_key_id and not config.encrypted:
            raise InvalidVolumeOptions(reason="kmsKeyId requires encrypted volume")

    def create_disk(self, config: types.VolumeCreationConfig) -> str:
        self._validate(config)
        self.get_snapshot(config.snapshot_id)  # must exist
        volume_id = self._new_id("vol")
        record = config.to_dict()
        record.update(
            id=volume_id,
            availability_zone=config.availability_zone or self.config.default_zone,
            created=datetime.now(timezone.utc).isoformat(),
        )
        self._write(self.volume_store[volume_id], record)
        logger.info(f"Created volume {volume_id} ({config.capacity_gb}GiB) from {config.snapshot_id}")
        return volume_id

    def get_volume_labels(self, volume_id: str) -> dict:
        zone = self.get_volume(volume_id).availability_zone
        return {ZONE_LABEL: zone, REGION_LABEL: zone[:-1]}


@locking_cache
def get_cloud_backend(name: str = None) -> CloudBackend:
    """Shared backend instance per name, configured from the environment"""
    return create_cloud_backend(name)
