import sys
from pathlib import Path
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
from easypy.aliasing import aliases

ROOT = Path(__file__).resolve().parents[1]
# Extend python import path to get ebs_snapshot package from here
sys.path += [ROOT.as_posix()]

from ebs_snapshot.configuration import Config
import ebs_snapshot.snapshot_types as types


# ----------------------------------------------------------------------------------------------------------------------
# Helper classes and decorators
# ----------------------------------------------------------------------------------------------------------------------


@aliases("mock", static=False)
class FakeBackendMethod:
    """
    Method of FakeBackend that enhances all methods of decorated class with
    MagicMock capabilities eg: 'assert_called', 'call_args', 'assert_called_with' etc.
    """

    def __init__(self, return_value: Optional = None, error: Optional[Exception] = None):
        # Mock to store all execution calls
        self.mock = MagicMock()
        self.return_value = return_value
        self.error = error

    def __call__(self, *args, **kwargs) -> Any:
        self.mock(*args, **kwargs)
        if self.error:
            raise self.error
        return self.return_value


class FakeBackend:
    """Simulate cloud backend behavior"""

    def __init__(
            self,
            snapshot_id: str = "snap-abc",
            volume_id: str = "vol-new",
            deleted: bool = True,
            labels: Optional[Dict[str, str]] = None,
            errors: Optional[Dict[str, Exception]] = None,
    ):
        """
        Args:
            snapshot_id: Returned by 'create_snapshot'
            volume_id: Returned by 'create_disk'
            deleted: Returned by 'delete_snapshot'
            labels: Returned by 'get_volume_labels'
            errors: Method name -> exception raised by this method
        """
        errors = errors or {}
        if labels is None:
            labels = {"failure-domain.beta.kubernetes.io/zone": "us-east-1a"}

        # Methods declaration
        self.create_snapshot = FakeBackendMethod(snapshot_id, errors.get("create_snapshot"))
        self.delete_snapshot = FakeBackendMethod(deleted, errors.get("delete_snapshot"))
        self.create_disk = FakeBackendMethod(volume_id, errors.get("create_disk"))
        self.get_volume_labels = FakeBackendMethod(labels, errors.get("get_volume_labels"))

    @property
    def calls(self) -> int:
        return sum(
            method.mock.call_count for method in
            (self.create_snapshot, self.delete_snapshot, self.create_disk, self.get_volume_labels)
        )


# ----------------------------------------------------------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------------------------------------------------------


@pytest.fixture
def fake_backend():
    """FakeBackend factory."""

    def __wrapped(**kwargs) -> FakeBackend:
        return FakeBackend(**kwargs)

    return __wrapped


@pytest.fixture
def config(tmp_path):
    """Configuration with fake backend storage in temporary directory."""
    return Config(env=dict(X_EBS_FAKE_STORE=str(tmp_path), X_EBS_DEFAULT_ZONE="eu-west-1b"))


@pytest.fixture
def pvc():
    """Factory for building PersistentVolumeClaim"""

    def __wrapped(storage: Optional[Any] = "1Gi", selector: Optional[Dict[str, str]] = None, name: str = "claim-1"):
        # quantities are strings in the Kubernetes API
        requests = {} if storage is None else {"storage": str(storage)}
        return types.PersistentVolumeClaim(
            metadata=types.ObjectMeta(name=name, namespace="default"),
            spec=types.PersistentVolumeClaimSpec(
                resources=types.ResourceRequirements(requests=requests),
                selector=types.LabelSelector(match_labels=selector) if selector is not None else None,
            ),
        )

    return __wrapped


@pytest.fixture
def snapshot_data():
    """Factory for building VolumeSnapshotData"""

    def __wrapped(snapshot_id: str = "snap-abc"):
        return types.VolumeSnapshotData(
            spec=types.VolumeSnapshotDataSource(
                aws_elastic_block_store=types.AWSElasticBlockStoreSnapshotSource(snapshot_id=snapshot_id)
            )
        )

    return __wrapped
