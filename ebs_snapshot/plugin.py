import inspect
from abc import ABC, abstractmethod
from functools import wraps
from importlib.metadata import entry_points
from pprint import pformat
from typing import Dict, Optional

from easypy.exceptions import TException

from . import snapshot_types as types
from .cloud_backend import CloudBackend
from .exceptions import Abort, InvalidSpec, InvalidSource, PluginNotInitialized, UnknownPlugin
from .logging import logger
from .utils import extract_volume_id
from .volume_builder import VolumeFromSnapshotBuilder


PLUGINS_GROUP = "ebs_snapshot.plugins"


################################################################
#
# Plugin interface
#
################################################################


class VolumePlugin(ABC):
    """Snapshot capabilities of a volume plugin"""

    @abstractmethod
    def init(self, cloud: CloudBackend):
        ...

    @abstractmethod
    def snapshot_create(self, spec: types.PersistentVolumeSpec) -> types.VolumeSnapshotDataSource:
        ...

    @abstractmethod
    def snapshot_delete(self, src: types.VolumeSnapshotDataSource, pv: types.PersistentVolume = None):
        ...

    @abstractmethod
    def snapshot_restore(
        self,
        snapshot_data: types.VolumeSnapshotData,
        pvc: types.PersistentVolumeClaim,
        pv_name: str,
        parameters: Dict[str, str],
    ) -> types.ProvisionedVolume:
        ...


class Instrumented:

    SILENCED = ["init"]

    @classmethod
    def logged(cls, func):

        method = func.__name__
        log = logger.debug if (method in cls.SILENCED) else logger.info
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            params = signature.bind_partial(self, *args, **kwargs).arguments
            params.pop("self", None)

            log(f">>> {method}:")
            for line in pformat(dict(params)).splitlines():
                log(f"({method})    {line}")

            try:
                ret = func(self, *args, **kwargs)
            except Abort as exc:
                logger.info(f'<<< {method} ABORTED with {exc.code} ("{exc.message}")')
                logger.debug("Traceback", exc_info=True)
                raise
            except TException as exc:
                logger.exception(f"Exception during {method}: {exc.render(color=False)}")
                raise
            except Exception:
                logger.exception(f"Exception during {method}")
                raise
            if ret:
                log(f"<<< {method}:")
                for line in pformat(ret).splitlines():
                    log(f"    {line}")
            log(f"--- {method}: Done")
            return ret

        return wrapper

    @classmethod
    def __init_subclass__(cls):
        for name, _ in inspect.getmembers(cls.__base__, inspect.isfunction):
            if name.startswith("_"):
                continue
            func = getattr(cls, name)
            setattr(cls, name, cls.logged(func))
        super().__init_subclass__()


################################################################
#
# AWS EBS
#
################################################################


class AWSEBSPlugin(VolumePlugin, Instrumented):

    NAME = "aws_ebs"

    def __init__(self, cloud: Optional[CloudBackend] = None):
        self._cloud = cloud

    def init(self, cloud: CloudBackend):
        self._cloud = cloud

    @property
    def cloud(self) -> CloudBackend:
        if self._cloud is None:
            raise PluginNotInitialized(self.NAME)
        return self._cloud

    def snapshot_create(self, spec):
        if spec is None or not spec.aws_elastic_block_store:
            raise InvalidSpec(f"invalid PV spec {spec}")
        if not (volume_id := extract_volume_id(spec.aws_elastic_block_store.volume_id or "")):
            raise InvalidSpec(f"PV spec has an empty volume id: {spec.aws_elastic_block_store.volume_id!r}")

        snapshot_id = self.cloud.create_snapshot(volume_id)
        return types.VolumeSnapshotDataSource(
            aws_elastic_block_store=types.AWSElasticBlockStoreSnapshotSource(snapshot_id=snapshot_id)
        )

    def snapshot_delete(self, src, pv=None):
        if src is None or not src.aws_elastic_block_store:
            raise InvalidSource(f"invalid VolumeSnapshotDataSource: {src}")
        if not (snapshot_id := src.aws_elastic_block_store.snapshot_id):
            raise InvalidSource("VolumeSnapshotDataSource has an empty snapshot id")

        if not self.cloud.delete_snapshot(snapshot_id):
            logger.info(f"Snapshot {snapshot_id} was not deleted by the cloud backend (already gone?)")

    def snapshot_restore(self, snapshot_data, pvc, pv_name, parameters):
        builder = VolumeFromSnapshotBuilder.from_parameters(
            backend=self.cloud,
            snapshot_data=snapshot_data,
            pvc=pvc,
            pv_name=pv_name,
            parameters=parameters,
        )
        return builder.build_volume()


################################################################
#
# Registration
#
################################################################


def register_plugin() -> VolumePlugin:
    return AWSEBSPlugin()


def get_plugin_name() -> str:
    return AWSEBSPlugin.NAME


def load_plugins() -> dict:
    """Plugin factories by name. Built-in plugin plus anything registered under PLUGINS_GROUP entry points."""
    plugins = {get_plugin_name(): register_plugin}
    plugins.update((ep.name, ep.load()) for ep in entry_points(group=PLUGINS_GROUP))
    return plugins


def get_plugin(name: str, cloud: CloudBackend) -> VolumePlugin:
    plugins = load_plugins()
    if name not in plugins:
        raise UnknownPlugin(name, "|".join(sorted(plugins)))
    plugin = plugins[name]()
    plugin.init(cloud)
    return plugin
