from plumbum import local
from plumbum.typed_env import TypedEnv


GiB = 1024 * 1024 * 1024

# Fixed policy of volumes provisioned from snapshots
FS_TYPE = "ext4"
PARTITION = 0
READ_ONLY = False

# Prefix of the "Name" tag for volumes created by external storage provisioners
VOLUME_NAME_PREFIX = "External Storage"
MAX_TAG_LENGTH = 255  # AWS tags can have 255 characters


class Config(TypedEnv):
    class Path(TypedEnv.Str):
        convert = staticmethod(local.path)

    plugin_name = TypedEnv.Str("X_EBS_PLUGIN_NAME", default="aws_ebs")
    plugin_version = TypedEnv.Str("X_EBS_PLUGIN_VERSION", default="0.1.0")
    log_level = TypedEnv.Str("X_EBS_LOG_LEVEL", default="info")

    backend = TypedEnv.Str("X_EBS_BACKEND", default="fake")
    fake_store = Path("X_EBS_FAKE_STORE", default=local.path("/tmp/ebs-snapshot"))
    default_zone = TypedEnv.Str("X_EBS_DEFAULT_ZONE", default="us-east-1a")

    @property
    def fake_snapshot_store(self):
        return self.fake_store / "snapshots"

    @property
    def fake_volume_store(self):
        return self.fake_store / "volumes"
