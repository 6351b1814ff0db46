import grpc
from easypy.exceptions import TException


INVALID_ARGUMENT = grpc.StatusCode.INVALID_ARGUMENT
UNIMPLEMENTED = grpc.StatusCode.UNIMPLEMENTED
FAILED_PRECONDITION = grpc.StatusCode.FAILED_PRECONDITION


class Abort(Exception):
    @property
    def code(self):
        return self.args[0]

    @property
    def message(self):
        return self.args[1]


class InvalidSpec(Abort):
    """Missing or malformed volume spec or claim"""

    def __init__(self, message: str):
        super().__init__(INVALID_ARGUMENT, message)


class InvalidSource(Abort):
    """Missing or malformed snapshot reference"""

    def __init__(self, message: str):
        super().__init__(INVALID_ARGUMENT, message)


class InvalidParameter(Abort):
    def __init__(self, message: str):
        super().__init__(INVALID_ARGUMENT, message)


class UnsupportedSelector(Abort):
    def __init__(self):
        super().__init__(
            UNIMPLEMENTED,
            "claim.spec.selector is not supported for dynamic provisioning on AWS",
        )


class PluginNotInitialized(Abort):
    def __init__(self, plugin_name: str):
        self.plugin_name = plugin_name

    @property
    def code(self):
        return FAILED_PRECONDITION

    @property
    def message(self):
        return f"Plugin {self.plugin_name!r} has no cloud backend. Call init() first."


class BackendFailure(TException):
    template = "Cloud backend failed to {operation}: {reason}"


class SnapshotNotFound(BackendFailure):
    template = "Snapshot {snapshot_id} does not exist"


class VolumeNotFound(BackendFailure):
    template = "Volume {volume_id} does not exist"


class InvalidVolumeOptions(BackendFailure):
    template = "Invalid volume options: {reason}"


class UnknownBackend(BackendFailure):
    template = "Unknown cloud backend {name!r} (use {available})"


class UnknownPlugin(Abort):
    def __init__(self, name: str, available: str):
        super().__init__(FAILED_PRECONDITION, f"unknown volume plugin {name!r} (use {available})")
