import sys
import argparse
from easypy.bunch import Bunch


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="AWS EBS Snapshot Plugin")
    parser.set_defaults(func=lambda *_, **__: parser.print_help())
    parser.add_argument("--output", default="json", choices=['json', 'yaml'], help="Output format")
    parser.add_argument("--backend", default=None, help="Cloud backend name (overrides X_EBS_BACKEND)")

    subparsers = parser.add_subparsers()

    info_parse = subparsers.add_parser("info", help='Print versioning information for this plugin')
    info_parse.set_defaults(func=_info)

    create_parse = subparsers.add_parser("create-snapshot", help='Snapshot an EBS volume')
    create_parse.add_argument("volume_id", help="Volume id, eg vol-123 or aws://us-east-1a/vol-123")
    create_parse.set_defaults(func=_create_snapshot)

    delete_parse = subparsers.add_parser("delete-snapshot", help='Delete an EBS snapshot')
    delete_parse.add_argument("snapshot_id")
    delete_parse.set_defaults(func=_delete_snapshot)

    restore_parse = subparsers.add_parser("restore", help='Provision a new EBS volume from a snapshot')
    restore_parse.add_argument("snapshot_id")
    restore_parse.add_argument("pv_name", help="Name of the PersistentVolume to provision")
    restore_parse.add_argument("--pvc-name", default=None, help="Name of the claim")
    restore_parse.add_argument("--size", required=True, help="Requested capacity, eg 10Gi")
    restore_parse.add_argument(
        "--param", dest="params", action="append", default=[], metavar="KEY=VALUE",
        help="StorageClass parameter (type, zone, iopsPerGB, encrypted, kmsKeyId)",
    )
    restore_parse.set_defaults(func=_restore)

    test_parse = subparsers.add_parser("test", help='Start unit tests')
    test_parse.set_defaults(func=_test)

    args = parser.parse_args(argv, namespace=Bunch())
    return args.pop("func")(args)


def _dump(data, output):
    if output == "yaml":
        import yaml
        yaml.safe_dump(data, sys.stdout, default_flow_style=False)
    elif output == "json":
        import json
        json.dump(data, sys.stdout)
        sys.stdout.write("\n")
    else:
        assert False, f"invalid output format: {output}"


def _run(args, operation):
    from .configuration import Config
    from .cloud_backend import create_cloud_backend
    from .exceptions import Abort, BackendFailure
    from .logging import init_logging
    from .plugin import get_plugin

    conf = Config()
    init_logging(level=conf.log_level)
    try:
        plugin = get_plugin(conf.plugin_name, create_cloud_backend(args.backend, conf))
        result = operation(plugin)
    except Abort as exc:
        print(f"{exc.code.name}: {exc.message}", file=sys.stderr)
        return 1
    except BackendFailure as exc:
        print(exc.render(color=False), file=sys.stderr)
        return 2
    _dump(result, args.output)
    return 0


def _info(args):
    from .configuration import Config
    conf = Config()
    info = dict(name=conf.plugin_name, version=conf.plugin_version, backend=args.backend or conf.backend)
    _dump(info, args.output)
    return 0


def _create_snapshot(args):
    from . import snapshot_types as types

    spec = types.PersistentVolumeSpec(
        aws_elastic_block_store=types.EBSVolumeSource(volume_id=args.volume_id)
    )
    return _run(args, lambda plugin: plugin.snapshot_create(spec).to_dict())


def _delete_snapshot(args):
    from . import snapshot_types as types

    src = types.VolumeSnapshotDataSource(
        aws_elastic_block_store=types.AWSElasticBlockStoreSnapshotSource(snapshot_id=args.snapshot_id)
    )

    def delete(plugin):
        plugin.snapshot_delete(src)
        return dict(deleted=args.snapshot_id)

    return _run(args, delete)


def _restore(args):
    from . import snapshot_types as types

    parameters = {}
    for param in args.params:
        key, sep, value = param.partition("=")
        if not sep:
            print(f"invalid parameter {param!r}, expected KEY=VALUE", file=sys.stderr)
            return 1
        parameters[key] = value

    snapshot_data = types.VolumeSnapshotData(
        spec=types.VolumeSnapshotDataSource(
            aws_elastic_block_store=types.AWSElasticBlockStoreSnapshotSource(snapshot_id=args.snapshot_id)
        )
    )
    pvc = types.PersistentVolumeClaim(
        metadata=types.ObjectMeta(name=args.pvc_name),
        spec=types.PersistentVolumeClaimSpec(
            resources=types.ResourceRequirements(requests={"storage": args.size})
        ),
    )
    return _run(
        args,
        lambda plugin: plugin.snapshot_restore(snapshot_data, pvc, args.pv_name, parameters).to_dict()
    )


def _test(args):
    """Runs the tests without code coverage"""
    import pytest
    return pytest.main(["-x", "tests", "-s", "-v"])


if __name__ == '__main__':
    sys.exit(main())
