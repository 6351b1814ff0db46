import re
import math

from kubernetes.utils import parse_quantity

from .configuration import GiB


_INTEGER = re.compile(r"[+-]?[0-9]+")

TRUE_STRINGS = {"1", "t", "T", "TRUE", "true", "True"}
FALSE_STRINGS = {"0", "f", "F", "FALSE", "false", "False"}


def extract_volume_id(volume_id: str) -> str:
    """Strip path-like prefix, eg 'aws://us-east-1a/vol-123' -> 'vol-123'"""
    _, _, volume_id = volume_id.rpartition("/")
    return volume_id


def round_up_size(size_bytes: int, allocation_unit_bytes: int) -> int:
    """Number of allocation units needed to hold `size_bytes`, rounding up"""
    return (size_bytes + allocation_unit_bytes - 1) // allocation_unit_bytes


def bytes_to_gib(size_bytes: int) -> int:
    """Convert requested bytes to whole GiB. Never rounds down and never returns less than 1 GiB."""
    return max(round_up_size(size_bytes, GiB), 1)


def quantity_to_bytes(quantity) -> int:
    """
    Convert kubernetes quantity (eg '10Gi', '500M', 1073741825) to bytes.
    Fractional results are rounded up to the next whole byte.
    """
    return math.ceil(parse_quantity(quantity))


def generate_volume_name(cluster_name: str, pv_name: str, max_length: int) -> str:
    """
    Build volume name '<cluster_name>-dynamic-<pv_name>' cropped to `max_length`.
    The prefix is cut first so that the full pv name is kept whenever it fits.
    """
    if len(pv_name) >= max_length:
        return pv_name[:max_length]
    prefix = f"{cluster_name}-dynamic"
    # +1 for the '-' separator
    if len(pv_name) + 1 + len(prefix) > max_length:
        prefix = prefix[:max_length - len(pv_name) - 1]
    return f"{prefix}-{pv_name}"


def parse_int(value: str) -> int:
    """Strict decimal integer parsing (no spaces, underscores or fractions)."""
    if not _INTEGER.fullmatch(value):
        raise ValueError(f"invalid syntax: {value!r}")
    return int(value)


def parse_bool(value: str) -> bool:
    if value in TRUE_STRINGS:
        return True
    if value in FALSE_STRINGS:
        return False
    raise ValueError(f"invalid syntax: {value!r}")
