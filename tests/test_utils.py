import pytest
from ebs_snapshot.configuration import GiB
from ebs_snapshot.utils import (
    bytes_to_gib,
    extract_volume_id,
    generate_volume_name,
    quantity_to_bytes,
    round_up_size,
)


@pytest.mark.parametrize("volume_id, expected", [
    ("aws://us-east-1a/vol-123", "vol-123"),
    ("aws:///vol-123", "vol-123"),
    ("vol-123", "vol-123"),
    ("", ""),
    ("aws://us-east-1a/", ""),
])
def test_extract_volume_id(volume_id, expected):
    assert extract_volume_id(volume_id) == expected


@pytest.mark.parametrize("size_bytes, unit, expected", [
    (0, 1024, 0),
    (1, 1024, 1),
    (1024, 1024, 1),
    (1025, 1024, 2),
    (1500 * 1000 * 1000, 1000 * 1000 * 1000, 2),
])
def test_round_up_size(size_bytes, unit, expected):
    assert round_up_size(size_bytes, unit) == expected


@pytest.mark.parametrize("size_bytes, expected", [
    (0, 1),
    (1, 1),
    (GiB - 1, 1),
    (GiB, 1),
    (GiB + 1, 2),
    (2 * GiB, 2),
    (2 * GiB + 1, 3),
    (16 * 1024 * GiB, 16 * 1024),
])
def test_bytes_to_gib(size_bytes, expected):
    assert bytes_to_gib(size_bytes) == expected


def test_bytes_to_gib_never_rounds_down():
    sizes = [1, GiB // 2, GiB - 1, GiB, GiB + 1, 3 * GiB - 7, 3 * GiB, 10 ** 12]
    results = [bytes_to_gib(size) for size in sizes]
    assert results == sorted(results)
    assert all(gib * GiB >= size for gib, size in zip(results, sizes))


@pytest.mark.parametrize("quantity, expected", [
    ("1Gi", GiB),
    ("512Mi", GiB // 2),
    ("1G", 1000 ** 3),
    ("1.5", 2),
    ("1073741825", GiB + 1),
    (1073741825, GiB + 1),
])
def test_quantity_to_bytes(quantity, expected):
    assert quantity_to_bytes(quantity) == expected


def test_quantity_to_bytes_invalid():
    with pytest.raises(ValueError):
        quantity_to_bytes("ten gigs")


@pytest.mark.parametrize("pv_name, max_length, expected", [
    ("pv-1", 255, "External Storage-dynamic-pv-1"),
    ("pvc-0123", 20, "External St-pvc-0123"),
    ("pvc-0123", 9, "-pvc-0123"),
    ("pvc-0123", 8, "pvc-0123"),
    ("pvc-0123", 4, "pvc-"),
])
def test_generate_volume_name(pv_name, max_length, expected):
    assert generate_volume_name("External Storage", pv_name, max_length) == expected


def test_generate_volume_name_keeps_pv_name():
    pv_name = "pvc-" + "x" * 240
    name = generate_volume_name("External Storage", pv_name, 255)
    assert len(name) == 255
    assert name.endswith("-" + pv_name)
    assert name == generate_volume_name("External Storage", pv_name, 255)
