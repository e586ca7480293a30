"""Tests for worker and batch-size sizing."""

from layerforge.utils.resource_governor import ResourceGovernor, canvas_bytes

MB = 1024**2


def test_canvas_bytes_is_rgba_area():
    assert canvas_bytes(512) == 512 * 512 * 4
    assert canvas_bytes(1) == 4


def test_manual_mode_returns_requested():
    governor = ResourceGovernor(512, resource_mode="manual", memory_bytes=1, cpu_count=1)
    assert governor.recommend_workers(32) == 32
    assert governor.recommend_batch_size(5000) == 5000


def test_requested_values_floor_at_one():
    governor = ResourceGovernor(512, resource_mode="manual")
    assert governor.recommend_workers(0) == 1
    assert governor.recommend_batch_size(0) == 1


def test_auto_workers_capped_by_cpu():
    governor = ResourceGovernor(512, memory_bytes=16 * 1024 * MB, cpu_count=4)
    assert governor.recommend_workers(8) == 4
    assert governor.recommend_workers(2) == 2


def test_auto_workers_capped_by_canvas_memory():
    # 1 MB per 512px canvas, 3 per worker; 16 MB memory leaves an 8 MB budget
    governor = ResourceGovernor(512, memory_bytes=16 * MB, cpu_count=64)
    assert governor.worker_bytes == 3 * MB
    assert governor.recommend_workers(8) == 2


def test_larger_canvas_means_fewer_workers():
    small = ResourceGovernor(256, memory_bytes=64 * MB, cpu_count=64)
    large = ResourceGovernor(1024, memory_bytes=64 * MB, cpu_count=64)
    assert large.recommend_workers(64) < small.recommend_workers(64)


def test_auto_batch_size_leaves_room_for_workers():
    # 32 MB budget, two workers take 6 MB, 26 canvases fit in what is left
    governor = ResourceGovernor(512, memory_bytes=64 * MB, cpu_count=8)
    assert governor.recommend_batch_size(100, workers=2) == 26
    assert governor.recommend_batch_size(10, workers=2) == 10


def test_auto_batch_size_never_below_one():
    governor = ResourceGovernor(2048, memory_bytes=MB, cpu_count=1)
    assert governor.recommend_workers(4) == 1
    assert governor.recommend_batch_size(100, workers=4) == 1
