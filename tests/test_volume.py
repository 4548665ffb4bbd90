"""Tests for the default streaming dynamic volume"""

import threading

import numpy as np
import pytest

from dynvol.data.phase_info import LoadStatus, VolumeDescriptor, VolumeGeometry
from dynvol.errors import InvalidArgumentError, VolumeDestroyedError
from dynvol.volume import StreamingDynamicImageVolume


def make_volume(num_phases=2, num_slices=3, columns=2, rows=2):
    geometry = VolumeGeometry(
        dimensions=(columns, rows, num_slices),
        spacing=(0.5, 0.75, 2.0),
        origin=(1.0, 2.0, 3.0),
        direction=(1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0),
        size_in_bytes=columns * rows * num_slices * 4,
    )
    descriptor = VolumeDescriptor(
        volume_id="vol",
        geometry=geometry,
        metadata={},
        scalar_data=[
            np.full(columns * rows * num_slices, phase, dtype=np.float32) for phase in range(num_phases)
        ],
        image_ids=[f"p{p}s{s}" for p in range(num_phases) for s in range(num_slices)],
        splitting_tag="TriggerTime",
        phase_sizes=[num_slices] * num_phases,
    )
    return StreamingDynamicImageVolume(descriptor, LoadStatus())


def test_time_point_index_switches_active_buffer():
    volume = make_volume()
    seen = []
    volume.add_time_point_listener(seen.append)

    volume.time_point_index = 1

    assert volume.time_point_index == 1
    assert volume.get_scalar_data()[0] == 1
    assert volume.get_scalar_data(0)[0] == 0
    assert seen == [1]


@pytest.mark.parametrize("index", [-1, 2])
def test_time_point_index_out_of_range(index):
    volume = make_volume()

    with pytest.raises(InvalidArgumentError):
        volume.time_point_index = index


def test_image_ids_for_time_point():
    volume = make_volume()

    assert volume.get_image_ids_for_time_point(1) == ["p1s0", "p1s1", "p1s2"]


def test_all_frames_cached_marks_loaded_and_fires_callbacks_once():
    volume = make_volume(num_phases=2, num_slices=2)
    fired = []
    volume.add_load_callback(fired.append)

    for frame in range(4):
        assert volume.mark_frame_cached(frame)
        if frame < 3:
            assert volume.load_status.loading
    volume.mark_frame_cached(3)

    assert volume.load_status.loaded
    assert not volume.load_status.loading
    assert fired == [volume]
    assert volume.load_status.callbacks == []


def test_callback_added_after_load_runs_immediately():
    volume = make_volume(num_phases=1, num_slices=1)
    volume.mark_frame_cached(0)
    fired = []

    volume.add_load_callback(fired.append)

    assert fired == [volume]


def test_cancel_is_idempotent_and_stops_caching():
    volume = make_volume()
    fired = []
    volume.add_load_callback(fired.append)
    volume.mark_frame_cached(0)

    volume.cancel_loading()
    volume.cancel_loading()

    assert volume.load_status.cancelled
    assert not volume.load_status.loading
    assert volume.mark_frame_cached(1) is False
    assert volume.load_status.cached_frames == {0}
    assert fired == []


def test_frame_index_out_of_range():
    volume = make_volume()

    with pytest.raises(InvalidArgumentError):
        volume.mark_frame_cached(volume.num_frames)


def test_concurrent_frame_reports():
    volume = make_volume(num_phases=4, num_slices=50)
    fired = []
    volume.add_load_callback(fired.append)

    def report(frames):
        for frame in frames:
            volume.mark_frame_cached(frame)

    threads = [threading.Thread(target=report, args=(range(i, volume.num_frames, 4),)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert volume.load_status.loaded
    assert fired == [volume]


def test_destroy_releases_buffers():
    volume = make_volume()

    volume.destroy()
    volume.destroy()

    assert volume.is_destroyed
    assert volume.descriptor.scalar_data == []
    with pytest.raises(VolumeDestroyedError):
        volume.get_scalar_data()
    assert volume.mark_frame_cached(0) is False


def test_to_sitk_image():
    volume = make_volume(num_phases=2, num_slices=3, columns=4, rows=2)

    image = volume.to_sitk_image(1)

    assert image.GetSize() == (4, 2, 3)
    assert image.GetSpacing() == pytest.approx((0.5, 0.75, 2.0))
    assert image.GetOrigin() == pytest.approx((1.0, 2.0, 3.0))


def test_summary():
    volume = make_volume()

    summary = volume.summary()

    assert summary["num_time_points"] == 2
    assert summary["first_image_ids"] == ["p0s0", "p1s0"]
    assert summary["splitting_tag"] == "TriggerTime"
    assert summary["destroyed"] is False
