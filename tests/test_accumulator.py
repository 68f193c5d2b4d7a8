import numpy as np
import pytest

from simulation import DetectionAccumulator

COLOR = (0, 191, 255)


def test_record_increments_floor_row():
    acc = DetectionAccumulator(rows=10)
    acc.record(400.0, 3.7, COLOR, 0.5)
    acc.record(400.0, 3.0, COLOR, 0.6)
    assert acc.histogram[3] == 2
    assert acc.total_counts == 2
    detection = acc.detections[0]
    assert (detection.x, detection.y, detection.time, detection.opacity) == (400.0, 3.7, 0.5, 1.0)


@pytest.mark.parametrize('y', [-0.5, -3.0, 10.0, 25.2, float('nan'), float('inf')])
def test_out_of_range_rows_are_ignored(y):
    acc = DetectionAccumulator(rows=10)
    acc.record(400.0, y, COLOR, 0.0)
    assert acc.total_counts == 0
    assert len(acc.detections) == 1


def test_last_row_is_in_range():
    acc = DetectionAccumulator(rows=10)
    acc.record(400.0, 9.99, COLOR, 0.0)
    assert acc.histogram[9] == 1


def test_particle_mode_fades_and_drops():
    acc = DetectionAccumulator(rows=10, fade_step=0.25)
    acc.record(400.0, 1.0, COLOR, 0.0)
    for _ in range(3):
        acc.tick('particle')
    assert len(acc.detections) == 1
    assert acc.detections[0].opacity == pytest.approx(0.25)
    acc.tick('particle')
    assert acc.detections == []
    # Fading never touches the histogram.
    assert acc.histogram[1] == 1


def test_default_fade_takes_about_a_hundred_ticks():
    acc = DetectionAccumulator(rows=10)
    acc.record(400.0, 1.0, COLOR, 0.0)
    for _ in range(98):
        acc.tick('particle')
    assert len(acc.detections) == 1
    for _ in range(3):
        acc.tick('particle')
    assert acc.detections == []


@pytest.mark.parametrize('mode', ['accumulation', 'wave'])
def test_other_modes_keep_detections(mode):
    acc = DetectionAccumulator(rows=10)
    acc.record(400.0, 1.0, COLOR, 0.0)
    for _ in range(500):
        acc.tick(mode)
    assert len(acc.detections) == 1
    assert acc.detections[0].opacity == 1.0


def test_opacity_stays_in_unit_interval():
    acc = DetectionAccumulator(rows=10, fade_step=0.3)
    acc.record(400.0, 1.0, COLOR, 0.0)
    for _ in range(3):
        acc.tick('particle')
        for d in acc.detections:
            assert 0.0 <= d.opacity <= 1.0


def test_restore_opacity():
    acc = DetectionAccumulator(rows=10, fade_step=0.25)
    acc.record(400.0, 1.0, COLOR, 0.0)
    acc.tick('particle')
    acc.restore_opacity()
    assert acc.detections[0].opacity == 1.0


def test_reset_is_idempotent():
    acc = DetectionAccumulator(rows=10)
    for y in range(10):
        acc.record(400.0, float(y), COLOR, 0.0)
    acc.reset()
    once = (list(acc.detections), acc.histogram.copy())
    acc.reset()
    assert acc.detections == once[0] == []
    assert np.array_equal(acc.histogram, once[1])
    assert acc.rows == 10
    assert acc.total_counts == 0


def test_resize_shrinks_by_merging_rows():
    acc = DetectionAccumulator(rows=4)
    for row, count in enumerate([1, 2, 3, 4]):
        for _ in range(count):
            acc.record(400.0, row + 0.5, COLOR, 0.0)
    acc.resize(2)
    assert acc.histogram.tolist() == [3, 7]


def test_resize_grows_by_spreading_rows():
    acc = DetectionAccumulator(rows=4)
    for row, count in enumerate([1, 2, 3, 4]):
        for _ in range(count):
            acc.record(400.0, row + 0.5, COLOR, 0.0)
    acc.resize(8)
    assert acc.histogram.tolist() == [1, 0, 2, 0, 3, 0, 4, 0]


def test_resize_round_trip_never_gains_mass():
    rng = np.random.default_rng(7)
    acc = DetectionAccumulator(rows=300)
    for y in rng.uniform(0.0, 300.0, size=2000):
        acc.record(400.0, float(y), COLOR, 0.0)
    before = acc.total_counts
    for new_rows, next_rows in [(123, 300), (517, 41), (1, 300)]:
        acc.resize(new_rows)
        acc.resize(next_rows)
        assert acc.total_counts <= before
        assert np.all(acc.histogram >= 0)
    assert acc.rows == 300


def test_resize_to_same_size_is_noop():
    acc = DetectionAccumulator(rows=5)
    acc.record(400.0, 2.0, COLOR, 0.0)
    hist = acc.histogram
    acc.resize(5)
    assert acc.histogram is hist


def test_negative_sizes_rejected():
    with pytest.raises(ValueError):
        DetectionAccumulator(rows=-1)
    acc = DetectionAccumulator(rows=3)
    with pytest.raises(ValueError):
        acc.resize(-2)
