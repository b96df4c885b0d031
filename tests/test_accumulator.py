import numpy as np

from mobile.liondetect.audio.accumulator import SampleAccumulator


def test_snapshot_tail_spans_blocks_in_order():
    acc = SampleAccumulator(sample_rate=10, max_seconds=5)
    acc.append(np.arange(4))
    acc.append(np.arange(4, 9))
    acc.append([])

    assert len(acc) == 9
    assert acc.snapshot_tail(6).tolist() == [3, 4, 5, 6, 7, 8]
    assert acc.snapshot_tail(100).tolist() == list(range(9))
    assert acc.snapshot_tail(0).size == 0


def test_cap_drops_oldest_samples():
    acc = SampleAccumulator(sample_rate=10, max_seconds=1.0)
    acc.append(np.arange(8))
    acc.append(np.arange(8, 15))

    assert len(acc) == 10
    assert acc.duration == 1.0
    assert acc.snapshot_tail(10).tolist() == list(range(5, 15))


def test_snapshot_is_a_copy():
    acc = SampleAccumulator(sample_rate=10, max_seconds=1.0)
    source = np.ones(5, dtype=np.float32)
    acc.append(source)
    source[:] = 3.0
    tail = acc.snapshot_tail(5)
    tail[:] = 7.0
    assert acc.snapshot_tail(5).tolist() == [1.0] * 5


def test_empty_and_clear():
    acc = SampleAccumulator(sample_rate=10, max_seconds=1.0)
    assert acc.snapshot_tail(3).size == 0
    acc.append([0.1, 0.2])
    acc.clear()
    assert len(acc) == 0


def test_cap_rounds_up_to_hold_a_fractional_duration():
    acc = SampleAccumulator(sample_rate=22050, max_seconds=1.1)
    assert acc.max_samples == 24256
    acc.append(np.ones(30000, dtype=np.float32))
    assert len(acc.snapshot_tail(24256)) == 24256
