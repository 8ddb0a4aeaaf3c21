"""Tests for the window accumulator."""

import threading

import numpy as np
import pytest

from earshot.core.accumulator import WindowAccumulator

W = 15600


def ramp(start, size):
    return np.arange(start, start + size, dtype=np.float32)


class TestWindowAccumulator:
    def test_small_append_does_not_emit(self):
        acc = WindowAccumulator(W)
        assert acc.append(ramp(0, W - 1)) == []
        assert acc.pending == W - 1

    def test_repeated_small_appends_eventually_emit(self):
        acc = WindowAccumulator(W)
        emitted = []
        for i in range(0, W, 1000):
            emitted += acc.append(ramp(i, min(1000, W - i)))

        assert len(emitted) == 1
        assert emitted[0].samples.tolist() == ramp(0, W).tolist()

    def test_two_windows_from_one_append(self):
        acc = WindowAccumulator(W)
        windows = acc.append(ramp(0, 2 * W))

        assert len(windows) == 2
        assert all(len(w) == W for w in windows)
        assert acc.pending == 0

    def test_split_appends_match_single_append_bit_for_bit(self):
        data = np.random.default_rng(7).uniform(-1, 1, 2 * W).astype(np.float32)
        cuts = [0, 3, 1000, 1001, 7777, 15599, 15600, 20000, 25000, 31000, 2 * W]

        single = WindowAccumulator(W).append(data)

        split_acc = WindowAccumulator(W)
        split = []
        for a, b in zip(cuts, cuts[1:]):
            split += split_acc.append(data[a:b])

        assert len(cuts) - 1 == 10
        assert len(split) == len(single) == 2
        for x, y in zip(single, split):
            assert x.samples.tobytes() == y.samples.tobytes()

    @pytest.mark.parametrize("sizes", [
        [W],
        [100, W - 100, W],
        [3 * W],
        [W // 2] * 6,
    ])
    def test_multiple_of_w_has_no_loss_or_duplication(self, sizes):
        acc = WindowAccumulator(W)
        total = sum(sizes)
        windows = []
        pos = 0
        for size in sizes:
            windows += acc.append(ramp(pos, size))
            pos += size

        assert len(windows) == total // W
        joined = np.concatenate([w.samples for w in windows])
        assert joined.tolist() == ramp(0, total).tolist()
        assert acc.pending == 0

    @pytest.mark.parametrize("sizes", [[1], [W + 1], [500] * 70, [W - 1, 2, W * 2 + 5]])
    def test_remainder_is_total_mod_w(self, sizes):
        acc = WindowAccumulator(W)
        for size in sizes:
            acc.append(np.zeros(size, dtype=np.float32))
        assert acc.pending == sum(sizes) % W
        assert acc.pending < W

    def test_window_ids_and_offsets(self):
        acc = WindowAccumulator(100, sample_rate=1000)
        windows = acc.append(ramp(0, 350))

        assert [w.window_id for w in windows] == [0, 1, 2]
        assert [w.start_sample for w in windows] == [0, 100, 200]
        assert [w.timestamp_ms for w in windows] == [0, 100, 200]
        assert acc.windows_emitted == 3
        assert acc.samples_received == 350

    def test_callbacks_receive_windows_in_order(self):
        received = []
        acc = WindowAccumulator(10).on_window(received.append)

        acc.append(ramp(0, 25))
        acc.append(ramp(25, 15))

        assert [w.window_id for w in received] == [0, 1, 2, 3]
        assert received[3].samples.tolist() == ramp(30, 10).tolist()

    def test_emitted_window_does_not_alias_buffer(self):
        acc = WindowAccumulator(4)
        window = acc.append(ramp(0, 6))[0]
        acc.append(ramp(6, 2))
        assert window.samples.tolist() == [0, 1, 2, 3]

    def test_clear_discards_remainder(self):
        acc = WindowAccumulator(10)
        acc.append(ramp(0, 13))

        assert acc.clear() == 3
        assert acc.pending == 0

        windows = acc.append(ramp(100, 10))
        assert windows[0].start_sample == 13

    def test_invalid_window_size(self):
        with pytest.raises(ValueError):
            WindowAccumulator(0)

    def test_concurrent_appends_lose_nothing(self):
        acc = WindowAccumulator(64)
        received = []
        acc.on_window(received.append)
        per_thread = 64 * 25

        def produce(offset):
            for i in range(0, per_thread, 16):
                acc.append(ramp(offset + i, 16))

        threads = [threading.Thread(target=produce, args=(t * per_thread,)) for t in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert acc.pending == 0
        assert [w.window_id for w in received] == list(range(len(received)))
        values = np.sort(np.concatenate([w.samples for w in received]))
        assert values.tolist() == ramp(0, 4 * per_thread).tolist()
