"""Unit tests for the streaming visualizer and frame clock."""

import pytest
import threading
import numpy as np
from unittest.mock import Mock
from innersound.audio.visualizer import FrameClock, StreamingVisualizer


class CountingSource:
    """Live frequency source whose every bin holds the number of reads so far."""

    frequency_bin_count = 8

    def __init__(self):
        self.reads = 0
        self.buffers = []

    def read_magnitudes(self, buffer):
        self.reads += 1
        self.buffers.append(buffer)
        buffer.fill(self.reads)


@pytest.mark.unit
class TestStreamingVisualizer:
    """Test cases for StreamingVisualizer."""

    def test_start_requests_one_frame(self, manual_clock):
        visualizer = StreamingVisualizer(CountingSource(), Mock(), clock=manual_clock)
        visualizer.start()

        assert len(manual_clock.pending) == 1
        assert visualizer.is_running

    def test_each_tick_emits_one_frame(self, manual_clock):
        frames = []
        visualizer = StreamingVisualizer(CountingSource(), lambda f: frames.append(f.to_bytes()),
                                         clock=manual_clock)
        visualizer.start()
        for _ in range(3):
            manual_clock.tick()

        assert frames == [bytes([1] * 8), bytes([2] * 8), bytes([3] * 8)]
        assert visualizer.frames_rendered == 3

    def test_buffer_is_reused(self, manual_clock):
        source = CountingSource()
        views = []
        visualizer = StreamingVisualizer(source, lambda f: views.append(f.magnitudes),
                                         clock=manual_clock)
        visualizer.start()
        manual_clock.tick()
        manual_clock.tick()

        assert source.buffers[0] is source.buffers[1]
        assert np.shares_memory(views[0], views[1])
        assert views[0].dtype == np.uint8
        assert len(views[0]) == 8

    def test_frame_view_is_read_only(self, manual_clock):
        views = []
        visualizer = StreamingVisualizer(CountingSource(), lambda f: views.append(f.magnitudes),
                                         clock=manual_clock)
        visualizer.start()
        manual_clock.tick()

        with pytest.raises(ValueError):
            views[0][0] = 1

    def test_no_frame_after_cancel(self, manual_clock):
        on_frame = Mock()
        visualizer = StreamingVisualizer(CountingSource(), on_frame, clock=manual_clock)
        visualizer.start()
        manual_clock.tick()
        visualizer.cancel()

        # The already requested frame runs but must not render or reschedule
        assert manual_clock.tick() == 1
        assert manual_clock.pending == []
        assert on_frame.call_count == 1
        assert visualizer.is_cancelled
        assert not visualizer.is_running

    def test_cancel_from_frame_callback(self, manual_clock):
        visualizer = None
        frames = []

        def on_frame(frame):
            frames.append(frame.sequence)
            visualizer.cancel()

        visualizer = StreamingVisualizer(CountingSource(), on_frame, clock=manual_clock)
        visualizer.start()
        manual_clock.tick()
        manual_clock.tick()

        assert frames == [0]
        assert manual_clock.pending == []

    def test_cancel_is_idempotent(self, manual_clock):
        visualizer = StreamingVisualizer(CountingSource(), Mock(), clock=manual_clock)
        visualizer.start()
        visualizer.cancel()
        visualizer.cancel()

        assert visualizer.is_cancelled
        assert manual_clock.shutdown_calls == 0  # clock not owned

    def test_cancel_before_start(self, manual_clock):
        visualizer = StreamingVisualizer(CountingSource(), Mock(), clock=manual_clock)
        visualizer.cancel()
        visualizer.start()

        assert manual_clock.pending == []

    def test_start_twice(self, manual_clock):
        visualizer = StreamingVisualizer(CountingSource(), Mock(), clock=manual_clock)
        visualizer.start()
        visualizer.start()

        assert len(manual_clock.pending) == 1

    def test_callback_error_keeps_loop_alive(self, manual_clock):
        on_frame = Mock(side_effect=[RuntimeError("render failed"), None])
        visualizer = StreamingVisualizer(CountingSource(), on_frame, clock=manual_clock)
        visualizer.start()

        with pytest.raises(RuntimeError):
            manual_clock.tick()
        manual_clock.tick()

        assert on_frame.call_count == 2


@pytest.mark.unit
class TestFrameClock:
    """Test cases for FrameClock."""

    def test_runs_requested_callback(self):
        clock = FrameClock(fps=120)
        fired = threading.Event()
        timestamps = []

        def callback(timestamp):
            timestamps.append(timestamp)
            fired.set()

        try:
            clock.request_frame(callback)
            assert fired.wait(timeout=2.0)
        finally:
            clock.shutdown()
        assert timestamps[0] > 0

    def test_visualizer_on_real_clock(self):
        clock = FrameClock(fps=200)
        enough = threading.Event()
        frames = []

        def on_frame(frame):
            frames.append(frame.sequence)
            if len(frames) >= 5:
                enough.set()

        visualizer = StreamingVisualizer(CountingSource(), on_frame, clock=clock)
        try:
            visualizer.start()
            assert enough.wait(timeout=5.0)
            visualizer.cancel()
            rendered = visualizer.frames_rendered
        finally:
            clock.shutdown()

        assert frames[:5] == [0, 1, 2, 3, 4]
        assert visualizer.frames_rendered == rendered

    def test_owned_clock_stops_on_cancel(self):
        visualizer = StreamingVisualizer(CountingSource(), Mock())
        visualizer.start()
        visualizer.cancel()

        assert visualizer.clock._shutdown_event.is_set()

    def test_invalid_fps(self):
        with pytest.raises(ValueError):
            FrameClock(fps=0)
