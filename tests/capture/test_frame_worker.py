"""
Unit tests for the latest-wins frame analysis worker.
"""

import threading

import numpy as np
import pytest

from docscan.capture.frame_worker import FrameAnalysisWorker


@pytest.fixture
def frame():
    return np.full((48, 64, 3), 7, dtype=np.uint8)


class TestFrameAnalysisWorker:
    """Tests for FrameAnalysisWorker."""

    def test_processes_frame(self, frame):
        seen = []
        worker = FrameAnalysisWorker(lambda f, rot: seen.append((f.shape, rot)))
        try:
            assert worker.submit(frame, rotation=90)
            assert worker.wait_idle(5)
        finally:
            worker.close()

        assert seen == [((48, 64, 3), 90)]
        assert worker.processed_frames == 1
        assert worker.dropped_frames == 0

    def test_drops_frames_while_busy(self, frame):
        started = threading.Event()
        release = threading.Event()

        def handler(f, rot):
            started.set()
            release.wait(5)

        worker = FrameAnalysisWorker(handler)
        try:
            assert worker.submit(frame)
            assert started.wait(5)
            assert worker.busy

            assert not worker.submit(frame)
            assert not worker.submit(frame)

            release.set()
            assert worker.wait_idle(5)
            assert worker.submit(frame)
            assert worker.wait_idle(5)
        finally:
            release.set()
            worker.close()

        assert worker.dropped_frames == 2
        assert worker.processed_frames == 2

    def test_frame_is_copied(self, frame):
        release = threading.Event()
        seen = []

        def handler(f, rot):
            release.wait(5)
            seen.append(int(f[0, 0, 0]))

        worker = FrameAnalysisWorker(handler)
        try:
            worker.submit(frame)
            frame[:] = 99  # Producer reuses its buffer
            release.set()
            assert worker.wait_idle(5)
        finally:
            release.set()
            worker.close()

        assert seen == [7]

    def test_handler_errors_reported(self, frame):
        errors = []

        def handler(f, rot):
            raise RuntimeError("boom")

        worker = FrameAnalysisWorker(handler, on_error=errors.append)
        try:
            worker.submit(frame)
            assert worker.wait_idle(5)
            # Still usable after a failure
            assert worker.submit(frame)
            assert worker.wait_idle(5)
        finally:
            worker.close()

        assert [str(e) for e in errors] == ["boom", "boom"]
        assert not worker.busy

    def test_submit_after_close(self, frame):
        worker = FrameAnalysisWorker(lambda f, rot: None)
        worker.close()

        assert not worker.submit(frame)
        assert worker.dropped_frames == 0
