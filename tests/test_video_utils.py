#!/usr/bin/env python3
"""Tests for frame sampling and loop compositing."""

import os
import sys
import tempfile

import cv2
import numpy as np
import pytest

from seamloop.gen_video import render_frame
from seamloop.lib.errors import VideoOpenError
from seamloop.lib.video_utils import (
    build_loop_frames, composite_loop, probe_video, sample_frames, write_video,
)


def _write_orbit(path, duration, fps=12, period=6.0):
    frames = [render_frame(i / fps, 320, 240, period, (255, 255, 255)) for i in range(int(duration * fps))]
    write_video(frames, path, fps)


def test_build_loop_frames_fades_into_lead_in():
    main = [np.zeros((4, 4, 3), dtype=np.uint8) for _ in range(5)]
    lead_in = [np.full((4, 4, 3), 200, dtype=np.uint8) for _ in range(2)]
    looped = build_loop_frames(main, lead_in)

    assert len(looped) == 5
    assert all(f.max() == 0 for f in looped[:3])
    assert looped[3][0, 0, 0] == 100
    assert looped[4][0, 0, 0] == 200


def test_build_loop_frames_without_lead_in():
    main = [np.zeros((4, 4, 3), dtype=np.uint8) for _ in range(3)]
    looped = build_loop_frames(main, [])
    assert len(looped) == 3
    assert all(a is b for a, b in zip(looped, main))


def test_sample_frames_interval_and_width():
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "orbit.mp4")
        _write_orbit(video, duration=2)

        samples = sample_frames(video, 0.25, width=160)
        assert len(samples) == 8, f"Expected 8 samples over 2s, got {len(samples)}"
        assert all(s is not None for s in samples)
        assert samples[0].shape[:2] == (120, 160)


def test_probe_and_composite():
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "orbit.mp4")
        _write_orbit(video, duration=10)

        info = probe_video(video)
        assert abs(info["fps"] - 12) < 0.5
        assert info["width"] == 320 and info["height"] == 240

        frames, fps = composite_loop(video, 2.0, 5.0, 0.75)
        assert len(frames) == 60
        assert abs(fps - 12) < 0.5

        output = os.path.join(tmpdir, "out", "looped.mp4")
        assert write_video(frames, output, fps) == 60
        cap = cv2.VideoCapture(output)
        assert int(cap.get(cv2.CAP_PROP_FRAME_COUNT)) == 60
        cap.release()


def test_open_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(VideoOpenError):
            sample_frames(os.path.join(tmpdir, "missing.mp4"), 0.25)


if __name__ == "__main__":
    tests = [
        test_build_loop_frames_fades_into_lead_in,
        test_build_loop_frames_without_lead_in,
        test_sample_frames_interval_and_width,
        test_probe_and_composite,
        test_open_failure,
    ]
    failed = 0
    for test in tests:
        try:
            test()
            print(f"  ✓ {test.__name__}")
        except AssertionError as e:
            print(f"  ✗ {test.__name__}: {e}")
            failed += 1

    print(f"\n{len(tests) - failed}/{len(tests)} tests passed.")
    sys.exit(1 if failed else 0)
