#!/usr/bin/env python3
"""Tests for the loop_video tool."""

import os
import re
import subprocess
import sys
import tempfile

import cv2


REPO_ROOT = os.path.join(os.path.dirname(__file__), "..")


def run_tool(args):
    """Run a tool module and return the result."""
    return subprocess.run(
        [sys.executable, "-m"] + args,
        capture_output=True, text=True, cwd=REPO_ROOT,
    )


def _make_orbit_video(path, duration=14, period=6):
    """12fps video of a disc orbiting once every ``period`` seconds."""
    result = run_tool([
        "seamloop.gen_video", path, "--duration", str(duration),
        "--fps", "12", "--period", str(period),
    ])
    assert result.returncode == 0, f"gen_video failed: {result.stderr}"


def _best_loop(stdout):
    """Parse (start, end, duration) from the 'Best loop:' line."""
    match = re.search(r"Best loop: ([\d.]+)s → ([\d.]+)s \(duration: ([\d.]+)s", stdout)
    assert match, f"No loop reported: {stdout}"
    return tuple(float(v) for v in match.groups())


def test_finds_period_and_writes_loop():
    """The loop length matches the orbit period and the output has that many frames."""
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "orbit.mp4")
        output = os.path.join(tmpdir, "looped.mp4")
        _make_orbit_video(video)

        result = run_tool([
            "seamloop.loop_video", video, "--output", output,
            "--min-duration", "5", "--max-duration", "8",
            "--cache-dir", os.path.join(tmpdir, "cache"),
        ])
        assert result.returncode == 0, f"loop_video failed: {result.stderr}"

        start, end, duration = _best_loop(result.stdout)
        assert abs(duration - 6) <= 0.25, f"Expected a ~6s loop, got {duration}s"
        assert start > 0.75
        assert abs(end - start - duration) < 0.01
        assert "Seam SSIM" in result.stdout

        assert os.path.isfile(output)
        cap = cv2.VideoCapture(output)
        frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        cap.release()
        assert abs(frame_count - duration * 12) <= 2, f"Unexpected frame count {frame_count}"


def test_analyze_only_writes_nothing():
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "orbit.mp4")
        output = os.path.join(tmpdir, "looped.mp4")
        _make_orbit_video(video)

        result = run_tool([
            "seamloop.loop_video", video, "--output", output, "--analyze-only", "--no-cache",
        ])
        assert result.returncode == 0, f"Failed: {result.stderr}"
        _best_loop(result.stdout)
        assert not os.path.exists(output)


def test_cache_reuse_and_force():
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "orbit.mp4")
        cache_dir = os.path.join(tmpdir, "cache")
        _make_orbit_video(video)
        base = ["seamloop.loop_video", video, "--analyze-only", "--cache-dir", cache_dir]

        first = run_tool(base)
        assert first.returncode == 0, f"Failed: {first.stderr}"
        assert "Re-using cached fingerprints" not in first.stdout
        assert any(f.endswith(".json") for f in os.listdir(cache_dir))

        second = run_tool(base)
        assert second.returncode == 0
        assert "Re-using cached fingerprints" in second.stdout
        assert _best_loop(first.stdout) == _best_loop(second.stdout)

        forced = run_tool(base + ["--force"])
        assert forced.returncode == 0
        assert "Re-using cached fingerprints" not in forced.stdout

        other_interval = run_tool(base + ["--interval", "0.5"])
        assert other_interval.returncode == 0
        assert "Re-using cached fingerprints" not in other_interval.stdout

        other_width = run_tool(base + ["--width", "64"])
        assert other_width.returncode == 0, f"Failed: {other_width.stderr}"
        assert "Re-using cached fingerprints" not in other_width.stdout

        same_width_again = run_tool(base + ["--width", "64"])
        assert "Re-using cached fingerprints" in same_width_again.stdout


def test_determinism():
    """Two uncached runs on the same video produce identical reports."""
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "orbit.mp4")
        _make_orbit_video(video)
        args = ["seamloop.loop_video", video, "--analyze-only", "--no-cache"]

        result1 = run_tool(args)
        result2 = run_tool(args + ["--workers", "4"])
        assert result1.returncode == 0
        assert result2.returncode == 0
        assert result1.stdout == result2.stdout


def test_too_short_for_loop():
    """A clip shorter than the minimum loop length is a reported failure, not a crash."""
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "short.mp4")
        _make_orbit_video(video, duration=4)

        result = run_tool(["seamloop.loop_video", video, "--analyze-only", "--no-cache"])
        assert result.returncode == 1
        assert "no viable loop point" in result.stderr
        assert "Traceback" not in result.stderr


def test_single_sample_is_input_exhausted():
    with tempfile.TemporaryDirectory() as tmpdir:
        video = os.path.join(tmpdir, "tiny.mp4")
        _make_orbit_video(video, duration=0.2)

        result = run_tool(["seamloop.loop_video", video, "--analyze-only", "--no-cache"])
        assert result.returncode == 1
        assert "at least 2 usable sampled frames" in result.stderr


def test_invalid_arguments():
    with tempfile.TemporaryDirectory() as tmpdir:
        missing = run_tool(["seamloop.loop_video", os.path.join(tmpdir, "nope.mp4")])
        assert missing.returncode != 0
        assert "Input file not found" in missing.stderr

        video = os.path.join(tmpdir, "orbit.mp4")
        _make_orbit_video(video, duration=2)
        bounds = run_tool([
            "seamloop.loop_video", video, "--min-duration", "8", "--max-duration", "4",
        ])
        assert bounds.returncode != 0
        assert "exceeds" in bounds.stderr

        zero_width = run_tool(["seamloop.loop_video", video, "--width", "0", "--analyze-only"])
        assert zero_width.returncode != 0
        assert "Width must be positive" in zero_width.stderr


if __name__ == "__main__":
    tests = [
        test_finds_period_and_writes_loop,
        test_analyze_only_writes_nothing,
        test_cache_reuse_and_force,
        test_determinism,
        test_too_short_for_loop,
        test_single_sample_is_input_exhausted,
        test_invalid_arguments,
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
