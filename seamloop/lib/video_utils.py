"""Video I/O for the loop tools: sampling frames and compositing the loop."""

import os

import cv2
import numpy as np
from skimage.metrics import structural_similarity as ssim

from seamloop.lib.errors import VideoOpenError


ANALYSIS_WIDTH = 280


def open_video(path):
    """Open a video with OpenCV, raising VideoOpenError on failure."""
    cap = cv2.VideoCapture(path)
    if not cap.isOpened():
        raise VideoOpenError(f"could not open video '{path}'")
    return cap


def probe_video(path):
    """Return basic stream properties as a dict."""
    cap = open_video(path)
    fps = cap.get(cv2.CAP_PROP_FPS)
    frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
    info = {
        "fps": fps,
        "frame_count": frame_count,
        "duration": frame_count / fps if fps > 0 else 0.0,
        "width": int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
        "height": int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
    }
    cap.release()
    return info


def _downscale(frame, width):
    """Resize to ``width`` pixels wide, preserving aspect ratio."""
    h, w = frame.shape[:2]
    if not width or w <= width:
        return frame
    height = max(1, round(h * width / w))
    return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)


def sample_frames(path, interval, width=ANALYSIS_WIDTH):
    """Sample one low-resolution frame every ``interval`` seconds.

    Position i of the returned list is sample ordinal i + 1, taken at
    ``i * interval`` seconds: the first native frame at or after that time
    is used. A frame that fails to decode is returned as ``None`` so later
    samples keep their ordinals.
    """
    cap = open_video(path)
    fps = cap.get(cv2.CAP_PROP_FPS)
    if fps <= 0:
        cap.release()
        raise VideoOpenError(f"video '{path}' reports no frame rate")

    samples = []
    index = 0
    while cap.grab():
        t = index / fps
        # Tolerance absorbs float error in index / fps.
        while t + 1e-6 >= len(samples) * interval:
            ok, frame = cap.retrieve()
            samples.append(_downscale(frame, width) if ok else None)
        index += 1
    cap.release()
    return samples


def _read_frames(cap, count):
    frames = []
    for _ in range(count):
        ret, frame = cap.read()
        if not ret:
            break
        frames.append(frame)
    return frames


def _to_gray_small(frame):
    """Downscale to 160×120 grayscale for fast SSIM comparison."""
    small = cv2.resize(frame, (160, 120))
    return cv2.cvtColor(small, cv2.COLOR_BGR2GRAY)


def frame_ssim(a, b):
    """Compute SSIM between two BGR frames (downscaled internally)."""
    return ssim(_to_gray_small(a), _to_gray_small(b))


def _crossfade(frame_a, frame_b, alpha):
    """Blend two frames: result = a*(1-alpha) + b*alpha."""
    return cv2.addWeighted(frame_a, 1.0 - alpha, frame_b, alpha, 0)


def build_loop_frames(main, lead_in):
    """Fade ``lead_in`` in over the tail of ``main``.

    ``lead_in`` is the footage immediately preceding ``main[0]``; its last
    frame is blended at full strength so playback wraps straight into the
    loop start.
    """
    fade = min(len(lead_in), len(main))
    lead_in = lead_in[len(lead_in) - fade:]
    looped = list(main)
    for j, frame in enumerate(lead_in):
        idx = len(looped) - fade + j
        alpha = (j + 1) / fade
        looped[idx] = _crossfade(looped[idx], frame, alpha)
    return looped


def composite_loop(path, start, duration, crossfade):
    """Cut ``[start, start + duration)`` and crossfade its tail into the start.

    Returns (frames, fps). The lead-in is the ``crossfade`` seconds of
    footage right before ``start``.
    """
    cap = open_video(path)
    fps = cap.get(cv2.CAP_PROP_FPS)
    if fps <= 0:
        cap.release()
        raise VideoOpenError(f"video '{path}' reports no frame rate")

    start_idx = round(start * fps)
    length = round(duration * fps)
    fade = min(round(crossfade * fps), start_idx, length)

    cap.set(cv2.CAP_PROP_POS_FRAMES, start_idx - fade)
    lead_in = _read_frames(cap, fade)
    main = _read_frames(cap, length)
    cap.release()

    if not main:
        raise VideoOpenError(f"could not read frames at {start:.2f}s from '{path}'")
    return build_loop_frames(main, lead_in), fps


def write_video(frames, output_path, fps, codec="mp4v"):
    """Write frames to a video file. Returns the number of frames written."""
    if not frames:
        return 0

    h, w = frames[0].shape[:2]
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

    fourcc = cv2.VideoWriter_fourcc(*codec)
    writer = cv2.VideoWriter(output_path, fourcc, fps, (w, h))
    if not writer.isOpened():
        raise VideoOpenError(f"could not create video '{output_path}'")

    total = 0
    for frame in frames:
        writer.write(np.ascontiguousarray(frame))
        total += 1
    writer.release()
    return total
