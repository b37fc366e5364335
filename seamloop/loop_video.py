#!/usr/bin/env python3
"""Find the most seamless loop point in a video and export the looped clip."""

import argparse
import math
import os
import re

from seamloop.lib.config import AnalysisConfig
from seamloop.lib.console import console, Table, fail, info_table
from seamloop.lib.errors import LoopAnalysisError
from seamloop.lib.fingerprint import DEFAULT_HASH_SIZE, HASHERS, build_store
from seamloop.lib.hash_cache import DEFAULT_CACHE_DIR, FingerprintCache
from seamloop.lib.loop_analysis import find_loop
from seamloop.lib.video_utils import (
    ANALYSIS_WIDTH, composite_loop, frame_ssim, probe_video, sample_frames, write_video,
)


def default_output_path(input_path):
    """``clip.mov`` -> ``clip-looped.mp4``."""
    base, ext = os.path.splitext(input_path)
    if re.fullmatch(r"\.(mov|mp4|webm|mkv|avi)", ext, flags=re.IGNORECASE):
        return base + "-looped.mp4"
    return input_path + "-looped.mp4"


def load_fingerprints(input_path, config, kind, hash_size, width, workers, cache, force):
    """Fingerprint the input, going through the cache when one is given."""
    if cache is not None and not force:
        store = cache.load(input_path, config, kind, hash_size, width)
        if store is not None:
            console.print(f"  Re-using cached fingerprints ([cyan]{len(store)}[/cyan] frames)")
            return store

    console.print("  Sampling frames...")
    images = sample_frames(input_path, config.analysis_interval, width)
    dropped = sum(1 for image in images if image is None)
    console.print(
        f"  Sampled [cyan]{len(images)}[/cyan] frames"
        + (f" ([yellow]{dropped}[/yellow] unreadable)" if dropped else "")
    )

    console.print("  Hashing frames...")
    store = build_store(images, config, kind=kind, hash_size=hash_size, workers=workers)

    if cache is not None:
        path = cache.save(input_path, config, kind, hash_size, width, store)
        console.print(f"  Cached fingerprints to [cyan]{path}[/cyan]")
    return store


def print_candidates(refined, top):
    """Table of the best refined candidates."""
    table = Table(show_edge=False, pad_edge=False, padding=(0, 2))
    table.add_column("#", justify="right")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Hash Δ", justify="right")
    table.add_column("Window score", justify="right")
    table.add_column("Window Δ")
    for rank, pair in enumerate(refined[:top], start=1):
        score = "∞" if math.isinf(pair.total_distance) else f"{pair.total_distance:.3f}"
        table.add_row(
            str(rank),
            f"{pair.start.timestamp:.2f}s",
            f"{pair.end.timestamp:.2f}s",
            f"{pair.duration:.2f}s",
            str(pair.hash_distance),
            score,
            " ".join(str(d) for d in pair.distances),
        )
    console.print(table)


def main():
    parser = argparse.ArgumentParser(
        description="Find the most seamless loop point in a video and export the looped clip."
    )
    parser.add_argument("input", help="Input video file.")
    parser.add_argument(
        "--output", default=None,
        help="Output MP4 file path (default: <input>-looped.mp4).",
    )
    parser.add_argument(
        "--interval", type=float, default=0.25,
        help="Seconds between analysed frames (default: 0.25).",
    )
    parser.add_argument(
        "--crossfade", type=float, default=0.75,
        help="Crossfade length in seconds (default: 0.75).",
    )
    parser.add_argument(
        "--min-duration", type=float, default=5.0,
        help="Shortest acceptable loop in seconds (default: 5).",
    )
    parser.add_argument(
        "--max-duration", type=float, default=20.0,
        help="Longest acceptable loop in seconds (default: 20).",
    )
    parser.add_argument(
        "--hash", choices=sorted(HASHERS), default="phash",
        help="Perceptual hash used to fingerprint frames (default: phash).",
    )
    parser.add_argument(
        "--hash-size", type=int, default=DEFAULT_HASH_SIZE,
        help=f"Hash grid size; fingerprints have N×N bits (default: {DEFAULT_HASH_SIZE}).",
    )
    parser.add_argument(
        "--width", type=int, default=ANALYSIS_WIDTH,
        help=f"Width analysed frames are scaled down to (default: {ANALYSIS_WIDTH}).",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="Threads used to hash frames (default: 1).",
    )
    parser.add_argument(
        "--cache-dir", default=DEFAULT_CACHE_DIR,
        help=f"Fingerprint cache directory (default: {DEFAULT_CACHE_DIR}).",
    )
    parser.add_argument("--no-cache", action="store_true", help="Neither read nor write the cache.")
    parser.add_argument("--force", action="store_true", help="Ignore cached fingerprints and rebuild them.")
    parser.add_argument(
        "--top", type=int, default=5,
        help="Number of ranked candidates to show (default: 5).",
    )
    parser.add_argument(
        "--analyze-only", action="store_true",
        help="Report the loop point without writing a video.",
    )
    args = parser.parse_args()

    if not os.path.isfile(args.input):
        parser.error(f"Input file not found: {args.input}")
    if args.hash_size < 2:
        parser.error("Hash size must be at least 2")
    if args.width <= 0:
        parser.error("Width must be positive")
    if args.workers < 1:
        parser.error("Workers must be at least 1")
    if args.top < 0:
        parser.error("Top must be non-negative")
    try:
        config = AnalysisConfig(
            analysis_interval=args.interval,
            crossfade_seconds=args.crossfade,
            min_loop_duration=args.min_duration,
            max_loop_duration=args.max_duration,
        )
    except ValueError as e:
        parser.error(str(e))

    output = args.output or default_output_path(args.input)
    cache = None if args.no_cache else FingerprintCache(args.cache_dir)

    try:
        video = probe_video(args.input)
    except LoopAnalysisError as e:
        fail(str(e))

    # Print header.
    console.print()
    console.print("[bold cyan]🔁 Seamless Loop[/bold cyan]")
    console.print()

    header = info_table()
    header.add_row("Input", f"[cyan]{os.path.abspath(args.input)}[/cyan]")
    header.add_row("Resolution", f"[cyan]{video['width']}×{video['height']}[/cyan]")
    header.add_row("Source FPS", f"[cyan]{video['fps']:.2f}[/cyan]")
    header.add_row("Length", f"[cyan]{video['duration']:.2f}s[/cyan]")
    header.add_row("Sampling", f"every [cyan]{config.analysis_interval:g}s[/cyan] ({args.hash}, {args.hash_size}×{args.hash_size})")
    header.add_row("Crossfade", f"[cyan]{config.crossfade_seconds:g}s[/cyan] ({config.window_frame_count} samples)")
    header.add_row("Loop length", f"[cyan]{config.min_loop_duration:g}s – {config.max_loop_duration:g}s[/cyan]")
    console.print(header)
    console.print()

    try:
        store = load_fingerprints(
            args.input, config, args.hash, args.hash_size, args.width,
            args.workers, cache, args.force,
        )
        console.print("  Analyzing frames for similarity...")
        loop, refined = find_loop(store, config)
    except LoopAnalysisError as e:
        fail(str(e))

    console.print()
    print_candidates(refined, args.top)
    console.print()
    console.print(
        f"Best loop: {loop.start_timestamp:.2f}s → {loop.end_timestamp:.2f}s "
        f"(duration: {loop.duration:.2f}s, score: {loop.confidence:.3f})"
    )

    if args.analyze_only:
        console.print()
        return

    console.print()
    console.print("  Compositing loop...")
    try:
        frames, fps = composite_loop(args.input, loop.start_timestamp, loop.duration, config.crossfade_seconds)
        total = write_video(frames, output, fps)
    except LoopAnalysisError as e:
        fail(str(e))

    seam = frame_ssim(frames[-1], frames[0])
    quality = "excellent" if seam > 0.95 else "good" if seam > 0.85 else "fair"
    color = "green" if seam > 0.95 else "yellow" if seam > 0.85 else "red"

    result = info_table()
    result.add_row("Output frames", f"[cyan]{total}[/cyan]")
    result.add_row("Output duration", f"[cyan]{total / fps:.2f}s[/cyan]")
    result.add_row("Seam SSIM", f"[{color}]{seam:.3f} ({quality})[/{color}]")
    console.print(result)

    abs_output = os.path.abspath(output)
    console.print()
    console.print("[bold green]✓ Done[/bold green]")
    console.print()
    console.print(f"file://{abs_output}")
    console.print()


if __name__ == "__main__":
    main()
