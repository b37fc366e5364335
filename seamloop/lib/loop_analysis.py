"""Two-pass loop-point search over a fingerprint store.

Pass 1 pairs every admissible start frame with every later end frame and
ranks the pairs by single-frame hash distance. Pass 2 re-scores each pair
over the whole crossfade window, weighting the half-blended middle of the
transition most heavily, and the selector takes the best result.
"""

import math
from dataclasses import dataclass, field
from operator import attrgetter

from seamloop.lib.errors import InputExhausted, NoViableCandidate
from seamloop.lib.fingerprint import hamming_distance


DISCOUNT_BASE = 0.5


@dataclass
class CandidatePair:
    """A tentative (loop start, loop end) pairing.

    ``total_distance`` and ``distances`` are filled in by
    :func:`refine_candidates`; until then the total is infinite.
    """
    start: object
    end: object
    duration: float
    hash_distance: int
    total_distance: float = math.inf
    distances: list = field(default_factory=list)


@dataclass(frozen=True)
class LoopPoint:
    start_timestamp: float
    duration: float
    confidence: float

    @property
    def end_timestamp(self):
        return round(self.start_timestamp + self.duration, 6)


def search_candidates(store, config):
    """Pass 1: every admissible (start, end) pair, best hash match first.

    A start must leave a full crossfade of footage before it, the end must
    come later, and the gap must be within the configured loop durations.
    Pairs with equal hash distance keep enumeration order (start ordinal,
    then end ordinal).
    """
    frames = store.frames()
    if len(frames) < 2:
        raise InputExhausted(len(frames))

    pairs = []
    for start in frames:
        if start.timestamp <= config.crossfade_seconds:
            continue
        for end in frames:
            if start.timestamp >= end.timestamp:
                continue
            duration = round(end.timestamp - start.timestamp, 6)
            if duration < config.min_loop_duration:
                continue
            # Frames are in timestamp order, every later end is longer still.
            if duration > config.max_loop_duration:
                break
            pairs.append(CandidatePair(
                start=start,
                end=end,
                duration=duration,
                hash_distance=hamming_distance(start.hash, end.hash),
            ))

    pairs.sort(key=attrgetter("hash_distance"))
    return pairs


def window_discount(offset, window):
    """Weight for the comparison ``offset`` samples before the boundary."""
    return DISCOUNT_BASE ** abs(offset - window / 2)


def score_window(store, start, end, window):
    """Compare the crossfade windows ending at ``start`` and ``end``.

    Returns (total_distance, distances) where distances runs from the
    earliest offset (``window``) to the boundary itself (0).
    """
    distances = []
    total = 0.0
    for offset in range(window, -1, -1):
        a = store.by_ordinal(start.ordinal - offset)
        b = store.by_ordinal(end.ordinal - offset)
        distance = hamming_distance(a.hash, b.hash)
        total += distance * distance * window_discount(offset, window)
        distances.append(distance)
    return total, distances


def refine_candidates(store, candidates, config):
    """Pass 2: score each candidate over its crossfade window.

    Candidates whose start is too close to the beginning of the footage for
    a full window get an infinite total. Every candidate is returned,
    re-sorted by total distance (stable on ties).
    """
    window = config.window_frame_count
    for pair in candidates:
        if pair.start.ordinal <= window:
            pair.total_distance = math.inf
            pair.distances = []
            continue
        pair.total_distance, pair.distances = score_window(store, pair.start, pair.end, window)

    return sorted(candidates, key=attrgetter("total_distance"))


def select_loop(refined, config):
    """Pick the lowest-scoring refined candidate."""
    if not refined or math.isinf(refined[0].total_distance):
        raise NoViableCandidate(config, len(refined))
    best = refined[0]
    return LoopPoint(
        start_timestamp=best.start.timestamp,
        duration=best.duration,
        confidence=best.total_distance,
    )


def find_loop(store, config):
    """Run both passes and the selector. Returns (loop_point, refined)."""
    candidates = search_candidates(store, config)
    refined = refine_candidates(store, candidates, config)
    return select_loop(refined, config), refined
