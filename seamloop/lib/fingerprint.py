"""Perceptual fingerprints for sampled video frames.

Every sampled frame is reduced to a short bit string ('0'/'1' characters) so
that visually similar frames land a small Hamming distance apart. The
fingerprints are collected in a :class:`FingerprintStore`, keyed by the stable
frame id ``frames-<ordinal>`` and indexed by ordinal for window lookups.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import cv2
import numpy as np

from seamloop.lib.errors import HashLengthMismatch, MissingFrameIndex


DEFAULT_HASH_SIZE = 8


@dataclass(frozen=True)
class SampledFrame:
    """One fingerprinted sample. Ordinals are 1-based."""
    ordinal: int
    timestamp: float
    hash: str

    @property
    def frame_id(self):
        return frame_id(self.ordinal)


def frame_id(ordinal):
    return f"frames-{ordinal}"


def _to_gray(image):
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def _bits(mask):
    return "".join("1" if bit else "0" for bit in mask.flatten())


def phash(image, hash_size=DEFAULT_HASH_SIZE):
    """DCT perceptual hash.

    The grayscale frame is shrunk to (4N)x(4N), transformed with a 2-D DCT,
    and the low-frequency NxN block is thresholded against its median
    (DC term excluded). Returns a string of N*N bits.
    """
    size = hash_size * 4
    small = cv2.resize(_to_gray(image), (size, size), interpolation=cv2.INTER_AREA)
    coeffs = cv2.dct(small.astype(np.float32))[:hash_size, :hash_size]
    median = np.median(coeffs.flatten()[1:])
    return _bits(coeffs > median)


def dhash(image, hash_size=DEFAULT_HASH_SIZE):
    """Horizontal difference hash: one bit per adjacent-pixel brightness step."""
    small = cv2.resize(_to_gray(image), (hash_size + 1, hash_size), interpolation=cv2.INTER_AREA)
    small = small.astype(np.int16)
    return _bits(small[:, 1:] > small[:, :-1])


HASHERS = {
    "phash": phash,
    "dhash": dhash,
}


def hamming_distance(hash_a, hash_b):
    """Count the positions at which two equal-length hashes differ."""
    if len(hash_a) != len(hash_b):
        raise HashLengthMismatch(hash_a, hash_b)
    return sum(1 for a, b in zip(hash_a, hash_b) if a != b)


class FingerprintStore:
    """Read-mostly table of sampled frames.

    Behaves like a mapping from frame id to :class:`SampledFrame`; iteration
    yields frame ids in ordinal order.
    """

    def __init__(self, analysis_interval, frames=()):
        self.analysis_interval = analysis_interval
        self._by_ordinal = {}
        self._by_id = {}
        for frame in frames:
            self.add(frame)

    def add(self, frame):
        self._by_ordinal[frame.ordinal] = frame
        self._by_id[frame.frame_id] = frame

    def __len__(self):
        return len(self._by_ordinal)

    def __iter__(self):
        return (frame_id(n) for n in sorted(self._by_ordinal))

    def __contains__(self, key):
        return key in self._by_id

    def __getitem__(self, key):
        return self._by_id[key]

    def frames(self):
        """All frames in ascending ordinal (and therefore timestamp) order."""
        return [self._by_ordinal[n] for n in sorted(self._by_ordinal)]

    def by_ordinal(self, ordinal):
        """Exact ordinal lookup; a gap is an internal-consistency failure."""
        try:
            return self._by_ordinal[ordinal]
        except KeyError:
            raise MissingFrameIndex(ordinal) from None

    def to_dict(self):
        return {
            frame.frame_id: {
                "ordinal": frame.ordinal,
                "timestamp": frame.timestamp,
                "hash": frame.hash,
            }
            for frame in self.frames()
        }

    @classmethod
    def from_dict(cls, analysis_interval, data):
        frames = [
            SampledFrame(int(entry["ordinal"]), float(entry["timestamp"]), str(entry["hash"]))
            for entry in data.values()
        ]
        return cls(analysis_interval, frames)


def build_store(images, config, kind="phash", hash_size=DEFAULT_HASH_SIZE, workers=1):
    """Fingerprint a sequence of sampled images.

    ``images`` is in sampling order; position i (0-based) becomes ordinal
    i + 1. Entries that are ``None`` (failed decodes) are dropped but still
    consume their ordinal, so neighbouring frames keep their timestamps.
    With ``workers > 1`` frames are hashed on a thread pool; the store is
    only assembled once every hash is done.
    """
    if kind not in HASHERS:
        raise ValueError(f"unknown hash kind '{kind}' (choose from {', '.join(sorted(HASHERS))})")
    hasher = HASHERS[kind]
    images = list(images)

    def _hash(image):
        if image is None:
            return None
        return hasher(image, hash_size)

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            hashes = list(pool.map(_hash, images))
    else:
        hashes = [_hash(image) for image in images]

    store = FingerprintStore(config.analysis_interval)
    for ordinal, value in enumerate(hashes, start=1):
        if value is None:
            continue
        store.add(SampledFrame(ordinal, config.timestamp(ordinal), value))
    return store
