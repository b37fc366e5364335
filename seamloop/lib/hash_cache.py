"""On-disk cache of fingerprint stores.

One JSON file per (input video, analysis interval, hash kind, hash size,
analysis width). The input is identified by absolute path, size and
modification time, so an edited or replaced video misses the cache and gets
fingerprinted again.
"""

import hashlib
import json
import os

from seamloop.lib.fingerprint import FingerprintStore


CACHE_VERSION = 1
DEFAULT_CACHE_DIR = "./tmp/loop_video/cache"


def input_identity(input_path):
    """Identity of a video file as stored in the cache key."""
    abs_path = os.path.abspath(input_path)
    stat = os.stat(abs_path)
    return {"path": abs_path, "size": stat.st_size, "mtime_ns": stat.st_mtime_ns}


class FingerprintCache:
    """Load and save fingerprint stores under ``cache_dir``."""

    def __init__(self, cache_dir=DEFAULT_CACHE_DIR):
        self.cache_dir = cache_dir

    def key(self, input_path, config, kind, hash_size, width):
        return {
            "version": CACHE_VERSION,
            "input": input_identity(input_path),
            "analysis_interval": config.analysis_interval,
            "hash": kind,
            "hash_size": hash_size,
            "width": width,
        }

    def path_for(self, input_path, config, kind, hash_size, width):
        """Cache file for an input/parameter combination."""
        abs_path = os.path.abspath(input_path)
        slot = f"{abs_path}|{config.analysis_interval!r}|{kind}|{hash_size}|{width}"
        digest = hashlib.sha1(slot.encode("utf-8")).hexdigest()[:16]
        name = os.path.splitext(os.path.basename(abs_path))[0]
        return os.path.join(self.cache_dir, f"{name}-{digest}.json")

    def load(self, input_path, config, kind, hash_size, width):
        """Return the cached store, or None on a miss, a stale or a malformed entry."""
        path = self.path_for(input_path, config, kind, hash_size, width)
        if not os.path.isfile(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except ValueError:
            # Covers JSONDecodeError and UnicodeDecodeError.
            return None
        if not isinstance(payload, dict):
            return None
        if payload.get("key") != self.key(input_path, config, kind, hash_size, width):
            return None
        frames = payload.get("frames")
        if not isinstance(frames, dict):
            return None
        try:
            return FingerprintStore.from_dict(config.analysis_interval, frames)
        except (ValueError, KeyError, TypeError):
            return None

    def save(self, input_path, config, kind, hash_size, width, store):
        """Write the store atomically and return the cache file path."""
        path = self.path_for(input_path, config, kind, hash_size, width)
        os.makedirs(self.cache_dir, exist_ok=True)
        payload = {
            "key": self.key(input_path, config, kind, hash_size, width),
            "frames": store.to_dict(),
        }
        tmp_path = path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        return path
