"""Typed failures raised by the loop analysis."""


class LoopAnalysisError(Exception):
    """Base class for every failure the analysis reports to its caller."""


class HashLengthMismatch(LoopAnalysisError):
    """Two fingerprints of different length were compared."""

    def __init__(self, hash_a, hash_b):
        self.lengths = (len(hash_a), len(hash_b))
        super().__init__(
            f"cannot compare hashes of length {self.lengths[0]} and {self.lengths[1]}"
        )


class InputExhausted(LoopAnalysisError):
    """Fewer than two usable sampled frames."""

    def __init__(self, frame_count):
        self.frame_count = frame_count
        super().__init__(
            f"need at least 2 usable sampled frames, got {frame_count}"
        )


class NoViableCandidate(LoopAnalysisError):
    """No (start, end) pair survived the duration filters and refinement."""

    def __init__(self, config, candidate_count=0):
        self.config = config
        self.candidate_count = candidate_count
        super().__init__(
            f"no viable loop point between {config.min_loop_duration:g}s and "
            f"{config.max_loop_duration:g}s with a {config.crossfade_seconds:g}s "
            f"crossfade ({candidate_count} candidate(s) considered)"
        )


class MissingFrameIndex(LoopAnalysisError):
    """A crossfade window referenced an ordinal absent from the store."""

    def __init__(self, ordinal):
        self.ordinal = ordinal
        super().__init__(f"frame ordinal {ordinal} is missing from the fingerprint store")


class VideoOpenError(LoopAnalysisError):
    """The input video could not be opened or decoded."""
