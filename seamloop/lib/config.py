"""Analysis parameters shared by the loop-point search and the tools."""

import math
from dataclasses import dataclass


DEFAULT_INTERVAL = 0.25
DEFAULT_CROSSFADE = 0.75
DEFAULT_MIN_DURATION = 5.0
DEFAULT_MAX_DURATION = 20.0


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable settings for one analysis run.

    Derived quantities (sampling rate, crossfade window size in samples) are
    exposed as properties so they are always consistent with the inputs.
    """
    analysis_interval: float = DEFAULT_INTERVAL
    crossfade_seconds: float = DEFAULT_CROSSFADE
    min_loop_duration: float = DEFAULT_MIN_DURATION
    max_loop_duration: float = DEFAULT_MAX_DURATION

    def __post_init__(self):
        if self.analysis_interval <= 0:
            raise ValueError("analysis interval must be positive")
        if self.crossfade_seconds <= 0:
            raise ValueError("crossfade must be positive")
        if self.min_loop_duration <= 0 or self.max_loop_duration <= 0:
            raise ValueError("loop durations must be positive")
        if self.min_loop_duration > self.max_loop_duration:
            raise ValueError(
                f"minimum loop duration ({self.min_loop_duration:g}s) exceeds "
                f"maximum ({self.max_loop_duration:g}s)"
            )
        if self.crossfade_seconds >= self.min_loop_duration:
            raise ValueError("crossfade must be shorter than the minimum loop duration")

    @property
    def sampling_rate(self):
        """Sampled frames per second."""
        return 1.0 / self.analysis_interval

    @property
    def window_frame_count(self):
        """Number of whole sampling intervals that fit in the crossfade.

        Non-integer ratios round down, so the compared window never extends
        past the crossfade. The small epsilon absorbs float error such as
        0.3 / 0.1 == 2.9999999999999996.
        """
        return int(math.floor(self.crossfade_seconds / self.analysis_interval + 1e-9))

    def timestamp(self, ordinal):
        """Seconds from the start of the clip for a 1-based sample ordinal."""
        return round((ordinal - 1) * self.analysis_interval, 6)
