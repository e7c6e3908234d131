"""Size-bounded media splitting: plan segments that fit an upload ceiling."""

import math

from vidask.errors import InputValidationError
from vidask.models import MediaProbe, SegmentDescriptor


def segment_duration_for(bit_rate: float, max_segment_bytes: float) -> float:
    """Longest duration (seconds, ms resolution) whose CBR size fits the ceiling."""
    if bit_rate <= 0:
        raise InputValidationError(f"bitrate must be positive, got {bit_rate}")
    if max_segment_bytes <= 0:
        raise InputValidationError(
            f"max segment size must be positive, got {max_segment_bytes}"
        )

    bytes_per_second = bit_rate / 8
    # Truncate to whole milliseconds so start times do not drift
    duration = math.floor(max_segment_bytes * 1000 / bytes_per_second) / 1000
    if duration <= 0:
        raise InputValidationError(
            f"{max_segment_bytes} bytes holds less than 1 ms of audio at {bit_rate} bit/s"
        )
    return duration


def plan_segments(probe: MediaProbe, max_segment_bytes: float) -> list[SegmentDescriptor]:
    """Split *probe*'s duration into the fewest segments under the size ceiling.

    Every segment, the last included, gets the same nominal duration. The
    encoder stops at end-of-stream, so the last one is usually shorter in
    practice. Sizes assume a constant bitrate; VBR sources may overshoot.
    """
    if probe.duration <= 0:
        raise InputValidationError(f"duration must be positive, got {probe.duration}")

    seg_duration = segment_duration_for(probe.bit_rate, max_segment_bytes)
    count = max(1, math.ceil(probe.duration / seg_duration))

    return [
        SegmentDescriptor(index=i, start=(i - 1) * seg_duration, duration=seg_duration)
        for i in range(1, count + 1)
    ]
