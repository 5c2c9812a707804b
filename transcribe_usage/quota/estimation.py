"""Upload duration estimate from file size and mime type."""

import math

from ..tiers import MB

DEFAULT_MB_PER_MINUTE = 1.0
MAX_ESTIMATED_MINUTES = 480

# Typical encoded size of one minute of audio/video, in MB
MB_PER_MINUTE: dict[str, float] = {
    "audio/mpeg": 1.0,
    "audio/mp3": 1.0,
    "audio/m4a": 0.8,
    "audio/x-m4a": 0.8,
    "audio/mp4": 0.8,
    "audio/wav": 10.0,
    "audio/x-wav": 10.0,
    "audio/flac": 6.0,
    "audio/x-flac": 6.0,
    "audio/ogg": 0.7,
    "audio/webm": 0.7,
    "video/mp4": 2.0,
    "video/webm": 1.5,
}


def estimate_duration_minutes(
    file_size_bytes: int,
    mime_type: str | None,
    default_mb_per_minute: float = DEFAULT_MB_PER_MINUTE,
    max_minutes: int = MAX_ESTIMATED_MINUTES,
) -> int:
    """Estimate the playback length of an upload before it is processed.

    Args:
        file_size_bytes: Size of the uploaded file.
        mime_type: Declared content type; unknown types use the default rate.
        default_mb_per_minute: Rate for unknown mime types.
        max_minutes: Upper bound on the estimate.

    Returns:
        Estimated whole minutes, rounded up.
    """
    if file_size_bytes < 0:
        raise ValueError("file_size_bytes must be non-negative")

    rate = MB_PER_MINUTE.get((mime_type or "").lower(), default_mb_per_minute)
    minutes = math.ceil((file_size_bytes / MB) / rate)
    return min(minutes, max_minutes)
