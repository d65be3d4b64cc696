"""Shared data types used across giftrim."""

import math
from dataclasses import dataclass
from pathlib import Path

from giftrim.errors import InvalidInput


@dataclass(frozen=True)
class TimeWindow:
    """A half-open [start, end) range in seconds."""

    start: float
    end: float

    @classmethod
    def create(cls, start: float, end: float) -> "TimeWindow":
        """Validate and build a window; raise InvalidInput if malformed."""
        try:
            start = float(start)
            end = float(end)
        except (TypeError, ValueError):
            raise InvalidInput("Invalid time range") from None
        if not (math.isfinite(start) and math.isfinite(end)):
            raise InvalidInput("Invalid time range")
        if start < 0 or end <= start:
            raise InvalidInput("Invalid time range")
        return cls(start=start, end=end)

    @property
    def duration(self) -> float:
        return self.end - self.start


def format_seconds(seconds: float) -> str:
    """Format seconds for ffmpeg's -ss/-t with millisecond precision."""
    return f"{seconds:.3f}"


@dataclass(frozen=True)
class VideoHandle:
    """A resolved source video: a local path or a remote URL.

    ``staged_path`` is set only when upload bytes were written to disk for
    this request and must be removed when the request ends.
    """

    location: str
    is_remote: bool = False
    size: int | None = None
    staged_path: Path | None = None


@dataclass
class AudioArtifact:
    """Audio-only encoding of one window of one source."""

    path: Path
    sample_rate: int
    encoding: str


@dataclass
class GifArtifact:
    path: Path
    name: str


@dataclass
class ConversionMetadata:
    duration: float
    start_time: float
    end_time: float
    original_size: int | None
    processed_at: str


@dataclass
class ConversionResult:
    """What one successful request returns."""

    gif_path: Path
    gif_url: str
    transcript: str | None
    metadata: ConversionMetadata

    def to_dict(self) -> dict:
        return {
            "success": True,
            "gifUrl": self.gif_url,
            "transcription": self.transcript,
            "metadata": {
                "duration": self.metadata.duration,
                "startTime": self.metadata.start_time,
                "endTime": self.metadata.end_time,
                "originalSize": self.metadata.original_size,
                "processedAt": self.metadata.processed_at,
            },
        }


@dataclass
class ProbeResult:
    """Metadata extracted from a media file via ffprobe."""

    duration: float
    width: int
    height: int
    fps: float
    codec_video: str
    audio_sample_rate: int | None = None
    codec_audio: str | None = None

    @property
    def has_audio(self) -> bool:
        return self.codec_audio is not None
