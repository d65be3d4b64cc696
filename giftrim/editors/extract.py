"""Segment extractor: trims a window of the source to an audio artifact."""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from giftrim import ffutil
from giftrim.errors import ExtractionFailed
from giftrim.models import AudioArtifact, TimeWindow, VideoHandle
from giftrim.settings import TranscriptionConfig

logger = logging.getLogger(__name__)

# Slack allowed between window.end and the probed duration
DURATION_TOLERANCE = 0.01


class SegmentExtractor(Protocol):
    async def extract(
        self, handle: VideoHandle, window: TimeWindow, dest_dir: Path
    ) -> AudioArtifact: ...


class FFmpegSegmentExtractor:
    """Audio extraction through the local ffmpeg binary."""

    def __init__(self, config: TranscriptionConfig):
        self.config = config

    async def extract(
        self, handle: VideoHandle, window: TimeWindow, dest_dir: Path
    ) -> AudioArtifact:
        return await asyncio.to_thread(self._extract, handle, window, dest_dir)

    def _extract(
        self, handle: VideoHandle, window: TimeWindow, dest_dir: Path
    ) -> AudioArtifact:
        try:
            info = ffutil.probe(handle.location)
        except (ffutil.FFmpegError, ValueError, KeyError) as e:
            raise ExtractionFailed(f"Could not read source media: {e}") from e

        if not info.has_audio:
            raise ExtractionFailed("Source has no audio stream")
        if window.end > info.duration + DURATION_TOLERANCE:
            raise ExtractionFailed(
                f"Window ends at {window.end:.2f}s but media is {info.duration:.2f}s long"
            )

        dest_dir.mkdir(parents=True, exist_ok=True)
        output_path = dest_dir / f"audio.{self.config.audio_format}"
        logger.info(
            "Extracting audio %.3f-%.3fs from %s", window.start, window.end, handle.location
        )
        try:
            ffutil.extract_audio_segment(
                handle.location,
                window,
                output_path,
                sample_rate=self.config.sample_rate,
                codec=self.config.audio_codec,
                bitrate=self.config.audio_bitrate,
                fmt=self.config.audio_format,
            )
        except ffutil.FFmpegError as e:
            raise ExtractionFailed(str(e)) from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise ExtractionFailed("ffmpeg produced no audio")

        return AudioArtifact(
            path=output_path,
            sample_rate=self.config.sample_rate,
            encoding=self.config.audio_format,
        )
