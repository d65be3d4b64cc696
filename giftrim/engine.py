"""Orchestrator: runs one conversion request through the pipeline stages."""

import logging
import shutil
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable

from giftrim.analyzers.transcribe import Transcriber, make_backend
from giftrim.editors.extract import FFmpegSegmentExtractor, SegmentExtractor
from giftrim.editors.gif import FFmpegGifRenderer, GifRenderer
from giftrim.errors import ExtractionFailed, InvalidInput
from giftrim.models import (
    AudioArtifact,
    ConversionMetadata,
    ConversionResult,
    TimeWindow,
    VideoHandle,
)
from giftrim.settings import Settings
from giftrim.sources import SourceResolver

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    TRANSCRIBING = "transcribing"
    RENDERING = "rendering"
    CLEANING = "cleaning"
    DONE = "done"
    ERRORED = "errored"


_STAGE_PROGRESS = {
    Stage.VALIDATING: 0.0,
    Stage.EXTRACTING: 0.1,
    Stage.TRANSCRIBING: 0.3,
    Stage.RENDERING: 0.5,
    Stage.CLEANING: 0.95,
    Stage.DONE: 1.0,
    Stage.ERRORED: 1.0,
}


@dataclass
class ConversionRequest:
    """One inbound request: an upload or a reference, plus a time range."""

    start: float
    end: float
    data: bytes | None = None
    filename: str | None = None
    reference: str | None = None
    subtitles: bool = False


@dataclass
class PipelineContext:
    """Process-wide collaborators, built once at startup."""

    settings: Settings
    resolver: SourceResolver
    extractor: SegmentExtractor
    renderer: GifRenderer
    transcriber: Transcriber | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        allow_local_paths: bool = False,
    ) -> "PipelineContext":
        transcriber = None
        if settings.transcription.enabled:
            try:
                backend = make_backend(
                    settings.transcription, settings.google_credentials_json
                )
                transcriber = Transcriber(backend, settings.transcription)
            except Exception as e:
                # Subtitles are optional; run without them.
                logger.error("Failed to initialize speech backend: %s", e)

        return cls(
            settings=settings,
            resolver=SourceResolver(
                settings.uploads_dir,
                settings.max_upload_bytes,
                allow_local_paths=allow_local_paths,
            ),
            extractor=FFmpegSegmentExtractor(settings.transcription),
            renderer=FFmpegGifRenderer(settings.render),
            transcriber=transcriber,
        )


def new_request_id() -> str:
    """Time-based id with a random suffix, unique across concurrent requests."""
    return f"{datetime.now(timezone.utc):%Y%m%d%H%M%S}-{uuid.uuid4().hex[:12]}"


class Pipeline:
    def __init__(self, context: PipelineContext):
        self.context = context

    async def convert(
        self,
        request: ConversionRequest,
        on_progress: Callable[[str, float], None] | None = None,
    ) -> ConversionResult:
        """Execute the full conversion pipeline.

        Args:
            request: Source and time range to convert.
            on_progress: Optional callback(stage_name, fraction_complete).

        Raises:
            InvalidInput: before any artifact is created.
            RenderFailed: after intermediates have been cleaned up.
        """
        settings = self.context.settings
        stage = Stage.VALIDATING

        def _enter(next_stage: Stage) -> Stage:
            logger.debug("Entering %s", next_stage.value)
            if on_progress:
                on_progress(next_stage.value, _STAGE_PROGRESS[next_stage])
            return next_stage

        _enter(stage)
        try:
            window = TimeWindow.create(request.start, request.end)
        except InvalidInput:
            _enter(Stage.ERRORED)
            raise

        request_id = new_request_id()
        scratch_dir = settings.uploads_dir / request_id
        gif_path = settings.outputs_dir / f"{request_id}.gif"

        handle: VideoHandle | None = None
        audio: AudioArtifact | None = None
        succeeded = False
        try:
            handle = self.context.resolver.resolve(
                request_id,
                data=request.data,
                filename=request.filename,
                reference=request.reference,
            )
            logger.info(
                "Request %s: converting %.3f-%.3fs of %s",
                request_id, window.start, window.end, handle.location,
            )

            transcript = None
            if request.subtitles and self.context.transcriber is not None:
                stage = _enter(Stage.EXTRACTING)
                try:
                    audio = await self.context.extractor.extract(handle, window, scratch_dir)
                except ExtractionFailed as e:
                    logger.warning(
                        "Request %s: audio extraction failed, continuing without subtitles: %s",
                        request_id, e,
                    )

                if audio is not None:
                    stage = _enter(Stage.TRANSCRIBING)
                    transcript = await self.context.transcriber.transcribe(audio)

            stage = _enter(Stage.RENDERING)
            gif = await self.context.renderer.render(handle, window, transcript, gif_path)
            succeeded = True
        finally:
            _enter(Stage.CLEANING)
            self._cleanup(request_id, scratch_dir, audio, handle, gif_path, succeeded)
            if not succeeded:
                level = logging.WARNING if stage is Stage.VALIDATING else logging.ERROR
                logger.log(level, "Request %s failed during %s", request_id, stage.value)
                _enter(Stage.ERRORED)

        _enter(Stage.DONE)
        return ConversionResult(
            gif_path=gif.path,
            gif_url=f"{settings.public_base_url.rstrip('/')}/{gif.name}",
            transcript=transcript,
            metadata=ConversionMetadata(
                duration=window.duration,
                start_time=window.start,
                end_time=window.end,
                original_size=handle.size,
                processed_at=datetime.now(timezone.utc).isoformat(),
            ),
        )

    def _cleanup(
        self,
        request_id: str,
        scratch_dir: Path,
        audio: AudioArtifact | None,
        handle: VideoHandle | None,
        gif_path: Path,
        succeeded: bool,
    ) -> None:
        """Remove this request's intermediates. Failures are logged only."""
        targets: list[Path] = []
        if audio is not None:
            targets.append(audio.path)
        if handle is not None and handle.staged_path is not None:
            targets.append(handle.staged_path)
        if not succeeded:
            targets.append(gif_path)

        for path in targets:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Request %s: could not delete %s: %s", request_id, path, e)

        if scratch_dir.exists():
            try:
                shutil.rmtree(scratch_dir)
            except OSError as e:
                logger.warning("Request %s: could not delete %s: %s", request_id, scratch_dir, e)
