"""Shared test fixtures and stage fakes."""

from pathlib import Path

import pytest

from giftrim.analyzers.transcribe import Transcriber
from giftrim.engine import Pipeline, PipelineContext
from giftrim.errors import ExtractionFailed, RenderFailed
from giftrim.models import AudioArtifact, GifArtifact
from giftrim.settings import Settings, TranscriptionConfig
from giftrim.sources import SourceResolver


class FakeExtractor:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list = []

    async def extract(self, handle, window, dest_dir: Path) -> AudioArtifact:
        self.calls.append((handle, window))
        if self.fail:
            raise ExtractionFailed("corrupt input")
        dest_dir.mkdir(parents=True, exist_ok=True)
        path = dest_dir / "audio.mp3"
        path.write_bytes(b"ID3 fake audio")
        return AudioArtifact(path=path, sample_rate=16000, encoding="mp3")


class FakeRenderer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: list = []

    async def render(self, handle, window, caption, dest: Path) -> GifArtifact:
        self.calls.append((handle, window, caption))
        dest.parent.mkdir(parents=True, exist_ok=True)
        if self.fail:
            # leave a partial file behind for the orchestrator to clean up
            dest.write_bytes(b"GIF89a partial")
            raise RenderFailed("bad filter graph")
        dest.write_bytes(b"GIF89a" + (caption or "").encode())
        return GifArtifact(path=dest, name=dest.name)


class FakeBackend:
    name = "fake"

    def __init__(self, pieces: list[str] | None = None, error: Exception | None = None):
        self.pieces = pieces or []
        self.error = error
        self.calls = 0

    def recognize(self, audio, artifact, config, timeout):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.pieces


def files_under(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return [p for p in root.rglob("*") if p.is_file()]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        work_dir=tmp_path / "work",
        transcription=TranscriptionConfig(backoff=0.0, timeout=5.0),
    )


@pytest.fixture
def make_pipeline(settings: Settings):
    """Build a Pipeline around fakes; returns (pipeline, extractor, renderer, backend)."""

    def _make(
        pieces: list[str] | None = None,
        backend_error: Exception | None = None,
        extract_fails: bool = False,
        render_fails: bool = False,
        with_transcriber: bool = True,
    ):
        extractor = FakeExtractor(fail=extract_fails)
        renderer = FakeRenderer(fail=render_fails)
        backend = FakeBackend(pieces=pieces, error=backend_error)
        context = PipelineContext(
            settings=settings,
            resolver=SourceResolver(settings.uploads_dir, settings.max_upload_bytes),
            extractor=extractor,
            renderer=renderer,
            transcriber=Transcriber(backend, settings.transcription) if with_transcriber else None,
        )
        return Pipeline(context), extractor, renderer, backend

    return _make
