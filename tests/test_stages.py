"""Unit tests for the ffmpeg-backed extractor and renderer stages."""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from giftrim.editors.extract import FFmpegSegmentExtractor
from giftrim.editors.gif import FFmpegGifRenderer
from giftrim.errors import ExtractionFailed, RenderFailed
from giftrim.ffutil import FFmpegError
from giftrim.models import ProbeResult, TimeWindow, VideoHandle
from giftrim.settings import RenderConfig, TranscriptionConfig

HANDLE = VideoHandle(location="in.mp4")
WINDOW = TimeWindow.create(2, 5)


def _make_probe(duration: float = 10.0, audio: bool = True) -> ProbeResult:
    return ProbeResult(
        duration=duration,
        width=320,
        height=240,
        fps=30.0,
        codec_video="h264",
        audio_sample_rate=44100 if audio else None,
        codec_audio="aac" if audio else None,
    )


def _write_output(content: bytes):
    def _side_effect(source, window, output_path, *args, **kwargs):
        Path(output_path).write_bytes(content)
        return output_path
    return _side_effect


def _write_gif(content: bytes):
    def _side_effect(source, window, graph, output_path):
        Path(output_path).write_bytes(content)
        return output_path
    return _side_effect


class TestSegmentExtractor:
    @patch("giftrim.editors.extract.ffutil.extract_audio_segment")
    @patch("giftrim.editors.extract.ffutil.probe")
    def test_success(self, mock_probe, mock_extract, tmp_path):
        mock_probe.return_value = _make_probe()
        mock_extract.side_effect = _write_output(b"ID3 audio")
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())

        artifact = asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path / "req"))

        assert artifact.path == tmp_path / "req" / "audio.mp3"
        assert artifact.path.read_bytes() == b"ID3 audio"
        assert artifact.sample_rate == 16000
        assert artifact.encoding == "mp3"
        args, kwargs = mock_extract.call_args
        assert args[0] == "in.mp4"
        assert args[1] == WINDOW
        assert kwargs["sample_rate"] == 16000

    @patch("giftrim.editors.extract.ffutil.probe")
    def test_no_audio_stream(self, mock_probe, tmp_path):
        mock_probe.return_value = _make_probe(audio=False)
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())
        with pytest.raises(ExtractionFailed, match="no audio"):
            asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path))

    @patch("giftrim.editors.extract.ffutil.probe")
    def test_window_past_end(self, mock_probe, tmp_path):
        mock_probe.return_value = _make_probe(duration=4.0)
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())
        with pytest.raises(ExtractionFailed, match="media is 4.00s"):
            asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path))

    @patch("giftrim.editors.extract.ffutil.extract_audio_segment")
    @patch("giftrim.editors.extract.ffutil.probe")
    def test_window_end_within_tolerance(self, mock_probe, mock_extract, tmp_path):
        mock_probe.return_value = _make_probe(duration=4.995)
        mock_extract.side_effect = _write_output(b"ID3")
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())
        artifact = asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path))
        assert artifact.path.exists()

    @patch("giftrim.editors.extract.ffutil.probe")
    def test_unreadable_source(self, mock_probe, tmp_path):
        mock_probe.side_effect = FFmpegError(["ffprobe"], 1, "moov atom not found")
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())
        with pytest.raises(ExtractionFailed, match="Could not read"):
            asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path))

    @patch("giftrim.editors.extract.ffutil.extract_audio_segment")
    @patch("giftrim.editors.extract.ffutil.probe")
    def test_ffmpeg_error(self, mock_probe, mock_extract, tmp_path):
        mock_probe.return_value = _make_probe()
        mock_extract.side_effect = FFmpegError(["ffmpeg"], 1, "Unsupported codec")
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())
        with pytest.raises(ExtractionFailed, match="Unsupported codec"):
            asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path))

    @patch("giftrim.editors.extract.ffutil.extract_audio_segment")
    @patch("giftrim.editors.extract.ffutil.probe")
    def test_empty_output(self, mock_probe, mock_extract, tmp_path):
        mock_probe.return_value = _make_probe()
        mock_extract.side_effect = _write_output(b"")
        extractor = FFmpegSegmentExtractor(TranscriptionConfig())
        with pytest.raises(ExtractionFailed, match="no audio"):
            asyncio.run(extractor.extract(HANDLE, WINDOW, tmp_path))


class TestGifRenderer:
    @patch("giftrim.editors.gif.ffutil.render_gif")
    def test_success(self, mock_render, tmp_path):
        mock_render.side_effect = _write_gif(b"GIF89a")
        renderer = FFmpegGifRenderer(RenderConfig())
        dest = tmp_path / "outputs" / "abc.gif"

        gif = asyncio.run(renderer.render(HANDLE, WINDOW, None, dest))

        assert gif.path == dest
        assert gif.name == "abc.gif"
        graph = mock_render.call_args[0][2]
        assert "drawtext" not in graph
        assert graph.startswith("fps=10,")

    @patch("giftrim.editors.gif.ffutil.render_gif")
    def test_caption_overlay(self, mock_render, tmp_path):
        mock_render.side_effect = _write_gif(b"GIF89a")
        renderer = FFmpegGifRenderer(RenderConfig())

        asyncio.run(renderer.render(HANDLE, WINDOW, "hello world", tmp_path / "a.gif"))

        graph = mock_render.call_args[0][2]
        assert "drawtext=" in graph
        assert "text=hello world" in graph

    @patch("giftrim.editors.gif.ffutil.render_gif")
    def test_ffmpeg_error_removes_partial(self, mock_render, tmp_path):
        dest = tmp_path / "a.gif"

        def _fail(source, window, graph, output_path):
            output_path.write_bytes(b"GIF89a partial")
            raise FFmpegError(["ffmpeg"], 1, "Error initializing filter")

        mock_render.side_effect = _fail
        renderer = FFmpegGifRenderer(RenderConfig())

        with pytest.raises(RenderFailed, match="filter"):
            asyncio.run(renderer.render(HANDLE, WINDOW, None, dest))
        assert not dest.exists()

    @patch("giftrim.editors.gif.ffutil.render_gif")
    def test_empty_output(self, mock_render, tmp_path):
        mock_render.side_effect = _write_gif(b"")
        renderer = FFmpegGifRenderer(RenderConfig())
        dest = tmp_path / "a.gif"
        with pytest.raises(RenderFailed, match="no output"):
            asyncio.run(renderer.render(HANDLE, WINDOW, None, dest))
        assert not dest.exists()
