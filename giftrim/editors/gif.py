"""GIF renderer: encodes a window of the source, optionally captioned."""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from giftrim import ffutil
from giftrim.editors.captions import gif_filter_graph
from giftrim.errors import RenderFailed
from giftrim.models import GifArtifact, TimeWindow, VideoHandle
from giftrim.settings import RenderConfig

logger = logging.getLogger(__name__)


class GifRenderer(Protocol):
    async def render(
        self,
        handle: VideoHandle,
        window: TimeWindow,
        caption: str | None,
        dest: Path,
    ) -> GifArtifact: ...


class FFmpegGifRenderer:
    """Palette-optimized GIF rendering through the local ffmpeg binary."""

    def __init__(self, config: RenderConfig):
        self.config = config

    async def render(
        self,
        handle: VideoHandle,
        window: TimeWindow,
        caption: str | None,
        dest: Path,
    ) -> GifArtifact:
        return await asyncio.to_thread(self._render, handle, window, caption, dest)

    def _render(
        self,
        handle: VideoHandle,
        window: TimeWindow,
        caption: str | None,
        dest: Path,
    ) -> GifArtifact:
        graph = gif_filter_graph(caption, self.config)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info(
            "Rendering GIF %.3f-%.3fs (captioned=%s) to %s",
            window.start, window.end, bool(caption), dest.name,
        )
        try:
            ffutil.render_gif(handle.location, window, graph, dest)
        except (ffutil.FFmpegError, OSError) as e:
            dest.unlink(missing_ok=True)
            raise RenderFailed(str(e)) from e

        if not dest.exists() or dest.stat().st_size == 0:
            dest.unlink(missing_ok=True)
            raise RenderFailed("ffmpeg produced no output")

        return GifArtifact(path=dest, name=dest.name)
