"""Media source resolver: turns an upload or a reference into a VideoHandle."""

import logging
from pathlib import Path
from urllib.parse import urlparse

from giftrim.errors import InvalidInput
from giftrim.models import VideoHandle

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")


class SourceResolver:
    """Validates inputs, then stages upload bytes under ``uploads_dir``.

    Staged files are owned by the caller; the resolver never deletes them.
    """

    def __init__(
        self,
        uploads_dir: Path,
        max_upload_bytes: int,
        allow_local_paths: bool = False,
    ):
        self.uploads_dir = Path(uploads_dir)
        self.max_upload_bytes = max_upload_bytes
        self.allow_local_paths = allow_local_paths

    def resolve(
        self,
        request_id: str,
        data: bytes | None = None,
        filename: str | None = None,
        reference: str | None = None,
    ) -> VideoHandle:
        if data is not None:
            return self.resolve_upload(request_id, data, filename)
        if reference:
            return self.resolve_reference(reference)
        raise InvalidInput("No video file uploaded")

    def resolve_upload(
        self, request_id: str, data: bytes, filename: str | None = None
    ) -> VideoHandle:
        size = len(data)
        if size == 0:
            raise InvalidInput("Uploaded video is empty")
        if size > self.max_upload_bytes:
            raise InvalidInput(
                f"Uploaded video is {size} bytes; the limit is {self.max_upload_bytes}"
            )

        ext = Path(filename).suffix if filename else ""
        staged = self.uploads_dir / request_id / f"input{ext or '.mp4'}"
        staged.parent.mkdir(parents=True, exist_ok=True)
        staged.write_bytes(data)
        logger.info("Staged %d-byte upload at %s", size, staged)

        return VideoHandle(location=str(staged), size=size, staged_path=staged)

    def resolve_reference(self, reference: str) -> VideoHandle:
        reference = reference.strip()
        if not reference:
            raise InvalidInput("Empty video reference")

        parsed = urlparse(reference)
        if parsed.scheme in REMOTE_SCHEMES:
            if not parsed.netloc:
                raise InvalidInput(f"Malformed video URL: {reference}")
            return VideoHandle(location=reference, is_remote=True)
        if parsed.scheme and len(parsed.scheme) > 1:
            # single-letter schemes are Windows drive letters
            raise InvalidInput(f"Unsupported video URL scheme: {parsed.scheme}")
        if not self.allow_local_paths:
            raise InvalidInput(f"Video reference must be an http(s) URL: {reference}")

        path = Path(reference)
        if not path.is_file():
            raise InvalidInput(f"Video not found: {reference}")
        return VideoHandle(location=str(path), size=path.stat().st_size)
