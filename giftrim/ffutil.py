"""FFmpeg/ffprobe subprocess helpers."""

import json
import shutil
import subprocess
from pathlib import Path

from giftrim.models import ProbeResult, TimeWindow, format_seconds


class FFmpegNotFoundError(RuntimeError):
    pass


class FFmpegError(RuntimeError):
    """Raised when an ffmpeg/ffprobe command exits non-zero."""

    def __init__(self, cmd: list[str], returncode: int, stderr: str):
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{cmd[0]} failed (rc={returncode}): {stderr[-500:]}")


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def ffmpeg_available() -> bool:
    try:
        check_ffmpeg()
    except FFmpegNotFoundError:
        return False
    return True


def run_ffmpeg(args: list[str]) -> subprocess.CompletedProcess:
    """Run ffmpeg with standard options, raising FFmpegError on failure."""
    cmd = ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error", *args]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise FFmpegError(cmd, result.returncode, result.stderr or "")
    return result


def probe(source: str | Path) -> ProbeResult:
    """Extract media metadata via ffprobe. ``source`` may be a path or URL."""
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(source),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True)
    if result.returncode != 0:
        raise FFmpegError(cmd, result.returncode, result.stderr or "")
    data = json.loads(result.stdout)

    streams = data.get("streams", [])
    video_stream = next((s for s in streams if s["codec_type"] == "video"), None)
    audio_stream = next((s for s in streams if s["codec_type"] == "audio"), None)

    if video_stream is None:
        raise ValueError(f"No video stream found in {source}")

    # Parse fps from r_frame_rate (e.g. "30/1")
    num, den = video_stream["r_frame_rate"].split("/")
    fps = int(num) / int(den) if int(den) else 0.0

    return ProbeResult(
        duration=float(data["format"]["duration"]),
        width=int(video_stream["width"]),
        height=int(video_stream["height"]),
        fps=fps,
        codec_video=video_stream["codec_name"],
        audio_sample_rate=int(audio_stream["sample_rate"]) if audio_stream else None,
        codec_audio=audio_stream["codec_name"] if audio_stream else None,
    )


def extract_audio_segment(
    source: str,
    window: TimeWindow,
    output_path: Path,
    sample_rate: int = 16000,
    codec: str = "libmp3lame",
    bitrate: str = "64k",
    fmt: str = "mp3",
) -> Path:
    """Trim one window of ``source`` to a mono audio file."""
    args = [
        "-ss", format_seconds(window.start),
        "-i", source,
        "-t", format_seconds(window.duration),
        "-vn",
        "-ac", "1",
        "-ar", str(sample_rate),
        "-acodec", codec,
    ]
    # PCM has no bitrate knob
    if not codec.startswith("pcm_"):
        args += ["-b:a", bitrate]
    args += ["-f", fmt, str(output_path)]
    run_ffmpeg(args)
    return output_path


def render_gif(
    source: str,
    window: TimeWindow,
    filter_graph: str,
    output_path: Path,
) -> Path:
    """Encode one window of ``source`` as a looping GIF using ``filter_graph``."""
    run_ffmpeg([
        "-ss", format_seconds(window.start),
        "-i", source,
        "-t", format_seconds(window.duration),
        "-an",
        "-filter_complex", filter_graph,
        "-loop", "0",
        "-f", "gif",
        str(output_path),
    ])
    return output_path
