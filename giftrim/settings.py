"""Runtime configuration: dataclasses loaded from JSON or the environment."""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path


@dataclass
class TranscriptionConfig:
    """Speech recognition settings for subtitle generation."""

    enabled: bool = True
    backend: str = "google"
    language: str = "en-US"
    sample_rate: int = 16000
    audio_codec: str = "libmp3lame"
    audio_bitrate: str = "64k"
    audio_format: str = "mp3"
    retries: int = 2
    backoff: float = 1.0
    timeout: float = 30.0
    whisper_model: str = "base"


@dataclass
class RenderConfig:
    """GIF output and caption overlay settings."""

    fps: int = 10
    width: int = 500
    max_line_chars: int = 30
    font: str = "Arial"
    fontfile: str | None = None
    font_size: int = 24
    font_color: str = "white"
    box_color: str = "black@0.7"
    box_border: int = 8
    bottom_margin: int = 20
    line_spacing: int = 6


@dataclass
class Settings:
    """Top-level service settings."""

    work_dir: Path = Path("var")
    max_upload_bytes: int = 50 * 1024 * 1024
    public_base_url: str = "/gifs"
    environment: str = "production"
    frontend_url: str = "*"
    google_credentials_json: str | None = None
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    @property
    def uploads_dir(self) -> Path:
        return Path(self.work_dir) / "uploads"

    @property
    def outputs_dir(self) -> Path:
        return Path(self.work_dir) / "outputs"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from GIFTRIM_* environment variables."""
        defaults = cls()
        tc = TranscriptionConfig()
        rc = RenderConfig()
        return cls(
            work_dir=Path(os.getenv("GIFTRIM_WORK_DIR", str(defaults.work_dir))),
            max_upload_bytes=int(os.getenv("GIFTRIM_MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
            public_base_url=os.getenv("GIFTRIM_PUBLIC_BASE_URL", defaults.public_base_url),
            environment=os.getenv("GIFTRIM_ENV", defaults.environment),
            frontend_url=os.getenv("FRONTEND_URL", defaults.frontend_url),
            google_credentials_json=os.getenv("GIFTRIM_GOOGLE_CREDENTIALS_JSON"),
            transcription=TranscriptionConfig(
                enabled=_env_bool("GIFTRIM_TRANSCRIPTION_ENABLED", tc.enabled),
                backend=os.getenv("GIFTRIM_SPEECH_BACKEND", tc.backend),
                language=os.getenv("GIFTRIM_SPEECH_LANGUAGE", tc.language),
                retries=int(os.getenv("GIFTRIM_SPEECH_RETRIES", tc.retries)),
                backoff=float(os.getenv("GIFTRIM_SPEECH_BACKOFF", tc.backoff)),
                timeout=float(os.getenv("GIFTRIM_SPEECH_TIMEOUT", tc.timeout)),
                whisper_model=os.getenv("GIFTRIM_WHISPER_MODEL", tc.whisper_model),
            ),
            render=RenderConfig(
                fps=int(os.getenv("GIFTRIM_GIF_FPS", rc.fps)),
                width=int(os.getenv("GIFTRIM_GIF_WIDTH", rc.width)),
                fontfile=os.getenv("GIFTRIM_FONTFILE", rc.fontfile),
            ),
        )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _section(cls, name: str, value):
    if not isinstance(value, dict):
        raise ValueError(f"Settings section {name!r} must be a JSON object")
    unknown = set(value) - {f.name for f in fields(cls)}
    if unknown:
        raise ValueError(f"Unknown {name} settings: {', '.join(sorted(unknown))}")
    return cls(**value)


def load_settings(path: str | Path) -> Settings:
    """Load and validate settings from a JSON file."""
    path = Path(path)
    data = json.loads(path.read_text())

    if not isinstance(data, dict):
        raise ValueError("Settings file must contain a JSON object")

    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    transcription = _section(TranscriptionConfig, "transcription", data.pop("transcription", {}))
    render = _section(RenderConfig, "render", data.pop("render", {}))
    if "work_dir" in data:
        data["work_dir"] = Path(data["work_dir"])

    return Settings(transcription=transcription, render=render, **data)
