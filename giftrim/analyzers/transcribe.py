"""Speech-to-text adapter: best-effort transcript of an audio artifact."""

import asyncio
import json
import logging
import threading
from typing import Protocol

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from giftrim.errors import TranscriptionFailed
from giftrim.models import AudioArtifact
from giftrim.settings import TranscriptionConfig

logger = logging.getLogger(__name__)

# Artifact container -> Speech-to-Text encoding name
GOOGLE_ENCODINGS = {
    "mp3": "MP3",
    "flac": "FLAC",
    "wav": "LINEAR16",
    "ogg": "OGG_OPUS",
}


class SpeechBackend(Protocol):
    name: str

    def recognize(
        self,
        audio: bytes,
        artifact: AudioArtifact,
        config: TranscriptionConfig,
        timeout: float,
    ) -> list[str]:
        """Return the top alternative of each recognized segment, in order."""
        ...


class GoogleSpeechBackend:
    """Google Cloud Speech-to-Text v1, synchronous recognize with inline audio."""

    name = "google"

    def __init__(self, client=None, credentials_json: str | None = None):
        if client is None:
            from google.cloud import speech

            if credentials_json:
                client = speech.SpeechClient.from_service_account_info(
                    json.loads(credentials_json)
                )
            else:
                client = speech.SpeechClient()
        self.client = client

    def recognize(
        self,
        audio: bytes,
        artifact: AudioArtifact,
        config: TranscriptionConfig,
        timeout: float,
    ) -> list[str]:
        from google.cloud import speech

        encoding_name = GOOGLE_ENCODINGS.get(artifact.encoding)
        if encoding_name is None:
            raise TranscriptionFailed(f"Unsupported audio encoding: {artifact.encoding}")

        recognition_config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding[encoding_name],
            sample_rate_hertz=artifact.sample_rate,
            language_code=config.language,
            enable_automatic_punctuation=True,
            model="default",
        )
        response = self.client.recognize(
            config=recognition_config,
            audio=speech.RecognitionAudio(content=audio),
            timeout=timeout,
        )
        if response is None:
            raise TranscriptionFailed("Speech service returned no response")

        return [
            result.alternatives[0].transcript
            for result in response.results
            if result.alternatives
        ]


class WhisperBackend:
    """Local OpenAI Whisper model, loaded once on first use.

    Inference is serialized per instance: an attempt abandoned on timeout
    keeps the model until it finishes.
    """

    name = "whisper"

    def __init__(self, model_name: str = "base"):
        self.model_name = model_name
        self._model = None
        self._lock = threading.Lock()

    def _load(self):
        # caller holds self._lock
        if self._model is None:
            import whisper

            logger.info("Loading whisper model %r", self.model_name)
            self._model = whisper.load_model(self.model_name)
        return self._model

    def recognize(
        self,
        audio: bytes,
        artifact: AudioArtifact,
        config: TranscriptionConfig,
        timeout: float,
    ) -> list[str]:
        # Whisper takes ISO 639-1 codes ("en"), not BCP-47 ("en-US")
        language = config.language.split("-")[0] if config.language else None
        # One inference per model at a time
        with self._lock:
            model = self._load()
            result = model.transcribe(str(artifact.path), language=language)
        if "segments" not in result:
            raise TranscriptionFailed("Whisper returned no segments")
        return [seg["text"].strip() for seg in result["segments"]]


def make_backend(
    config: TranscriptionConfig, credentials_json: str | None = None
) -> SpeechBackend:
    """Build the backend named by ``config.backend``."""
    if config.backend == "google":
        return GoogleSpeechBackend(credentials_json=credentials_json)
    if config.backend == "whisper":
        return WhisperBackend(config.whisper_model)
    raise ValueError(f"Unknown speech backend: {config.backend!r}")


class Transcriber:
    """Calls a speech backend with bounded retries; never raises.

    Any failure, including exhausted retries and per-attempt timeouts, yields
    ``None`` so the conversion can continue without subtitles.
    """

    def __init__(self, backend: SpeechBackend, config: TranscriptionConfig):
        self.backend = backend
        self.config = config

    async def transcribe(self, artifact: AudioArtifact | None) -> str | None:
        if artifact is None or not artifact.path.exists() or artifact.path.stat().st_size == 0:
            logger.info("No audio to transcribe")
            return None

        try:
            audio = artifact.path.read_bytes()
            pieces = await self._recognize(audio, artifact)
        except Exception as e:
            logger.warning(
                "Transcription failed, continuing without subtitles: %s",
                e.__class__.__name__ if isinstance(e, asyncio.TimeoutError) else e,
            )
            return None

        text = " ".join(p.strip() for p in pieces if p and p.strip())
        return text or None

    async def _recognize(self, audio: bytes, artifact: AudioArtifact) -> list[str]:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.config.retries + 1),
            # a timed-out attempt may still be running; do not stack another on it
            retry=retry_if_not_exception_type(asyncio.TimeoutError),
            wait=wait_incrementing(start=self.config.backoff, increment=self.config.backoff),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                return await asyncio.wait_for(
                    asyncio.to_thread(
                        self.backend.recognize,
                        audio,
                        artifact,
                        self.config,
                        self.config.timeout,
                    ),
                    timeout=self.config.timeout,
                )
        return []
