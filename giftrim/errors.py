"""Error taxonomy for the conversion pipeline."""


class ConversionError(Exception):
    """Base class for errors raised by pipeline stages."""

    http_status = 500


class InvalidInput(ConversionError):
    """Caller fault: missing video, malformed window, bad upload or reference."""

    http_status = 400


class ExtractionFailed(ConversionError):
    """The source could not be trimmed to an audio artifact."""


class TranscriptionFailed(ConversionError):
    """The speech recognizer returned nothing usable.

    Never leaves the transcription adapter.
    """


class RenderFailed(ConversionError):
    """The GIF could not be produced."""
