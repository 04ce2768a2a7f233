"""Failure taxonomy for the attraction pipeline."""


class GuideError(Exception):
    """Base class for every pipeline failure."""


class UploadMissing(GuideError):
    """The request did not carry an image file."""


class UnsupportedLocale(GuideError):
    """No speech voice exists for the requested locale, even after base-language fallback."""

    def __init__(self, locale: str):
        super().__init__(f"Speech synthesis does not support '{locale}'")
        self.locale = locale


class LocaleTableError(GuideError):
    """The locale data tables are malformed (e.g. duplicate keys)."""


class AnalysisFailure(GuideError):
    """The vision analysis job failed or could not be submitted/polled."""


class AnalysisTimeout(AnalysisFailure):
    """The vision analysis job never left the pending state within the poll budget."""


class GenerationFailure(GuideError):
    """The text generation call failed."""


class TranslationFailure(GuideError):
    """The translation call failed. Always recovered by the translator."""


class SpeechTimeout(GuideError):
    """Speech synthesis did not finish within the allotted time."""

    def __init__(self, timeout_ms: int):
        super().__init__(f"Speech synthesis timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class SpeechSynthesisFailure(GuideError):
    """The speech service canceled the synthesis."""

    def __init__(self, reason: str, details: str = ""):
        message = f"Speech synthesis canceled: {reason}"
        if details:
            message = f"{message} - {details}"
        super().__init__(message)
        self.reason = reason
        self.details = details


class MetadataLookupFailure(GuideError):
    """Blob metadata could not be read. Always recovered as 'no image'."""
