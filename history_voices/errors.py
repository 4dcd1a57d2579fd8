"""Failure categories surfaced by the generation pipeline."""


class HistoryVoicesError(Exception):
    """Base class for every classified pipeline failure."""


class ServiceBusy(HistoryVoicesError):
    """Rate limited or quota exhausted; the user may retry after a delay."""


class ContentBlocked(HistoryVoicesError):
    """A safety filter refused the request; retrying the same input won't help."""


class MalformedResponse(HistoryVoicesError):
    """The research payload could not be parsed after all repair attempts."""


class EmptyDialogue(HistoryVoicesError):
    """The script rendered to an empty transcript."""


class NoAudioData(HistoryVoicesError):
    """The speech service answered without an audio payload."""


class AudioGenerationFailed(HistoryVoicesError):
    """Speech synthesis failed for both the native and the translated script."""


class ResearchFailed(HistoryVoicesError):
    """Catch-all for research failures; keeps the underlying message."""
