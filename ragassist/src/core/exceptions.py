"""
RAG Assistant - Error Taxonomy
===============================
Every error raised by the project derives from ``AssistantError``.

Initialisation errors (fatal, the instance is never usable):
    ``ConfigurationError``, ``ResourceNotFoundError``, ``ParseError``

Per-request errors (caught at the ``Assistant.ask`` boundary):
    ``RetrievalUnavailableError`` (isolated per retriever),
    ``ModelInvocationError``, ``NotInitializedError``
"""


class AssistantError(Exception):
    """Base class for all assistant errors."""


class ConfigurationError(AssistantError):
    """Missing credential or invalid setting."""


class ResourceNotFoundError(AssistantError):
    """A document source cannot be located."""

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)


class ParseError(AssistantError):
    """A document cannot be decoded into text."""

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)


class RetrievalUnavailableError(AssistantError):
    """A single retriever failed to produce results for a query."""

    def __init__(self, message: str, retriever: str | None = None) -> None:
        self.retriever = retriever
        super().__init__(message)


class ModelInvocationError(AssistantError):
    """The chat-model call failed or timed out."""


class NotInitializedError(AssistantError):
    """An operation was attempted before initialisation completed."""
