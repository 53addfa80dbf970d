from __future__ import annotations


DEFAULT_LOAD_ERROR_MESSAGE = "There was an error loading the exploration."


class PlayerError(Exception):
    pass


class LoadFailure(PlayerError):
    """Exploration data could not be obtained. The message is user-visible."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or DEFAULT_LOAD_ERROR_MESSAGE)


class ClassificationTransportError(PlayerError):
    """Network or server failure while classifying an answer."""


class UnknownParameterError(PlayerError, KeyError):
    """A parameter name that was never declared for the session."""

    def __str__(self) -> str:
        # KeyError quotes its message; keep it readable.
        return str(self.args[0]) if self.args else ""


class ExpressionError(PlayerError):
    """Malformed parameter expression or generator arguments."""


class PreconditionError(PlayerError):
    """The caller used the session in a way its integration does not allow."""
