from typing import Optional


class ManitraitError(Exception):
    """Root of all errors raised by manitrait."""


class ConfigurationError(ManitraitError):
    """
    A programming or configuration mistake.
    These surface immediately and are never recovered inside the library.
    """


class TraitConfigurationError(ConfigurationError):
    """The trait hierarchy is malformed (cycle, unbounded chain, unknown parent)."""


class RegistrationError(ConfigurationError):
    """An implementation was registered twice for the same key."""


class NoImplementationError(ConfigurationError, NotImplementedError):
    """Neither a trait implementation nor a generic one exists for a call."""

    def __init__(self, operation: str, receiver_type: type, detail: Optional[str] = None):
        self.operation = operation
        self.receiver_type = receiver_type
        message = (
            f"{operation} not implemented for receiver of type "
            f"{receiver_type.__module__}.{receiver_type.__qualname__}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ManifoldDomainError(ManitraitError, ValueError):
    """
    A point or vector failed a validity check.

    When the failure stems from a check in an embedding, the embedding-level
    error is kept both as `cause` and as `__cause__`, so tracebacks show the chain.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        text = message if cause is None else f"{message}{cause}"
        super().__init__(text)
        if cause is not None:
            self.__cause__ = cause


class CheckFailedError(ManitraitError):
    """A numerical convergence check did not reach the expected order."""
