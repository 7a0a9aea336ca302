"""Error taxonomy shared by the data clients, stores and HTTP layer."""


class EcosenseError(Exception):
    """Base class for errors the HTTP layer knows how to map."""


class UpstreamFetchError(EcosenseError):
    """An external provider was unreachable, timed out, or returned a non-2xx / unusable payload."""

    def __init__(self, message: str, *, source: str | None = None):
        super().__init__(message)
        self.source = source


class ValidationError(EcosenseError):
    """Input rejected before any state was mutated."""


class DuplicateVoteError(ValidationError):
    """The user already voted on this poll."""


class NotFoundError(EcosenseError):
    """A referenced record (e.g. a poll id) does not exist."""


class LLMError(EcosenseError):
    """The LLM provider call failed."""
