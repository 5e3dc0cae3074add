"""Error taxonomy for studio operations."""


class StudioError(Exception):
    """Base class for errors raised by the studio."""


class TransportUnavailable(StudioError):
    """The remote model stayed overloaded, failing or rate-limited after all retries."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


class MalformedResponse(StudioError, ValueError):
    """A remote payload could not be parsed into the expected structure."""


class NoAssetReturned(StudioError):
    """The remote call succeeded but carried no usable payload."""


class NoImageReturned(NoAssetReturned):
    """Image render response contained no inline image."""


class NoAudioReturned(NoAssetReturned):
    """Speech response contained no audio samples."""


class ValidationFailure(StudioError, ValueError):
    """Input rejected before any remote call was made."""
