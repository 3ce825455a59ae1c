"""Error taxonomy for the publish engine."""


class PublishError(Exception):
    """Base class for every error raised by the publisher."""


class NetworkError(PublishError):
    """No response was received from the server after all retries."""


class NotAuthenticatedError(PublishError):
    """No usable credential is available."""

    def __init__(self, message: str = "Not authenticated. Please log in first.") -> None:
        super().__init__(message)


class AuthExpiredError(PublishError):
    """The server rejected the credential even after a refresh."""

    def __init__(
        self, message: str = "Authentication expired. Please log in again."
    ) -> None:
        super().__init__(message)


class RateLimitedError(PublishError):
    """The configured budget of rate-limit waits was exhausted."""


class ApiError(PublishError):
    """The API answered with an error status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"API error {status}: {message}")
        self.status = status
        self.message = message


class UploadFailureError(PublishError):
    """Object storage did not accept the uploaded file."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class RenderFailureError(PublishError):
    """The host failed to render an item."""


class CollectionValidationError(PublishError):
    """Required input for creating a remote collection is missing."""


class NoCollectionSelectedError(PublishError):
    """No remote collection could be resolved for the run."""

    def __init__(self, message: str = "Please select a roll before publishing.") -> None:
        super().__init__(message)


class InvalidResponseError(PublishError):
    """A successful response did not have the expected structure."""
