"""
Exception taxonomy for goodscrapes
"""


class GoodscrapesError(Exception):
    """Base exception for all engine errors."""

    pass


class RequestFailedError(GoodscrapesError):
    """Raised when a request cannot be completed, e.g. retries are exhausted."""

    def __init__(self, url: str, reason: str, attempts: int | None = None):
        self.url = url
        self.reason = reason
        self.attempts = attempts
        message = f"Request to {url} failed: {reason}"
        if attempts is not None:
            message += f" (after {attempts} attempts)"
        super().__init__(message)


class TransientHTTPError(GoodscrapesError):
    """Rate-limit or server hiccup that is worth retrying."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class AuthError(GoodscrapesError):
    """Base exception for credential errors."""

    pass


class CredentialsMissingError(AuthError):
    """Raised when an operation needs the cookie but none is configured."""

    pass


class PreconditionError(GoodscrapesError):
    """Raised when a run cannot start or continue with the given inputs."""

    pass


class UnsupportedRigorError(PreconditionError):
    """Raised for rigor levels that cannot enumerate raters."""

    pass


class NoAuthorsError(PreconditionError):
    """Raised when a user's shelves yield no authors at all."""

    pass
