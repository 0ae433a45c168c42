"""Custom exceptions for the IPFS service."""


class IPFSAPIError(Exception):
    """Base exception for IPFS API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class IPFSBadRequestError(IPFSAPIError):
    """Invalid request parameters (400)."""

    pass


class IPFSNotFoundError(IPFSAPIError):
    """Object or endpoint not found (404)."""

    pass


class IPFSRateLimitError(IPFSAPIError):
    """Rate limit exceeded (429)."""

    pass


class IPFSServerError(IPFSAPIError):
    """Server-side error (5xx)."""

    pass
