"""IPFS service integration."""

from .client import IPFSClient, create_ipfs_client
from .config import IPFSConfig
from .exceptions import (
    IPFSAPIError,
    IPFSBadRequestError,
    IPFSNotFoundError,
    IPFSRateLimitError,
    IPFSServerError,
)

__all__ = [
    "IPFSClient",
    "create_ipfs_client",
    "IPFSConfig",
    "IPFSAPIError",
    "IPFSBadRequestError",
    "IPFSNotFoundError",
    "IPFSRateLimitError",
    "IPFSServerError",
]
