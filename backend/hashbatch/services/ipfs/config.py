"""Configuration for the IPFS HTTP client."""

from pydantic import BaseModel, Field


class IPFSConfig(BaseModel):
    """Configuration for the IPFS (Kubo) RPC API client."""

    url: str = "http://localhost:5001"
    api_prefix: str = "/api/v0"
    timeout_seconds: float = 30.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    # Retries after the first attempt; 0 sends each request once.
    max_retries: int = Field(default=3, ge=0)
    retry_backoff_seconds: float = 1.0
