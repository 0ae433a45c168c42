from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

import httpx

from .config import IPFSConfig
from .exceptions import (
    IPFSAPIError,
    IPFSBadRequestError,
    IPFSNotFoundError,
    IPFSRateLimitError,
    IPFSServerError,
)

logger = logging.getLogger(__name__)


class IPFSClient:
    """Directory builder over the IPFS (Kubo) HTTP RPC API."""

    def __init__(
        self,
        config: IPFSConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or IPFSConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.info(f"Initialized IPFSClient (url={self.config.url})")

    async def __aenter__(self) -> IPFSClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            base_url=self.config.url.rstrip("/") + self.config.api_prefix,
            timeout=self.config.timeout_seconds,
            limits=limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed IPFSClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("IPFSClient must be used as async context manager")
        return self._client

    async def _request(
        self,
        endpoint: str,
        params: list[tuple[str, str]] | None = None,
    ) -> dict[str, Any]:
        # The RPC API only accepts POST.
        retry_count = 0
        last_error: Exception | None = None

        while retry_count <= self.config.max_retries:
            try:
                response = await self.client.post(endpoint, params=params)

                if response.status_code == 400:
                    raise IPFSBadRequestError(
                        f"Invalid request to {endpoint}: {response.text}",
                        status_code=400,
                    )
                elif response.status_code == 404:
                    raise IPFSNotFoundError(
                        f"Not found: {endpoint}", status_code=404
                    )
                elif response.status_code == 429:
                    last_error = IPFSRateLimitError(
                        "Rate limit exceeded", status_code=429
                    )
                    wait_time = self.config.retry_backoff_seconds * 2**retry_count
                    logger.warning(f"Rate limited, waiting {wait_time}s...")
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    last_error = IPFSServerError(
                        f"Server error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                    wait_time = self.config.retry_backoff_seconds * 2**retry_count
                    logger.warning(
                        f"Server error {response.status_code}, "
                        f"retrying in {wait_time}s..."
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue

                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count <= self.config.max_retries:
                    logger.warning(f"Timeout, retrying ({retry_count})...")
                    await asyncio.sleep(self.config.retry_backoff_seconds)

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error: {e}")
                break

        if isinstance(last_error, IPFSAPIError):
            raise last_error
        raise IPFSAPIError(
            f"{endpoint} failed after {retry_count} retries: {last_error}"
        )

    @staticmethod
    def _hash_from(data: dict[str, Any], endpoint: str) -> str:
        directory_hash = data.get("Hash")
        if not directory_hash:
            raise IPFSAPIError(f"{endpoint} response has no Hash: {data}")
        return directory_hash

    async def create_empty_directory(self) -> str:
        """Create an empty UnixFS directory and return its hash."""
        data = await self._request("/object/new", params=[("arg", "unixfs-dir")])
        directory_hash = self._hash_from(data, "/object/new")
        logger.debug(f"Created empty directory {directory_hash}")
        return directory_hash

    async def add_files_to_directory(
        self,
        directory_hash: str,
        file_hashes: Sequence[str],
    ) -> str:
        """Link each file into the directory, named after its own hash.

        Every link produces a new directory object; the hash returned by one
        call is the base of the next. With no files the input hash comes back
        unchanged.

        Args:
            directory_hash: Hash of the directory to extend
            file_hashes: Hashes of the files to add, in link order

        Returns:
            Hash of the resulting directory
        """
        current = directory_hash
        for file_hash in file_hashes:
            data = await self._request(
                "/object/patch/add-link",
                params=[("arg", current), ("arg", file_hash), ("arg", file_hash)],
            )
            current = self._hash_from(data, "/object/patch/add-link")

        logger.debug(
            f"Added {len(file_hashes)} files to {directory_hash} -> {current}"
        )
        return current


def create_ipfs_client(config: IPFSConfig | None = None) -> IPFSClient:
    """Factory function to create IPFSClient with default config."""
    return IPFSClient(config=config or IPFSConfig())
