"""
MongoDB connection and Beanie ODM initialization.

This module provides:
- MongoDB client connection via PyMongo's async client
- Beanie ODM initialization
- Health check utilities
"""

from typing import Optional

from beanie import init_beanie
from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from hashbatch.config import DatabaseConfig

from .models import ClaimDocument

# Global MongoDB client instance
_client: Optional[AsyncMongoClient] = None
_database_name: Optional[str] = None


async def init_db(config: DatabaseConfig) -> None:
    """
    Initialize MongoDB connection and register the claim documents with Beanie.
    """
    global _client, _database_name

    _client = AsyncMongoClient(config.url, tz_aware=True)
    _database_name = config.name

    await init_beanie(
        database=_client[config.name],
        document_models=[ClaimDocument],
    )


async def close_db() -> None:
    """
    Close MongoDB connection.
    """
    global _client, _database_name
    if _client is not None:
        await _client.close()
        _client = None
        _database_name = None


def get_client() -> AsyncMongoClient:
    """
    Get the MongoDB client instance.
    """
    if _client is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _client


async def check_db_connection() -> bool:
    """
    Check if MongoDB connection is healthy.
    """
    if _client is None:
        return False

    try:
        await _client.admin.command("ping")
        return True
    except PyMongoError:
        return False

