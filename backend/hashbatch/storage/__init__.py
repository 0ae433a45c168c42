"""Storage layer for hashbatch - claimed identifiers and their completion state.

This package provides:
- Claim models (plain record and Beanie document)
- The ClaimStore interface
- MongoDB and in-memory stores
- MongoDB connection management
"""

from .base import ClaimStore
from .connection import check_db_connection, close_db, init_db
from .memory import InMemoryClaimStore
from .models import ClaimDocument, ClaimEntry
from .mongo import MongoClaimStore

__all__ = [
    # Models
    "ClaimEntry",
    "ClaimDocument",
    # Stores
    "ClaimStore",
    "InMemoryClaimStore",
    "MongoClaimStore",
    # Connection management
    "init_db",
    "close_db",
    "check_db_connection",
]
