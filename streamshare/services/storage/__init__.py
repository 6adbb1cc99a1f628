"""
Storage Services Package

Provides the abstract storage interface and its implementations.
Supabase is the primary backend; Google Sheets and an in-memory store
implement the same interface.
"""

from streamshare.services.storage.interface import (
    HouseholdStorageInterface,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
)
from streamshare.services.storage.memory import InMemoryHouseholdStorage
from streamshare.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
)
from streamshare.services.storage.supabase_store import (
    SupabaseClient,
    SupabaseHouseholdStorage,
)

__all__ = [
    # Interface
    "HouseholdStorageInterface",
    # Exceptions
    "NotFoundError",
    "PersistenceError",
    "StoreConnectionError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    "InMemoryHouseholdStorage",
    "SupabaseClient",
    "SupabaseHouseholdStorage",
]
