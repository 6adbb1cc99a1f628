"""Services package."""

from streamshare.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsHouseholdStorage,
    HouseholdStorageInterface,
    InMemoryHouseholdStorage,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
    SupabaseClient,
    SupabaseHouseholdStorage,
)

__all__ = [
    "GoogleSheetsClient",
    "GoogleSheetsHouseholdStorage",
    "HouseholdStorageInterface",
    "InMemoryHouseholdStorage",
    "NotFoundError",
    "PersistenceError",
    "StoreConnectionError",
    "SupabaseClient",
    "SupabaseHouseholdStorage",
]
