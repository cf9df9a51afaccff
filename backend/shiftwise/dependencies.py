"""FastAPI dependencies."""

from fastapi import Depends

from shiftwise.core.database import get_db
from shiftwise.services.auth_events import AuthEventHandler, auth_event_handler
from shiftwise.services.key_value_store import KeyValueStore, get_key_value_store
from shiftwise.services.local_storage_service import LocalStorageService

__all__ = ["get_db", "get_local_storage_service", "get_auth_event_handler"]


def get_local_storage_service(
    store: KeyValueStore = Depends(get_key_value_store),
) -> LocalStorageService:
    """Guest data service over the configured key-value backend."""
    return LocalStorageService(store)


def get_auth_event_handler() -> AuthEventHandler:
    """Process-wide handler; owns the single migration gate."""
    return auth_event_handler
