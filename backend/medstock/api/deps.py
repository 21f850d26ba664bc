"""FastAPI dependencies: shared services and the current user from the session token.

One InventoryService per process so every request sees the same snapshot.
Tests override ``get_inventory`` / ``get_session_store`` through
``app.dependency_overrides``.
"""
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from medstock.core.exceptions import BusinessError
from medstock.schemas.user import User
from medstock.services.auth_service import AuthService
from medstock.services.inventory_sync import InventoryService
from medstock.services.repository import UserRepository
from medstock.services.session_store import SessionStore
from medstock.services.sheets_client import SheetsClient

security = HTTPBearer(auto_error=False)


@lru_cache
def get_session_store() -> SessionStore:
    return SessionStore()


@lru_cache
def get_inventory() -> InventoryService:
    """Process-wide inventory facade backed by the live spreadsheet."""
    client = SheetsClient(credentials=get_session_store().sheets_credentials)
    return InventoryService(client)


def get_auth_service(
    inventory: InventoryService = Depends(get_inventory),
    session_store: SessionStore = Depends(get_session_store),
) -> AuthService:
    return AuthService(UserRepository(inventory.row_store), inventory.audit, session_store)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Resolve the Bearer token issued at login."""
    if not credentials:
        raise BusinessError.unauthorized("missing bearer token")

    user = auth.authenticate(credentials.credentials)
    if user is None:
        raise BusinessError.unauthorized("token does not match the active session")
    return user


def get_settings_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth: AuthService = Depends(get_auth_service),
    session_store: SessionStore = Depends(get_session_store),
) -> Optional[User]:
    """None while no spreadsheet is configured; after that, a logged-in user is required."""
    api_key, sheet_id = session_store.sheets_credentials()
    if not (api_key and sheet_id):
        return None
    return get_current_user(credentials, auth)
