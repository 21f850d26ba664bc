"""Spreadsheet connection settings."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from medstock.api.deps import get_auth_service, get_settings_user
from medstock.core.exceptions import BusinessError
from medstock.schemas.user import SheetsSetup, User
from medstock.services.auth_service import AuthService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/sheets")
def configure_sheets(
    data: SheetsSetup,
    auth: AuthService = Depends(get_auth_service),
    current_user: Optional[User] = Depends(get_settings_user),
):
    """
    Save the API key and spreadsheet id.

    First-time setup needs no login, since users live in the sheet being
    configured. Once a spreadsheet is set, only a logged-in user may change it.
    """
    if not data.api_key.strip() or not data.sheet_id.strip():
        raise BusinessError.bad_request("API key and sheet id are both required")
    auth.configure_sheets(data.api_key, data.sheet_id)
    who = current_user.id if current_user else "initial setup"
    logger.info(f"[SETTINGS] Spreadsheet set to {data.sheet_id.strip()} by {who}")
    return {"status": "saved", "sheet_id": data.sheet_id.strip()}
