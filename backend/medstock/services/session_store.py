"""
Persistent key/value session cache.

Keys in use:
- userToken               token issued at login
- user                    JSON of the logged-in User
- GOOGLE_SHEETS_API_KEY   saved from the settings screen
- SHEET_ID                saved from the settings screen

Read at startup, written on login/setup, cleared on logout.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.orm import sessionmaker

from medstock.core.config import settings
from medstock.db.session import SessionLocal
from medstock.models.session_entry import SessionEntry

logger = logging.getLogger(__name__)

USER_TOKEN = "userToken"
USER = "user"
SHEETS_API_KEY = "GOOGLE_SHEETS_API_KEY"
SHEET_ID = "SHEET_ID"


class SessionStore:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            entry = db.query(SessionEntry).filter(SessionEntry.key == key).first()
            return entry.value if entry else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        db = self.session_factory()
        try:
            entry = db.query(SessionEntry).filter(SessionEntry.key == key).first()
            if entry:
                entry.value = value
            else:
                db.add(SessionEntry(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def remove(self, *keys: str) -> None:
        db = self.session_factory()
        try:
            db.query(SessionEntry).filter(SessionEntry.key.in_(keys)).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def save_sheets_credentials(self, api_key: str, sheet_id: str) -> None:
        self.set(SHEETS_API_KEY, api_key.strip())
        self.set(SHEET_ID, sheet_id.strip())
        logger.info("Spreadsheet credentials saved")  # never log the key itself

    def sheets_credentials(self) -> Tuple[str, str]:
        """Saved credentials first, environment settings as fallback."""
        api_key = self.get(SHEETS_API_KEY) or settings.GOOGLE_SHEETS_API_KEY
        sheet_id = self.get(SHEET_ID) or settings.SHEET_ID
        return api_key, sheet_id
