"""
Login / logout against the Users table.

There is no password check: a user exists in the sheet or it does not.
Users are provisioned out of band by an admin editing the sheet.
"""
import logging
import secrets
from typing import Optional, Tuple

from medstock.core.audit import AuditLog
from medstock.core.exceptions import NotFoundError
from medstock.core.ids import utcnow
from medstock.schemas.transaction import TransactionType
from medstock.schemas.user import User
from medstock.services.repository import UserRepository
from medstock.services.session_store import USER, USER_TOKEN, SessionStore

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, users: UserRepository, audit: AuditLog, session_store: SessionStore):
        self.users = users
        self.audit = audit
        self.session_store = session_store

    def login(self, email: str) -> Tuple[str, User]:
        index, user, cells = self.users.find_row(
            lambda u: u.email.strip().lower() == email.strip().lower()
        )
        if user is None:
            logger.warning("Login attempt for unknown email")
            raise NotFoundError("User", email)

        logged_in = user.model_copy(update={"last_login": utcnow()})
        self.users.replace_at(index, logged_in, expected=cells)

        token = secrets.token_urlsafe(32)
        self.session_store.set(USER_TOKEN, token)
        self.session_store.set(USER, logged_in.model_dump_json())

        self.audit.record_after(
            TransactionType.LOGIN,
            logged_in,
            user_id=logged_in.id,
            store_id=logged_in.store_id,
            description=f"User {logged_in.email} logged in",
        )
        return token, logged_in

    def logout(self) -> Optional[User]:
        """Clear the saved session. Returns the user that was logged in, if any."""
        user = self.current_user()
        if user is None:
            self.session_store.remove(USER_TOKEN, USER)
            return None

        try:
            self.audit.record_after(
                TransactionType.LOGOUT,
                user,
                user_id=user.id,
                store_id=user.store_id,
                description=f"User {user.email} logged out",
            )
        finally:
            self.session_store.remove(USER_TOKEN, USER)
        return user

    def configure_sheets(self, api_key: str, sheet_id: str) -> None:
        self.session_store.save_sheets_credentials(api_key, sheet_id)

    def current_user(self) -> Optional[User]:
        raw = self.session_store.get(USER)
        return User.model_validate_json(raw) if raw else None

    def bootstrap(self) -> Optional[Tuple[str, User]]:
        """Restore the session saved by a previous run, if both halves are present."""
        token = self.session_store.get(USER_TOKEN)
        user = self.current_user()
        if token and user:
            logger.info(f"Restored session for user {user.id}")
            return token, user
        return None

    def authenticate(self, token: str) -> Optional[User]:
        """User for ``token`` if it is the current session token."""
        saved = self.session_store.get(USER_TOKEN)
        if not token or not saved or not secrets.compare_digest(token, saved):
            return None
        return self.current_user()
