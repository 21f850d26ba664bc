from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class UserRole(str, Enum):
    ADMIN = "admin"
    STOREKEEPER = "storekeeper"


class User(BaseModel):
    id: str
    email: str
    name: str = ""
    role: UserRole = UserRole.STOREKEEPER
    phone: Optional[str] = None
    store_id: Optional[str] = None  # storekeepers assigned to one store
    created_at: datetime
    last_login: Optional[datetime] = None

    @field_validator("phone", "store_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class UserLogin(BaseModel):
    email: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User


class SheetsSetup(BaseModel):
    api_key: str
    sheet_id: str
