from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator


class TransactionType(str, Enum):
    MEDICINE_ADDED = "medicine_added"
    MEDICINE_EDITED = "medicine_edited"
    MEDICINE_DELETED = "medicine_deleted"
    STOCK_TRANSFER = "stock_transfer"
    STOCK_DEDUCTION = "stock_deduction"
    LOGIN = "login"
    LOGOUT = "logout"


class TransferReason(str, Enum):
    TRANSFER = "transfer"
    DISPENSED = "dispensed"
    RECEIVED = "received"
    ADJUSTMENT = "adjustment"


class TransferStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Transaction(BaseModel):
    """Audit record. One per mutating operation, never edited."""
    id: str
    type: TransactionType
    medicine_id: Optional[str] = None
    entity: Optional[Dict[str, Any]] = None  # the data affected
    old_values: Optional[Dict[str, Any]] = None  # previous values for edits
    new_values: Optional[Dict[str, Any]] = None
    user_id: str = ""
    description: str = ""
    created_at: datetime
    store_id: Optional[str] = None

    @field_validator("medicine_id", "store_id")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class TransferRequest(BaseModel):
    medicine_id: str
    from_store: str
    to_store: str
    quantity: int
    reason: TransferReason = TransferReason.TRANSFER
    notes: Optional[str] = None


class StockTransfer(BaseModel):
    id: str
    medicine_id: str
    from_store: str
    to_store: str
    quantity: int
    reason: TransferReason = TransferReason.TRANSFER
    notes: Optional[str] = None
    created_by: str = ""
    created_at: datetime
    status: TransferStatus = TransferStatus.PENDING


class TransactionCreate(BaseModel):
    type: TransactionType
    medicine_id: Optional[str] = None
    entity: Optional[Dict[str, Any]] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    store_id: Optional[str] = None
    description: str = ""
