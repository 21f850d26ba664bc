from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

MAIN_LOCATION = "main"


class MedicineStatus(str, Enum):
    ACTIVE = "active"
    DISCONTINUED = "discontinued"  # soft-deleted
    DRAFT = "draft"


class StoreType(str, Enum):
    MAIN = "main"
    SUB = "sub"


class Medicine(BaseModel):
    id: str
    name: str
    category: str = ""
    strength: str = ""  # e.g. "500mg"
    brand: str = ""
    supplier: str = ""
    batch_no: str = ""
    expiry_date: Optional[date] = None
    unit_cost: float = 0.0
    selling_price: float = 0.0
    safety_stock_level: int = Field(default=0, ge=0)  # minimum stock before warning
    image_url: Optional[str] = None
    status: MedicineStatus = MedicineStatus.ACTIVE
    created_at: datetime
    updated_at: datetime

    @field_validator("image_url")
    @classmethod
    def blank_image_url(cls, v: Optional[str]) -> Optional[str]:
        """An empty cell and a missing image are the same thing."""
        return v or None

    @property
    def is_active(self) -> bool:
        return self.status == MedicineStatus.ACTIVE


class Store(BaseModel):
    id: str
    name: str
    type: StoreType = StoreType.SUB
    location: Optional[str] = None
    created_at: datetime

    @field_validator("location")
    @classmethod
    def blank_location(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class MainStoreStock(BaseModel):
    id: str
    medicine_id: str
    quantity: int = 0
    last_updated: datetime


class SubStoreStock(BaseModel):
    id: str
    medicine_id: str
    store_id: str
    quantity: int = 0
    last_updated: datetime


class MedicineCreate(BaseModel):
    name: str
    category: str = ""
    strength: str = ""
    brand: str = ""
    supplier: str = ""
    batch_no: str = ""
    expiry_date: Optional[date] = None
    unit_cost: float = Field(default=0.0, ge=0)
    selling_price: float = Field(default=0.0, ge=0)
    safety_stock_level: int = Field(default=0, ge=0)
    image_url: Optional[str] = None
    status: MedicineStatus = MedicineStatus.ACTIVE


class MedicineUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    strength: Optional[str] = None
    brand: Optional[str] = None
    supplier: Optional[str] = None
    batch_no: Optional[str] = None
    expiry_date: Optional[date] = None
    unit_cost: Optional[float] = Field(default=None, ge=0)
    selling_price: Optional[float] = Field(default=None, ge=0)
    safety_stock_level: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[str] = None
    status: Optional[MedicineStatus] = None


class StockUpdate(BaseModel):
    location: str = MAIN_LOCATION
    quantity: int = Field(ge=0)
    reason: str = "adjustment"


class StockDeduction(BaseModel):
    location: str = MAIN_LOCATION
    quantity: int
    reason: str = "dispensed"
