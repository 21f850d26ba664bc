"""
Row codec: flat spreadsheet rows <-> domain entities.

Every table has a fixed column order. Decoding is tolerant:
rows typed by hand into the spreadsheet must still load.

    missing / malformed number      -> 0
    missing text                    -> ""
    missing optional text / json    -> None
    missing id                      -> freshly generated id
    missing / malformed timestamp   -> now (UTC)
    malformed expiry date           -> None
    unknown enum value              -> the column default

Pure functions only; nothing in here touches the network.
"""
import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from medstock.core.ids import generate_id, utcnow
from medstock.schemas.inventory import (
    MainStoreStock,
    Medicine,
    MedicineStatus,
    Store,
    StoreType,
    SubStoreStock,
)
from medstock.schemas.transaction import Transaction, TransactionType
from medstock.schemas.user import User, UserRole

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# ==============================================================================
# CELL PARSERS (sheet value -> python)
# ==============================================================================

def parse_text(value: Any) -> str:
    return "" if value is None else str(value)


def parse_optional_text(value: Any) -> Optional[str]:
    text = parse_text(value)
    return text if text != "" else None


def parse_id(value: Any) -> str:
    return parse_text(value).strip() or generate_id()


def parse_int(value: Any) -> int:
    """Leading-integer parse: "12" -> 12, "12.7" -> 12, "abc" -> 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return 0 if math.isnan(value) or math.isinf(value) else int(value)
    match = _LEADING_INT.match(parse_text(value))
    return int(match.group(1)) if match else 0


def parse_non_negative_int(value: Any) -> int:
    return max(0, parse_int(value))


def parse_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) or math.isinf(number) else number


def parse_date(value: Any) -> Optional[date]:
    text = parse_text(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        logger.debug(f"Unparseable date cell: {text!r}")
        return None


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    text = parse_text(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable timestamp cell: {text!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_datetime(value: Any) -> datetime:
    return parse_optional_datetime(value) or utcnow()


def parse_json(value: Any) -> Optional[dict]:
    text = parse_text(value).strip()
    if not text:
        return None
    try:
        loaded = json.loads(text)
    except ValueError:
        logger.debug(f"Unparseable JSON cell: {text[:60]!r}")
        return None
    return loaded if isinstance(loaded, dict) else None


def enum_parser(enum_cls: Type[Enum], default: Enum) -> Callable[[Any], Enum]:
    def parse(value: Any) -> Enum:
        try:
            return enum_cls(parse_text(value).strip())
        except ValueError:
            return default
    return parse


# ==============================================================================
# CELL RENDERERS (python -> sheet value)
# ==============================================================================

def render_plain(value: Any) -> Any:
    return "" if value is None else value


def render_enum(value: Optional[Enum]) -> str:
    return "" if value is None else value.value


def render_temporal(value: Optional[date]) -> str:
    return "" if value is None else value.isoformat()


def render_json(value: Optional[dict]) -> str:
    return "" if value is None else json.dumps(value)


# ==============================================================================
# CODEC
# ==============================================================================

@dataclass(frozen=True)
class Column:
    name: str  # model field
    header: str  # header cell in row 1 of the sheet
    parse: Callable[[Any], Any] = parse_text
    render: Callable[[Any], Any] = render_plain


class RowCodec(Generic[T]):
    """Fixed-order mapping between one row and one ``model`` instance."""

    def __init__(self, model: Type[T], columns: Sequence[Column]):
        self.model = model
        self.columns = tuple(columns)

    @property
    def width(self) -> int:
        return len(self.columns)

    @property
    def headers(self) -> List[str]:
        return [column.header for column in self.columns]

    def decode(self, row: Sequence[Any]) -> T:
        values = {}
        for index, column in enumerate(self.columns):
            cell = row[index] if index < len(row) else None
            values[column.name] = column.parse(cell)
        return self.model(**values)

    def encode(self, entity: T) -> List[Any]:
        return [column.render(getattr(entity, column.name)) for column in self.columns]


MEDICINE_CODEC = RowCodec(Medicine, [
    Column("id", "id", parse_id),
    Column("name", "name"),
    Column("category", "category"),
    Column("strength", "strength"),
    Column("brand", "brand"),
    Column("supplier", "supplier"),
    Column("batch_no", "batchNo"),
    Column("expiry_date", "expiryDate", parse_date, render_temporal),
    Column("unit_cost", "unitCost", parse_float),
    Column("selling_price", "sellingPrice", parse_float),
    Column("safety_stock_level", "safetyStockLevel", parse_non_negative_int),
    Column("image_url", "imageUrl", parse_optional_text),
    Column("status", "status", enum_parser(MedicineStatus, MedicineStatus.ACTIVE), render_enum),
    Column("created_at", "createdAt", parse_datetime, render_temporal),
    Column("updated_at", "updatedAt", parse_datetime, render_temporal),
])

STORE_CODEC = RowCodec(Store, [
    Column("id", "id", parse_id),
    Column("name", "name"),
    Column("type", "type", enum_parser(StoreType, StoreType.SUB), render_enum),
    Column("location", "location", parse_optional_text),
    Column("created_at", "createdAt", parse_datetime, render_temporal),
])

MAIN_STOCK_CODEC = RowCodec(MainStoreStock, [
    Column("id", "id", parse_id),
    Column("medicine_id", "medicineId"),
    Column("quantity", "quantity", parse_int),
    Column("last_updated", "lastUpdated", parse_datetime, render_temporal),
])

SUB_STOCK_CODEC = RowCodec(SubStoreStock, [
    Column("id", "id", parse_id),
    Column("medicine_id", "medicineId"),
    Column("store_id", "storeId"),
    Column("quantity", "quantity", parse_int),
    Column("last_updated", "lastUpdated", parse_datetime, render_temporal),
])

TRANSACTION_CODEC = RowCodec(Transaction, [
    Column("id", "id", parse_id),
    Column("type", "type", enum_parser(TransactionType, TransactionType.MEDICINE_ADDED), render_enum),
    Column("medicine_id", "medicineId", parse_optional_text),
    Column("entity", "entity", parse_json, render_json),
    Column("old_values", "oldValues", parse_json, render_json),
    Column("new_values", "newValues", parse_json, render_json),
    Column("user_id", "userId"),
    Column("description", "description"),
    Column("created_at", "createdAt", parse_datetime, render_temporal),
    Column("store_id", "storeId", parse_optional_text),
])

USER_CODEC = RowCodec(User, [
    Column("id", "id", parse_id),
    Column("email", "email"),
    Column("name", "name"),
    Column("role", "role", enum_parser(UserRole, UserRole.STOREKEEPER), render_enum),
    Column("phone", "phone", parse_optional_text),
    Column("store_id", "storeId", parse_optional_text),
    Column("created_at", "createdAt", parse_datetime, render_temporal),
    Column("last_login", "lastLogin", parse_optional_datetime, render_temporal),
])
