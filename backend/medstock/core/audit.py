"""
Audit log: the append-only Transactions table.

Every mutating operation (medicine add/edit/delete, stock transfer, manual
stock change, login, logout) ends with exactly one ``record`` call. Entries
are never edited or removed.

Each entry is also written as a JSON line on the "audit" logger so it can be
shipped to centralized logging independently of the spreadsheet.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from medstock.core.exceptions import AuditWriteFailed, MedStockError
from medstock.core.ids import generate_id, utcnow
from medstock.schemas.transaction import Transaction, TransactionType
from medstock.services.repository import TransactionRepository

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


class AuditLog:
    """Central audit trail for inventory mutations."""

    def __init__(self, transactions: TransactionRepository):
        self.transactions = transactions

    def record(
        self,
        kind: TransactionType,
        user_id: str = "",
        description: str = "",
        medicine_id: Optional[str] = None,
        entity: Optional[Dict[str, Any]] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        store_id: Optional[str] = None,
    ) -> Transaction:
        """
        Append one audit entry. Remote failures propagate unchanged.

        Usage:
            audit.record(TransactionType.LOGIN, user_id=user.id, description="User a@b.c logged in")
        """
        transaction = Transaction(
            id=generate_id(),
            type=kind,
            medicine_id=medicine_id,
            entity=entity,
            old_values=old_values,
            new_values=new_values,
            user_id=user_id,
            description=description,
            created_at=utcnow(),
            store_id=store_id,
        )
        self.transactions.append(transaction)

        log_entry = {
            "timestamp": transaction.created_at.isoformat(),
            "event_type": f"inventory.{transaction.type.value}",
            "transaction_id": transaction.id,
            "user_id": user_id,
            "medicine_id": medicine_id,
            "store_id": store_id,
            "description": description,
        }
        audit_logger.info(json.dumps(log_entry))
        return transaction

    def record_after(self, kind: TransactionType, result: Any, **payload) -> Transaction:
        """
        Record the audit entry for a mutation that already happened.

        A failure here is reported as AuditWriteFailed carrying ``result``:
        the mutation stands, only its audit record is missing.
        """
        try:
            return self.record(kind, **payload)
        except MedStockError as e:
            audit_logger.error(json.dumps({
                "timestamp": utcnow().isoformat(),
                "event_severity": "ERROR",
                "event_type": "audit.write_failed",
                "kind": kind.value,
                "medicine_id": payload.get("medicine_id"),
                "user_id": payload.get("user_id"),
                "error": str(e),
            }))
            raise AuditWriteFailed(kind.value, result, e) from e

    def list_recent(self, limit: Optional[int] = None) -> List[Transaction]:
        """All entries, newest first. The store cannot sort, so this reads everything."""
        entries = sorted(self.transactions.list(), key=lambda t: t.created_at, reverse=True)
        return entries[:limit] if limit else entries
