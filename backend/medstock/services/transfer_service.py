"""
Stock transfer orchestrator.

One request walks through:

    pending -> validated -> debiting -> crediting -> logged
                   \\
                    -> rejected   (nothing written)

Debit and credit are two independent sheet writes. If the credit fails
after the debit went through, total quantity is no longer conserved;
TransferIncompleteError reports exactly what was debited and a pending
stock_transfer entry flagged ``incomplete`` records the debit. No automatic
compensation is attempted. Up to the debit the request can be abandoned
freely; after it, only forward completion or manual repair.

All ledger mutations in this process go through LEDGER_WRITE_LOCK. Writers
in other processes are caught by the expected-quantity check in
StockLedger.set_quantity, which makes us re-run the read-validate-write
cycle.
"""
import logging
from enum import Enum
from typing import Callable, List, Optional, TypeVar

from medstock.core.audit import AuditLog
from medstock.core.config import settings
from medstock.core.exceptions import (
    InsufficientStockError,
    InvalidTransferError,
    MedStockError,
    StaleRowError,
    TransferIncompleteError,
)
from medstock.core.ids import generate_id, utcnow
from medstock.schemas.inventory import Medicine
from medstock.schemas.transaction import (
    StockTransfer,
    Transaction,
    TransactionType,
    TransferReason,
    TransferRequest,
    TransferStatus,
)
from medstock.services.repository import MedicineRepository, StoreRepository
from medstock.services.row_codec import enum_parser, parse_int
from medstock.services.stock_ledger import LEDGER_WRITE_LOCK, StockLedger, is_main

logger = logging.getLogger(__name__)

R = TypeVar("R")

_parse_reason = enum_parser(TransferReason, TransferReason.TRANSFER)
_parse_status = enum_parser(TransferStatus, TransferStatus.COMPLETED)


class TransferState(str, Enum):
    PENDING = "pending"
    VALIDATED = "validated"
    DEBITING = "debiting"
    CREDITING = "crediting"
    LOGGED = "logged"
    REJECTED = "rejected"


def location_label(location: str) -> str:
    return "main store" if is_main(location) else location


class TransferService:
    def __init__(
        self,
        ledger: StockLedger,
        audit: AuditLog,
        medicines: MedicineRepository,
        stores: StoreRepository,
        max_retries: Optional[int] = None,
        lock=LEDGER_WRITE_LOCK,
    ):
        self.ledger = ledger
        self.audit = audit
        self.medicines = medicines
        self.stores = stores
        self.max_retries = settings.MAX_WRITE_RETRIES if max_retries is None else max_retries
        self.lock = lock

    def create_transfer(self, request: TransferRequest, user_id: str) -> StockTransfer:
        """
        Move ``request.quantity`` units between two locations and audit it.

        Raises:
            InvalidTransferError: same source and target, or quantity <= 0
            NotFoundError: unknown medicine or store
            InsufficientStockError: source holds less than requested
            TransferIncompleteError: debited but not credited
            AuditWriteFailed: moved, but the audit entry is missing
        """
        transfer = StockTransfer(
            id=generate_id(),
            medicine_id=request.medicine_id,
            from_store=request.from_store,
            to_store=request.to_store,
            quantity=request.quantity,
            reason=request.reason,
            notes=request.notes,
            created_by=user_id,
            created_at=utcnow(),
            status=TransferStatus.PENDING,
        )
        state = TransferState.PENDING

        with self.lock:
            try:
                medicine = self._validate(request)
                state = TransferState.VALIDATED

                state = TransferState.DEBITING
                source_before = self._with_retries(lambda: self._debit(request))
            except MedStockError as e:
                logger.info(f"Transfer {transfer.id} rejected in state {state.value}: {e}")
                raise

            state = TransferState.CREDITING
            try:
                target_before = self._with_retries(lambda: self._credit(request))
            except MedStockError as e:
                logger.error(
                    f"Transfer {transfer.id} debited {request.quantity} from "
                    f"{request.from_store} but credit to {request.to_store} failed: {e}"
                )
                self._record_incomplete(transfer, source_before, medicine, user_id)
                raise TransferIncompleteError(transfer, e) from e

        completed = transfer.model_copy(update={"status": TransferStatus.COMPLETED})
        self.audit.record_after(
            TransactionType.STOCK_TRANSFER,
            completed,
            user_id=user_id,
            medicine_id=request.medicine_id,
            entity=completed.model_dump(mode="json"),
            old_values={
                "fromQuantity": source_before,
                "toQuantity": target_before,
            },
            new_values={
                "fromQuantity": source_before - request.quantity,
                "toQuantity": target_before + request.quantity,
            },
            store_id=None if is_main(request.to_store) else request.to_store,
            description=(
                f"Transferred {request.quantity} units of {medicine.name} from "
                f"{location_label(request.from_store)} to {location_label(request.to_store)}"
            ),
        )
        state = TransferState.LOGGED
        logger.info(f"Transfer {completed.id} {state.value}")
        return completed

    def _record_incomplete(
        self, transfer: StockTransfer, source_before: int, medicine: Medicine, user_id: str
    ) -> None:
        """Audit the debit that went through; the entry stays pending and flagged incomplete."""
        try:
            self.audit.record(
                TransactionType.STOCK_TRANSFER,
                user_id=user_id,
                medicine_id=transfer.medicine_id,
                entity={**transfer.model_dump(mode="json"), "incomplete": True},
                old_values={"fromQuantity": source_before},
                new_values={"fromQuantity": source_before - transfer.quantity},
                store_id=None if is_main(transfer.to_store) else transfer.to_store,
                description=(
                    f"INCOMPLETE: removed {transfer.quantity} units of {medicine.name} from "
                    f"{location_label(transfer.from_store)}, not added to {location_label(transfer.to_store)}"
                ),
            )
        except MedStockError as e:
            logger.error(f"Could not audit incomplete transfer {transfer.id}: {e}")

    def _validate(self, request: TransferRequest) -> Medicine:
        if request.quantity <= 0:
            raise InvalidTransferError("Quantity must be greater than zero")
        if request.from_store == request.to_store:
            raise InvalidTransferError("Source and destination must be different locations")

        medicine = self.medicines.get(request.medicine_id)
        for location in (request.from_store, request.to_store):
            if not is_main(location):
                self.stores.get(location)
        return medicine

    def _debit(self, request: TransferRequest) -> int:
        available = self.ledger.get_quantity(request.medicine_id, request.from_store)
        if available < request.quantity:
            raise InsufficientStockError(
                request.medicine_id, request.from_store, available, request.quantity
            )
        self.ledger.set_quantity(
            request.medicine_id,
            request.from_store,
            available - request.quantity,
            expected_quantity=available,
        )
        return available

    def _credit(self, request: TransferRequest) -> int:
        current = self.ledger.get_quantity(request.medicine_id, request.to_store)
        self.ledger.set_quantity(
            request.medicine_id,
            request.to_store,
            current + request.quantity,
            expected_quantity=current,
        )
        return current

    def _with_retries(self, step: Callable[[], R]) -> R:
        """Re-run a whole read-modify-write step while its row keeps moving."""
        attempt = 0
        while True:
            try:
                return step()
            except StaleRowError:
                attempt += 1
                if attempt > self.max_retries:
                    raise
                logger.warning(f"Stock row changed underneath transfer, retry {attempt}/{self.max_retries}")


def transfers_from_transactions(transactions: List[Transaction]) -> List[StockTransfer]:
    """Transfer history, rebuilt from the stock_transfer audit entries."""
    transfers = []
    for t in transactions:
        if t.type != TransactionType.STOCK_TRANSFER or not t.entity:
            continue
        entity = t.entity
        # Manual adjustments share the audit kind but carry no transfer payload
        if "fromStore" not in entity and "from_store" not in entity:
            continue
        transfers.append(StockTransfer(
            id=entity.get("id") or t.id,
            medicine_id=t.medicine_id or entity.get("medicine_id", ""),
            from_store=entity.get("from_store") or entity.get("fromStore", ""),
            to_store=entity.get("to_store") or entity.get("toStore", ""),
            quantity=parse_int(entity.get("quantity")),
            reason=_parse_reason(entity.get("reason")),
            notes=entity.get("notes") or t.description,
            created_by=t.user_id,
            created_at=t.created_at,
            status=_parse_status(entity.get("status")),
        ))
    return transfers
