"""Medicine catalogue: add, edit and soft-delete, each with one audit entry."""
import logging

from pydantic import ValidationError

from medstock.core.audit import AuditLog
from medstock.core.exceptions import InvalidInputError, NotFoundError
from medstock.core.ids import generate_id, utcnow
from medstock.schemas.inventory import Medicine, MedicineCreate, MedicineStatus, MedicineUpdate
from medstock.schemas.transaction import TransactionType
from medstock.services.repository import MedicineRepository

logger = logging.getLogger(__name__)


class MedicineService:
    def __init__(self, medicines: MedicineRepository, audit: AuditLog):
        self.medicines = medicines
        self.audit = audit

    def add_medicine(self, data: MedicineCreate, user_id: str) -> Medicine:
        if not data.name.strip():
            raise InvalidInputError("Medicine name cannot be empty")

        now = utcnow()
        medicine = Medicine(
            **data.model_dump(exclude={"name"}),
            name=data.name.strip(),
            id=generate_id(),
            created_at=now,
            updated_at=now,
        )
        self.medicines.append(medicine)
        logger.info(f"Added medicine {medicine.id} ({medicine.name})")

        self.audit.record_after(
            TransactionType.MEDICINE_ADDED,
            medicine,
            user_id=user_id,
            medicine_id=medicine.id,
            entity=medicine.model_dump(mode="json"),
            description=f"Added medicine: {medicine.name}",
        )
        return medicine

    def edit_medicine(self, medicine_id: str, updates: MedicineUpdate, user_id: str) -> Medicine:
        changes = updates.model_dump(exclude_unset=True)
        if "name" in changes:
            if changes["name"] is None or not changes["name"].strip():
                raise InvalidInputError("Medicine name cannot be empty")
            changes["name"] = changes["name"].strip()

        current, updated = self._replace(medicine_id, changes)
        self.audit.record_after(
            TransactionType.MEDICINE_EDITED,
            updated,
            user_id=user_id,
            medicine_id=medicine_id,
            old_values=current.model_dump(mode="json"),
            new_values=updated.model_dump(mode="json"),
            description=f"Updated medicine: {updated.name}",
        )
        return updated

    def delete_medicine(self, medicine_id: str, user_id: str) -> Medicine:
        """Soft delete: the row stays, status becomes discontinued."""
        current, updated = self._replace(medicine_id, {"status": MedicineStatus.DISCONTINUED})
        self.audit.record_after(
            TransactionType.MEDICINE_DELETED,
            updated,
            user_id=user_id,
            medicine_id=medicine_id,
            old_values={"status": current.status.value},
            new_values={"status": updated.status.value},
            description=f"Deleted medicine: {updated.name}",
        )
        return updated

    def _replace(self, medicine_id: str, changes: dict) -> tuple[Medicine, Medicine]:
        index, current, cells = self.medicines.find_row(lambda m: m.id == medicine_id)
        if current is None:
            raise NotFoundError("Medicine", medicine_id)

        updated = current.model_copy(update={**changes, "updated_at": utcnow()})
        # model_copy does not validate
        try:
            updated = Medicine.model_validate(updated.model_dump())
        except ValidationError as e:
            raise InvalidInputError(f"Invalid medicine update: {e.errors()[0]['msg']}") from e
        self.medicines.replace_at(index, updated, expected=cells)
        logger.info(f"Updated medicine {medicine_id}: {sorted(changes)}")
        return current, updated
