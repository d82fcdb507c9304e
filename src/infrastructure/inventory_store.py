"""In-memory Inventory Store.

Holds a user's owned medicines and dose history. Records are immutable
``OwnedMedicine`` snapshots; every write replaces the stored snapshot while
holding the store lock, so changes are atomic per record. Two concurrent
dose decrements on the last tablet cannot both succeed.
"""

import logging
from datetime import date
from threading import Lock
from typing import Dict, Iterable, List, Optional

from domain.inventory_models import DoseBlockReason, DoseLog, OwnedMedicine

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Error in the inventory store."""
    pass


class MedicineNotFoundError(InventoryError):
    """No medicine with the given id."""

    def __init__(self, medicine_id: str):
        super().__init__(f"Medicine not found: {medicine_id}")
        self.medicine_id = medicine_id


class InMemoryInventoryStore:
    """Thread-safe in-memory store for owned medicines and dose logs."""

    def __init__(self, medicines: Iterable[OwnedMedicine] = ()):
        self._lock = Lock()
        self._medicines: Dict[str, OwnedMedicine] = {}
        self._dose_logs: List[DoseLog] = []
        for medicine in medicines:
            self.add(medicine)

    # ========================================
    # Medicines
    # ========================================

    def add(self, medicine: OwnedMedicine) -> OwnedMedicine:
        with self._lock:
            if medicine.id in self._medicines:
                raise InventoryError(f"Medicine already exists: {medicine.id}")
            self._medicines[medicine.id] = medicine
        logger.info(f"Added medicine {medicine.id} ({medicine.medicine_name})")
        return medicine

    def get(self, medicine_id: str) -> OwnedMedicine:
        with self._lock:
            return self._get_locked(medicine_id)

    def list_medicines(self) -> List[OwnedMedicine]:
        """Snapshot of all medicines in insertion order."""
        with self._lock:
            return list(self._medicines.values())

    def update(self, medicine: OwnedMedicine) -> OwnedMedicine:
        """Replace the stored record with the same id."""
        with self._lock:
            self._get_locked(medicine.id)
            self._medicines[medicine.id] = medicine
        return medicine

    def remove(self, medicine_id: str) -> None:
        with self._lock:
            self._get_locked(medicine_id)
            del self._medicines[medicine_id]
        logger.info(f"Removed medicine {medicine_id}")

    def mark_expiry_alert_shown(self, medicine_id: str) -> OwnedMedicine:
        """Record that the expired-medicine modal was dismissed."""
        with self._lock:
            updated = self._get_locked(medicine_id).with_changes(expiry_alert_shown=True)
            self._medicines[medicine_id] = updated
        return updated

    def restock(self, medicine_id: str, new_expiry_date: date, add_quantity: int) -> OwnedMedicine:
        """Apply a new strip: new expiry date, more tablets, alert flag reset.

        Raises:
            ValueError: If ``add_quantity`` is negative
            MedicineNotFoundError: If the medicine does not exist
        """
        if add_quantity < 0:
            raise ValueError(f"add_quantity must be >= 0, got {add_quantity}")
        with self._lock:
            current = self._get_locked(medicine_id)
            updated = current.with_changes(
                expiry_date=new_expiry_date,
                tablet_count=current.tablet_count + add_quantity,
                expiry_alert_shown=False,
            )
            self._medicines[medicine_id] = updated
        logger.info(f"Restocked {medicine_id}: +{add_quantity} tablets, expires {new_expiry_date.isoformat()}")
        return updated

    def decrement_tablets(self, medicine_id: str, quantity: int = 1) -> bool:
        """Take ``quantity`` tablets if enough are left.

        Returns:
            True if the stock was decremented, False if there were too few
            tablets (the count is left unchanged)
        """
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")
        with self._lock:
            current = self._get_locked(medicine_id)
            if current.tablet_count < quantity:
                return False
            self._medicines[medicine_id] = current.with_changes(
                tablet_count=current.tablet_count - quantity
            )
            return True

    # ========================================
    # Dose logs
    # ========================================

    def log_dose(self, dose_log: DoseLog) -> Optional[DoseBlockReason]:
        """Record a dose and take its tablets in one locked step.

        The scheduled slot is re-checked against the logs of the same day and
        the stock against the current snapshot, so concurrent callers for the
        same slot or the last tablets cannot both win.

        Returns:
            None when the dose was recorded, otherwise the reason it was refused
            (the stock and the logs are left unchanged)
        """
        with self._lock:
            current = self._get_locked(dose_log.medicine_id)
            day = dose_log.taken_at.date()
            if dose_log.scheduled_time is not None and any(
                log.medicine_id == dose_log.medicine_id
                and log.scheduled_time == dose_log.scheduled_time
                and log.is_taken_on(day)
                for log in self._dose_logs
            ):
                return DoseBlockReason.ALREADY_LOGGED
            if current.tablet_count < dose_log.quantity_taken:
                if current.tablet_count == 0:
                    return DoseBlockReason.OUT_OF_STOCK
                return DoseBlockReason.INSUFFICIENT_STOCK
            self._medicines[current.id] = current.with_changes(
                tablet_count=current.tablet_count - dose_log.quantity_taken
            )
            self._dose_logs.append(dose_log)
        return None

    def add_dose_log(self, dose_log: DoseLog) -> DoseLog:
        with self._lock:
            self._dose_logs.append(dose_log)
        return dose_log

    def dose_logs(self, medicine_id: Optional[str] = None, day: Optional[date] = None) -> List[DoseLog]:
        """Dose logs, optionally filtered by medicine and by day taken."""
        with self._lock:
            logs = list(self._dose_logs)
        if medicine_id is not None:
            logs = [log for log in logs if log.medicine_id == medicine_id]
        if day is not None:
            logs = [log for log in logs if log.is_taken_on(day)]
        return logs

    def logged_times(self, medicine_id: str, day: date) -> List[str]:
        """Schedule slots already logged for a medicine on ``day``."""
        return [
            log.scheduled_time
            for log in self.dose_logs(medicine_id, day)
            if log.scheduled_time is not None
        ]

    def _get_locked(self, medicine_id: str) -> OwnedMedicine:
        try:
            return self._medicines[medicine_id]
        except KeyError:
            raise MedicineNotFoundError(medicine_id) from None
