"""Dose Logging Service.

Logs a taken dose: checks eligibility against the current snapshot, then
records the DoseLog and takes the tablets in one atomic store step, which
re-checks the slot and the stock under the store lock.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from domain.inventory_models import DoseLog, DoseLogOutcome
from infrastructure.inventory_store import InMemoryInventoryStore
from .dose_schedule_service import DoseScheduleService

logger = logging.getLogger(__name__)


class DoseLoggingService:
    """Orchestrates dose logging against the inventory store."""

    def __init__(
        self,
        store: InMemoryInventoryStore,
        schedule_service: Optional[DoseScheduleService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.schedule_service = schedule_service or DoseScheduleService(clock=clock)
        self.clock = clock or self.schedule_service.clock

    def log_dose(
        self,
        medicine_id: str,
        scheduled_time: Optional[str] = None,
        quantity: int = 1,
        now: Optional[datetime] = None,
    ) -> DoseLogOutcome:
        """Log a dose of a medicine.

        Args:
            medicine_id: Owned medicine id
            scheduled_time: Schedule slot the dose belongs to, if any
            quantity: Tablets taken
            now: Time the dose is taken

        Returns:
            DoseLogOutcome, with the blocking reason when nothing was logged

        Raises:
            MedicineNotFoundError: If the medicine does not exist
        """
        now = now if now is not None else self.clock()
        medicine = self.store.get(medicine_id)

        already_logged = (
            scheduled_time is not None
            and scheduled_time in self.store.logged_times(medicine_id, now.date())
        )
        eligibility = self.schedule_service.check_dose_eligibility(
            medicine,
            scheduled_time=scheduled_time,
            now=now,
            already_logged=already_logged,
            quantity=quantity,
        )
        if not eligibility.allowed:
            logger.info(f"Dose of {medicine_id} blocked: {eligibility.reason.value}")
            return DoseLogOutcome(logged=False, reason=eligibility.reason, remaining=medicine.tablet_count)

        dose_log = DoseLog(
            medicine_id=medicine.id,
            medicine_name=medicine.medicine_name,
            taken_at=now,
            scheduled_time=scheduled_time,
            quantity_taken=quantity,
        )
        refused = self.store.log_dose(dose_log)
        remaining = self.store.get(medicine_id).tablet_count
        if refused is not None:
            # Another caller logged the slot or took the tablets first
            logger.info(f"Dose of {medicine_id} lost the race: {refused.value}")
            return DoseLogOutcome(logged=False, reason=refused, remaining=remaining)

        logger.info(f"Logged {quantity} x {medicine.medicine_name}, {remaining} left")
        return DoseLogOutcome(logged=True, dose_log=dose_log, remaining=remaining)
