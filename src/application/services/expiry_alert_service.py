"""Expiry Alert Service.

Derives expiry and stock state for owned medicines from a snapshot of the
records and the current time. Nothing here writes; flag changes such as
``expiry_alert_shown`` are applied by the inventory store.

Alert flow ("nag and flag"):
- The first time an expired medicine is seen, a blocking modal is shown and
  the caller persists ``expiry_alert_shown = True``.
- Dose logging stays blocked for the expired medicine regardless of the flag.
- A restock with a new expiry date resets the flag for the next cycle.
"""

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Union

from config.engine_config import EngineConfig, default_config
from domain.inventory_models import CabinetStatus, ExpiryAlert, ExpiryAlertLevel, OwnedMedicine

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def days_until_expiry(expiry_date: Union[date, datetime], now: Union[date, datetime]) -> int:
    """Whole calendar days from ``now`` until ``expiry_date``.

    Negative once the date has passed, 0 on the expiry day itself.
    """
    if isinstance(expiry_date, datetime):
        expiry_date = expiry_date.date()
    if isinstance(now, datetime):
        now = now.date()
    return (expiry_date - now).days


class ExpiryAlertService:
    """Expiry and stock state machine for the medicine cabinet.

    Every method accepts an optional ``now``; when omitted the injected clock
    is used.

    Example:
        >>> service = ExpiryAlertService(clock=lambda: datetime(2025, 1, 1, 9, 0))
        >>> service.check_expiry_status(date(2025, 1, 31))
        <ExpiryAlertLevel.EXPIRING_SOON: 'expiring_soon'>
    """

    def __init__(self, config: Optional[EngineConfig] = None, clock: Optional[Clock] = None):
        """Initialize the service.

        Args:
            config: Engine configuration (expiry and low stock thresholds)
            clock: Returns the current time, defaults to ``datetime.now``
        """
        self.config = config or default_config
        self.clock = clock or datetime.now

    @property
    def expiring_threshold_days(self) -> int:
        return self.config.expiring_threshold_days

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock()

    # ========================================
    # Single medicine checks
    # ========================================

    def days_until_expiry(self, expiry_date: Union[date, datetime], now: Optional[datetime] = None) -> int:
        return days_until_expiry(expiry_date, self._now(now))

    def check_expiry_status(
        self,
        expiry_date: Optional[Union[date, datetime]],
        now: Optional[datetime] = None,
    ) -> ExpiryAlertLevel:
        """Classify an expiry date.

        Returns:
            NONE without a date, EXPIRED before today, EXPIRING_SOON within
            the threshold (inclusive), SAFE otherwise
        """
        if expiry_date is None:
            return ExpiryAlertLevel.NONE

        days = self.days_until_expiry(expiry_date, now)
        if days < 0:
            return ExpiryAlertLevel.EXPIRED
        if days <= self.expiring_threshold_days:
            return ExpiryAlertLevel.EXPIRING_SOON
        return ExpiryAlertLevel.SAFE

    def is_expired(self, medicine: OwnedMedicine, now: Optional[datetime] = None) -> bool:
        return self.check_expiry_status(medicine.expiry_date, now) == ExpiryAlertLevel.EXPIRED

    def is_expiring_soon(self, medicine: OwnedMedicine, now: Optional[datetime] = None) -> bool:
        return self.check_expiry_status(medicine.expiry_date, now) == ExpiryAlertLevel.EXPIRING_SOON

    def create_alert(self, medicine: OwnedMedicine, now: Optional[datetime] = None) -> ExpiryAlert:
        """Build the expiry alert for one medicine."""
        level = self.check_expiry_status(medicine.expiry_date, now)
        days = None if medicine.expiry_date is None else self.days_until_expiry(medicine.expiry_date, now)
        return ExpiryAlert(medicine=medicine, level=level, days_remaining=days)

    def should_show_blocking_modal(self, medicine: OwnedMedicine, now: Optional[datetime] = None) -> bool:
        """Expired and the modal has not been shown in this expiry cycle."""
        return self.is_expired(medicine, now) and not medicine.expiry_alert_shown

    def should_block_dose_marking(self, medicine: OwnedMedicine, now: Optional[datetime] = None) -> bool:
        """Expired medicines can never be logged, whether or not the modal was seen."""
        return self.is_expired(medicine, now)

    def is_low_stock(self, medicine: OwnedMedicine, threshold: Optional[int] = None) -> bool:
        limit = self.config.low_stock_threshold if threshold is None else threshold
        return medicine.tablet_count <= limit

    # ========================================
    # Cabinet-wide checks
    # ========================================

    def check_all_medicines(
        self,
        medicines: Iterable[OwnedMedicine],
        now: Optional[datetime] = None,
    ) -> List[ExpiryAlert]:
        """Alerts for every medicine with an expiry date.

        Sorted expired first, then expiring soon, then safe; ties are ordered
        by days remaining.
        """
        now = self._now(now)
        alerts = [self.create_alert(m, now) for m in medicines]
        alerts = [a for a in alerts if a.level != ExpiryAlertLevel.NONE]
        alerts.sort(key=lambda a: (a.level.sort_order, a.days_remaining))
        return alerts

    def medicines_needing_modal(
        self,
        medicines: Iterable[OwnedMedicine],
        now: Optional[datetime] = None,
    ) -> List[OwnedMedicine]:
        now = self._now(now)
        return [m for m in medicines if self.should_show_blocking_modal(m, now)]

    def should_show_expiry_banner(self, medicines: Iterable[OwnedMedicine], now: Optional[datetime] = None) -> bool:
        """True when any medicine in the cabinet has expired."""
        now = self._now(now)
        return any(self.is_expired(m, now) for m in medicines)

    def medicines_needing_attention(
        self,
        medicines: Iterable[OwnedMedicine],
        now: Optional[datetime] = None,
    ) -> List[OwnedMedicine]:
        """Medicines that are expired or expiring soon."""
        now = self._now(now)
        return [
            m for m in medicines
            if self.check_expiry_status(m.expiry_date, now)
            in (ExpiryAlertLevel.EXPIRED, ExpiryAlertLevel.EXPIRING_SOON)
        ]

    def low_stock_medicines(
        self,
        medicines: Iterable[OwnedMedicine],
        threshold: Optional[int] = None,
    ) -> List[OwnedMedicine]:
        return [m for m in medicines if self.is_low_stock(m, threshold)]

    def compute_cabinet_status(
        self,
        medicines: Iterable[OwnedMedicine],
        now: Optional[datetime] = None,
    ) -> CabinetStatus:
        """Summarize the cabinet.

        Always recomputed from the full list passed in, never cached.
        """
        now = self._now(now)
        medicines = list(medicines)
        levels = [self.check_expiry_status(m.expiry_date, now) for m in medicines]

        expired = levels.count(ExpiryAlertLevel.EXPIRED)
        expiring_soon = levels.count(ExpiryAlertLevel.EXPIRING_SOON)
        low_stock = sum(1 for m in medicines if self.is_low_stock(m))

        status = CabinetStatus(
            total_medicines=len(medicines),
            expired_count=expired,
            expiring_soon_count=expiring_soon,
            low_stock_count=low_stock,
            needs_attention=expired > 0 or expiring_soon > 0,
        )
        logger.debug(str(status))
        return status
