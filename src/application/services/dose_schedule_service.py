"""Dose Schedule Service.

Time-window logic for scheduled doses. A dose can be logged from one hour
before its scheduled time onwards; earlier attempts are locked. Doses past
their time stay loggable and are flagged as overdue.

Schedule strings are stored as "HH:MM" but are typed by users, so the
parser tolerates AM/PM markers and stray characters. A slot that still
cannot be parsed is treated as unlocked and logged at WARNING level.
"""

import logging
import re
from datetime import datetime, time
from typing import Callable, Iterable, Optional

from config.engine_config import EngineConfig, default_config
from domain.inventory_models import DoseBlockReason, DoseEligibility, DoseWindow, OwnedMedicine
from .expiry_alert_service import ExpiryAlertService

logger = logging.getLogger(__name__)

_MERIDIEM_RE = re.compile(r"\s*([AP])\.?\s*M\.?\s*$", re.IGNORECASE)


def parse_schedule_time(text: Optional[str]) -> Optional[time]:
    """Parse a schedule string such as "08:00", "8:30 PM" or " 21:00\\n".

    Returns:
        The time of day, or None if the string cannot be parsed or is out
        of range
    """
    if not isinstance(text, str) or not text.strip():
        return None

    value = text.strip()
    meridiem = None
    match = _MERIDIEM_RE.search(value)
    if match:
        meridiem = match.group(1).upper()
        value = value[:match.start()]

    parts = value.split(":")
    if len(parts) != 2:
        return None
    hour_digits = re.sub(r"\D", "", parts[0])
    minute_digits = re.sub(r"\D", "", parts[1])
    if not hour_digits or not minute_digits:
        return None
    hour, minute = int(hour_digits), int(minute_digits)

    if meridiem:
        if not 1 <= hour <= 12:
            return None
        if meridiem == "A" and hour == 12:
            hour = 0
        elif meridiem == "P" and hour < 12:
            hour += 12

    if not (0 <= hour < 24 and 0 <= minute < 60):
        return None
    return time(hour, minute)


def format_schedule_time(text: str) -> str:
    """Format "HH:MM" for display as "h:MM AM/PM"; unparseable input is returned as is."""
    parsed = parse_schedule_time(text)
    if parsed is None:
        return text
    period = "PM" if parsed.hour >= 12 else "AM"
    display_hour = parsed.hour % 12 or 12
    return f"{display_hour}:{parsed.minute:02d} {period}"


class DoseScheduleService:
    """Dose time-window state machine.

    Example:
        >>> service = DoseScheduleService()
        >>> service.is_dose_locked("10:30", now=datetime(2025, 1, 1, 9, 0))
        True
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        expiry_service: Optional[ExpiryAlertService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the service.

        Args:
            config: Engine configuration (unlock and current-dose windows)
            expiry_service: Used to block doses of expired medicines
            clock: Returns the current time, defaults to ``datetime.now``
        """
        self.config = config or default_config
        self.clock = clock or datetime.now
        self.expiry_service = expiry_service or ExpiryAlertService(self.config, self.clock)

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock()

    def dose_window(
        self,
        scheduled_time: str,
        now: Optional[datetime] = None,
        already_logged: bool = False,
    ) -> DoseWindow:
        """Compute the timing state of today's slot for ``scheduled_time``."""
        now = self._now(now)
        parsed = parse_schedule_time(scheduled_time)
        if parsed is None:
            logger.warning(f"Could not parse schedule time {scheduled_time!r}, leaving dose unlocked")
            return DoseWindow(
                scheduled_time=scheduled_time,
                scheduled_at=None,
                minutes_until=None,
                is_past=False,
                is_current=False,
                is_locked=False,
                is_overdue=False,
                parse_failed=True,
            )

        scheduled_at = now.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)
        minutes_until = (scheduled_at - now).total_seconds() / 60
        is_past = minutes_until < 0

        return DoseWindow(
            scheduled_time=scheduled_time,
            scheduled_at=scheduled_at,
            minutes_until=minutes_until,
            is_past=is_past,
            is_current=abs(minutes_until) < self.config.dose_current_window_minutes,
            is_locked=(
                not already_logged
                and not is_past
                and minutes_until >= self.config.dose_unlock_minutes
            ),
            is_overdue=is_past and not already_logged,
        )

    def is_dose_locked(
        self,
        scheduled_time: str,
        now: Optional[datetime] = None,
        already_logged: bool = False,
    ) -> bool:
        """True if the dose is more than the unlock window ahead of now."""
        return self.dose_window(scheduled_time, now, already_logged).is_locked

    def check_dose_eligibility(
        self,
        medicine: OwnedMedicine,
        scheduled_time: Optional[str] = None,
        now: Optional[datetime] = None,
        already_logged: bool = False,
        quantity: int = 1,
    ) -> DoseEligibility:
        """Decide whether a dose may be logged.

        Reasons are checked in order: expired, out of stock, insufficient
        stock, already logged, locked.

        Args:
            medicine: Medicine snapshot
            scheduled_time: Schedule slot the dose is for, if any
            now: Current time
            already_logged: Whether this slot was already logged today
            quantity: Tablets to take

        Returns:
            DoseEligibility with the first blocking reason, if any
        """
        if quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {quantity}")

        now = self._now(now)
        window = self.dose_window(scheduled_time, now, already_logged) if scheduled_time is not None else None

        if self.expiry_service.should_block_dose_marking(medicine, now):
            return DoseEligibility.blocked(DoseBlockReason.EXPIRED, window)
        if medicine.tablet_count == 0:
            return DoseEligibility.blocked(DoseBlockReason.OUT_OF_STOCK, window)
        if medicine.tablet_count < quantity:
            return DoseEligibility.blocked(DoseBlockReason.INSUFFICIENT_STOCK, window)
        if already_logged:
            return DoseEligibility.blocked(DoseBlockReason.ALREADY_LOGGED, window)
        if window is not None and window.is_locked:
            return DoseEligibility.blocked(DoseBlockReason.LOCKED, window)
        return DoseEligibility.ok(window)

    def next_available_time(
        self,
        medicine: OwnedMedicine,
        logged_times: Iterable[str],
        now: Optional[datetime] = None,
    ) -> Optional[str]:
        """Pick the slot to preselect when logging a dose.

        The first unlogged slot that is at most the current-dose window in the
        past, else any unlogged slot, else None when everything is logged.
        """
        logged = set(logged_times)
        pending = [t for t in medicine.schedule_times if t not in logged]
        if not pending:
            return None

        now = self._now(now)
        now_minutes = now.hour * 60 + now.minute
        for slot in pending:
            parsed = parse_schedule_time(slot)
            if parsed is None:
                continue
            if parsed.hour * 60 + parsed.minute >= now_minutes - self.config.dose_current_window_minutes:
                return slot
        return pending[0]

    @staticmethod
    def all_doses_logged(medicine: OwnedMedicine, logged_times: Iterable[str]) -> bool:
        """True when the medicine has a schedule and every slot is logged."""
        if not medicine.schedule_times:
            return False
        logged = set(logged_times)
        return all(t in logged for t in medicine.schedule_times)

    @staticmethod
    def remaining_after_dose(medicine: OwnedMedicine, quantity: int = 1) -> int:
        """Tablets left after taking ``quantity``, never below zero."""
        return max(medicine.tablet_count - quantity, 0)

    def is_low_stock_after_dose(self, medicine: OwnedMedicine, quantity: int = 1) -> bool:
        return self.remaining_after_dose(medicine, quantity) <= self.config.low_stock_threshold
