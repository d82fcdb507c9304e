"""Medicine Cabinet Domain Models.

Defines the user's owned medicine records, dose logs, and the derived
expiry, cabinet and dose-window states computed by the inventory services.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ExpiryAlertLevel(str, Enum):
    """Alert levels for medicine expiry status."""

    NONE = "none"                    # No expiry date set
    SAFE = "safe"                    # Beyond the expiring-soon threshold
    EXPIRING_SOON = "expiring_soon"  # Within the threshold (yellow alert)
    EXPIRED = "expired"              # Past expiry date (red alert)

    @property
    def sort_order(self) -> int:
        return _EXPIRY_SORT_ORDER.index(self)


_EXPIRY_SORT_ORDER: Tuple[ExpiryAlertLevel, ...] = (
    ExpiryAlertLevel.EXPIRED,
    ExpiryAlertLevel.EXPIRING_SOON,
    ExpiryAlertLevel.SAFE,
    ExpiryAlertLevel.NONE,
)


class DoseBlockReason(str, Enum):
    """Why a dose cannot be logged right now."""

    EXPIRED = "expired"
    OUT_OF_STOCK = "out_of_stock"
    INSUFFICIENT_STOCK = "insufficient_stock"
    ALREADY_LOGGED = "already_logged"
    LOCKED = "locked"


@dataclass(frozen=True)
class OwnedMedicine:
    """A medicine in the user's cabinet.

    Instances are immutable snapshots; the inventory store produces a new
    instance for every change.

    Attributes:
        id: Record identifier
        drug_id: Reference to the catalog DrugRecord
        medicine_name: Display name for quick access
        category: Drug category
        expiry_date: Expiry date, None when not set
        tablet_count: Current stock, never negative
        schedule_times: Ordered "HH:MM" dose times
        expiry_alert_shown: Whether the first-detection modal was dismissed
        food_warnings: Dietary notes confirmed before a dose
    """

    id: str
    drug_id: str
    medicine_name: str
    category: Optional[str] = None
    expiry_date: Optional[date] = None
    tablet_count: int = 0
    schedule_times: Tuple[str, ...] = ()
    expiry_alert_shown: bool = False
    food_warnings: Tuple[str, ...] = ()
    added_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("OwnedMedicine.id must not be blank")
        if not self.medicine_name or not self.medicine_name.strip():
            raise ValueError(f"OwnedMedicine {self.id!r} has a blank medicine name")
        if isinstance(self.tablet_count, bool) or not isinstance(self.tablet_count, int):
            raise ValueError(f"tablet_count must be an int, got {self.tablet_count!r}")
        if self.tablet_count < 0:
            raise ValueError(f"tablet_count must be >= 0, got {self.tablet_count}")
        # Expiry is tracked per calendar day
        if isinstance(self.expiry_date, datetime):
            object.__setattr__(self, "expiry_date", self.expiry_date.date())
        object.__setattr__(self, "schedule_times", tuple(self.schedule_times))
        object.__setattr__(self, "food_warnings", tuple(self.food_warnings))

    def with_changes(self, **changes: Any) -> "OwnedMedicine":
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OwnedMedicine":
        """Build a record from a plain mapping (e.g. a YAML/JSON document)."""
        expiry = data.get("expiry_date")
        if isinstance(expiry, str):
            expiry = date.fromisoformat(expiry)
        return cls(
            id=str(data["id"]),
            drug_id=str(data.get("drug_id", "")),
            medicine_name=data.get("medicine_name", ""),
            category=data.get("category"),
            expiry_date=expiry,
            tablet_count=data.get("tablet_count", 0),
            schedule_times=tuple(data.get("schedule_times") or ()),
            expiry_alert_shown=bool(data.get("expiry_alert_shown", False)),
            food_warnings=tuple(data.get("food_warnings") or ()),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "drug_id": self.drug_id,
            "medicine_name": self.medicine_name,
            "category": self.category,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "tablet_count": self.tablet_count,
            "schedule_times": list(self.schedule_times),
            "expiry_alert_shown": self.expiry_alert_shown,
            "food_warnings": list(self.food_warnings),
        }


@dataclass(frozen=True)
class DoseLog:
    """A dose the user marked as taken."""

    medicine_id: str
    medicine_name: str
    taken_at: datetime
    scheduled_time: Optional[str] = None
    quantity_taken: int = 1

    def __post_init__(self):
        if self.quantity_taken < 1:
            raise ValueError(f"quantity_taken must be >= 1, got {self.quantity_taken}")

    def is_taken_on(self, day: date) -> bool:
        return self.taken_at.date() == day


@dataclass(frozen=True)
class ExpiryAlert:
    """Expiry alert for one medicine.

    Attributes:
        medicine: The medicine the alert is about
        level: Alert level
        days_remaining: Whole days until expiry (negative once expired)
    """

    medicine: OwnedMedicine
    level: ExpiryAlertLevel
    days_remaining: Optional[int]

    @property
    def message(self) -> str:
        if self.level == ExpiryAlertLevel.EXPIRED:
            days_past = abs(self.days_remaining or 0)
            return "Expired today" if days_past == 0 else f"Expired {days_past} days ago"
        if self.level == ExpiryAlertLevel.EXPIRING_SOON:
            return f"Expires in {self.days_remaining} days"
        if self.level == ExpiryAlertLevel.SAFE:
            return f"Valid for {self.days_remaining} more days"
        return "No expiry date set"

    @property
    def severity(self) -> str:
        """Color-coded severity for the UI."""
        return {
            ExpiryAlertLevel.EXPIRED: "critical",
            ExpiryAlertLevel.EXPIRING_SOON: "warning",
            ExpiryAlertLevel.SAFE: "safe",
            ExpiryAlertLevel.NONE: "unknown",
        }[self.level]


@dataclass(frozen=True)
class CabinetStatus:
    """Summary of the user's medicine cabinet."""

    total_medicines: int
    expired_count: int
    expiring_soon_count: int
    low_stock_count: int
    needs_attention: bool

    @property
    def attention_count(self) -> int:
        return self.expired_count + self.expiring_soon_count + self.low_stock_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_medicines": self.total_medicines,
            "expired_count": self.expired_count,
            "expiring_soon_count": self.expiring_soon_count,
            "low_stock_count": self.low_stock_count,
            "needs_attention": self.needs_attention,
            "attention_count": self.attention_count,
        }

    def __str__(self) -> str:
        return (
            f"Cabinet: {self.total_medicines} total, {self.expired_count} expired, "
            f"{self.expiring_soon_count} expiring soon"
        )


@dataclass(frozen=True)
class DoseWindow:
    """Timing state of one scheduled dose relative to "now".

    Attributes:
        scheduled_time: The raw schedule string
        scheduled_at: Today's datetime for the slot, None if unparseable
        minutes_until: Minutes from now until the slot (negative when past)
        is_past: Slot time is before now
        is_current: Within the current-dose window around the slot
        is_locked: Too early to log
        is_overdue: Past and not logged
        parse_failed: The schedule string could not be parsed
    """

    scheduled_time: str
    scheduled_at: Optional[datetime]
    minutes_until: Optional[float]
    is_past: bool
    is_current: bool
    is_locked: bool
    is_overdue: bool
    parse_failed: bool = False


@dataclass(frozen=True)
class DoseEligibility:
    """Whether a dose may be logged, and why not."""

    allowed: bool
    reason: Optional[DoseBlockReason] = None
    window: Optional[DoseWindow] = None

    @classmethod
    def ok(cls, window: Optional[DoseWindow] = None) -> "DoseEligibility":
        return cls(allowed=True, window=window)

    @classmethod
    def blocked(cls, reason: DoseBlockReason, window: Optional[DoseWindow] = None) -> "DoseEligibility":
        return cls(allowed=False, reason=reason, window=window)


@dataclass(frozen=True)
class DoseLogOutcome:
    """Result of a dose logging attempt."""

    logged: bool
    reason: Optional[DoseBlockReason] = None
    dose_log: Optional[DoseLog] = None
    remaining: Optional[int] = None
