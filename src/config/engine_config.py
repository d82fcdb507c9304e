"""Safety Engine Configuration.

Thresholds and paths for the medication safety engine, read from
environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Bundled reference catalog shipped with the package
DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[1] / "infrastructure" / "catalog" / "data" / "drug_catalog.yaml"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineConfig:
    """Medication safety engine configuration."""

    catalog_path: Path = field(default_factory=lambda: DEFAULT_CATALOG_PATH)

    # Expiry sub-machine
    expiring_threshold_days: int = 30
    low_stock_threshold: int = 5

    # Dose time windows (minutes)
    dose_unlock_minutes: int = 60
    dose_current_window_minutes: int = 30

    # Drug matcher
    min_alias_length: int = 3
    suppress_combo_ingredients: bool = True

    log_level: str = "INFO"

    def __post_init__(self):
        self.catalog_path = Path(self.catalog_path)
        if self.expiring_threshold_days < 0:
            raise ValueError("expiring_threshold_days must be >= 0")
        if self.low_stock_threshold < 0:
            raise ValueError("low_stock_threshold must be >= 0")
        if self.dose_unlock_minutes < 0 or self.dose_current_window_minutes < 0:
            raise ValueError("dose window minutes must be >= 0")

    @classmethod
    def from_env(cls, catalog_path: Optional[str] = None) -> "EngineConfig":
        """Create configuration from environment variables."""
        return cls(
            catalog_path=Path(catalog_path or os.getenv("MEDSAFE_CATALOG_PATH", str(DEFAULT_CATALOG_PATH))),
            expiring_threshold_days=int(os.getenv("MEDSAFE_EXPIRING_THRESHOLD_DAYS", "30")),
            low_stock_threshold=int(os.getenv("MEDSAFE_LOW_STOCK_THRESHOLD", "5")),
            dose_unlock_minutes=int(os.getenv("MEDSAFE_DOSE_UNLOCK_MINUTES", "60")),
            dose_current_window_minutes=int(os.getenv("MEDSAFE_DOSE_CURRENT_WINDOW_MINUTES", "30")),
            min_alias_length=int(os.getenv("MEDSAFE_MIN_ALIAS_LENGTH", "3")),
            suppress_combo_ingredients=_env_bool("MEDSAFE_SUPPRESS_COMBO_INGREDIENTS", True),
            log_level=os.getenv("MEDSAFE_LOG_LEVEL", "INFO").upper(),
        )


# Default configuration instance
default_config = EngineConfig()
