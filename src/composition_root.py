# src/composition_root.py

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional

from application.rules.risk_evaluator import RiskEvaluator
from application.rules.verdict_aggregator import VerdictAggregator
from application.services.dose_logging_service import DoseLoggingService
from application.services.dose_schedule_service import DoseScheduleService
from application.services.drug_matcher import DrugMatcher
from application.services.expiry_alert_service import ExpiryAlertService
from config.engine_config import EngineConfig
from domain.drug_models import DrugCatalog
from domain.inventory_models import OwnedMedicine
from infrastructure.catalog import load_catalog
from infrastructure.inventory_store import InMemoryInventoryStore


# --- Component Factory Functions ---

def create_drug_matcher(catalog: DrugCatalog, config: EngineConfig) -> DrugMatcher:
    """Creates a DrugMatcher over the loaded catalog."""
    return DrugMatcher(catalog=catalog, config=config)


def create_verdict_aggregator() -> VerdictAggregator:
    """Creates a VerdictAggregator with its own RiskEvaluator."""
    return VerdictAggregator(evaluator=RiskEvaluator())


def create_expiry_alert_service(
    config: EngineConfig,
    clock: Optional[Callable[[], datetime]] = None,
) -> ExpiryAlertService:
    return ExpiryAlertService(config=config, clock=clock)


def create_dose_schedule_service(
    config: EngineConfig,
    expiry_service: ExpiryAlertService,
) -> DoseScheduleService:
    """Creates a DoseScheduleService sharing the expiry service's clock."""
    return DoseScheduleService(config=config, expiry_service=expiry_service, clock=expiry_service.clock)


def create_dose_logging_service(
    store: InMemoryInventoryStore,
    schedule_service: DoseScheduleService,
) -> DoseLoggingService:
    return DoseLoggingService(store=store, schedule_service=schedule_service)


@dataclass
class SafetyEngine:
    """All wired components of the medication safety engine."""

    config: EngineConfig
    catalog: DrugCatalog
    matcher: DrugMatcher
    aggregator: VerdictAggregator
    expiry_service: ExpiryAlertService
    schedule_service: DoseScheduleService
    store: InMemoryInventoryStore
    dose_logging: DoseLoggingService

    @property
    def evaluator(self) -> RiskEvaluator:
        return self.aggregator.evaluator


def bootstrap_safety_engine(
    config: Optional[EngineConfig] = None,
    catalog: Optional[DrugCatalog] = None,
    medicines: Iterable[OwnedMedicine] = (),
    clock: Optional[Callable[[], datetime]] = None,
) -> SafetyEngine:
    """Loads the catalog once and wires every component around it.

    Args:
        config: Engine configuration, read from the environment when omitted
        catalog: Preloaded catalog, loaded from ``config.catalog_path`` when omitted
        medicines: Owned medicines to seed the inventory store with
        clock: Clock shared by the time-dependent services
    """
    config = config or EngineConfig.from_env()
    catalog = catalog if catalog is not None else load_catalog(config.catalog_path)

    expiry_service = create_expiry_alert_service(config, clock)
    schedule_service = create_dose_schedule_service(config, expiry_service)
    store = InMemoryInventoryStore(medicines)

    return SafetyEngine(
        config=config,
        catalog=catalog,
        matcher=create_drug_matcher(catalog, config),
        aggregator=create_verdict_aggregator(),
        expiry_service=expiry_service,
        schedule_service=schedule_service,
        store=store,
        dose_logging=create_dose_logging_service(store, schedule_service),
    )
