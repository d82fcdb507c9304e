"""Shared fixtures: a small in-code drug catalog and a fixed clock."""

from datetime import date, datetime

import pytest

from config.engine_config import EngineConfig
from domain.drug_models import (
    ActiveIngredient,
    AlcoholRestriction,
    DrugCatalog,
    DrugInteraction,
    DrugRecord,
    FoodInteraction,
    FoodSeverity,
    InteractionSeverity,
)
from domain.inventory_models import OwnedMedicine


# Wednesday morning, used as "now" across the suite
FIXED_NOW = datetime(2025, 6, 11, 9, 0)


def build_test_catalog() -> DrugCatalog:
    return DrugCatalog([
        DrugRecord(
            id="paracetamol",
            display_name="Paracetamol",
            brand_names=("Dolo 650", "Crocin"),
            category="Analgesic",
        ),
        DrugRecord(
            id="amoxicillin",
            display_name="Amoxicillin",
            brand_names=("Mox", "Novamox"),
            category="Antibiotic (Penicillin)",
            physical_form="Capsule",
            allergy_triggers={"Penicillin"},
            condition_contraindications={"Mononucleosis"},
            condition_notes={"Mononucleosis": "Causes a skin rash"},
        ),
        DrugRecord(
            id="ibuprofen",
            display_name="Ibuprofen",
            brand_names=("Brufen",),
            category="NSAID",
            allergy_triggers={"NSAIDs"},
            condition_contraindications={"Asthma", "Peptic Ulcer"},
            drug_interactions=(
                DrugInteraction("aspirin", InteractionSeverity.SEVERE, "Blocks the effect of Aspirin"),
                DrugInteraction("Warfarin", InteractionSeverity.SEVERE, "Bleeding risk"),
            ),
            food_interactions=(FoodInteraction("Alcohol", FoodSeverity.AVOID, "Stomach bleeding"),),
            alcohol_restriction=AlcoholRestriction.AVOID,
        ),
        DrugRecord(
            id="aspirin",
            display_name="Aspirin",
            brand_names=("Ecosprin",),
            category="NSAID",
            allergy_triggers={"NSAIDs", "Salicylates"},
            drug_interactions=(
                DrugInteraction("warfarin", InteractionSeverity.SEVERE, "Bleeding risk"),
            ),
        ),
        DrugRecord(
            id="warfarin",
            display_name="Warfarin",
            category="Anticoagulant",
            drug_interactions=(
                DrugInteraction("Ecosprin", InteractionSeverity.SEVERE, "Bleeding risk"),
                DrugInteraction("methotrexate", InteractionSeverity.MODERATE, "Not in catalog"),
            ),
            food_interactions=(FoodInteraction("Spinach", FoodSeverity.CAUTION, "Vitamin K"),),
        ),
        DrugRecord(
            id="combiflam",
            display_name="Ibuprofen + Paracetamol",
            brand_names=("Combiflam",),
            category="NSAID + Analgesic",
            is_combination=True,
            active_ingredients=(
                ActiveIngredient("Ibuprofen", "400mg"),
                ActiveIngredient("Paracetamol", "325mg"),
            ),
            allergy_triggers={"NSAIDs"},
        ),
        DrugRecord(
            id="augmentin",
            display_name="Amoxicillin + Clavulanic Acid",
            brand_names=("Augmentin",),
            category="Antibiotic (Penicillin)",
            is_combination=True,
            active_ingredients=(
                ActiveIngredient("Amoxicillin", "500mg"),
                ActiveIngredient("Clavulanic Acid", "125mg"),
            ),
            allergy_triggers={"Penicillin"},
        ),
        DrugRecord(
            id="zerodol-sp",
            display_name="Aceclofenac + Paracetamol + Serratiopeptidase",
            brand_names=("Zerodol-SP",),
            category="NSAID + Enzyme",
            is_combination=True,
            active_ingredients=(
                ActiveIngredient("Aceclofenac", "100mg"),
                ActiveIngredient("Paracetamol", "325mg"),
                ActiveIngredient("Serratiopeptidase", "15mg"),
            ),
        ),
    ])


@pytest.fixture
def catalog():
    """Small catalog covering singles, combinations and interactions."""
    return build_test_catalog()


@pytest.fixture
def drug(catalog):
    """Look up a catalog drug by id."""
    def _get(drug_id: str) -> DrugRecord:
        return catalog.get(drug_id)
    return _get


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def today(now):
    return now.date()


@pytest.fixture
def config(tmp_path):
    return EngineConfig(catalog_path=tmp_path / "catalog.yaml")


@pytest.fixture
def make_medicine():
    """Factory for OwnedMedicine records with sensible defaults."""
    def _make(
        id: str = "med-1",
        expiry_date: date = None,
        tablet_count: int = 10,
        schedule_times=("08:00", "20:00"),
        expiry_alert_shown: bool = False,
        **kwargs,
    ) -> OwnedMedicine:
        return OwnedMedicine(
            id=id,
            drug_id=kwargs.pop("drug_id", "paracetamol"),
            medicine_name=kwargs.pop("medicine_name", "Paracetamol"),
            expiry_date=expiry_date,
            tablet_count=tablet_count,
            schedule_times=schedule_times,
            expiry_alert_shown=expiry_alert_shown,
            **kwargs,
        )
    return _make
