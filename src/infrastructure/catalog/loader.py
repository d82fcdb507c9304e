"""Catalog Loader - loads the drug reference catalog from YAML.

The catalog is read once at startup, validated with the pydantic schema in
``schema.py`` and converted into immutable ``DrugRecord`` instances. The
resulting ``DrugCatalog`` is handed to the matcher and evaluator and never
mutated afterwards.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

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
from .schema import CatalogDocument, ConditionEntry, DrugEntry, SeedRecord

logger = logging.getLogger(__name__)


class CatalogLoaderError(Exception):
    """Error loading the drug catalog."""
    pass


class CatalogValidationError(CatalogLoaderError):
    """Catalog content does not match the schema."""
    pass


# Seed dataset risk words -> typed severities
_INTERACTION_RISK_MAP: Dict[str, InteractionSeverity] = {
    "critical": InteractionSeverity.SEVERE,
    "high": InteractionSeverity.SEVERE,
    "med": InteractionSeverity.MODERATE,
    "medium": InteractionSeverity.MODERATE,
    "low": InteractionSeverity.MILD,
    "positive impact": InteractionSeverity.INFO,
}

_FOOD_RISK_MAP: Dict[str, FoodSeverity] = {
    "critical": FoodSeverity.AVOID,
    "high": FoodSeverity.AVOID,
    "med": FoodSeverity.CAUTION,
    "medium": FoodSeverity.CAUTION,
    "low": FoodSeverity.LIMIT,
    "positive impact": FoodSeverity.BENEFICIAL,
}

_FOOD_TO_ALCOHOL: Dict[FoodSeverity, AlcoholRestriction] = {
    FoodSeverity.AVOID: AlcoholRestriction.AVOID,
    FoodSeverity.CAUTION: AlcoholRestriction.CAUTION,
    FoodSeverity.LIMIT: AlcoholRestriction.LIMIT,
    FoodSeverity.BENEFICIAL: AlcoholRestriction.NONE,
}


def map_interaction_risk(risk: str) -> InteractionSeverity:
    """Map a seed dataset risk word to an interaction severity."""
    return _INTERACTION_RISK_MAP.get(risk.strip().lower(), InteractionSeverity.MODERATE)


def map_food_risk(risk: str) -> FoodSeverity:
    """Map a seed dataset risk word to a food severity."""
    return _FOOD_RISK_MAP.get(risk.strip().lower(), FoodSeverity.CAUTION)


def split_condition(text: str) -> Tuple[str, Optional[str]]:
    """Split a "Condition: note" warning into its condition and note."""
    condition, sep, note = text.partition(":")
    if not sep:
        return text.strip(), None
    return condition.strip(), note.strip() or None


def derive_alcohol_restriction(
    foods: List[FoodInteraction],
) -> Tuple[AlcoholRestriction, Optional[str]]:
    """Derive alcohol guidance from an "Alcohol" food interaction, if any."""
    for food in foods:
        if re.search(r"\balcohol\b", food.food, re.IGNORECASE):
            return _FOOD_TO_ALCOHOL[food.severity], food.description or None
    return AlcoholRestriction.NONE, None


def drug_from_entry(entry: DrugEntry) -> DrugRecord:
    """Convert a canonical catalog entry into a DrugRecord."""
    conditions = []
    notes = {}
    for item in entry.condition_contraindications:
        if isinstance(item, ConditionEntry):
            name, note = item.condition.strip(), item.note
        else:
            name, note = split_condition(item)
        if not name:
            continue
        conditions.append(name)
        if note:
            notes[name] = note

    ingredients = [ActiveIngredient(name=i.name.strip(), strength=i.strength) for i in entry.active_ingredients]
    if ingredients and not entry.is_combination:
        logger.debug(f"Ignoring active ingredients of single-ingredient drug {entry.id}")
        ingredients = []
    if entry.is_combination and not ingredients:
        logger.warning(f"Combination drug {entry.id} lists no active ingredients")

    foods = [
        FoodInteraction(food=f.food, severity=f.severity, description=f.description)
        for f in entry.food_interactions
    ]
    if entry.alcohol_restriction is not None:
        alcohol, alcohol_description = entry.alcohol_restriction.level, entry.alcohol_restriction.description
    else:
        alcohol, alcohol_description = derive_alcohol_restriction(foods)

    return DrugRecord(
        id=entry.id.strip(),
        display_name=entry.display_name.strip(),
        brand_names=tuple(b.strip() for b in entry.brand_names if b.strip()),
        category=entry.category,
        is_combination=entry.is_combination,
        active_ingredients=tuple(ingredients),
        physical_form=entry.physical_form,
        allergy_triggers=frozenset(a.strip() for a in entry.allergy_triggers if a.strip()),
        condition_contraindications=frozenset(conditions),
        condition_notes=notes,
        drug_interactions=tuple(
            DrugInteraction(target=d.target.strip(), severity=d.severity, description=d.description)
            for d in entry.drug_interactions
        ),
        food_interactions=tuple(foods),
        alcohol_restriction=alcohol,
        alcohol_description=alcohol_description,
    )


def drug_from_seed(record: SeedRecord) -> DrugRecord:
    """Convert a legacy seed dataset record into a DrugRecord."""
    allergy_triggers = []
    if record.allergy_group and record.allergy_group.strip().lower() != "none":
        # "NSAIDs / Salicylates" names two allergy groups
        allergy_triggers = [g.strip() for g in record.allergy_group.split("/") if g.strip()]

    foods = [
        FoodInteraction(food=c.item, severity=map_food_risk(c.risk), description=c.note)
        for c in record.food_clashes
        if c.item
    ]
    alcohol, alcohol_description = derive_alcohol_restriction(foods)

    conditions = [c.condition.strip() for c in record.condition_clashes if c.condition]
    notes = {c.condition.strip(): c.note for c in record.condition_clashes if c.condition and c.note}

    return DrugRecord(
        id=record.id.strip(),
        display_name=record.name.strip(),
        brand_names=tuple(record.brands),
        category=record.salt,
        allergy_triggers=frozenset(allergy_triggers),
        condition_contraindications=frozenset(conditions),
        condition_notes=notes,
        drug_interactions=tuple(
            DrugInteraction(target=c.target.strip(), severity=map_interaction_risk(c.risk), description=c.note)
            for c in record.drug_drug_interactions
            if c.target
        ),
        food_interactions=tuple(foods),
        alcohol_restriction=alcohol,
        alcohol_description=alcohol_description,
    )


def parse_catalog(data: Dict[str, Any], source: str = "<memory>") -> DrugCatalog:
    """Validate a parsed catalog document and build the DrugCatalog.

    Raises:
        CatalogValidationError: If the document violates the schema or
            contains duplicate drug ids
    """
    try:
        document = CatalogDocument.model_validate(data)
    except ValidationError as e:
        raise CatalogValidationError(f"Validation error in {source}: {e}") from e

    drugs = [drug_from_entry(entry) for entry in document.drugs]
    drugs.extend(drug_from_seed(record) for record in document.seed_records)

    try:
        catalog = DrugCatalog(drugs)
    except ValueError as e:
        raise CatalogValidationError(f"Validation error in {source}: {e}") from e

    unresolved = _unresolved_interaction_targets(catalog)
    if unresolved:
        logger.debug(f"{len(unresolved)} interaction targets are not in the catalog: {sorted(unresolved)}")

    return catalog


def _unresolved_interaction_targets(catalog: DrugCatalog) -> set:
    targets = {i.target for drug in catalog for i in drug.drug_interactions}
    return {t for t in targets if not any(drug.identifies(t) for drug in catalog)}


class CatalogLoader:
    """Loads the drug catalog from a YAML file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> DrugCatalog:
        """Load and validate the catalog.

        Raises:
            CatalogLoaderError: If the file is missing, empty or not valid YAML
            CatalogValidationError: If the content is not a valid catalog
        """
        if not self.path.exists():
            raise CatalogLoaderError(f"Catalog file not found: {self.path}")

        logger.debug(f"Loading catalog: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CatalogLoaderError(f"YAML parse error in {self.path}: {e}") from e

        if not data:
            raise CatalogLoaderError(f"Empty catalog file: {self.path}")
        if not isinstance(data, dict):
            raise CatalogValidationError(f"Catalog root must be a mapping in {self.path}")

        catalog = parse_catalog(data, source=str(self.path))
        combos = sum(1 for d in catalog if d.is_combination)
        logger.info(f"Loaded {len(catalog)} drugs ({combos} combinations) from {self.path}")
        return catalog


def load_catalog(path: Union[str, Path]) -> DrugCatalog:
    """Convenience wrapper around CatalogLoader."""
    return CatalogLoader(path).load()
