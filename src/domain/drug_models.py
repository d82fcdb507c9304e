"""Drug Reference Domain Models.

Defines the typed reference data used by the safety engine: drug records,
their interaction warnings, severity enums, the read-only drug catalog, and
the risk verdict produced for a single drug.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Tuple


class RiskLevel(str, Enum):
    """Overall verdict severity for a drug given a profile."""

    HIGH = "high"        # Allergy match, do not take
    MEDIUM = "medium"    # Condition or drug interaction concern
    LOW = "low"          # No known issues

    @property
    def priority(self) -> int:
        """Sort ordinal, lower sorts first (high risk first)."""
        return _RISK_PRIORITY.index(self)


_RISK_PRIORITY: Tuple[RiskLevel, ...] = (RiskLevel.HIGH, RiskLevel.MEDIUM, RiskLevel.LOW)


class InteractionSeverity(str, Enum):
    """Severity of a drug-drug interaction."""

    SEVERE = "severe"
    MODERATE = "moderate"
    MILD = "mild"
    INFO = "info"


class FoodSeverity(str, Enum):
    """Severity of a food interaction."""

    AVOID = "avoid"
    CAUTION = "caution"
    LIMIT = "limit"
    BENEFICIAL = "beneficial"


class AlcoholRestriction(str, Enum):
    """Alcohol guidance attached to a drug."""

    NONE = "none"
    CAUTION = "caution"
    LIMIT = "limit"
    AVOID = "avoid"


@dataclass(frozen=True)
class ActiveIngredient:
    """An active ingredient of a combination medicine."""

    name: str
    strength: Optional[str] = None

    def __str__(self) -> str:
        if self.strength:
            return f"{self.name} {self.strength}"
        return self.name


@dataclass(frozen=True)
class DrugInteraction:
    """A known interaction with another drug.

    Attributes:
        target: Id or name of the other drug
        severity: Interaction severity
        description: Clinical effect shown to the user
    """

    target: str
    severity: InteractionSeverity = InteractionSeverity.MODERATE
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "severity": self.severity.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class FoodInteraction:
    """A food or drink restriction."""

    food: str
    severity: FoodSeverity = FoodSeverity.CAUTION
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "food": self.food,
            "severity": self.severity.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class DrugRecord:
    """Immutable reference record for one drug.

    Single-ingredient drugs carry no active ingredients; combination drugs
    list every ingredient so that OCR text naming the ingredients can still
    identify the product.

    Attributes:
        id: Stable catalog identifier
        display_name: Name shown to the user
        brand_names: Ordered brand names
        category: Drug category (e.g. "NSAID", "Antibiotic (Penicillin)")
        is_combination: Whether the drug combines several ingredients
        active_ingredients: Ingredients of a combination drug
        physical_form: Tablet, Capsule, Syrup, ...
        allergy_triggers: Allergy groups this drug belongs to
        condition_contraindications: Conditions that conflict with the drug
        condition_notes: Optional explanation per contraindicated condition
        drug_interactions: Known drug-drug interactions
        food_interactions: Food and drink restrictions
        alcohol_restriction: Alcohol guidance level
        alcohol_description: Optional alcohol guidance text
    """

    id: str
    display_name: str
    brand_names: Tuple[str, ...] = ()
    category: str = ""
    is_combination: bool = False
    active_ingredients: Tuple[ActiveIngredient, ...] = ()
    physical_form: str = "Tablet"
    allergy_triggers: FrozenSet[str] = frozenset()
    condition_contraindications: FrozenSet[str] = frozenset()
    condition_notes: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)
    drug_interactions: Tuple[DrugInteraction, ...] = ()
    food_interactions: Tuple[FoodInteraction, ...] = ()
    alcohol_restriction: AlcoholRestriction = AlcoholRestriction.NONE
    alcohol_description: Optional[str] = None

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("DrugRecord.id must not be blank")
        if not self.display_name or not self.display_name.strip():
            raise ValueError(f"DrugRecord {self.id!r} has a blank display name")
        # Accept any iterable from callers, store immutable containers
        object.__setattr__(self, "brand_names", tuple(self.brand_names))
        object.__setattr__(self, "active_ingredients", tuple(self.active_ingredients))
        object.__setattr__(self, "allergy_triggers", frozenset(self.allergy_triggers))
        object.__setattr__(
            self, "condition_contraindications", frozenset(self.condition_contraindications)
        )
        object.__setattr__(self, "condition_notes", dict(self.condition_notes))
        object.__setattr__(self, "drug_interactions", tuple(self.drug_interactions))
        object.__setattr__(self, "food_interactions", tuple(self.food_interactions))

    @property
    def ingredient_names(self) -> List[str]:
        """Ingredient names for safety checks (the drug itself if single)."""
        if not self.active_ingredients:
            return [self.display_name]
        return [i.name for i in self.active_ingredients]

    @property
    def ingredients_display(self) -> str:
        if not self.active_ingredients:
            return self.display_name
        return " + ".join(i.name for i in self.active_ingredients)

    @property
    def aliases(self) -> List[str]:
        """Display name, brand names and ingredient names, without duplicates."""
        seen = set()
        names = []
        for name in [self.display_name, *self.brand_names, *(i.name for i in self.active_ingredients)]:
            key = name.lower()
            if key not in seen:
                seen.add(key)
                names.append(name)
        return names

    def identifies(self, reference: str) -> bool:
        """Check whether an id or name refers to this drug (case-insensitive)."""
        ref = reference.strip().lower()
        if not ref:
            return False
        return ref == self.id.lower() or any(ref == alias.lower() for alias in self.aliases)

    def to_dict(self) -> Dict[str, Any]:
        """Convert record to dictionary."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "brand_names": list(self.brand_names),
            "category": self.category,
            "is_combination": self.is_combination,
            "active_ingredients": [
                {"name": i.name, "strength": i.strength} for i in self.active_ingredients
            ],
            "physical_form": self.physical_form,
            "allergy_triggers": sorted(self.allergy_triggers),
            "condition_contraindications": sorted(self.condition_contraindications),
            "drug_interactions": [d.to_dict() for d in self.drug_interactions],
            "food_interactions": [f.to_dict() for f in self.food_interactions],
            "alcohol_restriction": self.alcohol_restriction.value,
            "alcohol_description": self.alcohol_description,
        }

    def __str__(self) -> str:
        if self.is_combination and self.active_ingredients:
            return f"{self.display_name} ({self.ingredients_display})"
        return self.display_name


class DrugCatalog:
    """Read-only, ordered collection of drug records.

    Built once at startup and shared by the matcher and evaluator. Iteration
    follows load order, which is the order search results are returned in.
    """

    def __init__(self, drugs: Iterable[DrugRecord]):
        self._drugs: Tuple[DrugRecord, ...] = tuple(drugs)
        self._by_id: Dict[str, DrugRecord] = {}
        for drug in self._drugs:
            if drug.id in self._by_id:
                raise ValueError(f"Duplicate drug id in catalog: {drug.id}")
            self._by_id[drug.id] = drug

    def __iter__(self) -> Iterator[DrugRecord]:
        return iter(self._drugs)

    def __len__(self) -> int:
        return len(self._drugs)

    def __contains__(self, drug_id: object) -> bool:
        return drug_id in self._by_id

    @property
    def drugs(self) -> Tuple[DrugRecord, ...]:
        return self._drugs

    def get(self, drug_id: str) -> Optional[DrugRecord]:
        return self._by_id.get(drug_id)

    def by_category(self, category: str) -> List[DrugRecord]:
        return [d for d in self._drugs if d.category == category]

    def categories(self) -> List[str]:
        return sorted({d.category for d in self._drugs})


@dataclass(frozen=True)
class UserMedicalProfile:
    """Allergy and chronic condition profile supplied per evaluation."""

    allergies: FrozenSet[str] = frozenset()
    chronic_conditions: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "allergies", frozenset(self.allergies))
        object.__setattr__(self, "chronic_conditions", frozenset(self.chronic_conditions))


@dataclass(frozen=True)
class RiskVerdict:
    """Result of evaluating one drug against a profile.

    Attributes:
        drug: The evaluated drug
        risk_level: Overall risk
        matched_allergies: Drug allergy triggers found in the profile
        matched_conditions: Contraindicated conditions found in the profile
        matched_drug_interactions: Interactions with co-administered drugs
    """

    drug: DrugRecord
    risk_level: RiskLevel
    matched_allergies: FrozenSet[str] = frozenset()
    matched_conditions: FrozenSet[str] = frozenset()
    matched_drug_interactions: Tuple[DrugInteraction, ...] = ()

    @property
    def has_allergy_warning(self) -> bool:
        return bool(self.matched_allergies)

    @property
    def has_condition_warning(self) -> bool:
        return bool(self.matched_conditions)

    @property
    def has_drug_interaction(self) -> bool:
        return bool(self.matched_drug_interactions)

    @property
    def has_food_warning(self) -> bool:
        return bool(self.drug.food_interactions)

    @property
    def has_alcohol_warning(self) -> bool:
        return self.drug.alcohol_restriction != AlcoholRestriction.NONE

    @property
    def has_warnings(self) -> bool:
        """True if any matched list, food or alcohol warning is present."""
        return (
            self.has_allergy_warning
            or self.has_condition_warning
            or self.has_drug_interaction
            or self.has_food_warning
            or self.has_alcohol_warning
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert verdict to dictionary."""
        return {
            "drug_id": self.drug.id,
            "drug_name": self.drug.display_name,
            "risk_level": self.risk_level.value,
            "matched_allergies": sorted(self.matched_allergies),
            "matched_conditions": sorted(self.matched_conditions),
            "matched_drug_interactions": [d.to_dict() for d in self.matched_drug_interactions],
            "food_interactions": [f.to_dict() for f in self.drug.food_interactions],
            "alcohol_restriction": self.drug.alcohol_restriction.value,
            "has_warnings": self.has_warnings,
        }
