"""Catalog File Schema.

Pydantic models describing the YAML reference catalog. Two record shapes
are accepted:

- ``drugs``: the canonical shape, one entry per DrugRecord.
- ``seed_records``: the legacy seed dataset shape (name/brands/salt with
  High/Med/Low/Critical risk words) used to bootstrap the catalog.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.drug_models import AlcoholRestriction, FoodSeverity, InteractionSeverity


def _lower(value):
    return value.strip().lower() if isinstance(value, str) else value


# ========================================
# Canonical entries
# ========================================

class IngredientEntry(BaseModel):
    """Active ingredient of a combination drug."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    strength: Optional[str] = None


class ConditionEntry(BaseModel):
    """Contraindicated condition with an optional note."""
    model_config = ConfigDict(extra="forbid")

    condition: str = Field(..., min_length=1)
    note: Optional[str] = None


class InteractionEntry(BaseModel):
    """Drug-drug interaction."""
    model_config = ConfigDict(extra="forbid")

    target: str = Field(..., min_length=1, description="Id or name of the other drug")
    severity: InteractionSeverity = InteractionSeverity.MODERATE
    description: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, value):
        return _lower(value)


class FoodEntry(BaseModel):
    """Food or drink restriction."""
    model_config = ConfigDict(extra="forbid")

    food: str = Field(..., min_length=1)
    severity: FoodSeverity = FoodSeverity.CAUTION
    description: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, value):
        return _lower(value)


class AlcoholEntry(BaseModel):
    """Explicit alcohol guidance."""
    model_config = ConfigDict(extra="forbid")

    level: AlcoholRestriction
    description: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value):
        return _lower(value)


class DrugEntry(BaseModel):
    """Canonical catalog entry."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    brand_names: List[str] = Field(default_factory=list)
    category: str = ""
    is_combination: bool = False
    physical_form: str = "Tablet"
    active_ingredients: List[IngredientEntry] = Field(default_factory=list)
    allergy_triggers: List[str] = Field(default_factory=list)
    condition_contraindications: List[Union[ConditionEntry, str]] = Field(default_factory=list)
    drug_interactions: List[InteractionEntry] = Field(default_factory=list)
    food_interactions: List[FoodEntry] = Field(default_factory=list)
    alcohol_restriction: Optional[AlcoholEntry] = None


# ========================================
# Legacy seed records
# ========================================

class SeedClash(BaseModel):
    """Food, condition or drug clash in the seed dataset."""
    model_config = ConfigDict(extra="ignore")

    item: Optional[str] = None
    condition: Optional[str] = None
    target: Optional[str] = None
    risk: str = "Med"
    note: str = ""


class SeedRecord(BaseModel):
    """Record in the legacy seed dataset format."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    brands: List[str] = Field(default_factory=list)
    salt: str = ""
    allergy_group: Optional[str] = None
    food_clashes: List[SeedClash] = Field(default_factory=list)
    condition_clashes: List[SeedClash] = Field(default_factory=list)
    drug_drug_interactions: List[SeedClash] = Field(default_factory=list)


class CatalogDocument(BaseModel):
    """Top-level catalog file."""
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    drugs: List[DrugEntry] = Field(default_factory=list)
    seed_records: List[SeedRecord] = Field(default_factory=list)
