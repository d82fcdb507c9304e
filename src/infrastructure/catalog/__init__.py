"""Drug Catalog Infrastructure Module.

Loads the drug reference catalog from YAML into an immutable DrugCatalog.
"""

from .loader import (
    CatalogLoader,
    CatalogLoaderError,
    CatalogValidationError,
    drug_from_entry,
    drug_from_seed,
    load_catalog,
    map_food_risk,
    map_interaction_risk,
    parse_catalog,
)

__all__ = [
    "CatalogLoader",
    "CatalogLoaderError",
    "CatalogValidationError",
    "drug_from_entry",
    "drug_from_seed",
    "load_catalog",
    "map_food_risk",
    "map_interaction_risk",
    "parse_catalog",
]
