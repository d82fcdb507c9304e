"""
Drug Matching Service

Finds catalog drugs from a typed search query or from noisy OCR text read off
a medicine strip. Matching is done against display names, brand names and,
for combination products, the active ingredient names.
"""

import re
from typing import List, Optional, Set
import logging

from config.engine_config import EngineConfig, default_config
from domain.drug_models import DrugCatalog, DrugRecord

logger = logging.getLogger(__name__)

# Aliases shorter than this cannot safely match without word spacing
COMPACT_MATCH_MIN_LENGTH = 4


def normalize_text(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    text = re.sub(r"[^a-z0-9]+", " ", text.lower())
    return text.strip()


def compact_text(text: str) -> str:
    """Normalized text with all whitespace removed."""
    return normalize_text(text).replace(" ", "")


class _ScannedText:
    """Pre-normalized forms of one OCR text blob."""

    def __init__(self, raw_text: str):
        self.spaced = f" {normalize_text(raw_text)} "
        self.compact = self.spaced.replace(" ", "")

    def contains(self, name: str, min_length: int) -> bool:
        alias = normalize_text(name)
        if len(alias) < min_length:
            return False
        if f" {alias} " in self.spaced:
            return True
        # OCR often breaks words across lines ("Augmen tin")
        compact = alias.replace(" ", "")
        return len(compact) >= COMPACT_MATCH_MIN_LENGTH and compact in self.compact


class DrugMatcher:
    """
    Matches drugs in the catalog by query or by free text.

    The matcher holds no state besides the catalog and configuration, so a
    single instance can be shared between threads.
    """

    def __init__(self, catalog: DrugCatalog, config: Optional[EngineConfig] = None):
        """
        Initialize the matcher.

        Args:
            catalog: Drug reference catalog
            config: Engine configuration (alias length, combo suppression)
        """
        self.catalog = catalog
        self.config = config or default_config

    def search_by_query(self, query: str) -> List[DrugRecord]:
        """
        Case-insensitive substring search over display and brand names.

        Args:
            query: Partial drug name typed by the user

        Returns:
            Matching drugs in catalog order, each at most once
        """
        needle = (query or "").strip().lower()
        if not needle:
            return []

        results = [
            drug for drug in self.catalog
            if needle in drug.display_name.lower()
            or any(needle in brand.lower() for brand in drug.brand_names)
        ]
        logger.debug(f"Query '{query}' matched {len(results)} drugs")
        return results

    def find_in_text(self, raw_text: str) -> List[DrugRecord]:
        """
        Find every catalog drug mentioned in OCR text.

        Combination drugs match on their names or on their active ingredients
        (both of a two-ingredient product, any two of a larger one). Single
        drugs that are ingredients of a matched combination are dropped when
        ``suppress_combo_ingredients`` is enabled.

        Args:
            raw_text: Raw text recognized from packaging

        Returns:
            Matched drugs in catalog order, each at most once
        """
        if not raw_text or not raw_text.strip():
            return []

        text = _ScannedText(raw_text)
        min_length = self.config.min_alias_length

        matched_combos: List[DrugRecord] = []
        for drug in self.catalog:
            if drug.is_combination and self._matches_combination(drug, text, min_length):
                matched_combos.append(drug)

        matched_ids: Set[str] = {d.id for d in matched_combos}
        for drug in self.catalog:
            if drug.is_combination or not self._matches_names(drug, text, min_length):
                continue
            if self.config.suppress_combo_ingredients and self._is_ingredient_of(drug, matched_combos):
                logger.debug(f"Suppressed {drug.id}: ingredient of a matched combination")
                continue
            matched_ids.add(drug.id)

        results = [drug for drug in self.catalog if drug.id in matched_ids]
        logger.debug(f"Found {len(results)} drugs in text: {[d.id for d in results]}")
        return results

    def _matches_names(self, drug: DrugRecord, text: _ScannedText, min_length: int) -> bool:
        names = [drug.display_name, *drug.brand_names]
        return any(text.contains(name, min_length) for name in names)

    def _matches_combination(self, drug: DrugRecord, text: _ScannedText, min_length: int) -> bool:
        if self._matches_names(drug, text, min_length):
            return True
        ingredients = drug.active_ingredients
        if not ingredients:
            return False
        required = min(2, len(ingredients))
        found = sum(1 for i in ingredients if text.contains(i.name, min_length))
        return found >= required

    @staticmethod
    def _is_ingredient_of(drug: DrugRecord, combos: List[DrugRecord]) -> bool:
        return any(
            drug.identifies(ingredient.name)
            for combo in combos
            for ingredient in combo.active_ingredients
        )
