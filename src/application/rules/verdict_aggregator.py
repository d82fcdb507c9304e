"""Verdict Aggregator.

Evaluates a confirmed list of drugs together, so each drug is checked
against every other drug in the list, and orders the verdicts with the
riskiest first.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from domain.drug_models import DrugRecord, RiskLevel, RiskVerdict, UserMedicalProfile
from .risk_evaluator import RiskEvaluator

logger = logging.getLogger(__name__)


class VerdictAggregator:
    """Builds the ordered verdict list for a set of drugs.

    Verdicts are sorted high -> medium -> low. The sort is stable, so drugs
    with the same risk keep their input order. Every input drug yields
    exactly one verdict.
    """

    def __init__(self, evaluator: Optional[RiskEvaluator] = None):
        self.evaluator = evaluator or RiskEvaluator()

    def aggregate(
        self,
        drugs: Sequence[DrugRecord],
        allergies: Iterable[str],
        conditions: Iterable[str],
    ) -> List[RiskVerdict]:
        """Evaluate each drug against the profile and the rest of the list.

        Args:
            drugs: Confirmed drugs, in user order
            allergies: User's allergy groups
            conditions: User's chronic conditions

        Returns:
            One verdict per input drug, highest risk first
        """
        drugs = list(drugs)
        allergies = frozenset(allergies)
        conditions = frozenset(conditions)

        verdicts = []
        for index, drug in enumerate(drugs):
            # Excluded by position so a duplicated entry still sees its twin
            co_administered = drugs[:index] + drugs[index + 1:]
            verdicts.append(self.evaluator.evaluate(drug, allergies, conditions, co_administered))

        verdicts.sort(key=lambda v: v.risk_level.priority)

        high = sum(1 for v in verdicts if v.risk_level == RiskLevel.HIGH)
        medium = sum(1 for v in verdicts if v.risk_level == RiskLevel.MEDIUM)
        logger.info(f"Aggregated {len(verdicts)} verdicts ({high} high, {medium} medium)")
        return verdicts

    def aggregate_profile(
        self,
        drugs: Sequence[DrugRecord],
        profile: UserMedicalProfile,
    ) -> List[RiskVerdict]:
        """Aggregate against a UserMedicalProfile."""
        return self.aggregate(drugs, profile.allergies, profile.chronic_conditions)

    @staticmethod
    def has_high_risk(verdicts: Iterable[RiskVerdict]) -> bool:
        """True if any verdict is HIGH (shown as a blocking warning)."""
        return any(v.risk_level == RiskLevel.HIGH for v in verdicts)
