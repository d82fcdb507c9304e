"""Risk Evaluator.

Cross-references one drug against the user's medical profile and the other
drugs being taken, and derives a risk verdict:

- Allergy match (drug allergy trigger in the user's allergies) -> HIGH
- Condition contraindication or drug-drug interaction -> MEDIUM
- Otherwise -> LOW

Food and alcohol guidance never changes the risk level; it only marks the
verdict as carrying warnings.
"""

import logging
from typing import Iterable, List, Sequence

from domain.drug_models import (
    DrugInteraction,
    DrugRecord,
    RiskLevel,
    RiskVerdict,
    UserMedicalProfile,
)

logger = logging.getLogger(__name__)


def _match_case_insensitive(candidates: Iterable[str], wanted: Iterable[str]) -> frozenset:
    """Return the candidates (original casing) present in ``wanted``."""
    wanted_keys = {w.strip().lower() for w in wanted if w and w.strip()}
    return frozenset(c for c in candidates if c.strip().lower() in wanted_keys)


class RiskEvaluator:
    """Evaluates the risk of a single drug.

    The evaluator holds no state, so verdicts depend only on the drug, the
    profile and the co-administered drugs passed in.

    Example:
        >>> evaluator = RiskEvaluator()
        >>> verdict = evaluator.evaluate(amoxicillin, {"Penicillins"}, set(), [])
        >>> verdict.risk_level
        <RiskLevel.HIGH: 'high'>
    """

    def evaluate(
        self,
        drug: DrugRecord,
        allergies: Iterable[str],
        conditions: Iterable[str],
        co_administered: Sequence[DrugRecord] = (),
    ) -> RiskVerdict:
        """Evaluate a drug against allergies, conditions and other drugs.

        Args:
            drug: Drug to evaluate
            allergies: User's allergy groups
            conditions: User's chronic conditions
            co_administered: Other drugs taken together with ``drug``

        Returns:
            RiskVerdict with matched warnings and overall risk
        """
        matched_allergies = _match_case_insensitive(drug.allergy_triggers, allergies)
        matched_conditions = _match_case_insensitive(drug.condition_contraindications, conditions)
        matched_interactions = self._match_interactions(drug, co_administered)

        # Ordered checks, the first match wins
        if matched_allergies:
            risk = RiskLevel.HIGH
        elif matched_conditions or matched_interactions:
            risk = RiskLevel.MEDIUM
        else:
            risk = RiskLevel.LOW

        logger.debug(
            f"Evaluated {drug.id}: {risk.value} "
            f"(allergies={len(matched_allergies)}, conditions={len(matched_conditions)}, "
            f"interactions={len(matched_interactions)})"
        )

        return RiskVerdict(
            drug=drug,
            risk_level=risk,
            matched_allergies=matched_allergies,
            matched_conditions=matched_conditions,
            matched_drug_interactions=tuple(matched_interactions),
        )

    def evaluate_profile(
        self,
        drug: DrugRecord,
        profile: UserMedicalProfile,
        co_administered: Sequence[DrugRecord] = (),
    ) -> RiskVerdict:
        """Evaluate a drug against a UserMedicalProfile."""
        return self.evaluate(drug, profile.allergies, profile.chronic_conditions, co_administered)

    @staticmethod
    def _match_interactions(
        drug: DrugRecord,
        co_administered: Sequence[DrugRecord],
    ) -> List[DrugInteraction]:
        matched: List[DrugInteraction] = []
        for interaction in drug.drug_interactions:
            if interaction in matched:
                continue
            # Targets naming drugs outside the co-administered set are skipped
            if any(other.identifies(interaction.target) for other in co_administered):
                matched.append(interaction)
        return matched
