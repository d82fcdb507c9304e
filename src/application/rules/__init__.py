"""Risk Rules Package.

Provides allergy, condition and interaction based risk evaluation.
"""

from .risk_evaluator import RiskEvaluator
from .verdict_aggregator import VerdictAggregator

__all__ = [
    "RiskEvaluator",
    "VerdictAggregator",
]
