"""Tests for the VerdictAggregator."""

import itertools

import pytest

from application.rules.verdict_aggregator import VerdictAggregator
from domain.drug_models import DrugInteraction, DrugRecord, RiskLevel, UserMedicalProfile


@pytest.fixture
def aggregator():
    return VerdictAggregator()


class TestAggregate:
    """Tests for aggregate ordering and completeness."""

    def test_penicillin_allergy_scenario(self, aggregator):
        """Allergic user confirms Amoxicillin and Paracetamol."""
        amoxicillin = DrugRecord(id="amoxicillin", display_name="Amoxicillin", allergy_triggers={"Penicillin"})
        paracetamol = DrugRecord(id="paracetamol", display_name="Paracetamol")

        verdicts = aggregator.aggregate([paracetamol, amoxicillin], {"Penicillin"}, set())

        assert [v.drug.id for v in verdicts] == ["amoxicillin", "paracetamol"]
        assert verdicts[0].risk_level == RiskLevel.HIGH
        assert verdicts[0].matched_allergies == frozenset({"Penicillin"})
        assert verdicts[1].risk_level == RiskLevel.LOW
        assert verdicts[1].has_warnings is False

    def test_empty_list(self, aggregator):
        assert aggregator.aggregate([], {"Penicillin"}, set()) == []

    def test_each_drug_sees_the_others(self, aggregator, drug):
        verdicts = aggregator.aggregate([drug("aspirin"), drug("warfarin")], set(), set())
        assert all(v.risk_level == RiskLevel.MEDIUM for v in verdicts)

    def test_drug_does_not_interact_with_itself_alone(self, aggregator):
        record = DrugRecord(id="x", display_name="X", drug_interactions=(DrugInteraction("x"),))
        verdicts = aggregator.aggregate([record], set(), set())
        assert verdicts[0].risk_level == RiskLevel.LOW

    def test_duplicated_entry_sees_its_twin(self, aggregator):
        record = DrugRecord(id="x", display_name="X", drug_interactions=(DrugInteraction("x"),))
        verdicts = aggregator.aggregate([record, record], set(), set())
        assert len(verdicts) == 2
        assert all(v.risk_level == RiskLevel.MEDIUM for v in verdicts)

    def test_stable_for_equal_risk(self, aggregator, drug):
        drugs = [drug("paracetamol"), drug("combiflam"), drug("zerodol-sp")]
        verdicts = aggregator.aggregate(drugs, set(), set())
        assert [v.drug.id for v in verdicts] == ["paracetamol", "combiflam", "zerodol-sp"]

    @pytest.mark.parametrize("order", list(itertools.permutations(
        ["paracetamol", "ibuprofen", "amoxicillin", "aspirin", "warfarin"]
    )))
    def test_count_and_order_for_all_permutations(self, aggregator, drug, order):
        drugs = [drug(i) for i in order]
        verdicts = aggregator.aggregate(drugs, {"Penicillin"}, {"Asthma"})

        assert len(verdicts) == len(drugs)
        assert sorted(v.drug.id for v in verdicts) == sorted(order)
        priorities = [v.risk_level.priority for v in verdicts]
        assert priorities == sorted(priorities)

        # Equal-risk verdicts keep their input order
        for level in RiskLevel:
            same = [v.drug.id for v in verdicts if v.risk_level == level]
            assert same == [i for i in order if i in same]

    def test_aggregate_profile(self, aggregator, drug):
        profile = UserMedicalProfile(allergies={"nsaids"})
        verdicts = aggregator.aggregate_profile([drug("paracetamol"), drug("aspirin")], profile)
        assert verdicts[0].drug.id == "aspirin"
        assert verdicts[0].risk_level == RiskLevel.HIGH


class TestHasHighRisk:
    """Tests for has_high_risk."""

    def test_detects_high(self, aggregator, drug):
        verdicts = aggregator.aggregate([drug("amoxicillin")], {"Penicillin"}, set())
        assert aggregator.has_high_risk(verdicts)

    def test_none_high(self, aggregator, drug):
        verdicts = aggregator.aggregate([drug("paracetamol")], {"Penicillin"}, set())
        assert not aggregator.has_high_risk(verdicts)
        assert not aggregator.has_high_risk([])
