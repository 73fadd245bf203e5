"""
Tests for the Lead Scorer

Tests each score component, the worked scenarios and score bounds.
"""
from datetime import date, timedelta

import pytest

from src.tradeleads.classification.phases import Phase
from src.tradeleads.classification.scoring import LeadScorer
from src.tradeleads.models.permit import PermitRecord, TradeMatch

TODAY = date(2026, 10, 19)


def make_permit(**kwargs):
    data = {
        "permit_num": "24 055123 PS 00",
        "revision_num": "00",
        "permit_type": "Plumbing(PS)",
        "status": "Permit Issued",
        "issued_date": TODAY - timedelta(days=10),
        "est_const_cost": 120000,
    }
    data.update(kwargs)
    return PermitRecord(**data)


def make_match(trade_slug="plumbing", confidence=0.95):
    return TradeMatch(
        permit_num="24 055123 PS 00",
        revision_num="00",
        trade_id=8,
        trade_slug=trade_slug,
        trade_name="Plumbing",
        tier=1,
        confidence=confidence,
    )


@pytest.fixture
def scorer():
    return LeadScorer()


class TestWorkedScenarios:
    """Tests for the documented score examples."""

    def test_issued_plumbing_permit_scores_85(self, scorer):
        breakdown = scorer.score_breakdown(make_permit(), make_match(), Phase.EARLY_CONSTRUCTION, TODAY)

        assert breakdown.base_score == 50
        assert breakdown.cost_boost == 5
        assert breakdown.freshness_boost == 20
        assert breakdown.phase_boost == 0
        assert breakdown.confidence_boost == 10
        assert breakdown.staleness_penalty == 0
        assert breakdown.revocation_penalty == 0
        assert breakdown.total_score == 85

    def test_revoked_plumbing_permit_scores_30(self, scorer):
        score = scorer.score(make_permit(status="Revoked"), make_match(), Phase.EARLY_CONSTRUCTION, TODAY)
        assert score == 30

    def test_phase_match_adds_boost(self, scorer):
        score = scorer.score(make_permit(), make_match(), Phase.STRUCTURAL, TODAY)
        assert score == 100


class TestScoreComponents:
    """Tests for individual components."""

    @pytest.mark.parametrize("cost,expected", [
        (None, 0), (0, 0), (-5, 0), (10, 1), (50_000, 3), (100_000, 5),
        (500_000, 8), (1_000_000, 10), (5_000_000, 12), (25_000_000, 15),
        (float("nan"), 0),
    ])
    def test_cost_boost(self, scorer, cost, expected):
        assert scorer._calculate_cost_boost(cost) == expected

    @pytest.mark.parametrize("days,expected", [
        (None, 0), (-30, 20), (30, 20), (31, 15), (90, 15), (180, 10), (365, 5), (366, 0),
    ])
    def test_freshness_boost(self, scorer, days, expected):
        assert scorer._calculate_freshness_boost(days) == expected

    @pytest.mark.parametrize("days,expected", [
        (None, 10), (730, 0), (731, 10), (1095, 10), (1096, 20),
    ])
    def test_staleness_penalty(self, scorer, days, expected):
        assert scorer._calculate_staleness_penalty(days) == expected

    @pytest.mark.parametrize("confidence,expected", [
        (0.95, 10), (0.85, 9), (0.5, 5), (0.44, 4), (0.0, 0), (None, 0),
    ])
    def test_confidence_boost(self, scorer, confidence, expected):
        assert scorer._calculate_confidence_boost(confidence) == expected

    @pytest.mark.parametrize("status,expected", [
        ("Suspended", 20), ("Cancelled", 30), ("Canceled", 30), ("Permit Issued", 0),
    ])
    def test_revocation_penalty(self, scorer, status, expected):
        breakdown = scorer.score_breakdown(make_permit(status=status), make_match(), Phase.FINISHING, TODAY)
        assert breakdown.revocation_penalty == expected

    @pytest.mark.parametrize("status,expected", [
        ("Under Inspection", 40), ("Application", 30), ("Not Issued", 20),
        ("Completed", 15), ("Closed", 10), ("Something Else", 25), (None, 25),
    ])
    def test_base_score(self, scorer, status, expected):
        breakdown = scorer.score_breakdown(make_permit(status=status), make_match(), Phase.FINISHING, TODAY)
        assert breakdown.base_score == expected


class TestPhaseArgument:
    """Tests that the phase may be given as a Phase or its string value."""

    def test_string_phase_scores_like_enum(self, scorer):
        permit = make_permit()
        match = make_match()

        assert scorer.score(permit, match, "finishing", TODAY) == scorer.score(
            permit, match, Phase.FINISHING, TODAY
        )


class TestScoreBounds:
    """Tests that scores always land in 0..100."""

    def test_score_never_below_zero(self, scorer):
        permit = make_permit(status="Revoked", issued_date=date(2010, 1, 1), est_const_cost=None)
        assert scorer.score(permit, make_match(confidence=0.0), Phase.LANDSCAPING, TODAY) == 0

    def test_score_never_above_hundred(self, scorer):
        permit = make_permit(est_const_cost=50_000_000)
        assert scorer.score(permit, make_match(), Phase.FINISHING, TODAY) == 100

    def test_missing_inputs_do_not_raise(self, scorer):
        permit = PermitRecord(permit_num="X", est_const_cost="not a number")
        score = scorer.score(permit, make_match(), "not-a-phase", TODAY)

        assert 0 <= score <= 100
