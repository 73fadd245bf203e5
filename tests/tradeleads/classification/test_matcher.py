"""
Tests for the Trade Matcher

Tests tier precedence, uniqueness, applicability windows and scope limits.
"""
import pytest

from src.tradeleads.classification.matcher import (
    TradeMatcher,
    apply_scope_limits,
    extract_permit_code,
    rule_applies_at_age,
)
from src.tradeleads.classification.rules import Rule, RuleCatalog, default_rules
from src.tradeleads.models.permit import PermitRecord


@pytest.fixture
def matcher():
    return TradeMatcher(RuleCatalog(default_rules()))


def make_permit(**kwargs):
    data = {"permit_num": "24 100001 BLD 00", "revision_num": "00"}
    data.update(kwargs)
    return PermitRecord(**data)


class TestTierPrecedence:
    """Tests for reducing fired rules to one match per trade."""

    def test_tier_one_beats_lower_tiers(self, matcher):
        """A permit_type match wins even when a description rule also fires."""
        permit = make_permit(permit_type="Plumbing(PS)", description="Plumbing rough-in for new washroom")

        matches = matcher.match(permit, [], age_months=5)
        plumbing = [m for m in matches if m.trade_slug == "plumbing"]

        assert len(plumbing) == 1
        assert plumbing[0].tier == 1
        assert plumbing[0].confidence == 0.95

    def test_highest_confidence_wins_within_tier(self):
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=3, match_field="description", match_pattern="plumb", confidence=0.55, id=1),
            Rule(trade_id=8, tier=3, match_field="description", match_pattern="sewer", confidence=0.65, id=2),
        ])
        permit = make_permit(description="New plumbing and sewer connection")

        matches = TradeMatcher(catalog).match(permit, [], age_months=None)

        assert len(matches) == 1
        assert matches[0].confidence == 0.65
        assert matches[0].tier == 3

    def test_at_most_one_match_per_trade(self, matcher):
        permit = make_permit(
            permit_type="Small Residential Projects",
            structure_type="SFD - Detached",
            work="Interior Alterations",
            description="Renovate kitchen and bathroom, new drywall, flooring and painting",
        )

        matches = matcher.match(permit, ["alter:kitchen", "alter:bathroom", "alter:interior-alterations"], 10)
        trade_ids = [m.trade_id for m in matches]

        assert trade_ids
        assert len(trade_ids) == len(set(trade_ids))
        assert trade_ids == sorted(trade_ids)

    def test_fresh_matches_are_active_and_unscored(self, matcher):
        matches = matcher.match(make_permit(permit_type="Plumbing(PS)"), [], 0)

        assert all(m.is_active for m in matches)
        assert all(m.phase is None and m.lead_score is None for m in matches)

    def test_no_rule_fires_gives_empty_list(self, matcher):
        assert matcher.match(make_permit(), [], 4) == []

    def test_unknown_trade_rule_never_matches(self):
        catalog = RuleCatalog([
            Rule(trade_id=999, tier=3, match_field="description", match_pattern="plumb", confidence=0.9, id=1),
            Rule(trade_id=8, tier=3, match_field="description", match_pattern="sewer", confidence=0.6, id=2),
        ])
        permit = make_permit(description="New plumbing and sewer connection")

        matches = TradeMatcher(catalog).match(permit, [], age_months=None)

        assert [(m.trade_id, m.confidence) for m in matches] == [(8, 0.6)]


class TestApplicabilityWindow:
    """Tests for the age window hard filter."""

    @pytest.fixture
    def roofing_matcher(self):
        return TradeMatcher(RuleCatalog([
            Rule(trade_id=7, tier=2, match_field="work", match_pattern="Re-Roofing",
                 confidence=0.85, phase_start=9, phase_end=18, id=1),
        ]))

    def test_rule_outside_window_is_absent(self, roofing_matcher):
        permit = make_permit(work="Re-Roofing")
        assert roofing_matcher.match(permit, [], age_months=2) == []

    def test_rule_inside_window_matches(self, roofing_matcher):
        permit = make_permit(work="Re-Roofing")
        matches = roofing_matcher.match(permit, [], age_months=10)

        assert [m.trade_slug for m in matches] == ["roofing"]

    def test_unknown_age_does_not_filter(self, roofing_matcher):
        permit = make_permit(work="Re-Roofing")
        assert len(roofing_matcher.match(permit, [], age_months=None)) == 1

    @pytest.mark.parametrize("age,expected", [
        (8, False), (9, True), (18, True), (19, False), (None, True),
    ])
    def test_window_bounds_are_inclusive(self, age, expected):
        rule = Rule(trade_id=7, tier=2, match_field="work", match_pattern="x",
                    confidence=0.5, phase_start=9, phase_end=18)
        assert rule_applies_at_age(rule, age) is expected

    def test_rule_without_window_always_applies(self):
        rule = Rule(trade_id=8, tier=1, match_field="permit_type", match_pattern="Plumbing", confidence=0.95)
        assert rule_applies_at_age(rule, 240)

    def test_open_ended_window(self):
        rule = Rule(trade_id=19, tier=3, match_field="description", match_pattern="x",
                    confidence=0.5, phase_start=18)
        assert not rule_applies_at_age(rule, 17)
        assert rule_applies_at_age(rule, 120)


class TestScopeLimits:
    """Tests for narrow-scope permit codes and work exclusions."""

    @pytest.mark.parametrize("permit_num,expected", [
        ("21 123456 BLD 00", "BLD"),
        ("22 654321 PLB", "PLB"),
        ("24 055123 DM 00", "DM"),
        ("24 101234", None),
        (None, None),
    ])
    def test_extract_permit_code(self, permit_num, expected):
        assert extract_permit_code(permit_num) == expected

    def test_narrow_code_keeps_only_its_trades(self, matcher):
        permit = make_permit(
            permit_num="24 055123 PLB 00",
            permit_type="Plumbing(PS)",
            description="New furnace and plumbing for basement",
        )

        matches = matcher.match(permit, [], age_months=None)

        assert [m.trade_slug for m in matches] == ["plumbing"]

    def test_interior_alterations_drop_roofing(self, matcher):
        permit = make_permit(work="Interior Alterations", description="Roofing and drywall repairs")

        slugs = {m.trade_slug for m in matcher.match(permit, [], age_months=10)}

        assert "roofing" not in slugs
        assert "drywall" in slugs

    def test_limits_never_change_surviving_matches(self, matcher):
        permit = make_permit(permit_num="24 055123 PLB 00", permit_type="Plumbing(PS)")
        unlimited = TradeMatcher(RuleCatalog(default_rules())).match(
            make_permit(permit_type="Plumbing(PS)"), [], 0
        )
        limited = apply_scope_limits(unlimited, permit.permit_num, permit.work)

        assert [(m.tier, m.confidence) for m in limited] == [(1, 0.95)]
