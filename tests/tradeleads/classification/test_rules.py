"""
Tests for the Rule Catalog

Tests rule validation, predicate compilation and the built-in rule set.
"""
import pytest

from src.tradeleads.classification.rules import Rule, RuleCatalog, default_rules, load_rule_catalog
from src.tradeleads.classification.trades import get_trade_by_id
from src.tradeleads.models.permit import PermitRecord


def make_permit(**kwargs):
    data = {"permit_num": "24 100001 BLD 00", "revision_num": "00"}
    data.update(kwargs)
    return PermitRecord(**data)


class TestRuleCatalogValidation:
    """Tests for rules dropped at catalog build time."""

    def test_invalid_regex_is_skipped(self):
        """A pattern that fails to compile is dropped without affecting the rest."""
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=3, match_field="description", match_pattern="(unclosed", confidence=0.5, id=1),
            Rule(trade_id=8, tier=3, match_field="description", match_pattern="plumb", confidence=0.5, id=2),
        ])

        assert len(catalog) == 1
        assert catalog.active_rules()[0].id == 2

    def test_unknown_match_field_is_skipped(self):
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=2, match_field="owner_name", match_pattern="x", confidence=0.5, id=1),
        ])
        assert len(catalog) == 0

    @pytest.mark.parametrize("tier,confidence,trade_id", [
        (0, 0.5, 8),
        (4, 0.5, 8),
        (2, 1.5, 8),
        (2, -0.1, 8),
        (2, 0.5, 999),
    ])
    def test_out_of_range_rules_are_skipped(self, tier, confidence, trade_id):
        """Tier, confidence and trade id must all be valid."""
        catalog = RuleCatalog([
            Rule(trade_id=trade_id, tier=tier, match_field="work", match_pattern="Deck", confidence=confidence),
        ])
        assert len(catalog) == 0

    def test_inactive_rules_are_excluded(self):
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=1, match_field="permit_type", match_pattern="Plumbing", confidence=0.9, is_active=False),
        ])
        assert catalog.active_rules() == []

    def test_rules_are_ordered_by_tier(self):
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=3, match_field="description", match_pattern="plumb", confidence=0.5, id=1),
            Rule(trade_id=8, tier=1, match_field="permit_type", match_pattern="Plumbing", confidence=0.9, id=2),
            Rule(trade_id=8, tier=2, match_field="work", match_pattern="Plumbing", confidence=0.7, id=3),
        ])

        assert [rule.tier for rule in catalog.active_rules()] == [1, 2, 3]


class TestRulePredicates:
    """Tests for field matching semantics."""

    def test_categorical_rule_matches_whole_term(self):
        """"SFD" matches "SFD - Detached" but not a longer token."""
        catalog = RuleCatalog([
            Rule(trade_id=5, tier=2, match_field="structure_type", match_pattern="SFD", confidence=0.55),
        ])

        assert catalog.matching_rules(make_permit(structure_type="SFD - Detached"), [])
        assert not catalog.matching_rules(make_permit(structure_type="SFDX Complex"), [])

    def test_categorical_rule_ignores_case_and_spacing(self):
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=1, match_field="permit_type", match_pattern="Plumbing", confidence=0.95),
        ])

        assert catalog.matching_rules(make_permit(permit_type="  plumbing(PS) "), [])

    def test_missing_field_never_matches(self):
        catalog = RuleCatalog([
            Rule(trade_id=8, tier=3, match_field="description", match_pattern=".*", confidence=0.5),
        ])

        assert catalog.matching_rules(make_permit(description=None), []) == []

    def test_scope_tag_rule_matches_component(self):
        """Tag rules ignore the action prefix and fold storey additions."""
        catalog = RuleCatalog([
            Rule(trade_id=5, tier=2, match_field="scope_tags", match_pattern="addition", confidence=0.85),
            Rule(trade_id=29, tier=2, match_field="scope_tags", match_pattern="deck", confidence=0.85),
        ])

        fired = catalog.matching_rules(make_permit(), ["new:2-storey-addition", "alter:deck"])

        assert {rule.trade_id for rule in fired} == {5, 29}


class TestDefaultRules:
    """Tests for the built-in rule set."""

    def test_default_rules_are_all_valid(self):
        rules = default_rules()
        catalog = RuleCatalog(rules)

        assert len(catalog) == len(rules)

    def test_default_rule_ids_are_unique(self):
        ids = [rule.id for rule in default_rules()]
        assert len(ids) == len(set(ids))

    def test_default_rules_reference_known_trades(self):
        assert all(get_trade_by_id(rule.trade_id) for rule in default_rules())

    def test_permit_type_rules_have_no_window(self):
        tier_one = [rule for rule in default_rules() if rule.tier == 1]

        assert tier_one
        assert all(rule.applicability_window is None for rule in tier_one)

    def test_load_without_session_uses_defaults(self):
        catalog = load_rule_catalog(None)

        assert catalog.source == "default"
        assert len(catalog) == len(default_rules())
