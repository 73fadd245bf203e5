"""
Classification Package

Rule catalog, scope classification, trade matching, phase resolution,
lead scoring and scope propagation for building permits.
"""
from src.tradeleads.classification.classifier import PermitClassifier
from src.tradeleads.classification.matcher import TradeMatcher, rule_applies_at_age
from src.tradeleads.classification.phases import Phase, determine_phase, is_trade_active_in_phase
from src.tradeleads.classification.propagation import ScopePropagator, base_permit_num, is_companion
from src.tradeleads.classification.rules import Rule, RuleCatalog, default_rules, load_rule_catalog
from src.tradeleads.classification.scope import ScopeClassifier
from src.tradeleads.classification.scoring import LeadScorer

__all__ = [
    "PermitClassifier",
    "TradeMatcher",
    "rule_applies_at_age",
    "Phase",
    "determine_phase",
    "is_trade_active_in_phase",
    "ScopePropagator",
    "base_permit_num",
    "is_companion",
    "Rule",
    "RuleCatalog",
    "default_rules",
    "load_rule_catalog",
    "ScopeClassifier",
    "LeadScorer",
]
