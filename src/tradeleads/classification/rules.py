"""
Trade Mapping Rule Catalog

Tiered rules that map permit fields to trades:
    Tier 1 - permit_type categorical match (most reliable)
    Tier 2 - work / structure_type categorical match, curated scope-tag matches
    Tier 3 - loose regex over the free-text description

A catalog is built once per run, compiled up front and never mutated after.
Rules that cannot be compiled are logged and dropped individually.
"""
import re
from dataclasses import dataclass, replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from src.tradeleads.classification.tag_matrix import TAG_TRADE_MATRIX, tag_component
from src.tradeleads.classification.trades import get_trade_by_id, get_trade_by_slug
from src.tradeleads.db.repository import TradeMappingRuleRepository
from src.tradeleads.models.permit import PermitRecord
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)

CATEGORICAL_FIELDS = frozenset({"permit_type", "work", "structure_type"})
TEXT_FIELDS = frozenset({"description"})
TAG_FIELDS = frozenset({"scope_tags"})
MATCH_FIELDS = CATEGORICAL_FIELDS | TEXT_FIELDS | TAG_FIELDS

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Rule:
    """
    One trade mapping rule.

    phase_start/phase_end bound the permit age (in months since issue) at
    which the rule applies; None on both sides means always applicable.
    """

    trade_id: int
    tier: int
    match_field: str
    match_pattern: str
    confidence: float
    phase_start: Optional[int] = None
    phase_end: Optional[int] = None
    is_active: bool = True
    id: Optional[int] = None

    @property
    def applicability_window(self) -> Optional[Tuple[Optional[int], Optional[int]]]:
        if self.phase_start is None and self.phase_end is None:
            return None
        return (self.phase_start, self.phase_end)

    @classmethod
    def from_row(cls, row) -> "Rule":
        """Build a Rule from a TradeMappingRule ORM row."""
        return cls(
            id=row.id,
            trade_id=row.trade_id,
            tier=row.tier,
            match_field=row.match_field,
            match_pattern=row.match_pattern,
            confidence=float(row.confidence),
            phase_start=row.phase_start,
            phase_end=row.phase_end,
            is_active=row.is_active,
        )


def _normalize_text(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value.strip()).upper()


def _compile_predicate(rule: Rule) -> Callable[[PermitRecord, Sequence[str]], bool]:
    """
    Build the match predicate for a rule. Raises re.error or ValueError.

    Tier 3 rules and description rules are regex searches. Categorical rules
    match when the pattern appears as a whole term in the field, so "SFD"
    matches "SFD - Detached" and "Plumbing" matches "Plumbing(PS)". Scope-tag
    rules match on the tag component.
    """
    if rule.match_field not in MATCH_FIELDS:
        raise ValueError(f"unknown match_field {rule.match_field!r}")

    field = rule.match_field

    if field in TAG_FIELDS:
        component = rule.match_pattern.strip().lower()
        if not component:
            raise ValueError("empty scope tag pattern")

        def tag_predicate(permit: PermitRecord, scope_tags: Sequence[str]) -> bool:
            return any(tag_component(tag) == component for tag in scope_tags)

        return tag_predicate

    if rule.tier == 3 or field in TEXT_FIELDS:
        regex = re.compile(rule.match_pattern, re.IGNORECASE)
    else:
        term = _normalize_text(rule.match_pattern)
        if not term:
            raise ValueError("empty categorical pattern")
        regex = re.compile(r"(?<![A-Z0-9])" + re.escape(term) + r"(?![A-Z0-9])")

    def field_predicate(permit: PermitRecord, scope_tags: Sequence[str]) -> bool:
        value = getattr(permit, field)
        if not value:
            return False
        return regex.search(_normalize_text(value)) is not None

    return field_predicate


@dataclass(frozen=True)
class _CompiledRule:
    rule: Rule
    predicate: Callable[[PermitRecord, Sequence[str]], bool]


class RuleCatalog:
    """
    Immutable, precompiled set of active rules ordered by tier.

    Usage:
        catalog = RuleCatalog(default_rules())
        for rule in catalog.matching_rules(permit, scope_tags):
            ...
    """

    def __init__(self, rules: Iterable[Rule], source: str = "default"):
        self.source = source
        compiled: List[_CompiledRule] = []

        for rule in rules:
            if not rule.is_active:
                continue
            problem = self._validate(rule)
            if problem:
                logger.warning("rule_pattern_invalid", rule_id=rule.id, error=problem)
                continue
            try:
                predicate = _compile_predicate(rule)
            except (re.error, ValueError) as e:
                logger.warning(
                    "rule_pattern_invalid",
                    rule_id=rule.id,
                    match_field=rule.match_field,
                    match_pattern=rule.match_pattern,
                    error=str(e),
                )
                continue
            compiled.append(_CompiledRule(rule=rule, predicate=predicate))

        compiled.sort(key=lambda c: c.rule.tier)
        self._compiled: Tuple[_CompiledRule, ...] = tuple(compiled)

    @staticmethod
    def _validate(rule: Rule) -> Optional[str]:
        if rule.tier not in (1, 2, 3):
            return f"tier {rule.tier} out of range"
        if not 0.0 <= rule.confidence <= 1.0:
            return f"confidence {rule.confidence} out of range"
        if get_trade_by_id(rule.trade_id) is None:
            return f"unknown trade_id {rule.trade_id}"
        return None

    def __len__(self) -> int:
        return len(self._compiled)

    def active_rules(self) -> List[Rule]:
        """Active rules, tier 1 first."""
        return [c.rule for c in self._compiled]

    def matching_rules(self, permit: PermitRecord, scope_tags: Sequence[str]) -> List[Rule]:
        """Rules whose predicate fires for this permit, ignoring applicability windows."""
        return [c.rule for c in self._compiled if c.predicate(permit, scope_tags)]


# =============================================================================
# Built-in rules
# =============================================================================

# (trade_id, pattern, confidence); tier 1 rules apply at any permit age
_PERMIT_TYPE_RULES = [
    (8, "Plumbing(PS)", 0.95),
    (8, "Plumbing", 0.95),
    (8, "Drain and Site Service", 0.90),
    (18, "Demolition Folder (DM)", 0.95),
    (18, "Demolition", 0.95),
    (9, "Mechanical/HVAC(MH)", 0.95),
    (9, "Mechanical", 0.90),
    (10, "Electrical(EL)", 0.95),
    (10, "Electrical", 0.95),
    (11, "Fire/Security Upgrade", 0.95),
    (11, "Fire Alarm", 0.90),
    (11, "Sprinkler", 0.90),
]

# (trade_id, match_field, pattern, confidence, phase_start, phase_end)
_CATEGORICAL_RULES = [
    (7, "work", "Re-Roofing", 0.85, 9, 18),
    (7, "work", "Re-Cladding", 0.80, 9, 18),
    (2, "work", "Underpinning", 0.85, 0, 6),
    (2, "work", "Shoring", 0.90, 0, 6),
    (18, "work", "Demolition", 0.85, 0, 3),
    (13, "work", "Interior Alterations", 0.70, 9, 18),
    (14, "work", "Interior Alterations", 0.60, 9, 18),
    (15, "work", "Interior Alterations", 0.60, 9, 18),
    (5, "work", "New Building", 0.75, 3, 9),
    (3, "work", "New Building", 0.75, 0, 6),
    (1, "work", "New Building", 0.70, 0, 3),
    (5, "work", "Addition", 0.70, 3, 9),
    (16, "work", "Curtain Wall", 0.85, 9, 18),
    (20, "work", "Foundation Repair", 0.80, 0, 6),
    (1, "work", "Excavation", 0.90, 0, 3),
    (17, "work", "Elevator", 0.85, 6, 18),
    (19, "work", "Site Servicing", 0.60, 18, 24),
    (6, "work", "Masonry", 0.85, 3, 12),
    # Small residential
    (5, "structure_type", "SFD", 0.55, 3, 9),
    (7, "structure_type", "SFD", 0.50, 9, 18),
    (8, "structure_type", "SFD", 0.50, 3, 18),
    (9, "structure_type", "SFD", 0.50, 3, 18),
    (10, "structure_type", "SFD", 0.50, 3, 18),
    (12, "structure_type", "SFD", 0.45, 9, 18),
    (13, "structure_type", "SFD", 0.45, 9, 18),
    (14, "structure_type", "SFD", 0.40, 9, 18),
    (15, "structure_type", "SFD", 0.40, 9, 18),
    (5, "structure_type", "Laneway", 0.55, 3, 9),
    (3, "structure_type", "Laneway", 0.50, 0, 6),
    (1, "structure_type", "Laneway", 0.50, 0, 3),
    # High-rise and mid-density
    (3, "structure_type", "Apartment Building", 0.60, 0, 6),
    (17, "structure_type", "Apartment Building", 0.60, 6, 18),
    (11, "structure_type", "Apartment Building", 0.55, 6, 18),
    (16, "structure_type", "Apartment Building", 0.55, 9, 18),
    (4, "structure_type", "Apartment Building", 0.50, 3, 9),
    (3, "structure_type", "Stacked Townhouses", 0.55, 0, 6),
    (11, "structure_type", "Stacked Townhouses", 0.50, 6, 18),
    # Industrial and commercial
    (4, "structure_type", "Industrial", 0.60, 3, 9),
    (10, "structure_type", "Industrial", 0.55, 3, 18),
    (3, "structure_type", "Industrial", 0.55, 0, 6),
    (11, "structure_type", "Office", 0.50, 6, 18),
    (16, "structure_type", "Office", 0.50, 9, 18),
    (9, "structure_type", "Office", 0.50, 3, 18),
    (16, "structure_type", "Retail", 0.50, 9, 18),
    (11, "structure_type", "Retail", 0.45, 6, 18),
    (9, "structure_type", "Restaurant", 0.55, 3, 18),
    (8, "structure_type", "Restaurant", 0.50, 3, 18),
    (11, "structure_type", "Restaurant", 0.50, 6, 18),
]

# (trade_id, regex, confidence, phase_start, phase_end)
_DESCRIPTION_RULES = [
    (8, r"plumb(ing|er)", 0.65, 3, 18),
    (8, r"water\s*(heater|tank|line)", 0.60, 3, 18),
    (8, r"drain(age|s)?", 0.55, 3, 18),
    (8, r"sewer", 0.60, 3, 18),
    (8, r"bathroom|washroom|lavatory", 0.55, 3, 18),
    (10, r"electri(cal|c)", 0.65, 3, 18),
    (10, r"wiring|rewir", 0.65, 3, 18),
    (10, r"panel\s*upgrade", 0.60, 3, 18),
    (10, r"transformer", 0.55, 3, 18),
    (9, r"hvac|furnace", 0.65, 3, 18),
    (9, r"air\s*condition", 0.60, 3, 18),
    (9, r"duct(work|s)?", 0.55, 3, 18),
    (9, r"ventilat", 0.55, 3, 18),
    (9, r"heat(ing|\s*pump)", 0.55, 3, 18),
    (7, r"roof(ing)?|shingle", 0.65, 9, 18),
    (7, r"eaves(trough)?|gutter", 0.55, 9, 18),
    (3, r"concrete|foundation", 0.60, 0, 6),
    (3, r"footing|slab", 0.55, 0, 6),
    (5, r"fram(ing|e)", 0.55, 3, 9),
    (5, r"storey|story|floor.*new", 0.50, 3, 9),
    (6, r"mason(ry)?|brick(work)?", 0.60, 3, 12),
    (6, r"stone.*veneer", 0.55, 3, 12),
    (12, r"insulat", 0.60, 9, 18),
    (12, r"vapou?r\s*barrier", 0.55, 9, 18),
    (13, r"drywall|gypsum", 0.60, 9, 18),
    (13, r"partition.*wall", 0.55, 9, 18),
    (14, r"paint(ing)?|finish(ing)?", 0.55, 9, 18),
    (15, r"floor(ing)?|tile|hardwood", 0.60, 9, 18),
    (15, r"carpet|laminate|vinyl", 0.55, 9, 18),
    (16, r"glaz(ing|e)|window|curtain.*wall", 0.60, 9, 18),
    (17, r"elevator|escalator|lift", 0.65, 6, 18),
    (18, r"demoli(tion|sh)", 0.65, 0, 3),
    (1, r"excavat", 0.60, 0, 3),
    (1, r"dig(ging)?|trench", 0.50, 0, 3),
    (2, r"shor(ing|e)", 0.60, 0, 6),
    (2, r"underpinn", 0.60, 0, 6),
    (2, r"retain(ing)?.*wall", 0.55, 0, 6),
    (4, r"structural.*steel", 0.65, 3, 9),
    (4, r"steel.*beam|steel.*column", 0.60, 3, 9),
    (11, r"fire.*protect|sprinkler", 0.60, 6, 18),
    (11, r"fire.*alarm|fire.*suppres", 0.55, 6, 18),
    (19, r"landscap", 0.60, 18, 24),
    (19, r"garden|patio|deck", 0.50, 18, 24),
    (20, r"waterproof", 0.65, 0, 6),
    (20, r"damp.*proof|membrane", 0.55, 0, 6),
]


def _tag_rules() -> List[Rule]:
    rules = []
    for component in sorted(TAG_TRADE_MATRIX):
        for slug, confidence in TAG_TRADE_MATRIX[component]:
            trade = get_trade_by_slug(slug)
            rules.append(Rule(
                trade_id=trade.id,
                tier=2,
                match_field="scope_tags",
                match_pattern=component,
                confidence=confidence,
            ))
    return rules


def default_rules() -> List[Rule]:
    """Built-in rule set, numbered from 1 in tier order."""
    rules: List[Rule] = []
    rules.extend(
        Rule(trade_id=t, tier=1, match_field="permit_type", match_pattern=p, confidence=c)
        for t, p, c in _PERMIT_TYPE_RULES
    )
    rules.extend(
        Rule(trade_id=t, tier=2, match_field=f, match_pattern=p, confidence=c,
             phase_start=start, phase_end=end)
        for t, f, p, c, start, end in _CATEGORICAL_RULES
    )
    rules.extend(_tag_rules())
    rules.extend(
        Rule(trade_id=t, tier=3, match_field="description", match_pattern=p, confidence=c,
             phase_start=start, phase_end=end)
        for t, p, c, start, end in _DESCRIPTION_RULES
    )
    return [replace(rule, id=i) for i, rule in enumerate(rules, start=1)]


def load_rule_catalog(session: Optional[Session] = None, use_store: bool = True) -> RuleCatalog:
    """
    Load the catalog for one run.

    Active rules from the trade_mapping_rules table win when there are any;
    otherwise the built-in set is used.

    Args:
        session: Open database session, or None to skip the rule store
        use_store: False forces the built-in rules

    Returns:
        Compiled RuleCatalog
    """
    if use_store and session is not None:
        rows = TradeMappingRuleRepository().get_active_rules(session)
        if rows:
            catalog = RuleCatalog((Rule.from_row(row) for row in rows), source="store")
            logger.info("rule_catalog_loaded", source=catalog.source, count=len(catalog))
            return catalog

    catalog = RuleCatalog(default_rules(), source="default")
    logger.info("rule_catalog_loaded", source=catalog.source, count=len(catalog))
    return catalog
