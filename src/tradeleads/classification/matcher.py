"""
Trade Matcher

Runs the rule catalog against a permit and its scope tags and reduces the
fired rules to at most one match per trade.
"""
import re
from typing import Dict, List, Optional, Sequence

from src.tradeleads.classification.rules import Rule, RuleCatalog
from src.tradeleads.classification.trades import get_trade_by_id
from src.tradeleads.models.permit import PermitRecord, TradeMatch

# Narrow-scope permit codes keep only the trades listed for them
NARROW_SCOPE_CODES: Dict[str, frozenset] = {
    "PLB": frozenset({"plumbing"}),
    "PSA": frozenset({"plumbing"}),
    "HVA": frozenset({"hvac"}),
    "MSA": frozenset({"hvac"}),
    "MS": frozenset({"hvac"}),
    "DRN": frozenset({"plumbing"}),
    "STS": frozenset({"plumbing"}),
    "FSU": frozenset({"fire-protection"}),
    "DEM": frozenset({"demolition"}),
    "DM": frozenset({"demolition"}),
    "SHO": frozenset({"excavation", "shoring", "concrete", "waterproofing"}),
    "FND": frozenset({"excavation", "concrete", "waterproofing", "shoring"}),
    "TPS": frozenset({"framing", "electrical"}),
    "PCL": frozenset({"electrical", "plumbing", "hvac"}),
}

_SYSTEMS_ONLY_EXCLUSIONS = frozenset({
    "excavation", "shoring", "concrete", "roofing", "framing", "masonry", "hvac",
    "insulation", "drywall", "painting", "flooring", "glazing", "elevator", "demolition",
    "landscaping", "waterproofing", "structural-steel",
})

# Broad permits drop trades that their work value rules out; first match wins
WORK_SCOPE_EXCLUSIONS = (
    ("Interior Alterations", frozenset({"excavation", "shoring", "roofing", "landscaping", "waterproofing"})),
    ("Underpinning", frozenset({"roofing", "glazing", "landscaping", "elevator", "painting", "flooring"})),
    ("Re-Roofing", frozenset({"excavation", "shoring", "concrete", "elevator", "landscaping"})),
    ("Re-Cladding", frozenset({"excavation", "shoring", "elevator", "landscaping"})),
    ("Fire Alarm", _SYSTEMS_ONLY_EXCLUSIONS | {"plumbing"}),
    ("Sprinklers", _SYSTEMS_ONLY_EXCLUSIONS),
    ("Electromagnetic Locks", _SYSTEMS_ONLY_EXCLUSIONS | {"plumbing"}),
    ("Elevator", frozenset({
        "excavation", "shoring", "roofing", "landscaping", "demolition", "masonry",
        "insulation", "painting", "waterproofing",
    })),
    ("Demolition", frozenset({
        "framing", "roofing", "insulation", "drywall", "painting", "flooring", "glazing",
        "elevator", "landscaping",
    })),
    ("Deck", frozenset({"elevator", "shoring", "structural-steel"})),
    ("Porch", frozenset({"elevator", "shoring", "structural-steel"})),
    ("Garage", frozenset({"elevator", "landscaping"})),
)

_PERMIT_CODE_RE = re.compile(r"\s([A-Z]{2,4})(?:\s|$)")


def extract_permit_code(permit_num: Optional[str]) -> Optional[str]:
    """
    Type code embedded in a permit number.

    "21 123456 BLD 00" -> "BLD", "22 654321 PLB" -> "PLB", "24 101234" -> None
    """
    if not permit_num:
        return None
    match = _PERMIT_CODE_RE.search(permit_num)
    return match.group(1) if match else None


def rule_applies_at_age(rule: Rule, age_months: Optional[int]) -> bool:
    """
    Whether a fired rule counts for a permit of the given age.

    The window is a hard filter with inclusive bounds. Rules without a window
    always apply, and windows are not enforced when the age is unknown.
    """
    window = rule.applicability_window
    if window is None or age_months is None:
        return True
    start, end = window
    if start is not None and age_months < start:
        return False
    if end is not None and age_months > end:
        return False
    return True


def apply_scope_limits(
    matches: List[TradeMatch],
    permit_num: Optional[str],
    work: Optional[str],
) -> List[TradeMatch]:
    """
    Drop matches outside a permit's scope. Never alters surviving matches.

    Narrow-scope codes keep only their own trades; otherwise the first work
    exclusion whose name appears in the work value removes its trades.
    """
    code = extract_permit_code(permit_num)
    if code in NARROW_SCOPE_CODES:
        allowed = NARROW_SCOPE_CODES[code]
        return [m for m in matches if m.trade_slug in allowed]

    if work:
        work_lower = work.lower()
        for work_pattern, excluded in WORK_SCOPE_EXCLUSIONS:
            if work_pattern.lower() in work_lower:
                return [m for m in matches if m.trade_slug not in excluded]

    return matches


class TradeMatcher:
    """
    Tier cascade over one immutable rule catalog.

    For every trade with at least one applicable fired rule, the rule from
    the lowest tier wins, then the highest confidence, then the lowest rule
    id so results are stable.

    The catalog must come from RuleCatalog, which drops rules naming an
    unknown trade id; matched trade ids are looked up without a None check.
    """

    def __init__(self, catalog: RuleCatalog):
        self.catalog = catalog

    def match(
        self,
        permit: PermitRecord,
        scope_tags: Sequence[str],
        age_months: Optional[int],
    ) -> List[TradeMatch]:
        """
        Trade matches for a permit, sorted by trade id, phase and score unset.

        Args:
            permit: Permit being classified
            scope_tags: Tags from the scope classifier or propagation
            age_months: Whole months since issue, None when never issued
        """
        winners: Dict[int, Rule] = {}
        for rule in self.catalog.matching_rules(permit, scope_tags):
            if not rule_applies_at_age(rule, age_months):
                continue
            current = winners.get(rule.trade_id)
            if current is None or self._outranks(rule, current):
                winners[rule.trade_id] = rule

        matches = []
        for trade_id in sorted(winners):
            rule = winners[trade_id]
            trade = get_trade_by_id(trade_id)
            matches.append(TradeMatch(
                permit_num=permit.permit_num,
                revision_num=permit.revision_num,
                trade_id=trade.id,
                trade_slug=trade.slug,
                trade_name=trade.name,
                tier=rule.tier,
                confidence=rule.confidence,
                is_active=True,
            ))

        return apply_scope_limits(matches, permit.permit_num, permit.work)

    @staticmethod
    def _outranks(candidate: Rule, current: Rule) -> bool:
        if candidate.tier != current.tier:
            return candidate.tier < current.tier
        if candidate.confidence != current.confidence:
            return candidate.confidence > current.confidence
        return (candidate.id or 0) < (current.id or 0)
