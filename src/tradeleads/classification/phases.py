"""
Construction Phase Resolver

Phase is recomputed on demand from permit status and age; it is never stored
as its own entity.
"""
import re
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, Optional, Union


class Phase(str, Enum):
    EARLY_CONSTRUCTION = "early_construction"
    STRUCTURAL = "structural"
    FINISHING = "finishing"
    LANDSCAPING = "landscaping"


PHASE_TRADE_MAP: Dict[Phase, FrozenSet[str]] = {
    Phase.EARLY_CONSTRUCTION: frozenset({
        "excavation", "shoring", "demolition", "concrete", "waterproofing",
        "temporary-fencing",
    }),
    Phase.STRUCTURAL: frozenset({
        "framing", "structural-steel", "masonry", "concrete", "roofing", "plumbing",
        "hvac", "electrical", "elevator", "fire-protection", "pool-installation",
    }),
    Phase.FINISHING: frozenset({
        "insulation", "drywall", "painting", "flooring", "glazing", "fire-protection",
        "plumbing", "hvac", "electrical", "trim-work", "millwork-cabinetry", "tiling",
        "stone-countertops", "caulking", "security", "solar", "eavestrough-siding",
    }),
    Phase.LANDSCAPING: frozenset({
        "landscaping", "painting", "decking-fences", "pool-installation",
    }),
}

# Upper bound (inclusive, months since issue) of each age-driven phase
EARLY_CONSTRUCTION_MAX_MONTHS = 3
STRUCTURAL_MAX_MONTHS = 9
FINISHING_MAX_MONTHS = 18

_WHITESPACE_RE = re.compile(r"\s+")
_STATUS_ALIASES = {
    "canceled": "cancelled",
    "inspection": "under inspection",
}


def normalize_status(status: Optional[str]) -> str:
    """
    Canonical lower-case status.

    "Permit Issued" -> "issued", "Canceled" -> "cancelled",
    "Inspection" -> "under inspection". Missing status -> "".
    """
    if not status:
        return ""
    normalized = _WHITESPACE_RE.sub(" ", status.strip().lower())
    if normalized.startswith("permit "):
        normalized = normalized[len("permit "):]
    return _STATUS_ALIASES.get(normalized, normalized)


def months_between(start: date, end: date) -> int:
    """
    Whole calendar months elapsed from start to end.

    A month only counts once the day of month is reached: Jan 31 -> Feb 28 is
    0 months. Negative when end precedes start.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


def permit_age_months(issued_date: Optional[date], today: date) -> Optional[int]:
    if issued_date is None:
        return None
    return months_between(issued_date, today)


def determine_phase(status: Optional[str], issued_date: Optional[date], today: date) -> Phase:
    """
    Resolve the lifecycle phase of a permit.

    Status overrides age: completed/closed -> landscaping, application/not
    issued -> early_construction. Otherwise the age since issue decides,
    defaulting to early_construction when there is no issued date.
    """
    normalized = normalize_status(status)
    if normalized in ("completed", "closed"):
        return Phase.LANDSCAPING
    if normalized in ("application", "not issued"):
        return Phase.EARLY_CONSTRUCTION

    months = permit_age_months(issued_date, today)
    if months is None or months <= EARLY_CONSTRUCTION_MAX_MONTHS:
        return Phase.EARLY_CONSTRUCTION
    if months <= STRUCTURAL_MAX_MONTHS:
        return Phase.STRUCTURAL
    if months <= FINISHING_MAX_MONTHS:
        return Phase.FINISHING
    return Phase.LANDSCAPING


def is_trade_active_in_phase(trade_slug: Optional[str], phase: Union[Phase, str]) -> bool:
    """Whether a trade is typically on site during a phase. Unknown phases are never active."""
    if not trade_slug:
        return False
    try:
        phase = Phase(phase)
    except ValueError:
        return False
    return trade_slug in PHASE_TRADE_MAP[phase]
