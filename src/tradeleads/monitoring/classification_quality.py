"""
Helpers for computing classification quality metrics.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.tradeleads.classification.scope import find_tag_violations
from src.tradeleads.db.models import Permit, PermitTrade
from src.tradeleads.db.repository import PermitTradeRepository
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)

TAG_VIOLATION_KINDS = (
    "new_alter_conflict",
    "basement_with_underpinning",
    "storey_addition_on_interior_alterations",
)


def compute_tag_violation_counts(permits: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    """Number of permits breaking each scope-tag invariant."""
    rows = [
        {"violation": violation}
        for permit in permits
        for violation in find_tag_violations(permit.get("work"), permit.get("scope_tags") or [])
    ]
    counts = {kind: 0 for kind in TAG_VIOLATION_KINDS}
    df = pd.DataFrame(rows)
    if df.empty:
        return counts

    counts.update({k: int(v) for k, v in df["violation"].value_counts().to_dict().items()})
    return counts


def compute_use_type_counts(use_types: Iterable[Any]) -> Dict[str, int]:
    """Permits per use type; permits not yet classified count as "unknown"."""
    series = pd.Series(list(use_types), dtype=object)
    if series.empty:
        return {}
    return {str(k): int(v) for k, v in series.fillna("unknown").value_counts().to_dict().items()}


def compute_trade_match_metrics(matches: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Return trade-match counts per tier and phase, plus lead score summary."""
    df = pd.DataFrame(matches)
    if df.empty:
        return {"total": 0, "by_tier": {}, "by_phase": {}, "lead_score": {}}

    by_tier = {int(k): int(v) for k, v in df["tier"].value_counts().sort_index().to_dict().items()}
    by_phase = {
        str(k): int(v) for k, v in df["phase"].fillna("unknown").value_counts().to_dict().items()
    }
    scores = df["lead_score"].astype(float)
    return {
        "total": len(df),
        "by_tier": by_tier,
        "by_phase": by_phase,
        "lead_score": {
            "mean": round(float(scores.mean()), 2),
            "min": int(scores.min()),
            "max": int(scores.max()),
        },
    }


def build_quality_report(session: Session) -> Dict[str, Any]:
    """
    Population-wide classification checks.

    All counts under "violations" are expected to be zero.
    """
    permits = [
        {"work": work, "scope_tags": tags, "use_type": use_type}
        for work, tags, use_type in session.execute(
            select(Permit.work, Permit.scope_tags, Permit.use_type)
        ).all()
    ]
    matches = [
        {"tier": tier, "phase": phase, "lead_score": score}
        for tier, phase, score in session.execute(
            select(PermitTrade.tier, PermitTrade.phase, PermitTrade.lead_score)
        ).all()
    ]

    trade_repo = PermitTradeRepository()
    violations = compute_tag_violation_counts(permits)
    violations["duplicate_trade_matches"] = trade_repo.count_duplicate_trades(session)
    violations["lead_score_out_of_range"] = trade_repo.count_scores_out_of_range(session)

    report = {
        "permits_total": len(permits),
        "permits_tagged": sum(1 for p in permits if p["scope_tags"]),
        "use_types": compute_use_type_counts(p["use_type"] for p in permits),
        "violations": violations,
        "trade_matches": compute_trade_match_metrics(matches),
    }

    if has_violations(report):
        logger.warning("classification_quality_violations", violations=violations)
    else:
        logger.info("classification_quality_checked", permits_total=report["permits_total"])
    return report


def has_violations(report: Dict[str, Any]) -> bool:
    return any(count > 0 for count in report.get("violations", {}).values())
