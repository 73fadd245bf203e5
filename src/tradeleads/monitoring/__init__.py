"""
Monitoring Package

Classification quality metrics over stored permits and trade matches.
"""
from src.tradeleads.monitoring.classification_quality import (
    build_quality_report,
    compute_tag_violation_counts,
    compute_trade_match_metrics,
    has_violations,
)

__all__ = [
    "build_quality_report",
    "compute_tag_violation_counts",
    "compute_trade_match_metrics",
    "has_violations",
]
