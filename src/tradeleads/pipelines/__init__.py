"""
Pipelines Package

Batch drivers over the permit population:
- Reclassification: re-derive scope, trade matches and product matches
"""
from src.tradeleads.pipelines.reclassification import (
    ReclassificationPipeline,
    ReclassificationStats,
    evaluate_run_health,
)

__all__ = ["ReclassificationPipeline", "ReclassificationStats", "evaluate_run_health"]
