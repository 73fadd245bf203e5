"""
Domain Models

Pydantic models exchanged between the classification core and its collaborators.
"""
from src.tradeleads.models.permit import (
    PermitRecord,
    TradeMatch,
    ProductMatch,
    ScopeResult,
    ClassificationResult,
    PermitFilter,
)

__all__ = [
    "PermitRecord",
    "TradeMatch",
    "ProductMatch",
    "ScopeResult",
    "ClassificationResult",
    "PermitFilter",
]
