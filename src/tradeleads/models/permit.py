"""
Permit Data Models

Pydantic models for permit input records and classification output.
"""
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PermitRecord(BaseModel):
    """
    Building permit as supplied by the ingestion pipeline or the permits table.

    Only the fields the classification core reads are modelled. Blank strings
    are normalized to None so every detector can treat "missing" uniformly.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    permit_num: str = Field(..., description="Permit number, e.g. '24 055123 BLD 00'")
    revision_num: str = Field("00", description="Revision number")
    permit_type: Optional[str] = Field(None, description="Permit type, e.g. 'Plumbing(PS)'")
    structure_type: Optional[str] = Field(None, description="Structure type, e.g. 'SFD - Detached'")
    work: Optional[str] = Field(None, description="Work category, e.g. 'Interior Alterations'")
    description: Optional[str] = Field(None, description="Free-text description of work")
    status: Optional[str] = Field(None, description="Permit status, e.g. 'Permit Issued'")
    issued_date: Optional[date] = Field(None, description="Date the permit was issued")
    est_const_cost: Optional[float] = Field(None, description="Estimated construction cost")
    proposed_use: Optional[str] = Field(None, description="Proposed use of the building")
    current_use: Optional[str] = Field(None, description="Current use of the building")
    storeys: Optional[int] = Field(None, description="Number of storeys")
    housing_units: Optional[int] = Field(None, description="Number of housing units")

    # Derived fields written back by the classifier
    project_type: Optional[str] = Field(None, description="Derived project type")
    scope_tags: List[str] = Field(default_factory=list, description="Derived scope tags")
    scope_source: Optional[str] = Field(None, description="'reclassified', 'propagated' or 'classified'")

    @field_validator(
        "permit_type", "structure_type", "work", "description", "status", "proposed_use",
        "current_use",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("permit_num", "revision_num", mode="before")
    @classmethod
    def strip_identity(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("issued_date", mode="before")
    @classmethod
    def parse_issued_date(cls, v: Any) -> Optional[date]:
        """Accept dates, datetimes and ISO strings; anything else is treated as absent."""
        if v is None or v == "":
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, date):
            return v
        try:
            return datetime.fromisoformat(str(v).strip()[:19]).date()
        except ValueError:
            return None

    @field_validator("est_const_cost", mode="before")
    @classmethod
    def parse_cost(cls, v: Any) -> Optional[float]:
        """Costs arrive as numbers, numeric strings or '$1,200' style strings."""
        if v is None:
            return None
        if isinstance(v, (int, float)):
            return float(v)
        cleaned = str(v).replace("$", "").replace(",", "").strip()
        try:
            return float(cleaned)
        except ValueError:
            return None

    @field_validator("storeys", "housing_units", mode="before")
    @classmethod
    def parse_count(cls, v: Any) -> Optional[int]:
        if v is None or v == "":
            return None
        try:
            return int(float(v))
        except (TypeError, ValueError):
            return None

    @field_validator("scope_tags", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> List[str]:
        return list(v) if v else []

    @property
    def identity(self) -> tuple:
        return (self.permit_num, self.revision_num)


class TradeMatch(BaseModel):
    """
    A permit paired with one trade.

    Unique per (permit_num, revision_num, trade_id). phase and lead_score are
    filled in after matching by the phase resolver and lead scorer.
    """

    model_config = ConfigDict(frozen=True)

    permit_num: str
    revision_num: str
    trade_id: int
    trade_slug: str
    trade_name: str
    tier: int = Field(..., ge=1, le=3)
    confidence: float = Field(..., ge=0.0, le=1.0)
    phase: Optional[str] = None
    lead_score: Optional[int] = Field(None, ge=0, le=100)
    is_active: bool = True


class ProductMatch(BaseModel):
    """A permit paired with a product group for material supplier leads."""

    model_config = ConfigDict(frozen=True)

    permit_num: str
    revision_num: str
    product_id: int
    product_slug: str
    product_name: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class ScopeResult(BaseModel):
    """Output of the scope classifier (or of propagation from a sibling)."""

    project_type: Optional[str] = None
    scope_tags: List[str] = Field(default_factory=list)
    scope_source: Optional[str] = None
    use_type: Optional[str] = None


class ClassificationResult(BaseModel):
    """Complete derived data for one permit revision."""

    permit_num: str
    revision_num: str
    project_type: Optional[str] = None
    scope_tags: List[str] = Field(default_factory=list)
    scope_source: Optional[str] = None
    use_type: Optional[str] = None
    trade_matches: List[TradeMatch] = Field(default_factory=list)
    product_matches: List[ProductMatch] = Field(default_factory=list)


class PermitFilter(BaseModel):
    """Optional restriction of the permit population a batch run walks."""

    permit_types: Optional[List[str]] = Field(None, description="Only these permit types")
    issued_after: Optional[date] = Field(None, description="Only permits issued on or after this date")
    permit_num_prefix: Optional[str] = Field(None, description="Only permit numbers with this prefix")
    unclassified_only: bool = Field(False, description="Skip permits whose scope was already derived")
