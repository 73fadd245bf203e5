"""
SQLAlchemy ORM Models

Tables read and written by the classification core. Permits are keyed by
(permit_num, revision_num); derived trade and product rows hang off that key
and are replaced as a set whenever a permit is reclassified.
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    String, Integer, Numeric, Float, Date, DateTime, Boolean, Text,
    ForeignKey, ForeignKeyConstraint, CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.tradeleads.db.base import Base, TimestampMixin, JSONType


class Permit(Base, TimestampMixin):
    """
    Building permit revision.

    Source columns are owned by the ingestion pipeline; project_type, use_type,
    scope_tags, scope_classified_at and scope_source are written back here.
    """
    __tablename__ = "permits"

    permit_num: Mapped[str] = mapped_column(
        String(30),
        primary_key=True,
        comment="Permit number, e.g. '24 055123 BLD 00'"
    )
    revision_num: Mapped[str] = mapped_column(
        String(10),
        primary_key=True,
        comment="Revision number"
    )

    # Categorical fields
    permit_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    structure_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    work: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    proposed_use: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    current_use: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Free text and numerics
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issued_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    est_const_cost: Mapped[Optional[float]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Estimated construction cost"
    )
    storeys: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    housing_units: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Derived scope fields
    project_type: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="Derived project type"
    )
    use_type: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Derived use type: residential, commercial or mixed-use"
    )
    scope_tags: Mapped[Optional[list]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Derived '<action>:<component>' scope tags"
    )
    scope_classified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When scope was last derived"
    )
    scope_source: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="reclassified, propagated or classified"
    )

    __table_args__ = (
        Index("idx_permits_issued_date", "issued_date"),
        Index("idx_permits_permit_type", "permit_type"),
        Index("idx_permits_scope_source", "scope_source"),
    )

    def __repr__(self) -> str:
        return f"<Permit(permit_num={self.permit_num}, revision={self.revision_num}, work={self.work})>"


class Trade(Base):
    """Static trade catalog."""
    __tablename__ = "trades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Trade(id={self.id}, slug={self.slug})>"


class TradeMappingRule(Base, TimestampMixin):
    """Persistent rule store; active rows replace the built-in catalog."""
    __tablename__ = "trade_mapping_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trade_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trades.id"),
        nullable=False,
        comment="References trades table"
    )
    tier: Mapped[int] = mapped_column(Integer, nullable=False, comment="1, 2 or 3")
    match_field: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        comment="permit_type, work, structure_type, description or scope_tags"
    )
    match_pattern: Mapped[str] = mapped_column(String(255), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    phase_start: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Minimum permit age in months (inclusive)"
    )
    phase_end: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Maximum permit age in months (inclusive)"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("tier IN (1, 2, 3)", name="check_rule_tier_valid"),
        CheckConstraint("confidence >= 0 AND confidence <= 1", name="check_rule_confidence_range"),
        Index("idx_trade_mapping_rules_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<TradeMappingRule(id={self.id}, trade_id={self.trade_id}, tier={self.tier})>"


class PermitTrade(Base, TimestampMixin):
    """Trade match for a permit revision; at most one row per trade."""
    __tablename__ = "permit_trades"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    permit_num: Mapped[str] = mapped_column(String(30), nullable=False)
    revision_num: Mapped[str] = mapped_column(String(10), nullable=False)
    trade_id: Mapped[int] = mapped_column(Integer, ForeignKey("trades.id"), nullable=False)

    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    phase: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    lead_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    classified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["permit_num", "revision_num"],
            ["permits.permit_num", "permits.revision_num"],
            ondelete="CASCADE",
        ),
        UniqueConstraint("permit_num", "revision_num", "trade_id", name="uq_permit_trades_permit_trade"),
        CheckConstraint("tier IN (1, 2, 3)", name="check_permit_trade_tier_valid"),
        CheckConstraint("lead_score >= 0 AND lead_score <= 100", name="check_lead_score_range"),
        Index("idx_permit_trades_trade_id", "trade_id"),
        Index("idx_permit_trades_lead_score", "lead_score"),
    )

    def __repr__(self) -> str:
        return f"<PermitTrade(permit={self.permit_num}, trade_id={self.trade_id}, score={self.lead_score})>"


class ProductGroup(Base):
    """Static product group catalog."""
    __tablename__ = "product_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    slug: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class PermitProduct(Base, TimestampMixin):
    """Product group match for a permit revision."""
    __tablename__ = "permit_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    permit_num: Mapped[str] = mapped_column(String(30), nullable=False)
    revision_num: Mapped[str] = mapped_column(String(10), nullable=False)
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("product_groups.id"), nullable=False)
    product_slug: Mapped[str] = mapped_column(String(50), nullable=False)
    product_name: Mapped[str] = mapped_column(String(100), nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    classified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["permit_num", "revision_num"],
            ["permits.permit_num", "permits.revision_num"],
            ondelete="CASCADE",
        ),
        UniqueConstraint("permit_num", "revision_num", "product_id", name="uq_permit_products_permit_product"),
    )


class ReclassificationRun(Base, TimestampMixin):
    """Batch reclassification execution metadata and tracking."""
    __tablename__ = "reclassification_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Run status: running, success, partial, failure"
    )
    rule_source: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Rule catalog source: store or default"
    )
    batch_size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Counters
    permits_processed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    permits_classified: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    permits_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    trade_matches_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    products_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('running', 'success', 'failure', 'partial')",
            name="check_run_status_valid"
        ),
        Index("idx_reclassification_runs_started_at", "started_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReclassificationRun(id={self.id}, status={self.status}, "
            f"processed={self.permits_processed})>"
        )
