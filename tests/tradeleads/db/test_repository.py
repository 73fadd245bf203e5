"""
Tests for Repository Pattern

Tests pagination, sibling lookup, derived-row replacement, rule store reads,
catalog seeding and run tracking.
"""
import pytest
from datetime import date, datetime
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from src.tradeleads.classification.rules import load_rule_catalog
from src.tradeleads.classification.trades import PRODUCT_GROUPS, TRADES
from src.tradeleads.db.base import Base
from src.tradeleads.db.models import Permit, PermitProduct, PermitTrade, Trade, TradeMappingRule
from src.tradeleads.db.repository import (
    PermitProductRepository,
    PermitRepository,
    PermitTradeRepository,
    ProductGroupRepository,
    ReclassificationRunRepository,
    TradeMappingRuleRepository,
    TradeRepository,
)
from src.tradeleads.models.permit import PermitFilter, ProductMatch, TradeMatch

CLASSIFIED_AT = datetime(2026, 10, 19, 5, 0, 0)


@pytest.fixture(scope="function")
def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


def add_permit(session, permit_num, revision_num="00", **kwargs):
    return PermitRepository().create(session, permit_num=permit_num, revision_num=revision_num, **kwargs)


def trade_match(trade_id, slug, tier=2, confidence=0.8, lead_score=50):
    return TradeMatch(
        permit_num="24 055123 BLD 00",
        revision_num="00",
        trade_id=trade_id,
        trade_slug=slug,
        trade_name=slug.title(),
        tier=tier,
        confidence=confidence,
        phase="structural",
        lead_score=lead_score,
    )


class TestPermitRepository:
    """Tests for PermitRepository."""

    def test_get_page_walks_keyset(self, test_db):
        """Pages follow (permit_num, revision_num) order without overlap."""
        add_permit(test_db, "24 000002 PLB 00")
        add_permit(test_db, "24 000001 BLD 00", "01")
        add_permit(test_db, "24 000001 BLD 00", "00")
        test_db.commit()

        repo = PermitRepository()
        first = repo.get_page(test_db, limit=2)
        second = repo.get_page(test_db, limit=2, after=(first[-1].permit_num, first[-1].revision_num))

        assert [(p.permit_num, p.revision_num) for p in first] == [
            ("24 000001 BLD 00", "00"),
            ("24 000001 BLD 00", "01"),
        ]
        assert [(p.permit_num, p.revision_num) for p in second] == [("24 000002 PLB 00", "00")]

    def test_get_page_applies_filter(self, test_db):
        add_permit(test_db, "23 000001 BLD 00", permit_type="Plumbing(PS)", issued_date=date(2023, 5, 1))
        add_permit(test_db, "24 000001 BLD 00", permit_type="Plumbing(PS)", issued_date=date(2024, 5, 1))
        add_permit(test_db, "24 000002 BLD 00", permit_type="New Houses", issued_date=date(2024, 6, 1),
                   scope_classified_at=CLASSIFIED_AT)
        test_db.commit()

        repo = PermitRepository()

        by_prefix = repo.get_page(test_db, limit=10, permit_filter=PermitFilter(permit_num_prefix="24 "))
        by_type = repo.get_page(test_db, limit=10, permit_filter=PermitFilter(permit_types=["Plumbing(PS)"]))
        by_date = repo.get_page(test_db, limit=10, permit_filter=PermitFilter(issued_after=date(2024, 1, 1)))
        unclassified = repo.get_page(test_db, limit=10, permit_filter=PermitFilter(unclassified_only=True))

        assert len(by_prefix) == 2
        assert len(by_type) == 2
        assert len(by_date) == 2
        assert {p.permit_num for p in unclassified} == {"23 000001 BLD 00", "24 000001 BLD 00"}
        assert repo.count_matching(test_db, PermitFilter(permit_num_prefix="24 ")) == 2
        assert repo.count(test_db) == 3

    def test_get_siblings_by_base_number(self, test_db):
        add_permit(test_db, "24 055123 BLD 00")
        add_permit(test_db, "24 055123 DM 00")
        add_permit(test_db, "24 0551234 BLD 00")
        test_db.commit()

        siblings = PermitRepository().get_siblings(test_db, "24 055123")

        assert [p.permit_num for p in siblings] == ["24 055123 BLD 00", "24 055123 DM 00"]

    def test_update_scope(self, test_db):
        add_permit(test_db, "24 055123 BLD 00")
        test_db.commit()

        repo = PermitRepository()
        repo.update_scope(
            test_db, "24 055123 BLD 00", "00",
            project_type="second-suite",
            scope_tags=["new:second-suite"],
            scope_source="reclassified",
            classified_at=CLASSIFIED_AT,
            use_type="residential",
        )
        test_db.commit()

        permit = repo.get_by_id(test_db, ("24 055123 BLD 00", "00"))
        assert permit.project_type == "second-suite"
        assert permit.scope_tags == ["new:second-suite"]
        assert permit.scope_source == "reclassified"
        assert permit.scope_classified_at is not None
        assert permit.use_type == "residential"

    def test_update_scope_missing_permit(self, test_db):
        result = PermitRepository().update_scope(
            test_db, "nope", "00", None, [], None, CLASSIFIED_AT
        )
        assert result is None


class TestPermitTradeRepository:
    """Tests for trade match replacement."""

    def test_replace_for_permit_replaces_previous_set(self, test_db):
        add_permit(test_db, "24 055123 BLD 00")
        test_db.commit()
        repo = PermitTradeRepository()

        repo.replace_for_permit(
            test_db, "24 055123 BLD 00", "00",
            [trade_match(5, "framing"), trade_match(8, "plumbing")],
            CLASSIFIED_AT,
        )
        test_db.commit()
        inserted = repo.replace_for_permit(
            test_db, "24 055123 BLD 00", "00",
            [trade_match(8, "plumbing", tier=1, confidence=0.95, lead_score=85)],
            CLASSIFIED_AT,
        )
        test_db.commit()

        rows = repo.get_for_permit(test_db, "24 055123 BLD 00", "00")
        assert inserted == 1
        assert [(r.trade_id, r.tier, r.confidence, r.lead_score) for r in rows] == [(8, 1, 0.95, 85)]

    def test_replace_with_empty_set_clears_rows(self, test_db):
        add_permit(test_db, "24 055123 BLD 00")
        repo = PermitTradeRepository()
        repo.replace_for_permit(test_db, "24 055123 BLD 00", "00", [trade_match(5, "framing")], CLASSIFIED_AT)
        test_db.commit()

        assert repo.replace_for_permit(test_db, "24 055123 BLD 00", "00", [], CLASSIFIED_AT) == 0
        assert repo.get_for_permit(test_db, "24 055123 BLD 00", "00") == []

    def test_invariant_counts_are_zero(self, test_db):
        add_permit(test_db, "24 055123 BLD 00")
        repo = PermitTradeRepository()
        repo.replace_for_permit(
            test_db, "24 055123 BLD 00", "00",
            [trade_match(5, "framing"), trade_match(8, "plumbing")],
            CLASSIFIED_AT,
        )
        test_db.commit()

        assert repo.count_duplicate_trades(test_db) == 0
        assert repo.count_scores_out_of_range(test_db) == 0


class TestPermitProductRepository:
    """Tests for product match replacement."""

    def test_replace_for_permit(self, test_db):
        add_permit(test_db, "24 055123 BLD 00")
        repo = PermitProductRepository()
        match = ProductMatch(
            permit_num="24 055123 BLD 00",
            revision_num="00",
            product_id=11,
            product_slug="lumber-drywall",
            product_name="Lumber & Drywall",
            confidence=0.75,
        )

        repo.replace_for_permit(test_db, "24 055123 BLD 00", "00", [match], CLASSIFIED_AT)
        repo.replace_for_permit(test_db, "24 055123 BLD 00", "00", [match], CLASSIFIED_AT)
        test_db.commit()

        rows = test_db.execute(select(PermitProduct)).scalars().all()
        assert len(rows) == 1
        assert rows[0].product_slug == "lumber-drywall"


class TestRuleStore:
    """Tests for reading rules from trade_mapping_rules."""

    def test_get_active_rules_ordered(self, test_db):
        test_db.add_all([
            TradeMappingRule(trade_id=8, tier=3, match_field="description", match_pattern="plumb", confidence=0.6),
            TradeMappingRule(trade_id=8, tier=1, match_field="permit_type", match_pattern="Plumbing", confidence=0.95),
            TradeMappingRule(trade_id=9, tier=2, match_field="work", match_pattern="HVAC", confidence=0.8,
                             is_active=False),
        ])
        test_db.commit()

        rules = TradeMappingRuleRepository().get_active_rules(test_db)

        assert [r.tier for r in rules] == [1, 3]

    def test_catalog_loaded_from_store(self, test_db):
        test_db.add(TradeMappingRule(
            trade_id=8, tier=1, match_field="permit_type", match_pattern="Plumbing", confidence=0.95,
            phase_start=None, phase_end=None,
        ))
        test_db.commit()

        catalog = load_rule_catalog(test_db)

        assert catalog.source == "store"
        assert len(catalog) == 1
        assert catalog.active_rules()[0].match_pattern == "Plumbing"

    def test_empty_store_falls_back_to_defaults(self, test_db):
        assert load_rule_catalog(test_db).source == "default"

    def test_use_store_false_ignores_rows(self, test_db):
        test_db.add(TradeMappingRule(trade_id=8, tier=1, match_field="permit_type",
                                     match_pattern="Plumbing", confidence=0.95))
        test_db.commit()

        assert load_rule_catalog(test_db, use_store=False).source == "default"


class TestCatalogSeeding:
    """Tests for trade and product group seeding."""

    def test_seed_is_idempotent(self, test_db):
        trade_repo = TradeRepository()
        product_repo = ProductGroupRepository()

        trade_repo.seed_catalog(test_db, TRADES)
        trade_repo.seed_catalog(test_db, TRADES)
        product_repo.seed_catalog(test_db, PRODUCT_GROUPS)
        test_db.commit()

        assert trade_repo.count(test_db) == len(TRADES)
        assert product_repo.count(test_db) == len(PRODUCT_GROUPS)
        assert test_db.get(Trade, 8).slug == "plumbing"


class TestReclassificationRunRepository:
    """Tests for run tracking."""

    def test_create_and_complete_run(self, test_db):
        repo = ReclassificationRunRepository()

        run = repo.create_run(test_db, batch_size=500, rule_source="default")
        test_db.commit()
        assert run.status == "running"

        repo.complete_run(
            test_db, run.id, status="partial",
            permits_processed=10, permits_classified=9, permits_failed=1,
            trade_matches_total=40, products_total=12, error_message="24 1/00: boom",
        )
        test_db.commit()

        completed = repo.get_by_id(test_db, run.id)
        assert completed.status == "partial"
        assert completed.permits_failed == 1
        assert completed.completed_at is not None

    def test_complete_unknown_run_raises(self, test_db):
        with pytest.raises(ValueError):
            ReclassificationRunRepository().complete_run(test_db, 999, status="success")

    def test_get_recent_runs(self, test_db):
        repo = ReclassificationRunRepository()
        repo.create_run(test_db, batch_size=100, started_at=datetime(2026, 10, 1))
        repo.create_run(test_db, batch_size=200, started_at=datetime(2026, 10, 2))
        test_db.commit()

        runs = repo.get_recent_runs(test_db, limit=1)

        assert [r.batch_size for r in runs] == [200]
