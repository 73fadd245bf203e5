"""
Tests for classification quality metrics.
"""
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.tradeleads.db.base import Base
from src.tradeleads.db.models import Permit, PermitTrade
from src.tradeleads.monitoring.classification_quality import (
    TAG_VIOLATION_KINDS,
    build_quality_report,
    compute_tag_violation_counts,
    compute_trade_match_metrics,
    compute_use_type_counts,
    has_violations,
)


@pytest.fixture(scope="function")
def test_db():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()

    yield session

    session.close()
    Base.metadata.drop_all(engine)


class TestTagViolationCounts:

    def test_clean_population(self):
        counts = compute_tag_violation_counts([
            {"work": "New Building", "scope_tags": ["new:sfd", "new:deck"]},
            {"work": None, "scope_tags": None},
        ])

        assert counts == {kind: 0 for kind in TAG_VIOLATION_KINDS}

    def test_counts_each_kind(self):
        counts = compute_tag_violation_counts([
            {"work": None, "scope_tags": ["new:basement", "new:underpinning"]},
            {"work": None, "scope_tags": ["new:deck", "alter:deck"]},
            {"work": None, "scope_tags": ["new:kitchen", "alter:kitchen"]},
        ])

        assert counts["basement_with_underpinning"] == 1
        assert counts["new_alter_conflict"] == 2
        assert counts["storey_addition_on_interior_alterations"] == 0

    def test_empty_input(self):
        assert compute_tag_violation_counts([]) == {kind: 0 for kind in TAG_VIOLATION_KINDS}


class TestTradeMatchMetrics:

    def test_distributions(self):
        metrics = compute_trade_match_metrics([
            {"tier": 1, "phase": "structural", "lead_score": 80},
            {"tier": 2, "phase": "structural", "lead_score": 60},
            {"tier": 2, "phase": None, "lead_score": 40},
        ])

        assert metrics["total"] == 3
        assert metrics["by_tier"] == {1: 1, 2: 2}
        assert metrics["by_phase"] == {"structural": 2, "unknown": 1}
        assert metrics["lead_score"] == {"mean": 60.0, "min": 40, "max": 80}

    def test_empty(self):
        assert compute_trade_match_metrics([]) == {
            "total": 0, "by_tier": {}, "by_phase": {}, "lead_score": {}
        }


class TestUseTypeCounts:

    def test_counts_with_unclassified(self):
        counts = compute_use_type_counts(["residential", "commercial", "residential", None])

        assert counts == {"residential": 2, "commercial": 1, "unknown": 1}

    def test_empty(self):
        assert compute_use_type_counts([]) == {}


class TestBuildQualityReport:

    def test_report_from_database(self, test_db):
        test_db.add_all([
            Permit(permit_num="24 000001 BLD 00", revision_num="00", scope_tags=["new:sfd"],
                   use_type="residential"),
            Permit(permit_num="24 000002 BLD 00", revision_num="00",
                   scope_tags=["new:basement", "new:underpinning"]),
            Permit(permit_num="24 000003 PS 00", revision_num="00"),
            PermitTrade(permit_num="24 000001 BLD 00", revision_num="00", trade_id=5, tier=2,
                        confidence=0.8, phase="structural", lead_score=55,
                        classified_at=datetime(2026, 10, 19)),
        ])
        test_db.commit()

        report = build_quality_report(test_db)

        assert report["permits_total"] == 3
        assert report["permits_tagged"] == 2
        assert report["use_types"] == {"residential": 1, "unknown": 2}
        assert report["violations"]["basement_with_underpinning"] == 1
        assert report["violations"]["duplicate_trade_matches"] == 0
        assert report["violations"]["lead_score_out_of_range"] == 0
        assert report["trade_matches"]["total"] == 1
        assert has_violations(report) is True

    def test_empty_database(self, test_db):
        report = build_quality_report(test_db)

        assert report["permits_total"] == 0
        assert has_violations(report) is False
