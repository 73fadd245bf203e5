"""
Tests for the Phase Resolver
"""
from datetime import date

import pytest

from src.tradeleads.classification.phases import (
    Phase,
    determine_phase,
    is_trade_active_in_phase,
    months_between,
    normalize_status,
)

TODAY = date(2026, 10, 19)


class TestNormalizeStatus:
    """Tests for status normalization."""

    @pytest.mark.parametrize("status,expected", [
        ("Permit Issued", "issued"),
        ("  Under   Inspection ", "under inspection"),
        ("Inspection", "under inspection"),
        ("Canceled", "cancelled"),
        ("Revoked", "revoked"),
        (None, ""),
    ])
    def test_normalize_status(self, status, expected):
        assert normalize_status(status) == expected


class TestDeterminePhase:
    """Tests for status overrides and age thresholds."""

    @pytest.mark.parametrize("status", ["Completed", "Closed"])
    def test_terminal_status_is_landscaping(self, status):
        assert determine_phase(status, TODAY, TODAY) == Phase.LANDSCAPING

    @pytest.mark.parametrize("status", ["Application", "Not Issued"])
    def test_pre_issue_status_is_early_construction(self, status):
        assert determine_phase(status, date(2020, 1, 1), TODAY) == Phase.EARLY_CONSTRUCTION

    @pytest.mark.parametrize("issued,expected", [
        (date(2026, 10, 9), Phase.EARLY_CONSTRUCTION),
        (date(2026, 7, 19), Phase.EARLY_CONSTRUCTION),
        (date(2026, 6, 19), Phase.STRUCTURAL),
        (date(2026, 1, 19), Phase.STRUCTURAL),
        (date(2025, 12, 19), Phase.FINISHING),
        (date(2025, 4, 19), Phase.FINISHING),
        (date(2025, 3, 19), Phase.LANDSCAPING),
    ])
    def test_age_thresholds(self, issued, expected):
        assert determine_phase("Permit Issued", issued, TODAY) == expected

    def test_missing_issued_date_is_early_construction(self):
        assert determine_phase("Permit Issued", None, TODAY) == Phase.EARLY_CONSTRUCTION


class TestMonthsBetween:
    """Tests for calendar month arithmetic."""

    @pytest.mark.parametrize("start,end,expected", [
        (date(2026, 1, 31), date(2026, 2, 28), 0),
        (date(2026, 1, 15), date(2026, 2, 15), 1),
        (date(2025, 10, 19), date(2026, 10, 19), 12),
        (date(2026, 3, 10), date(2026, 1, 20), -1),
    ])
    def test_months_between(self, start, end, expected):
        assert months_between(start, end) == expected


class TestTradeActivity:
    """Tests for the phase to trade membership table."""

    def test_plumbing_active_in_structural_and_finishing(self):
        assert is_trade_active_in_phase("plumbing", Phase.STRUCTURAL)
        assert is_trade_active_in_phase("plumbing", "finishing")
        assert not is_trade_active_in_phase("plumbing", Phase.EARLY_CONSTRUCTION)

    def test_unknown_inputs_are_inactive(self):
        assert not is_trade_active_in_phase("plumbing", "demolished")
        assert not is_trade_active_in_phase(None, Phase.STRUCTURAL)
        assert not is_trade_active_in_phase("unknown-trade", Phase.FINISHING)
