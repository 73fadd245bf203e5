"""
Lead Scoring

Scores a permit/trade pairing from 0 to 100 from permit status, cost,
recency, phase relevance and match confidence.
"""
import math
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from src.tradeleads.classification.phases import Phase, is_trade_active_in_phase, normalize_status
from src.tradeleads.models.permit import PermitRecord, TradeMatch


@dataclass
class LeadScoreBreakdown:
    """
    Lead score with its additive components.

    Attributes:
        total_score: Clamped final score (0-100)
        base_score: From permit status (0-50)
        cost_boost: From estimated construction cost (0-15)
        freshness_boost: From days since issue (0-20)
        phase_boost: Trade active in the current phase (0 or 15)
        confidence_boost: From match confidence (0-10)
        staleness_penalty: Old or undated permits (0-20)
        revocation_penalty: Revoked, cancelled or suspended permits (0-30)
    """
    total_score: int
    base_score: int
    cost_boost: int
    freshness_boost: int
    phase_boost: int
    confidence_boost: int
    staleness_penalty: int
    revocation_penalty: int


class LeadScorer:
    """
    Pure scoring function over permit, trade and phase.

    Never raises: missing or unusable inputs contribute nothing.
    """

    STATUS_BASE_SCORES = {
        "issued": 50,
        "under inspection": 40,
        "application": 30,
        "not issued": 20,
        "completed": 15,
        "closed": 10,
    }
    DEFAULT_BASE_SCORE = 25

    # (minimum cost, boost), highest first
    COST_THRESHOLDS = (
        (10_000_000, 15),
        (5_000_000, 12),
        (1_000_000, 10),
        (500_000, 8),
        (100_000, 5),
        (50_000, 3),
    )

    PHASE_MATCH_BOOST = 15
    MIN_SCORE = 0
    MAX_SCORE = 100

    def score(self, permit: PermitRecord, match: TradeMatch, phase: Union[Phase, str], today: date) -> int:
        return self.score_breakdown(permit, match, phase, today).total_score

    def score_breakdown(
        self,
        permit: PermitRecord,
        match: TradeMatch,
        phase: Union[Phase, str],
        today: date,
    ) -> LeadScoreBreakdown:
        """
        Calculate the score for one trade match.

        Args:
            permit: Permit the match belongs to
            match: Trade match being scored
            phase: Resolved lifecycle phase
            today: Reference date for age calculations

        Returns:
            LeadScoreBreakdown with total and components
        """
        status = normalize_status(permit.status)
        days = self._days_since_issue(permit.issued_date, today)

        base = self.STATUS_BASE_SCORES.get(status, self.DEFAULT_BASE_SCORE)
        cost = self._calculate_cost_boost(permit.est_const_cost)
        freshness = self._calculate_freshness_boost(days)
        phase_boost = self.PHASE_MATCH_BOOST if is_trade_active_in_phase(match.trade_slug, phase) else 0
        confidence_boost = self._calculate_confidence_boost(match.confidence)
        staleness = self._calculate_staleness_penalty(days)
        revocation = self._calculate_revocation_penalty(status)

        raw = base + cost + freshness + phase_boost + confidence_boost - staleness - revocation

        return LeadScoreBreakdown(
            total_score=max(self.MIN_SCORE, min(self.MAX_SCORE, raw)),
            base_score=base,
            cost_boost=cost,
            freshness_boost=freshness,
            phase_boost=phase_boost,
            confidence_boost=confidence_boost,
            staleness_penalty=staleness,
            revocation_penalty=revocation,
        )

    @staticmethod
    def _days_since_issue(issued_date: Optional[date], today: date) -> Optional[int]:
        if issued_date is None:
            return None
        return (today - issued_date).days

    def _calculate_cost_boost(self, cost: Optional[float]) -> int:
        if cost is None or not isinstance(cost, (int, float)) or math.isnan(cost) or cost <= 0:
            return 0
        for threshold, boost in self.COST_THRESHOLDS:
            if cost >= threshold:
                return boost
        return 1

    @staticmethod
    def _calculate_freshness_boost(days: Optional[int]) -> int:
        # Future issue dates count as freshest
        if days is None:
            return 0
        if days <= 30:
            return 20
        if days <= 90:
            return 15
        if days <= 180:
            return 10
        if days <= 365:
            return 5
        return 0

    @staticmethod
    def _calculate_confidence_boost(confidence: Optional[float]) -> int:
        if confidence is None or not isinstance(confidence, (int, float)) or math.isnan(confidence):
            return 0
        confidence = max(0.0, min(1.0, float(confidence)))
        # Half-up rounding: 0.95 -> 10, 0.85 -> 9
        return int(math.floor(confidence * 10 + 0.5))

    @staticmethod
    def _calculate_staleness_penalty(days: Optional[int]) -> int:
        if days is None:
            return 10
        if days <= 730:
            return 0
        if days <= 1095:
            return 10
        return 20

    @staticmethod
    def _calculate_revocation_penalty(status: str) -> int:
        if status in ("revoked", "cancelled"):
            return 30
        if status == "suspended":
            return 20
        return 0
