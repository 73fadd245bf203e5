"""
Permit Classifier

Single-permit entry point: scope (or propagation) -> trade matching ->
phase -> lead score, plus tag-driven product matches.
"""
from datetime import date
from typing import Iterable, List, Optional

from src.tradeleads.classification.matcher import TradeMatcher
from src.tradeleads.classification.phases import determine_phase, permit_age_months
from src.tradeleads.classification.propagation import ScopePropagator, is_companion
from src.tradeleads.classification.rules import RuleCatalog
from src.tradeleads.classification.scope import ScopeClassifier
from src.tradeleads.classification.scoring import LeadScorer
from src.tradeleads.classification.tag_matrix import lookup_products_for_tags
from src.tradeleads.classification.trades import PRODUCT_GROUPS
from src.tradeleads.models.permit import (
    ClassificationResult,
    PermitRecord,
    ProductMatch,
    ScopeResult,
)
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)

RECLASSIFIED_SOURCE = "reclassified"
CLASSIFIED_SOURCE = "classified"


class PermitClassifier:
    """
    Classifies one permit against an immutable rule catalog.

    The catalog and the reference date are fixed at construction, so the same
    permit always yields the same result from the same classifier.

    Usage:
        classifier = PermitClassifier(load_rule_catalog(session))
        result = classifier.classify(permit, siblings=siblings)
    """

    def __init__(self, catalog: RuleCatalog, today: Optional[date] = None):
        self.catalog = catalog
        self.today = today or date.today()
        self.scope_classifier = ScopeClassifier()
        self.propagator = ScopePropagator(self.scope_classifier)
        self.matcher = TradeMatcher(catalog)
        self.scorer = LeadScorer()

    def resolve_scope(
        self,
        permit: PermitRecord,
        siblings: Optional[Iterable[PermitRecord]] = None,
        source: str = CLASSIFIED_SOURCE,
    ) -> ScopeResult:
        """
        Scope from the permit's own fields, or from a sibling for companions.

        Companion permits are never classified from their own weak signal;
        without a tagged sibling they stay unclassified.
        """
        if is_companion(permit):
            return self.propagator.propagate(permit, siblings or [])

        scope = self.scope_classifier.classify(permit)
        return ScopeResult(
            project_type=scope.project_type,
            scope_tags=scope.scope_tags,
            scope_source=source,
            use_type=scope.use_type,
        )

    def classify(
        self,
        permit: PermitRecord,
        siblings: Optional[Iterable[PermitRecord]] = None,
        source: str = CLASSIFIED_SOURCE,
    ) -> ClassificationResult:
        """
        Classify a single permit.

        Args:
            permit: Permit to classify
            siblings: Permits sharing its base permit number (used for companions)
            source: scope_source recorded for directly classified permits

        Returns:
            ClassificationResult with scope, scored trade matches and product matches
        """
        scope = self.resolve_scope(permit, siblings, source)

        age_months = permit_age_months(permit.issued_date, self.today)
        phase = determine_phase(permit.status, permit.issued_date, self.today)

        trade_matches = [
            match.model_copy(update={
                "phase": phase.value,
                "lead_score": self.scorer.score(permit, match, phase, self.today),
            })
            for match in self.matcher.match(permit, scope.scope_tags, age_months)
        ]
        product_matches = self.match_products(permit, scope.scope_tags)

        logger.debug(
            "permit_classified",
            permit_num=permit.permit_num,
            revision_num=permit.revision_num,
            project_type=scope.project_type,
            tag_count=len(scope.scope_tags),
            trade_count=len(trade_matches),
            product_count=len(product_matches),
            phase=phase.value,
        )

        return ClassificationResult(
            permit_num=permit.permit_num,
            revision_num=permit.revision_num,
            project_type=scope.project_type,
            scope_tags=scope.scope_tags,
            scope_source=scope.scope_source,
            use_type=scope.use_type,
            trade_matches=trade_matches,
            product_matches=product_matches,
        )

    @staticmethod
    def match_products(permit: PermitRecord, scope_tags: Iterable[str]) -> List[ProductMatch]:
        """One product match per product group reached by the tags, in catalog order."""
        confidences = lookup_products_for_tags(scope_tags)
        return [
            ProductMatch(
                permit_num=permit.permit_num,
                revision_num=permit.revision_num,
                product_id=group.id,
                product_slug=group.slug,
                product_name=group.name,
                confidence=confidences[group.slug],
            )
            for group in PRODUCT_GROUPS
            if group.slug in confidences
        ]
