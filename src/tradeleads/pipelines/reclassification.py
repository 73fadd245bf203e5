"""
Reclassification Pipeline

Batch driver that walks the permit population page by page and re-derives
scope, trade matches, lead scores and product matches for every permit.

Each permit is rewritten inside its own transaction. A failure rolls back
that permit only; permits already committed stay updated, so an interrupted
run can simply be started again.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from typing import Callable, ContextManager, List, Optional, Tuple

from sqlalchemy.orm import Session

from config.settings import settings
from src.tradeleads.classification.classifier import PermitClassifier, RECLASSIFIED_SOURCE
from src.tradeleads.classification.propagation import base_permit_num, is_companion
from src.tradeleads.classification.rules import RuleCatalog, load_rule_catalog
from src.tradeleads.db.repository import (
    PermitProductRepository,
    PermitRepository,
    PermitTradeRepository,
    ReclassificationRunRepository,
)
from src.tradeleads.db.session import get_db_session
from src.tradeleads.models.permit import ClassificationResult, PermitFilter, PermitRecord
from src.tradeleads.utils.logger import get_logger, permit_log_context

logger = get_logger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


@dataclass
class ReclassificationStats:
    """Aggregate counters for one batch run."""
    processed: int = 0
    classified: int = 0
    errors: int = 0
    trade_matches_total: int = 0
    products_total: int = 0
    failures: List[Tuple[str, str, str]] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.errors == 0:
            return "success"
        if self.errors >= self.processed:
            return "failure"
        return "partial"

    @property
    def error_ratio(self) -> float:
        return self.errors / self.processed if self.processed else 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("failures")
        return data


class ReclassificationPipeline:
    """
    Re-runs classification over permits and replaces their derived rows.

    Usage:
        pipeline = ReclassificationPipeline()
        stats = pipeline.reclassify_all(batch_size=500)
    """

    def __init__(
        self,
        session_factory: SessionFactory = get_db_session,
        catalog: Optional[RuleCatalog] = None,
        today: Optional[date] = None,
        use_rule_store: Optional[bool] = None,
        error_log_limit: Optional[int] = None,
    ):
        """
        Initialize pipeline.

        Args:
            session_factory: Callable returning a transactional session context
            catalog: Rule catalog to use; loaded at the start of each run if None
            today: Reference date for permit age (defaults to today)
            use_rule_store: Read active rules from the database (defaults to settings)
            error_log_limit: Failures logged at error level before switching to debug
        """
        self.session_factory = session_factory
        self.catalog = catalog
        self.today = today or date.today()
        self.use_rule_store = settings.use_rule_store if use_rule_store is None else use_rule_store
        self.error_log_limit = (
            settings.reclassify_error_log_limit if error_log_limit is None else error_log_limit
        )

        self.permit_repo = PermitRepository()
        self.trade_repo = PermitTradeRepository()
        self.product_repo = PermitProductRepository()
        self.run_repo = ReclassificationRunRepository()

    def load_catalog(self) -> RuleCatalog:
        """The catalog for this run; read once and reused for every permit."""
        if self.catalog is not None:
            return self.catalog
        with self.session_factory() as session:
            return load_rule_catalog(session, use_store=self.use_rule_store)

    def reclassify_permit(
        self,
        session: Session,
        classifier: PermitClassifier,
        permit_num: str,
        revision_num: str,
    ) -> ClassificationResult:
        """
        Classify one permit and replace its derived data.

        Runs in the caller's session; the caller owns commit and rollback.

        Raises:
            ValueError: If the permit no longer exists
        """
        row = self.permit_repo.get_by_id(session, (permit_num, revision_num))
        if row is None:
            raise ValueError(f"Permit {permit_num}/{revision_num} not found")

        permit = PermitRecord.model_validate(row)
        siblings = []
        if is_companion(permit):
            siblings = [
                PermitRecord.model_validate(sibling)
                for sibling in self.permit_repo.get_siblings(session, base_permit_num(permit.permit_num))
            ]

        result = classifier.classify(permit, siblings=siblings, source=RECLASSIFIED_SOURCE)
        classified_at = datetime.now(timezone.utc)

        self.permit_repo.update_scope(
            session,
            permit_num,
            revision_num,
            project_type=result.project_type,
            scope_tags=result.scope_tags,
            scope_source=result.scope_source,
            classified_at=classified_at,
            use_type=result.use_type,
        )
        self.trade_repo.replace_for_permit(
            session, permit_num, revision_num, result.trade_matches, classified_at
        )
        self.product_repo.replace_for_permit(
            session, permit_num, revision_num, result.product_matches, classified_at
        )
        return result

    def _process(
        self,
        classifier: PermitClassifier,
        identity: Tuple[str, str],
        stats: ReclassificationStats,
    ) -> None:
        permit_num, revision_num = identity
        stats.processed += 1

        try:
            with permit_log_context(permit_num, revision_num):
                with self.session_factory() as session:
                    result = self.reclassify_permit(session, classifier, permit_num, revision_num)
        except Exception as e:
            stats.errors += 1
            stats.failures.append((permit_num, revision_num, str(e)))
            log = logger.error if stats.errors <= self.error_log_limit else logger.debug
            log(
                "permit_reclassification_failed",
                permit_num=permit_num,
                revision_num=revision_num,
                error=str(e),
                error_type=type(e).__name__,
            )
            return

        stats.classified += 1
        stats.trade_matches_total += len(result.trade_matches)
        stats.products_total += len(result.product_matches)

    def _error_message(self, stats: ReclassificationStats) -> Optional[str]:
        if not stats.failures:
            return None
        shown = [f"{num}/{rev}: {err}" for num, rev, err in stats.failures[:self.error_log_limit]]
        hidden = len(stats.failures) - len(shown)
        if hidden > 0:
            shown.append(f"... and {hidden} more")
        return "; ".join(shown)

    def reclassify_all(
        self,
        batch_size: Optional[int] = None,
        permit_filter: Optional[PermitFilter] = None,
    ) -> ReclassificationStats:
        """
        Reclassify every permit matching the filter.

        Args:
            batch_size: Page size for the permit query (defaults to settings)
            permit_filter: Optional population filter

        Returns:
            ReclassificationStats with classified, errors, trade_matches_total
            and products_total
        """
        batch_size = batch_size or settings.reclassify_batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        catalog = self.load_catalog()
        classifier = PermitClassifier(catalog, today=self.today)
        stats = ReclassificationStats()

        with self.session_factory() as session:
            run_id = self.run_repo.create_run(session, batch_size=batch_size, rule_source=catalog.source).id

        logger.info(
            "reclassification_started",
            run_id=run_id,
            batch_size=batch_size,
            rule_source=catalog.source,
            rule_count=len(catalog),
        )

        after = None
        batch_number = 0
        while True:
            with self.session_factory() as session:
                page = self.permit_repo.get_page(
                    session, limit=batch_size, after=after, permit_filter=permit_filter
                )
                identities = [(p.permit_num, p.revision_num) for p in page]

            if not identities:
                break

            for identity in identities:
                self._process(classifier, identity, stats)

            batch_number += 1
            after = identities[-1]
            logger.info(
                "reclassification_batch_completed",
                batch=batch_number,
                size=len(identities),
                processed=stats.processed,
                errors=stats.errors,
            )

            if len(identities) < batch_size:
                break

        with self.session_factory() as session:
            self.run_repo.complete_run(
                session,
                run_id,
                status=stats.status,
                permits_processed=stats.processed,
                permits_classified=stats.classified,
                permits_failed=stats.errors,
                trade_matches_total=stats.trade_matches_total,
                products_total=stats.products_total,
                error_message=self._error_message(stats),
            )

        logger.info("reclassification_completed", run_id=run_id, **stats.to_dict())
        return stats


def evaluate_run_health(stats: ReclassificationStats, alert_ratio: Optional[float] = None) -> dict:
    """
    Caller-level health signal for a finished run.

    Args:
        stats: Run statistics
        alert_ratio: Error ratio above which the run is flagged (defaults to settings)

    Returns:
        Dictionary with error_ratio, healthy and status
    """
    if alert_ratio is None:
        alert_ratio = settings.reclassify_error_alert_ratio

    healthy = stats.error_ratio <= alert_ratio
    if not healthy:
        logger.warning(
            "high_reclassification_error_rate",
            error_ratio=round(stats.error_ratio, 4),
            alert_ratio=alert_ratio,
            errors=stats.errors,
            processed=stats.processed,
        )

    return {
        "error_ratio": stats.error_ratio,
        "healthy": healthy,
        "status": stats.status,
    }
