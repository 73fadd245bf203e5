"""
Repository Pattern for Data Access

Provides CRUD operations and domain-specific queries for all models.
"""
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import and_, delete, desc, func, or_, select
from sqlalchemy.orm import Session

from src.tradeleads.db.models import (
    Permit,
    PermitProduct,
    PermitTrade,
    ProductGroup,
    ReclassificationRun,
    Trade,
    TradeMappingRule,
)
from src.tradeleads.db.session import with_retry
from src.tradeleads.models.permit import PermitFilter, ProductMatch, TradeMatch
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value (a tuple for composite keys)

        Returns:
            Model instance or None
        """
        return session.get(self.model, id_value)

    def get_all(self, session: Session, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        query = select(self.model).offset(offset)
        if limit:
            query = query.limit(limit)
        return list(session.execute(query).scalars().all())

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.debug("repository_created", model=self.model.__name__)
        return instance

    def count(self, session: Session) -> int:
        return session.execute(select(func.count()).select_from(self.model)).scalar_one()


class PermitRepository(BaseRepository):
    """Repository for Permit model."""

    def __init__(self):
        super().__init__(Permit)

    @staticmethod
    def _apply_filter(query, permit_filter: Optional[PermitFilter]):
        if permit_filter is None:
            return query
        if permit_filter.permit_types:
            query = query.where(Permit.permit_type.in_(permit_filter.permit_types))
        if permit_filter.issued_after is not None:
            query = query.where(Permit.issued_date >= permit_filter.issued_after)
        if permit_filter.permit_num_prefix:
            query = query.where(Permit.permit_num.like(f"{permit_filter.permit_num_prefix}%"))
        if permit_filter.unclassified_only:
            query = query.where(Permit.scope_classified_at.is_(None))
        return query

    @with_retry(max_retries=3)
    def get_page(
        self,
        session: Session,
        limit: int,
        after: Optional[Tuple[str, str]] = None,
        permit_filter: Optional[PermitFilter] = None,
    ) -> List[Permit]:
        """
        Next page of permits in (permit_num, revision_num) order.

        Keyset pagination: rows updated while paging never shift later pages.

        Args:
            session: Database session
            limit: Page size
            after: Identity of the last permit on the previous page
            permit_filter: Optional population filter

        Returns:
            List of Permit instances
        """
        query = select(Permit)
        if after is not None:
            last_num, last_rev = after
            query = query.where(
                or_(
                    Permit.permit_num > last_num,
                    and_(Permit.permit_num == last_num, Permit.revision_num > last_rev),
                )
            )
        query = self._apply_filter(query, permit_filter)
        query = query.order_by(Permit.permit_num, Permit.revision_num).limit(limit)
        return list(session.execute(query).scalars().all())

    def count_matching(self, session: Session, permit_filter: Optional[PermitFilter] = None) -> int:
        query = self._apply_filter(select(func.count()).select_from(Permit), permit_filter)
        return session.execute(query).scalar_one()

    def get_siblings(self, session: Session, base_num: str) -> List[Permit]:
        """All permits whose number starts with the given base permit number."""
        query = (
            select(Permit)
            .where(or_(Permit.permit_num == base_num, Permit.permit_num.like(f"{base_num} %")))
            .order_by(Permit.permit_num, Permit.revision_num)
        )
        return list(session.execute(query).scalars().all())

    def update_scope(
        self,
        session: Session,
        permit_num: str,
        revision_num: str,
        project_type: Optional[str],
        scope_tags: List[str],
        scope_source: Optional[str],
        classified_at: datetime,
        use_type: Optional[str] = None,
    ) -> Optional[Permit]:
        """Write derived scope fields back onto a permit."""
        permit = self.get_by_id(session, (permit_num, revision_num))
        if permit is None:
            logger.warning("permit_not_found", permit_num=permit_num, revision_num=revision_num)
            return None

        permit.project_type = project_type
        permit.scope_tags = list(scope_tags)
        permit.scope_source = scope_source
        permit.use_type = use_type
        permit.scope_classified_at = classified_at
        session.flush()
        return permit


class PermitTradeRepository(BaseRepository):
    """Repository for PermitTrade model (trade matches)."""

    def __init__(self):
        super().__init__(PermitTrade)

    def get_for_permit(self, session: Session, permit_num: str, revision_num: str) -> List[PermitTrade]:
        query = (
            select(PermitTrade)
            .where(PermitTrade.permit_num == permit_num, PermitTrade.revision_num == revision_num)
            .order_by(PermitTrade.trade_id)
        )
        return list(session.execute(query).scalars().all())

    def replace_for_permit(
        self,
        session: Session,
        permit_num: str,
        revision_num: str,
        matches: Iterable[TradeMatch],
        classified_at: datetime,
    ) -> int:
        """
        Delete-then-insert a permit's trade matches.

        Runs inside the caller's transaction; nothing is committed here.

        Returns:
            Number of rows inserted
        """
        session.execute(
            delete(PermitTrade).where(
                PermitTrade.permit_num == permit_num,
                PermitTrade.revision_num == revision_num,
            )
        )
        rows = [
            PermitTrade(
                permit_num=permit_num,
                revision_num=revision_num,
                trade_id=match.trade_id,
                tier=match.tier,
                confidence=match.confidence,
                is_active=match.is_active,
                phase=match.phase,
                lead_score=match.lead_score or 0,
                classified_at=classified_at,
            )
            for match in matches
        ]
        session.add_all(rows)
        session.flush()
        return len(rows)

    def count_duplicate_trades(self, session: Session) -> int:
        """Number of (permit, trade) pairs stored more than once."""
        duplicates = (
            select(PermitTrade.permit_num, PermitTrade.revision_num, PermitTrade.trade_id)
            .group_by(PermitTrade.permit_num, PermitTrade.revision_num, PermitTrade.trade_id)
            .having(func.count() > 1)
            .subquery()
        )
        return session.execute(select(func.count()).select_from(duplicates)).scalar_one()

    def count_scores_out_of_range(self, session: Session) -> int:
        query = select(func.count()).select_from(PermitTrade).where(
            or_(PermitTrade.lead_score < 0, PermitTrade.lead_score > 100)
        )
        return session.execute(query).scalar_one()


class PermitProductRepository(BaseRepository):
    """Repository for PermitProduct model (product group matches)."""

    def __init__(self):
        super().__init__(PermitProduct)

    def replace_for_permit(
        self,
        session: Session,
        permit_num: str,
        revision_num: str,
        matches: Iterable[ProductMatch],
        classified_at: datetime,
    ) -> int:
        """Delete-then-insert a permit's product matches. Returns rows inserted."""
        session.execute(
            delete(PermitProduct).where(
                PermitProduct.permit_num == permit_num,
                PermitProduct.revision_num == revision_num,
            )
        )
        rows = [
            PermitProduct(
                permit_num=permit_num,
                revision_num=revision_num,
                product_id=match.product_id,
                product_slug=match.product_slug,
                product_name=match.product_name,
                confidence=match.confidence,
                classified_at=classified_at,
            )
            for match in matches
        ]
        session.add_all(rows)
        session.flush()
        return len(rows)


class TradeMappingRuleRepository(BaseRepository):
    """Repository for the persistent rule store."""

    def __init__(self):
        super().__init__(TradeMappingRule)

    def get_active_rules(self, session: Session) -> List[TradeMappingRule]:
        query = (
            select(TradeMappingRule)
            .where(TradeMappingRule.is_active.is_(True))
            .order_by(TradeMappingRule.tier, TradeMappingRule.id)
        )
        return list(session.execute(query).scalars().all())


class TradeRepository(BaseRepository):
    """Repository for the trade catalog."""

    def __init__(self):
        super().__init__(Trade)

    def seed_catalog(self, session: Session, trades: Iterable[Any]) -> int:
        """Insert or update catalog rows from id/slug/name/sort_order records."""
        count = 0
        for trade in trades:
            session.merge(Trade(id=trade.id, slug=trade.slug, name=trade.name, sort_order=trade.sort_order))
            count += 1
        session.flush()
        logger.info("trade_catalog_seeded", count=count)
        return count


class ProductGroupRepository(BaseRepository):
    """Repository for the product group catalog."""

    def __init__(self):
        super().__init__(ProductGroup)

    def seed_catalog(self, session: Session, groups: Iterable[Any]) -> int:
        count = 0
        for group in groups:
            session.merge(ProductGroup(id=group.id, slug=group.slug, name=group.name, sort_order=group.sort_order))
            count += 1
        session.flush()
        logger.info("product_group_catalog_seeded", count=count)
        return count


class ReclassificationRunRepository(BaseRepository):
    """Repository for ReclassificationRun model (batch run tracking)."""

    def __init__(self):
        super().__init__(ReclassificationRun)

    def create_run(
        self,
        session: Session,
        batch_size: int,
        rule_source: Optional[str] = None,
        started_at: Optional[datetime] = None
    ) -> ReclassificationRun:
        """
        Create new reclassification run.

        Args:
            session: Database session
            batch_size: Page size used by the run
            rule_source: Where the rule catalog came from (store or default)
            started_at: Start timestamp (defaults to now)

        Returns:
            ReclassificationRun instance
        """
        if started_at is None:
            started_at = datetime.now()

        run = ReclassificationRun(
            status='running',
            batch_size=batch_size,
            rule_source=rule_source,
            started_at=started_at,
        )
        session.add(run)
        session.flush()

        logger.info("reclassification_run_created", run_id=run.id, batch_size=batch_size)
        return run

    def complete_run(
        self,
        session: Session,
        run_id: int,
        status: str,
        permits_processed: int = 0,
        permits_classified: int = 0,
        permits_failed: int = 0,
        trade_matches_total: int = 0,
        products_total: int = 0,
        error_message: Optional[str] = None,
    ) -> ReclassificationRun:
        """
        Mark reclassification run as complete.

        Args:
            session: Database session
            run_id: Run ID
            status: Final status (success, failure, partial)
            permits_processed: Permits attempted
            permits_classified: Permits written successfully
            permits_failed: Permits rolled back
            trade_matches_total: Trade match rows written
            products_total: Product match rows written
            error_message: Summary of failures, if any

        Returns:
            Updated ReclassificationRun instance
        """
        run = self.get_by_id(session, run_id)
        if not run:
            raise ValueError(f"ReclassificationRun {run_id} not found")

        run.status = status
        run.permits_processed = permits_processed
        run.permits_classified = permits_classified
        run.permits_failed = permits_failed
        run.trade_matches_total = trade_matches_total
        run.products_total = products_total
        run.error_message = error_message
        run.completed_at = datetime.now()
        session.flush()

        logger.info(
            "reclassification_run_completed",
            run_id=run_id,
            status=status,
            processed=permits_processed,
            classified=permits_classified,
            failed=permits_failed,
        )
        return run

    def get_recent_runs(self, session: Session, limit: int = 10) -> List[ReclassificationRun]:
        query = select(ReclassificationRun).order_by(desc(ReclassificationRun.started_at)).limit(limit)
        return list(session.execute(query).scalars().all())
