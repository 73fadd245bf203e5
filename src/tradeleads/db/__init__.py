"""
Database Package

Database models, connection management, and persistence of derived
classification data.
"""
from src.tradeleads.db.base import Base
from src.tradeleads.db.session import (
    engine,
    SessionLocal,
    session_scope,
    get_db_session,
    health_check,
    close_connections,
    create_all_tables,
    with_retry,
)
from src.tradeleads.db.models import (
    Permit,
    Trade,
    TradeMappingRule,
    PermitTrade,
    ProductGroup,
    PermitProduct,
    ReclassificationRun,
)
from src.tradeleads.db.repository import (
    BaseRepository,
    PermitRepository,
    PermitTradeRepository,
    PermitProductRepository,
    TradeMappingRuleRepository,
    TradeRepository,
    ProductGroupRepository,
    ReclassificationRunRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "engine",
    "SessionLocal",
    "session_scope",
    "get_db_session",
    "health_check",
    "close_connections",
    "create_all_tables",
    "with_retry",
    # Models
    "Permit",
    "Trade",
    "TradeMappingRule",
    "PermitTrade",
    "ProductGroup",
    "PermitProduct",
    "ReclassificationRun",
    # Repositories
    "BaseRepository",
    "PermitRepository",
    "PermitTradeRepository",
    "PermitProductRepository",
    "TradeMappingRuleRepository",
    "TradeRepository",
    "ProductGroupRepository",
    "ReclassificationRunRepository",
]
