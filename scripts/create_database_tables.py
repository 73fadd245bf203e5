"""
Create Database Tables Using SQLAlchemy

This script creates all database tables directly using SQLAlchemy's create_all()
method and seeds the trade and product group catalogs. This bypasses Alembic
migrations and is useful for testing or local setup.
"""
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import sqlalchemy as sa

from src.tradeleads.classification.trades import PRODUCT_GROUPS, TRADES
from src.tradeleads.db.base import Base, import_all_models
from src.tradeleads.db.repository import ProductGroupRepository, TradeRepository
from src.tradeleads.db.session import engine, get_db_session
from src.tradeleads.utils.logger import get_logger

logger = get_logger(__name__)


def main():
    """Create all database tables and seed reference catalogs."""
    logger.info("database_table_creation_started")

    # Import all models to register them with Base
    import_all_models()

    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except Exception as e:
        logger.error("database_table_creation_failed", error=str(e))
        raise

    tables = sa.inspect(engine).get_table_names()
    logger.info("database_tables_created", count=len(tables), tables=sorted(tables))

    with get_db_session() as session:
        TradeRepository().seed_catalog(session, TRADES)
        ProductGroupRepository().seed_catalog(session, PRODUCT_GROUPS)

    logger.info("database_setup_complete")


if __name__ == "__main__":
    main()
