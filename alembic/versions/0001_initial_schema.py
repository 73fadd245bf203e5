"""initial_schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
    ]


def upgrade() -> None:
    # Create permits table
    op.create_table(
        'permits',
        sa.Column('permit_num', sa.String(length=30), nullable=False, comment="Permit number, e.g. '24 055123 BLD 00'"),
        sa.Column('revision_num', sa.String(length=10), nullable=False, comment='Revision number'),
        sa.Column('permit_type', sa.String(length=100), nullable=True),
        sa.Column('structure_type', sa.String(length=100), nullable=True),
        sa.Column('work', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        sa.Column('proposed_use', sa.String(length=255), nullable=True),
        sa.Column('current_use', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('issued_date', sa.Date(), nullable=True),
        sa.Column('est_const_cost', sa.Numeric(precision=14, scale=2), nullable=True, comment='Estimated construction cost'),
        sa.Column('storeys', sa.Integer(), nullable=True),
        sa.Column('housing_units', sa.Integer(), nullable=True),
        sa.Column('project_type', sa.String(length=30), nullable=True, comment='Derived project type'),
        sa.Column('use_type', sa.String(length=20), nullable=True, comment='Derived use type: residential, commercial or mixed-use'),
        sa.Column('scope_tags', postgresql.JSONB(astext_type=sa.Text()), nullable=True, comment="Derived '<action>:<component>' scope tags"),
        sa.Column('scope_classified_at', sa.DateTime(timezone=True), nullable=True, comment='When scope was last derived'),
        sa.Column('scope_source', sa.String(length=20), nullable=True, comment='reclassified, propagated or classified'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('permit_num', 'revision_num')
    )
    op.create_index('idx_permits_issued_date', 'permits', ['issued_date'], unique=False)
    op.create_index('idx_permits_permit_type', 'permits', ['permit_type'], unique=False)
    op.create_index('idx_permits_scope_source', 'permits', ['scope_source'], unique=False)

    # Create reference catalogs
    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('slug', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )
    op.create_table(
        'product_groups',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('slug', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug')
    )

    # Create trade_mapping_rules table (rule store)
    op.create_table(
        'trade_mapping_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False, comment='References trades table'),
        sa.Column('tier', sa.Integer(), nullable=False, comment='1, 2 or 3'),
        sa.Column('match_field', sa.String(length=30), nullable=False, comment='permit_type, work, structure_type, description or scope_tags'),
        sa.Column('match_pattern', sa.String(length=255), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('phase_start', sa.Integer(), nullable=True, comment='Minimum permit age in months (inclusive)'),
        sa.Column('phase_end', sa.Integer(), nullable=True, comment='Maximum permit age in months (inclusive)'),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('tier IN (1, 2, 3)', name='check_rule_tier_valid'),
        sa.CheckConstraint('confidence >= 0 AND confidence <= 1', name='check_rule_confidence_range')
    )
    op.create_index('idx_trade_mapping_rules_active', 'trade_mapping_rules', ['is_active'], unique=False)

    # Create permit_trades table (trade matches)
    op.create_table(
        'permit_trades',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('permit_num', sa.String(length=30), nullable=False),
        sa.Column('revision_num', sa.String(length=10), nullable=False),
        sa.Column('trade_id', sa.Integer(), nullable=False),
        sa.Column('tier', sa.Integer(), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('phase', sa.String(length=30), nullable=True),
        sa.Column('lead_score', sa.Integer(), nullable=False),
        sa.Column('classified_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['permit_num', 'revision_num'], ['permits.permit_num', 'permits.revision_num'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['trade_id'], ['trades.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('permit_num', 'revision_num', 'trade_id', name='uq_permit_trades_permit_trade'),
        sa.CheckConstraint('tier IN (1, 2, 3)', name='check_permit_trade_tier_valid'),
        sa.CheckConstraint('lead_score >= 0 AND lead_score <= 100', name='check_lead_score_range')
    )
    op.create_index('idx_permit_trades_trade_id', 'permit_trades', ['trade_id'], unique=False)
    op.create_index('idx_permit_trades_lead_score', 'permit_trades', ['lead_score'], unique=False)

    # Create permit_products table (product group matches)
    op.create_table(
        'permit_products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('permit_num', sa.String(length=30), nullable=False),
        sa.Column('revision_num', sa.String(length=10), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_slug', sa.String(length=50), nullable=False),
        sa.Column('product_name', sa.String(length=100), nullable=False),
        sa.Column('confidence', sa.Float(), nullable=False),
        sa.Column('classified_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['permit_num', 'revision_num'], ['permits.permit_num', 'permits.revision_num'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['product_groups.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('permit_num', 'revision_num', 'product_id', name='uq_permit_products_permit_product')
    )

    # Create reclassification_runs table
    op.create_table(
        'reclassification_runs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, comment='Run status: running, success, partial, failure'),
        sa.Column('rule_source', sa.String(length=20), nullable=True, comment='Rule catalog source: store or default'),
        sa.Column('batch_size', sa.Integer(), nullable=False),
        sa.Column('permits_processed', sa.Integer(), nullable=False),
        sa.Column('permits_classified', sa.Integer(), nullable=False),
        sa.Column('permits_failed', sa.Integer(), nullable=False),
        sa.Column('trade_matches_total', sa.Integer(), nullable=False),
        sa.Column('products_total', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint("status IN ('running', 'success', 'failure', 'partial')", name='check_run_status_valid')
    )
    op.create_index('idx_reclassification_runs_started_at', 'reclassification_runs', ['started_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_reclassification_runs_started_at', table_name='reclassification_runs')
    op.drop_table('reclassification_runs')
    op.drop_table('permit_products')
    op.drop_index('idx_permit_trades_lead_score', table_name='permit_trades')
    op.drop_index('idx_permit_trades_trade_id', table_name='permit_trades')
    op.drop_table('permit_trades')
    op.drop_index('idx_trade_mapping_rules_active', table_name='trade_mapping_rules')
    op.drop_table('trade_mapping_rules')
    op.drop_table('product_groups')
    op.drop_table('trades')
    op.drop_index('idx_permits_scope_source', table_name='permits')
    op.drop_index('idx_permits_permit_type', table_name='permits')
    op.drop_index('idx_permits_issued_date', table_name='permits')
    op.drop_table('permits')
