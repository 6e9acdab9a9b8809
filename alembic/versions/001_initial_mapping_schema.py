"""Create periods, ledger entries, taxonomy and mappings tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACCOUNT_TYPES = ('ASSETS', 'LIABILITIES', 'EQUITY', 'REVENUE', 'EXPENSES', 'OTHER')
REPORT_TYPES = ('BalanceSheet', 'ProfitAndLoss')
MAPPING_TYPES = ('ai_suggested', 'manual')


def upgrade() -> None:
    op.create_table(
        'financial_periods',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('label', sa.String(100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('quarter', sa.Integer(), nullable=True),
        sa.Column('quarter_end_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('year', 'quarter', name='uq_financial_periods_year_quarter'),
    )
    op.create_index('ix_financial_periods_created_at', 'financial_periods', ['created_at'])

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ledger_name', sa.String(500), nullable=False),
        sa.Column('account_type', sa.Enum(*ACCOUNT_TYPES, name='accounttype'), nullable=True),
        sa.Column('account_category', sa.String(255), nullable=True),
        sa.Column('closing_balance', sa.Numeric(precision=20, scale=4), nullable=False, server_default='0'),
        sa.Column('source_confidence', sa.Float(), nullable=False, server_default='0'),
        sa.Column('period_id', sa.Integer(), nullable=False),
        sa.Column('upload_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['period_id'], ['financial_periods.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_ledger_entries_ledger_name', 'ledger_entries', ['ledger_name'])
    op.create_index('ix_ledger_entries_period_id', 'ledger_entries', ['period_id'])
    op.create_index('ix_ledger_entries_upload_id', 'ledger_entries', ['upload_id'])

    op.create_table(
        'taxonomy_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('report_section', sa.String(100), nullable=False),
        sa.Column('report_sub_section', sa.String(100), nullable=True),
        sa.Column('report_type', sa.Enum(*REPORT_TYPES, name='reporttype'), nullable=False),
        sa.Column('is_credit_positive', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'item_name', 'report_section', 'report_type',
            name='uq_taxonomy_items_name_section_type',
        ),
    )
    op.create_index('ix_taxonomy_items_display_order', 'taxonomy_items', ['display_order'])

    op.create_table(
        'mappings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ledger_name', sa.String(500), nullable=False),
        sa.Column('taxonomy_item_id', sa.Integer(), nullable=False),
        sa.Column('period_id', sa.Integer(), nullable=False),
        sa.Column('mapping_type', sa.Enum(*MAPPING_TYPES, name='mappingtype'), nullable=False, server_default='manual'),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['taxonomy_item_id'], ['taxonomy_items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['period_id'], ['financial_periods.id'], ondelete='CASCADE'),
        # One mapping per ledger name per period
        sa.UniqueConstraint('ledger_name', 'period_id', name='uq_mappings_ledger_period'),
    )
    op.create_index('ix_mappings_period_id', 'mappings', ['period_id'])


def downgrade() -> None:
    op.drop_index('ix_mappings_period_id', 'mappings')
    op.drop_table('mappings')

    op.drop_index('ix_taxonomy_items_display_order', 'taxonomy_items')
    op.drop_table('taxonomy_items')

    op.drop_index('ix_ledger_entries_upload_id', 'ledger_entries')
    op.drop_index('ix_ledger_entries_period_id', 'ledger_entries')
    op.drop_index('ix_ledger_entries_ledger_name', 'ledger_entries')
    op.drop_table('ledger_entries')

    op.drop_index('ix_financial_periods_created_at', 'financial_periods')
    op.drop_table('financial_periods')

    sa.Enum(name='mappingtype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='reporttype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='accounttype').drop(op.get_bind(), checkfirst=True)
