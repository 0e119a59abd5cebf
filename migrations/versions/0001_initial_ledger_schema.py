"""Initial ledger schema

Revision ID: 0001_initial_ledger_schema
Revises:
Create Date: 2025-10-20 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_ledger_schema'
down_revision = None
branch_labels = None
depends_on = None


MONEY = sa.Numeric(12, 2)

BUCKET_COLUMNS = [
    ('mode', sa.String(20)),
    ('color', sa.String(20)),
    ('icon', sa.String(50)),
    ('alert_threshold', sa.Integer()),
    ('is_active', sa.Boolean()),
    ('last_rollover_date', sa.DateTime()),
    ('created_at', sa.DateTime()),
    ('allocation_type', sa.String(20)),
    ('planned_amount', MONEY),
    ('planned_percent', sa.Numeric(5, 2)),
    ('funded_amount', MONEY),
    ('carryover_balance', MONEY),
    ('target_amount', MONEY),
    ('current_balance', MONEY),
    ('contribution_type', sa.String(20)),
    ('contribution_amount', MONEY),
    ('contribution_percent', sa.Numeric(5, 2)),
    ('cap_behavior', sa.String(20)),
    ('cap_reroute_bucket_id', sa.Integer()),
    ('last_contribution_date', sa.DateTime()),
    ('goal_alerts', sa.JSON()),
    ('notify_on_complete', sa.Boolean()),
]


def upgrade():
    """Create ledger tables; widen a pre-existing legacy buckets table in place."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    tables = inspector.get_table_names()

    if 'users' not in tables:
        op.create_table(
            'users',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('name', sa.String(100), nullable=False),
            sa.Column('created_at', sa.DateTime()),
        )

    if 'buckets' not in tables:
        op.create_table(
            'buckets',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('name', sa.String(100), nullable=False),
            *[sa.Column(name, type_, nullable=True) for name, type_ in BUCKET_COLUMNS],
        )
        op.create_index('ix_buckets_user_id', 'buckets', ['user_id'])
    else:
        # Legacy table: mode stays NULL until 0002 migrates the rows
        columns = [col['name'] for col in inspector.get_columns('buckets')]
        with op.batch_alter_table('buckets', schema=None) as batch_op:
            for name, type_ in BUCKET_COLUMNS:
                if name not in columns:
                    batch_op.add_column(sa.Column(name, type_, nullable=True))
                    print(f"✓ Added '{name}' column to buckets table")

    if 'income' not in tables:
        op.create_table(
            'income',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('amount', MONEY, nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('note', sa.String(255)),
            sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('created_at', sa.DateTime()),
        )
        op.create_index('ix_income_user_id', 'income', ['user_id'])

    if 'expenses' not in tables:
        op.create_table(
            'expenses',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('bucket_id', sa.Integer(), sa.ForeignKey('buckets.id'), nullable=False),
            sa.Column('amount', MONEY, nullable=False),
            sa.Column('date', sa.Date(), nullable=False),
            sa.Column('note', sa.Text()),
            sa.Column('is_auto_generated', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime()),
            sa.Column('updated_at', sa.DateTime()),
        )
        op.create_index('ix_expenses_user_id', 'expenses', ['user_id'])
        op.create_index('ix_expenses_bucket_id', 'expenses', ['bucket_id'])

    if 'recurring_expenses' not in tables:
        op.create_table(
            'recurring_expenses',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('bucket_id', sa.Integer(), sa.ForeignKey('buckets.id'), nullable=False),
            sa.Column('name', sa.String(100), nullable=False),
            sa.Column('amount', MONEY, nullable=False),
            sa.Column('day_of_month', sa.Integer(), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('last_posted_date', sa.Date()),
            sa.Column('created_at', sa.DateTime()),
        )
        op.create_index('ix_recurring_expenses_user_id', 'recurring_expenses', ['user_id'])

    if 'rollover_runs' not in tables:
        op.create_table(
            'rollover_runs',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
            sa.Column('period', sa.String(7), nullable=False),
            sa.Column('trigger', sa.String(20), nullable=False),
            sa.Column('performed_at', sa.DateTime(), nullable=False),
            sa.Column('buckets_processed', sa.Integer(), nullable=False),
            sa.Column('run_count', sa.Integer(), nullable=False),
            sa.UniqueConstraint('user_id', 'period'),
        )
        op.create_index('ix_rollover_runs_user_id', 'rollover_runs', ['user_id'])

    if 'rollover_entries' not in tables:
        op.create_table(
            'rollover_entries',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('run_id', sa.Integer(), sa.ForeignKey('rollover_runs.id', ondelete='CASCADE'), nullable=False),
            sa.Column('bucket_id', sa.Integer(), sa.ForeignKey('buckets.id'), nullable=False),
            sa.Column('bucket_mode', sa.String(20), nullable=False),
            sa.Column('period', sa.String(7), nullable=False),
            sa.Column('cycle_start', sa.Date()),
            sa.Column('previous_carryover', MONEY),
            sa.Column('previous_funded', MONEY),
            sa.Column('spent', MONEY),
            sa.Column('carryover', MONEY),
            sa.Column('new_funded', MONEY),
            sa.Column('late_adjustment', MONEY),
            sa.Column('settled_spent', MONEY),
            sa.Column('previous_balance', MONEY),
            sa.Column('contribution', MONEY),
            sa.Column('new_balance', MONEY),
            sa.Column('auto_expense_id', sa.Integer(), sa.ForeignKey('expenses.id', ondelete='SET NULL')),
            sa.Column('message', sa.String(255)),
            sa.UniqueConstraint('bucket_id', 'period'),
        )
        op.create_index('ix_rollover_entries_bucket_id', 'rollover_entries', ['bucket_id'])


def downgrade():
    op.drop_table('rollover_entries')
    op.drop_table('rollover_runs')
    op.drop_table('recurring_expenses')
    op.drop_table('expenses')
    op.drop_table('income')
    op.drop_table('buckets')
    op.drop_table('users')
