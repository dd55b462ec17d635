"""create users, bills, budgets, and goals tables

Revision ID: 3c1f9a2b7d40
Revises:
Create Date: 2025-07-05 13:59:18.023282

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


recurrence_type = sa.Enum('MONTHLY', 'WEEKLY', 'YEARLY', 'CUSTOM', name='recurrencetype')
budget_period = sa.Enum('MONTHLY', 'WEEKLY', 'YEARLY', name='budgetperiod')
goal_type = sa.Enum('SAVINGS', 'DEBT_PAYOFF', 'INVESTMENT', 'EMERGENCY_FUND', 'VACATION', 'PURCHASE', 'OTHER', name='goaltype')
goal_priority = sa.Enum('LOW', 'MEDIUM', 'HIGH', name='goalpriority')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True, default=None),
        sa.UniqueConstraint('email', name='uq_user_email'),
        sa.UniqueConstraint('username', name='uq_user_username'),
    )
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'bills',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('is_auto_pay', sa.Boolean, nullable=False, default=False),
        sa.Column('reminder_days', sa.JSON, nullable=True),
        sa.Column('due_date', sa.DateTime, nullable=False),
        sa.Column('recurrence_type', recurrence_type, nullable=False),
        sa.Column('recurrence_interval', sa.Integer, nullable=False, default=1),
        sa.Column('recurrence_end_date', sa.DateTime, nullable=True),
        sa.Column('next_due_date', sa.DateTime, nullable=False),
        sa.Column('last_paid_date', sa.DateTime, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, default=True),
        sa.Column('created_at', sa.DateTime, nullable=False, default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True, default=None),
        sa.CheckConstraint('recurrence_interval >= 1', name='ck_bills_interval_positive'),
    )
    op.create_index('idx_bills_user_active', 'bills', ['user_id', 'is_active'])
    op.create_index('idx_bills_user_next_due', 'bills', ['user_id', 'next_due_date'])
    op.create_index('idx_bills_user_category', 'bills', ['user_id', 'category'])
    op.create_index('idx_bills_next_due_active', 'bills', ['next_due_date', 'is_active'])

    op.create_table(
        'budgets',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('limit', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('period', budget_period, nullable=False),
        sa.Column('spent', sa.DECIMAL(15, 2), nullable=False, default=0),
        sa.Column('start_date', sa.DateTime, nullable=False),
        sa.Column('end_date', sa.DateTime, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, default=True),
        sa.Column('notify_at_75_percent', sa.Boolean, nullable=False, default=True),
        sa.Column('notify_at_90_percent', sa.Boolean, nullable=False, default=True),
        sa.Column('notify_at_limit', sa.Boolean, nullable=False, default=True),
        sa.Column('created_at', sa.DateTime, nullable=False, default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True, default=None),
        sa.CheckConstraint('start_date < end_date', name='ck_budgets_window'),
    )
    op.create_index('idx_budgets_user_active', 'budgets', ['user_id', 'is_active'])
    op.create_index('idx_budgets_user_category', 'budgets', ['user_id', 'category'])
    op.create_index('idx_budgets_user_window', 'budgets', ['user_id', 'start_date', 'end_date'])

    op.create_table(
        'goals',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer, sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('target_amount', sa.DECIMAL(15, 2), nullable=False),
        sa.Column('current_amount', sa.DECIMAL(15, 2), nullable=False, default=0),
        sa.Column('target_date', sa.DateTime, nullable=False),
        sa.Column('goal_type', goal_type, nullable=False),
        sa.Column('priority', goal_priority, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, default=True),
        sa.Column('is_achieved', sa.Boolean, nullable=False, default=False),
        sa.Column('achieved_date', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, nullable=True, default=None),
    )
    op.create_index('idx_goals_user_active', 'goals', ['user_id', 'is_active'])
    op.create_index('idx_goals_user_type', 'goals', ['user_id', 'goal_type'])
    op.create_index('idx_goals_user_priority', 'goals', ['user_id', 'priority'])
    op.create_index('idx_goals_user_target_date', 'goals', ['user_id', 'target_date'])
    op.create_index('idx_goals_user_achieved', 'goals', ['user_id', 'is_achieved'])


def downgrade() -> None:
    op.drop_table('goals')
    op.drop_table('budgets')
    op.drop_table('bills')
    op.drop_table('users')
