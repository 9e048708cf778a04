"""tracker_baseline

Revision ID: 4c1e9a7d2b03
Revises:
Create Date: 2026-10-19 09:12:41.512044

Production-safe migration: Only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '4c1e9a7d2b03'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    """Create users, subscriptions, quota-bound entities and their dependents."""
    if not table_exists('users'):
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('full_name', sa.String(), nullable=True),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
        op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    if not table_exists('user_subscriptions'):
        op.create_table('user_subscriptions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('tier', sa.String(), nullable=False, server_default='free'),
            sa.Column('status', sa.String(), nullable=False, server_default='active'),
            sa.Column('plan_start_date', sa.Date(), nullable=True),
            sa.Column('plan_expiry_date', sa.Date(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id')
        )
        op.create_index(op.f('ix_user_subscriptions_id'), 'user_subscriptions', ['id'], unique=False)
        op.create_index(op.f('ix_user_subscriptions_plan_expiry_date'), 'user_subscriptions', ['plan_expiry_date'], unique=False)

    if not table_exists('companies'):
        op.create_table('companies',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('website', sa.String(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_companies_id'), 'companies', ['id'], unique=False)
        op.create_index(op.f('ix_companies_user_id'), 'companies', ['user_id'], unique=False)
        op.create_index('idx_companies_user_created', 'companies', ['user_id', 'created_at'], unique=False)

    if not table_exists('contacts'):
        op.create_table('contacts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('company_id', sa.Integer(), nullable=True),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_contacts_id'), 'contacts', ['id'], unique=False)
        op.create_index(op.f('ix_contacts_user_id'), 'contacts', ['user_id'], unique=False)
        op.create_index('idx_contacts_user_created', 'contacts', ['user_id', 'created_at'], unique=False)

    if not table_exists('job_openings'):
        op.create_table('job_openings',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('company_id', sa.Integer(), nullable=True),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=True),
            sa.Column('job_url', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_job_openings_id'), 'job_openings', ['id'], unique=False)
        op.create_index(op.f('ix_job_openings_user_id'), 'job_openings', ['user_id'], unique=False)
        op.create_index('idx_job_openings_user_created', 'job_openings', ['user_id', 'created_at'], unique=False)

    if not table_exists('job_opening_contacts'):
        op.create_table('job_opening_contacts',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('job_opening_id', sa.Integer(), nullable=False),
            sa.Column('contact_id', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.ForeignKeyConstraint(['job_opening_id'], ['job_openings.id']),
            sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_job_opening_contacts_id'), 'job_opening_contacts', ['id'], unique=False)
        op.create_index(op.f('ix_job_opening_contacts_user_id'), 'job_opening_contacts', ['user_id'], unique=False)
        op.create_index(op.f('ix_job_opening_contacts_job_opening_id'), 'job_opening_contacts', ['job_opening_id'], unique=False)
        op.create_index(op.f('ix_job_opening_contacts_contact_id'), 'job_opening_contacts', ['contact_id'], unique=False)

    if not table_exists('follow_ups'):
        op.create_table('follow_ups',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('job_opening_id', sa.Integer(), nullable=False),
            sa.Column('follow_up_date', sa.Date(), nullable=True),
            sa.Column('email_subject', sa.String(), nullable=True),
            sa.Column('email_body', sa.Text(), nullable=True),
            sa.Column('status', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['users.id']),
            sa.ForeignKeyConstraint(['job_opening_id'], ['job_openings.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_follow_ups_id'), 'follow_ups', ['id'], unique=False)
        op.create_index(op.f('ix_follow_ups_user_id'), 'follow_ups', ['user_id'], unique=False)
        op.create_index(op.f('ix_follow_ups_job_opening_id'), 'follow_ups', ['job_opening_id'], unique=False)


def downgrade() -> None:
    """Drop tables, dependents first."""
    op.drop_table('follow_ups')
    op.drop_table('job_opening_contacts')
    op.drop_table('job_openings')
    op.drop_table('contacts')
    op.drop_table('companies')
    op.drop_table('user_subscriptions')
    op.drop_table('users')
