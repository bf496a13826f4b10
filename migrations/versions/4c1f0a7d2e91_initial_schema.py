"""Initial schema: users, accounts, movements, contacts, reports

Revision ID: 4c1f0a7d2e91
Revises:
Create Date: 2026-10-19 10:12:31.408215

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1f0a7d2e91'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table('user_contexts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('data', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )

    op.create_table('accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('bank', sa.String(length=100), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_accounts_user_id'), 'accounts', ['user_id'], unique=False)

    op.create_table('movements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=10), nullable=False),
        sa.Column('concept', sa.String(length=10), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('is_loan', sa.Boolean(), nullable=False),
        sa.Column('loan_type', sa.String(length=10), nullable=True),
        sa.Column('original_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('participants', sa.Integer(), nullable=True),
        sa.Column('pending_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('related_people', sa.Text(), nullable=True),
        sa.Column('loan_status', sa.String(length=10), nullable=True),
        sa.Column('related_movement_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], ),
        sa.ForeignKeyConstraint(['related_movement_id'], ['movements.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_movements_account_id'), 'movements', ['account_id'], unique=False)
    op.create_index(op.f('ix_movements_date'), 'movements', ['date'], unique=False)
    op.create_index('idx_movement_account_date', 'movements', ['account_id', 'date'], unique=False)
    op.create_index('idx_movement_loan_status', 'movements', ['is_loan', 'loan_status'], unique=False)

    op.create_table('contacts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('email', sa.String(length=120), nullable=True),
        sa.Column('nickname', sa.String(length=50), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_contacts_user_id'), 'contacts', ['user_id'], unique=False)

    op.create_table('email_reports',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('report_type', sa.String(length=30), nullable=False),
        sa.Column('frequency', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_sent', sa.DateTime(), nullable=True),
        sa.Column('next_send', sa.DateTime(), nullable=True),
        sa.Column('config', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_email_reports_user_id'), 'email_reports', ['user_id'], unique=False)
    op.create_index(op.f('ix_email_reports_next_send'), 'email_reports', ['next_send'], unique=False)


def downgrade():
    op.drop_index(op.f('ix_email_reports_next_send'), table_name='email_reports')
    op.drop_index(op.f('ix_email_reports_user_id'), table_name='email_reports')
    op.drop_table('email_reports')
    op.drop_index(op.f('ix_contacts_user_id'), table_name='contacts')
    op.drop_table('contacts')
    op.drop_index('idx_movement_loan_status', table_name='movements')
    op.drop_index('idx_movement_account_date', table_name='movements')
    op.drop_index(op.f('ix_movements_date'), table_name='movements')
    op.drop_index(op.f('ix_movements_account_id'), table_name='movements')
    op.drop_table('movements')
    op.drop_index(op.f('ix_accounts_user_id'), table_name='accounts')
    op.drop_table('accounts')
    op.drop_table('user_contexts')
    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
