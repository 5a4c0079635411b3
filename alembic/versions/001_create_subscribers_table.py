"""Create subscribers table

Revision ID: 001_create_subscribers_table
Revises:
Create Date: 2025-03-01

Verified newsletter subscribers. The unique constraint on email is what
keeps concurrent verifications of the same address down to one row.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_create_subscribers_table'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create subscribers with a unique email constraint"""
    op.create_table('subscribers',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('verified', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('email', name='uq_subscribers_email'),
    )


def downgrade():
    """Drop subscribers table"""
    op.drop_table('subscribers')
