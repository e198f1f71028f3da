"""create sites table

Revision ID: b7e2d41c09a3
Revises:
Create Date: 2026-10-19 10:12:44.118203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7e2d41c09a3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'sites',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('subdomain', sa.String(length=63), nullable=False),
        sa.Column('template', sa.Text(), nullable=False),
        sa.Column('color', sa.Text(), nullable=False),
        sa.Column('html', sa.Text(), nullable=False),
        sa.Column('view_count', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_accessed_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sites_subdomain', 'sites', ['subdomain'], unique=True)


def downgrade():
    op.drop_index('ix_sites_subdomain', table_name='sites')
    op.drop_table('sites')
