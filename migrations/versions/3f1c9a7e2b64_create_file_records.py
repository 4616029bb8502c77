"""Create file_records table

Revision ID: 3f1c9a7e2b64
Revises:
Create Date: 2026-10-19 17:20:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '3f1c9a7e2b64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'file_records',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('original_name', sa.String(length=500), nullable=False),
        sa.Column('stored_name', sa.String(length=500), nullable=False),
        sa.Column('file_path', sa.String(length=1000), nullable=False),
        sa.Column('file_type', sa.String(length=255), nullable=False),
        sa.Column('file_size', sa.BigInteger(), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('views', sa.Integer(), server_default='0', nullable=False),
        sa.Column('downloads', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_file_records_created_at', 'file_records', ['created_at'])
    op.create_index('ix_file_records_expires_at', 'file_records', ['expires_at'])


def downgrade() -> None:
    op.drop_index('ix_file_records_expires_at', table_name='file_records')
    op.drop_index('ix_file_records_created_at', table_name='file_records')
    op.drop_table('file_records')
