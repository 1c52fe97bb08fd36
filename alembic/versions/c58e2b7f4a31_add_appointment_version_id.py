"""add_appointment_version_id

Revision ID: c58e2b7f4a31
Revises: a41f7c2d9e10
Create Date: 2026-10-19 15:40:07.902115

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c58e2b7f4a31'
down_revision: Union[str, Sequence[str], None] = 'a41f7c2d9e10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('appointments') as batch_op:
        batch_op.add_column(sa.Column('version_id', sa.Integer(), server_default='1', nullable=False))


def downgrade() -> None:
    with op.batch_alter_table('appointments') as batch_op:
        batch_op.drop_column('version_id')
