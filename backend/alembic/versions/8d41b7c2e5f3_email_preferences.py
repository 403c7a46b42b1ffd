"""email_preferences

Revision ID: 8d41b7c2e5f3
Revises: 3f1c8e2a9b70
Create Date: 2026-10-26 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '8d41b7c2e5f3'
down_revision: Union[str, None] = '3f1c8e2a9b70'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'email_preferences',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('notify_status_change', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('notify_new_comment', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('notify_assignment', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('notify_sla_warning', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_email_preferences_user_id'),
    )


def downgrade() -> None:
    op.drop_table('email_preferences')
