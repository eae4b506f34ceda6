"""add order event_title and reminder_sent_at

Revision ID: 0002_order_reminders
Revises: 0001_initial
Create Date: 2026-03-09
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0002_order_reminders'
down_revision: Union[str, None] = '0001_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.add_column('orders', sa.Column('event_title', sa.String(length=255), nullable=True))
    op.add_column('orders', sa.Column('reminder_sent_at', sa.DateTime(), nullable=True))
    # pay-on-day reminder scan
    op.create_index('ix_orders_reminder_due', 'orders', ['payment_status', 'reminder_sent_at'])


def downgrade() -> None:
    op.drop_index('ix_orders_reminder_due', table_name='orders')
    op.drop_column('orders', 'reminder_sent_at')
    op.drop_column('orders', 'event_title')
