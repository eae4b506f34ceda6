"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-03-02
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table('events',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('organizer_id', sa.String(length=255), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('date', sa.DateTime(), nullable=True),
        sa.Column('venue', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('published_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])
    op.create_index('ix_events_date', 'events', ['date'])
    op.create_index('ix_events_status', 'events', ['status'])
    op.create_table('ticket_types',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_id', sa.String(length=36), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('price', sa.Numeric(10,2), nullable=False),
        sa.Column('quantity_available', sa.Integer(), nullable=True),
    )
    op.create_index('ix_ticket_types_event_id', 'ticket_types', ['event_id'])
    op.create_table('orders',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('external_session_id', sa.String(length=255), nullable=False),
        sa.Column('event_id', sa.String(length=36), sa.ForeignKey('events.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=64), nullable=True),
        sa.Column('payment_method', sa.String(length=32), nullable=False, server_default='stripe'),
        sa.Column('total_amount', sa.Numeric(10,2), nullable=False, server_default='0'),
        sa.Column('payment_status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        # one order per checkout session; redelivered webhooks update this row
        sa.UniqueConstraint('external_session_id', name='uq_orders_external_session_id'),
    )
    op.create_index('ix_orders_external_session_id', 'orders', ['external_session_id'])
    op.create_index('ix_orders_event_id', 'orders', ['event_id'])
    op.create_index('ix_orders_customer_email', 'orders', ['customer_email'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])
    op.create_table('tickets',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('order_id', sa.String(length=36), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ticket_code', sa.String(length=64), nullable=False),
        sa.Column('ticket_type', sa.String(length=120), nullable=False, server_default='Standard'),
        sa.Column('qr_code_data', sa.Text(), nullable=False),
        sa.Column('is_used', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('used_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('ticket_code', name='uq_tickets_ticket_code'),
    )
    op.create_index('ix_tickets_order_id', 'tickets', ['order_id'])
    op.create_index('ix_tickets_ticket_code', 'tickets', ['ticket_code'])

def downgrade():
    op.drop_index('ix_tickets_ticket_code', table_name='tickets')
    op.drop_index('ix_tickets_order_id', table_name='tickets')
    op.drop_table('tickets')
    op.drop_index('ix_orders_payment_status', table_name='orders')
    op.drop_index('ix_orders_customer_email', table_name='orders')
    op.drop_index('ix_orders_event_id', table_name='orders')
    op.drop_index('ix_orders_external_session_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_ticket_types_event_id', table_name='ticket_types')
    op.drop_table('ticket_types')
    op.drop_index('ix_events_status', table_name='events')
    op.drop_index('ix_events_date', table_name='events')
    op.drop_index('ix_events_organizer_id', table_name='events')
    op.drop_table('events')
