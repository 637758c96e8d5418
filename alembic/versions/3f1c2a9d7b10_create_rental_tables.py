"""create properties, units and bookings

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2025-02-14 10:12:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


propertystatus_enum = sa.Enum('ACTIVE', 'INACTIVE', 'ARCHIVED', name='propertystatus')
bookingstatus_enum = sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', 'COMPLETED', name='bookingstatus')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'properties',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('landlord_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('city', sa.String(length=100), nullable=False),
        sa.Column('state', sa.String(length=100), nullable=False),
        sa.Column('status', propertystatus_enum, nullable=False, server_default='ACTIVE'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_properties_id', 'properties', ['id'])
    op.create_index('ix_properties_landlord_id', 'properties', ['landlord_id'])
    op.create_index('ix_properties_city', 'properties', ['city'])
    op.create_index('ix_properties_state', 'properties', ['state'])

    op.create_table(
        'units',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('property_id', sa.Integer(), sa.ForeignKey('properties.id'), nullable=False),
        sa.Column('unit_number', sa.String(length=50), nullable=False),
        sa.Column('bedroom_count', sa.Integer(), nullable=False),
        sa.Column('bathroom_count', sa.Integer(), nullable=False),
        sa.Column('size', sa.Integer(), nullable=False),
        sa.Column('price_per_month', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('booking_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_units_id', 'units', ['id'])
    op.create_index('ix_units_property_id', 'units', ['property_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('unit_id', sa.Integer(), sa.ForeignKey('units.id'), nullable=False),
        sa.Column('property_id', sa.Integer(), sa.ForeignKey('properties.id'), nullable=False),
        sa.Column('check_in_date', sa.DateTime(), nullable=False),
        sa.Column('check_out_date', sa.DateTime(), nullable=False),
        sa.Column('status', bookingstatus_enum, nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('check_in_date < check_out_date', name='ck_bookings_dates_ordered'),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_tenant_id', 'bookings', ['tenant_id'])
    op.create_index('ix_bookings_unit_id', 'bookings', ['unit_id'])
    op.create_index('ix_bookings_property_id', 'bookings', ['property_id'])
    op.create_index(
        'ix_bookings_unit_status_dates', 'bookings',
        ['unit_id', 'status', 'check_in_date', 'check_out_date'],
    )

    # --- No two active bookings may overlap on one unit (PostgreSQL only) ---
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
        op.execute(
            "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_active_unit_dates "
            "EXCLUDE USING gist ("
            "unit_id WITH =, tsrange(check_in_date, check_out_date, '[)') WITH &&"
            ") WHERE (status IN ('PENDING', 'APPROVED'))"
        )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('bookings')
    op.drop_table('units')
    op.drop_table('properties')

    if op.get_bind().dialect.name == 'postgresql':
        bookingstatus_enum.drop(op.get_bind(), checkfirst=True)
        propertystatus_enum.drop(op.get_bind(), checkfirst=True)
