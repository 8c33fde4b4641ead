"""Initial schema

Revision ID: 001
Revises: 
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'user_role': ('super_admin', 'tenant_owner', 'customer'),
    'user_status': ('active', 'inactive', 'pending'),
    'tenant_status': ('active', 'inactive'),
    'tenant_plan': ('launch', 'pro', 'studio'),
    'domain_status': ('none', 'pending', 'active'),
    'license_type': ('mp3', 'wav', 'stems', 'exclusive'),
    'order_status': ('pending', 'completed', 'failed'),
    'payment_provider': ('stripe', 'paypal'),
    'order_item_type': ('beat', 'sound_kit'),
    'discount_type': ('percentage', 'fixed'),
    'offer_status': ('pending', 'accepted', 'rejected', 'countered'),
}


def enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(),
                  onupdate=sa.func.now(), nullable=False),
    ]


def tenant_fk() -> sa.Column:
    return sa.Column('tenant_id', postgresql.UUID(as_uuid=True),
                     sa.ForeignKey('tenants.id', ondelete='SET NULL'), nullable=True)


def upgrade() -> None:
    for name, values in ENUMS.items():
        quoted = ", ".join(f"'{v}'" for v in values)
        op.execute(f"CREATE TYPE {name} AS ENUM ({quoted})")

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', enum('user_role'), nullable=False, server_default='customer'),
        sa.Column('status', enum('user_status'), nullable=False, server_default='active'),
        sa.Column('last_login_at', sa.DateTime(timezone=True)),
        *timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'])

    op.create_table(
        'tenants',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False, unique=True),
        sa.Column('custom_domain', sa.String(255), unique=True),
        sa.Column('domain_status', enum('domain_status'), nullable=False, server_default='none'),
        sa.Column('plan', enum('tenant_plan'), nullable=False, server_default='launch'),
        sa.Column('status', enum('tenant_status'), nullable=False, server_default='active'),
        sa.Column('owner_user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('branding', postgresql.JSONB, server_default='{}'),
        sa.Column('stripe_payment_id', sa.String(255), unique=True),
        *timestamps(),
    )
    op.create_index('ix_tenants_slug', 'tenants', ['slug'])
    op.create_index('ix_tenants_owner_user_id', 'tenants', ['owner_user_id'])

    op.create_table(
        'tenant_domains',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('domain', sa.String(255), nullable=False, unique=True),
        sa.Column('status', enum('domain_status'), nullable=False, server_default='pending'),
        sa.Column('verification_token', sa.String(64)),
        sa.Column('verified_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_tenant_domains_tenant_id', 'tenant_domains', ['tenant_id'])
    op.create_index('ix_tenant_domains_domain', 'tenant_domains', ['domain'])

    op.create_table(
        'beats',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        tenant_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('bpm', sa.Integer),
        sa.Column('genre', sa.String(100)),
        sa.Column('mood', sa.String(100)),
        sa.Column('cover_image_path', sa.String(500)),
        sa.Column('mp3_file_path', sa.String(500)),
        sa.Column('wav_file_path', sa.String(500)),
        sa.Column('stems_file_path', sa.String(500)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        *timestamps(),
    )
    op.create_index('ix_beats_tenant_id', 'beats', ['tenant_id'])

    op.create_table(
        'license_tiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        tenant_fk(),
        sa.Column('beat_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('beats.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('type', enum('license_type'), nullable=False, server_default='mp3'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('includes', postgresql.JSONB, server_default='[]'),
        sa.Column('license_pdf_path', sa.String(500)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        *timestamps(),
    )
    op.create_index('ix_license_tiers_beat_id', 'license_tiers', ['beat_id'])
    op.create_index('ix_license_tiers_tenant_id', 'license_tiers', ['tenant_id'])

    op.create_table(
        'sound_kits',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        tenant_fk(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('category', sa.String(100)),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('cover_image_path', sa.String(500)),
        sa.Column('file_path', sa.String(500)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        *timestamps(),
    )
    op.create_index('ix_sound_kits_tenant_id', 'sound_kits', ['tenant_id'])

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        tenant_fk(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('customer_name', sa.String(255)),
        sa.Column('total', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', enum('order_status'), nullable=False, server_default='pending'),
        sa.Column('payment_provider', enum('payment_provider'), nullable=False),
        sa.Column('provider_order_id', sa.String(255)),
        sa.Column('payment_transaction_id', sa.String(255)),
        sa.Column('discount_code', sa.String(100)),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('download_expires_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        *timestamps(),
    )
    op.create_index('ix_orders_tenant_id', 'orders', ['tenant_id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_customer_email', 'orders', ['customer_email'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_provider_order_id', 'orders', ['provider_order_id'])

    op.create_table(
        'order_items',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('order_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        tenant_fk(),
        sa.Column('item_type', enum('order_item_type'), nullable=False, server_default='beat'),
        sa.Column('beat_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('beats.id', ondelete='SET NULL')),
        sa.Column('license_tier_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('license_tiers.id', ondelete='SET NULL')),
        sa.Column('sound_kit_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('sound_kits.id', ondelete='SET NULL')),
        sa.Column('beat_title', sa.String(255)),
        sa.Column('item_title', sa.String(255)),
        sa.Column('license_name', sa.String(100)),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('download_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_tenant_id', 'order_items', ['tenant_id'])

    op.create_table(
        'discount_codes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        tenant_fk(),
        sa.Column('code', sa.String(100), nullable=False),
        sa.Column('discount_type', enum('discount_type'), nullable=False, server_default='percentage'),
        sa.Column('discount_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('min_order_amount', sa.Numeric(10, 2)),
        sa.Column('max_uses', sa.Integer),
        sa.Column('current_uses', sa.Integer, nullable=False, server_default='0'),
        sa.Column('starts_at', sa.DateTime(timezone=True)),
        sa.Column('expires_at', sa.DateTime(timezone=True)),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default='true'),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'code', name='uq_discount_codes_tenant_code'),
    )
    op.create_index('ix_discount_codes_code', 'discount_codes', ['code'])
    op.create_index('ix_discount_codes_tenant_id', 'discount_codes', ['tenant_id'])

    op.create_table(
        'exclusive_offers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        tenant_fk(),
        sa.Column('beat_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('beats.id', ondelete='CASCADE'), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('offer_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('status', enum('offer_status'), nullable=False, server_default='pending'),
        *timestamps(),
    )
    op.create_index('ix_exclusive_offers_beat_id', 'exclusive_offers', ['beat_id'])
    op.create_index('ix_exclusive_offers_customer_email', 'exclusive_offers', ['customer_email'])

    op.create_table(
        'payment_settings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('setting_key', sa.String(100), nullable=False, unique=True),
        sa.Column('setting_value', sa.Text),
        *timestamps(),
    )


def downgrade() -> None:
    # Drop tables in reverse order
    op.drop_table('payment_settings')
    op.drop_table('exclusive_offers')
    op.drop_table('discount_codes')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('sound_kits')
    op.drop_table('license_tiers')
    op.drop_table('beats')
    op.drop_table('tenant_domains')
    op.drop_table('tenants')
    op.drop_table('users')

    for name in reversed(list(ENUMS)):
        op.execute(f'DROP TYPE IF EXISTS {name}')
