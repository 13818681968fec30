"""initial whatsapp integration schema

Revision ID: a1c4e7f20b11
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'a1c4e7f20b11'
down_revision = None
branch_labels = None
depends_on = None


JSONB = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
SYNC_CHECK = "sync_status IN ('pending', 'synced', 'error')"
NOTIFY_CHECK = "status IN ('sent', 'delivered', 'read', 'failed')"


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)


def _business_fk(table: str):
    return sa.ForeignKeyConstraint(
        ['business_id'], ['businesses.id'],
        name=op.f(f'fk_{table}_business_id_businesses'), ondelete='CASCADE',
    )


def upgrade() -> None:
    # ---- 租户 ----
    op.create_table(
        'businesses',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('owner_id', sa.String(length=128), nullable=False),
        sa.Column('admin_ids', JSONB, nullable=False),
        sa.Column('member_ids', JSONB, nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_businesses')),
    )
    op.create_index(op.f('ix_businesses_owner_id'), 'businesses', ['owner_id'])

    op.create_table(
        'whatsapp_configs',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('phone_number_id', sa.String(length=64), nullable=False),
        sa.Column('business_account_id', sa.String(length=64), nullable=True),
        sa.Column('catalog_id', sa.String(length=64), nullable=True),
        sa.Column('app_id', sa.String(length=64), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        _business_fk('whatsapp_configs'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_whatsapp_configs')),
        sa.UniqueConstraint('business_id', name=op.f('uq_whatsapp_configs_business_id')),
    )
    op.create_index(op.f('ix_whatsapp_configs_phone_number_id'), 'whatsapp_configs', ['phone_number_id'])

    # ---- 商品 / 规格 ----
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('category_name', sa.String(length=255), nullable=True),
        sa.Column('brand', sa.String(length=255), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('whatsapp_image_id', sa.String(length=128), nullable=True),
        sa.Column('retailer_id', sa.String(length=255), nullable=True),
        sa.Column('sync_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('sync_error', sa.Text(), nullable=True),
        sa.Column('last_synced', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        _business_fk('products'),
        sa.CheckConstraint(SYNC_CHECK, name=op.f('ck_products_sync_status')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_products')),
    )
    op.create_index('ix_products_business_sync', 'products', ['business_id', 'sync_status'])

    op.create_table(
        'product_options',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('whatsapp_image_id', sa.String(length=128), nullable=True),
        sa.Column('sku', sa.String(length=255), nullable=True),
        sa.Column('sync_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('sync_error', sa.Text(), nullable=True),
        sa.Column('last_synced', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        _business_fk('product_options'),
        sa.ForeignKeyConstraint(
            ['product_id'], ['products.id'],
            name=op.f('fk_product_options_product_id_products'), ondelete='CASCADE',
        ),
        sa.CheckConstraint(SYNC_CHECK, name=op.f('ck_product_options_sync_status')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_product_options')),
    )
    op.create_index(op.f('ix_product_options_product_id'), 'product_options', ['product_id'])
    op.create_index('ix_product_options_business_sync', 'product_options', ['business_id', 'sync_status'])

    # ---- 订单 ----
    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=False),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('tracking_number', sa.String(length=128), nullable=True),
        sa.Column('last_notification_sent', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_notification_type', sa.String(length=32), nullable=True),
        *_timestamps(),
        _business_fk('orders'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_orders')),
    )
    op.create_index(op.f('ix_orders_business_id'), 'orders', ['business_id'])

    # ---- 媒体 ----
    op.create_table(
        'whatsapp_media',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('whatsapp_media_id', sa.String(length=128), nullable=False),
        sa.Column('original_url', sa.Text(), nullable=False),
        sa.Column('purpose', sa.String(length=32), nullable=False),
        sa.Column('reference_id', sa.String(length=64), nullable=True),
        sa.Column('reference_type', sa.String(length=32), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('mime_type', sa.String(length=64), nullable=False, server_default='image/jpeg'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='uploaded'),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        _business_fk('whatsapp_media'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_whatsapp_media')),
    )
    op.create_index(op.f('ix_whatsapp_media_whatsapp_media_id'), 'whatsapp_media', ['whatsapp_media_id'])
    op.create_index(
        'ix_whatsapp_media_business_status_expires', 'whatsapp_media', ['business_id', 'status', 'expires_at'],
    )
    op.create_index(
        'ix_whatsapp_media_reference', 'whatsapp_media', ['business_id', 'reference_id', 'reference_type'],
    )

    op.create_table(
        'resumable_upload_sessions',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('file_handle', sa.Text(), nullable=True),
        sa.Column('file_name', sa.String(length=255), nullable=False),
        sa.Column('file_length', sa.Integer(), nullable=False),
        sa.Column('file_type', sa.String(length=64), nullable=False, server_default='image/jpeg'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='created'),
        *_timestamps(),
        _business_fk('resumable_upload_sessions'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_resumable_upload_sessions')),
    )
    op.create_index(op.f('ix_resumable_upload_sessions_business_id'), 'resumable_upload_sessions', ['business_id'])

    op.create_table(
        'carousel_templates',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('template_name', sa.String(length=512), nullable=False),
        sa.Column('category_name', sa.String(length=255), nullable=False),
        sa.Column('whatsapp_template_id', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('image_handles', JSONB, nullable=False),
        *_timestamps(),
        _business_fk('carousel_templates'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_carousel_templates')),
    )
    op.create_index(op.f('ix_carousel_templates_business_id'), 'carousel_templates', ['business_id'])
    op.create_index(op.f('ix_carousel_templates_whatsapp_template_id'), 'carousel_templates', ['whatsapp_template_id'])

    # ---- 消息 / 通知 / 埋点 ----
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('order_id', sa.String(length=64), nullable=False),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('whatsapp_message_id', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('error_info', JSONB, nullable=True),
        sa.Column('status_updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint(NOTIFY_CHECK, name=op.f('ck_notifications_status')),
        _business_fk('notifications'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notifications')),
    )
    op.create_index(op.f('ix_notifications_order_id'), 'notifications', ['order_id'])
    op.create_index(op.f('ix_notifications_whatsapp_message_id'), 'notifications', ['whatsapp_message_id'])
    op.create_index('ix_notifications_business_created', 'notifications', ['business_id', 'created_at'])

    op.create_table(
        'incoming_messages',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=True),
        sa.Column('whatsapp_message_id', sa.String(length=128), nullable=False),
        sa.Column('from_number', sa.String(length=32), nullable=False),
        sa.Column('message_type', sa.String(length=32), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed', sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_incoming_messages')),
    )
    op.create_index(op.f('ix_incoming_messages_business_id'), 'incoming_messages', ['business_id'])
    op.create_index(op.f('ix_incoming_messages_whatsapp_message_id'), 'incoming_messages', ['whatsapp_message_id'])

    op.create_table(
        'analytics',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('business_id', sa.String(length=64), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('data', JSONB, nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_analytics')),
    )
    op.create_index('ix_analytics_business_event_created', 'analytics', ['business_id', 'event_type', 'created_at'])


def downgrade() -> None:
    for table in (
        'analytics', 'incoming_messages', 'notifications', 'carousel_templates',
        'resumable_upload_sessions', 'whatsapp_media', 'orders', 'product_options',
        'products', 'whatsapp_configs', 'businesses',
    ):
        op.drop_table(table)
