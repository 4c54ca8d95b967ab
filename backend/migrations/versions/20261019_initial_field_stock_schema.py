"""Initial field stock schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19

Creates:
1. Identity: users, session_tokens, user_permission_overrides
2. Catalog mirror: products
3. Field: agents, agent_visits, agent_heartbeats, journey_plans, journey_plan_stops
4. Sales: invoices, invoice_items
5. Loads: stock_loads, stock_load_items
6. Settlement: reconciliations, reconciliation_items
7. Audit + numbering: audit_events, document_sequences
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False, server_default=True):
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text('(CURRENT_TIMESTAMP)') if server_default else None,
        nullable=nullable,
    )


def upgrade():
    # ==========================================================================
    # 1. IDENTITY
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('last_login_at', nullable=True, server_default=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_users_username'), ['username'], unique=False)
        batch_op.create_index(batch_op.f('ix_users_role'), ['role'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        _timestamp('created_at'),
        _timestamp('last_used_at'),
        _timestamp('expires_at', server_default=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        _timestamp('revoked_at', nullable=True, server_default=False),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_session_tokens_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_token_hash'), ['token_hash'], unique=True)
        batch_op.create_index(batch_op.f('ix_session_tokens_expires_at'), ['expires_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_session_tokens_is_revoked'), ['is_revoked'], unique=False)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)

    op.create_table('user_permission_overrides',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('permission_code', sa.String(length=64), nullable=False),
        sa.Column('override_type', sa.String(length=8), nullable=False),
        sa.Column('granted_by_user_id', sa.Integer(), nullable=False),
        _timestamp('granted_at'),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('revoked_by_user_id', sa.Integer(), nullable=True),
        _timestamp('revoked_at', nullable=True, server_default=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['granted_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['revoked_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'permission_code', name='uq_user_perm_override'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_permission_overrides', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_permission_overrides_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_user_permission_overrides_permission_code'), ['permission_code'], unique=False)
        batch_op.create_index(batch_op.f('ix_user_permission_overrides_is_active'), ['is_active'], unique=False)
        batch_op.create_index('ix_user_perm_overrides_user', ['user_id'], unique=False)

    # ==========================================================================
    # 2. CATALOG MIRROR
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku', name='uq_products_sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_active', ['is_active'], unique=False)

    # ==========================================================================
    # 3. FIELD
    # ==========================================================================
    op.create_table('agents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('monthly_target_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_agents_user'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('agents', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_agents_user_id'), ['user_id'], unique=False)

    # ==========================================================================
    # 4. SALES
    # ==========================================================================
    op.create_table('invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False, server_default='cash'),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='paid'),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('offline_created', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        _timestamp('created_at', server_default=False),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number', name='uq_invoices_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invoices_agent_id'), ['agent_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoices_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index('ix_invoices_agent_created', ['agent_id', 'created_at'], unique=False)

    op.create_table('invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_invoice_items_quantity_positive'),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoice_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_invoice_items_invoice_id'), ['invoice_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_invoice_items_product_id'), ['product_id'], unique=False)

    op.create_table('agent_visits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('visit_date', sa.Date(), nullable=False),
        sa.Column('visit_type', sa.String(length=16), nullable=False, server_default='scheduled'),
        _timestamp('check_in_at', nullable=True, server_default=False),
        _timestamp('check_out_at', nullable=True, server_default=False),
        sa.Column('outcome', sa.String(length=32), nullable=True),
        sa.Column('invoice_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('agent_visits', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_agent_visits_agent_id'), ['agent_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_agent_visits_customer_id'), ['customer_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_agent_visits_invoice_id'), ['invoice_id'], unique=False)
        batch_op.create_index('ix_agent_visits_agent_date', ['agent_id', 'visit_date'], unique=False)

    op.create_table('agent_heartbeats',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        _timestamp('last_seen_at', server_default=False),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('agent_heartbeats', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_agent_heartbeats_agent_id'), ['agent_id'], unique=True)

    op.create_table('journey_plans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('plan_date', sa.Date(), nullable=True),
        sa.Column('day_of_week', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='planned'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        sa.CheckConstraint('(plan_date IS NULL) <> (day_of_week IS NULL)', name='ck_journey_plans_date_or_weekday'),
        sa.CheckConstraint('day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)', name='ck_journey_plans_day_of_week'),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('journey_plans', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_journey_plans_agent_id'), ['agent_id'], unique=False)
        batch_op.create_index('ix_journey_plans_agent_weekday', ['agent_id', 'day_of_week'], unique=False)
        batch_op.create_index('ix_journey_plans_agent_date', ['agent_id', 'plan_date'], unique=False)

    op.create_table('journey_plan_stops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('journey_plan_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['journey_plan_id'], ['journey_plans.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('journey_plan_id', 'sequence', name='uq_journey_plan_stops_seq'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('journey_plan_stops', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_journey_plan_stops_journey_plan_id'), ['journey_plan_id'], unique=False)

    # ==========================================================================
    # 5. LOADS
    # ==========================================================================
    op.create_table('stock_loads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='requested'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('requested_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('released_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejected_by_user_id', sa.Integer(), nullable=True),
        _timestamp('requested_at', server_default=False),
        _timestamp('approved_at', nullable=True, server_default=False),
        _timestamp('released_at', nullable=True, server_default=False),
        _timestamp('rejected_at', nullable=True, server_default=False),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['requested_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['released_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['rejected_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_loads', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_loads_agent_id'), ['agent_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_loads_status'), ['status'], unique=False)
        batch_op.create_index('ix_stock_loads_agent_status_released', ['agent_id', 'status', 'released_at'], unique=False)

    op.create_table('stock_load_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stock_load_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('requested_quantity', sa.Integer(), nullable=False),
        sa.Column('approved_quantity', sa.Integer(), nullable=True),
        sa.Column('released_quantity', sa.Integer(), nullable=True),
        sa.CheckConstraint('requested_quantity >= 0', name='ck_stock_load_items_requested_nonneg'),
        sa.ForeignKeyConstraint(['stock_load_id'], ['stock_loads.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stock_load_id', 'product_id', name='uq_stock_load_items_product'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_load_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_stock_load_items_stock_load_id'), ['stock_load_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_stock_load_items_product_id'), ['product_id'], unique=False)

    # ==========================================================================
    # 6. SETTLEMENT
    # ==========================================================================
    op.create_table('reconciliations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='submitted'),
        sa.Column('total_loaded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_returned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cash_collected_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('expected_cash_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('variance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('supersedes_id', sa.Integer(), nullable=True),
        sa.Column('submitted_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('disputed_by_user_id', sa.Integer(), nullable=True),
        _timestamp('submitted_at', nullable=True, server_default=False),
        _timestamp('approved_at', nullable=True, server_default=False),
        _timestamp('disputed_at', nullable=True, server_default=False),
        _timestamp('created_at'),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['supersedes_id'], ['reconciliations.id'], ),
        sa.ForeignKeyConstraint(['submitted_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['disputed_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('reconciliations', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reconciliations_agent_id'), ['agent_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_reconciliations_status'), ['status'], unique=False)
        batch_op.create_index('ix_reconciliations_agent_date', ['agent_id', 'date'], unique=False)
        batch_op.create_index(
            'uq_reconciliations_open_agent_date',
            ['agent_id', 'date'],
            unique=True,
            sqlite_where=sa.text("status IN ('submitted', 'approved')"),
            postgresql_where=sa.text("status IN ('submitted', 'approved')"),
        )

    op.create_table('reconciliation_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reconciliation_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('loaded_quantity', sa.Integer(), nullable=False),
        sa.Column('sold_quantity', sa.Integer(), nullable=False),
        sa.Column('returned_quantity', sa.Integer(), nullable=False),
        sa.Column('remaining_quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('total_value_cents', sa.Integer(), nullable=False),
        sa.CheckConstraint(
            'loaded_quantity = sold_quantity + returned_quantity + remaining_quantity',
            name='ck_reconciliation_items_conservation',
        ),
        sa.ForeignKeyConstraint(['reconciliation_id'], ['reconciliations.id'], ),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('reconciliation_id', 'product_id', name='uq_reconciliation_items_product'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('reconciliation_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_reconciliation_items_reconciliation_id'), ['reconciliation_id'], unique=False)

    # ==========================================================================
    # 7. AUDIT + NUMBERING
    # ==========================================================================
    op.create_table('audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('event_category', sa.String(length=32), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('actor_user_id', sa.Integer(), nullable=True),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        _timestamp('occurred_at'),
        _timestamp('created_at'),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('payload', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['actor_user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('audit_events', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_audit_events_event_type'), ['event_type'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_events_event_category'), ['event_category'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_events_actor_user_id'), ['actor_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_events_agent_id'), ['agent_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_audit_events_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_audit_events_entity', ['entity_type', 'entity_id'], unique=False)

    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_doc_sequences_type'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('document_sequences', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_document_sequences_document_type'), ['document_type'], unique=False)


def downgrade():
    for table in (
        'document_sequences',
        'audit_events',
        'reconciliation_items',
        'reconciliations',
        'stock_load_items',
        'stock_loads',
        'journey_plan_stops',
        'journey_plans',
        'agent_heartbeats',
        'agent_visits',
        'invoice_items',
        'invoices',
        'agents',
        'products',
        'user_permission_overrides',
        'session_tokens',
        'users',
    ):
        op.drop_table(table)
