"""
Create users and subscription_events.

subscription_events.stripe_event_id is UNIQUE so a redelivered Stripe
webhook can never add a second log row.
"""

from alembic import op
import sqlalchemy as sa

# --- Revision metadata ---
revision = '20261019_01_users_and_subscription_events'
down_revision = None
branch_labels = None
depends_on = None

SUBSCRIPTION_STATUSES = ('none', 'active', 'lifetime', 'canceled', 'expired')
EVENT_TYPES = ('subscription_created', 'subscription_updated', 'subscription_canceled', 'payment_succeeded')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('trading_style', sa.String(), nullable=True),
        sa.Column('risk_tolerance', sa.String(), nullable=True),
        sa.Column(
            'subscription_status',
            sa.Enum(*SUBSCRIPTION_STATUSES, name='subscription_status'),
            nullable=False,
            server_default='none',
        ),
        sa.Column('subscription_expires', sa.DateTime(timezone=True), nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('hashed_password', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_stripe_customer_id', 'users', ['stripe_customer_id'])

    op.create_table(
        'subscription_events',
        sa.Column('pk', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('id', sa.String(32), nullable=False, unique=True),
        sa.Column('user_id', sa.String(320), nullable=False),
        sa.Column('type', sa.Enum(*EVENT_TYPES, name='subscription_event_type'), nullable=False),
        sa.Column('stripe_event_id', sa.String(255), nullable=True, unique=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_subscription_events_user_id', 'subscription_events', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_subscription_events_user_id', table_name='subscription_events')
    op.drop_table('subscription_events')
    op.drop_index('ix_users_stripe_customer_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    sa.Enum(name='subscription_event_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='subscription_status').drop(op.get_bind(), checkfirst=True)
