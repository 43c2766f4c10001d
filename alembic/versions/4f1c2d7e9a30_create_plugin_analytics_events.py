"""Create plugin analytics events table

Revision ID: 4f1c2d7e9a30
Revises:
Create Date: 2026-10-18 10:12:05.314211

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1c2d7e9a30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    op.create_table(
        'plugin_analytics_events',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('session_id', sa.String(length=120), nullable=False),
        sa.Column('device_id', sa.String(length=120), nullable=False),
        sa.Column('event_type', sa.String(length=120), nullable=False),
        sa.Column('event_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('source', sa.String(length=80), nullable=False),
        sa.Column('tool', sa.String(length=120), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('user', sa.JSON(), nullable=False),
        sa.Column('user_is_authenticated', sa.Boolean(), nullable=False),
        sa.Column('user_id', sa.String(length=180), nullable=True),
        sa.Column('anonymous_id', sa.String(length=120), nullable=True),
        sa.Column('runtime', sa.JSON(), nullable=False),
        sa.Column('plugin', sa.JSON(), nullable=False),
        if_not_exists=True
    )

    # Range scans by time, alone and per dimension
    op.create_index('idx_plugin_events_event_at', 'plugin_analytics_events', ['event_at'], if_not_exists=True)
    op.create_index('idx_plugin_events_session_event_at', 'plugin_analytics_events', ['session_id', 'event_at'], if_not_exists=True)
    op.create_index('idx_plugin_events_type_event_at', 'plugin_analytics_events', ['event_type', 'event_at'], if_not_exists=True)
    op.create_index('idx_plugin_events_tool_event_at', 'plugin_analytics_events', ['tool', 'event_at'], if_not_exists=True)
    op.create_index('idx_plugin_events_user_event_at', 'plugin_analytics_events', ['user_id', 'event_at'], if_not_exists=True)
    op.create_index('idx_plugin_events_source_event_at', 'plugin_analytics_events', ['source', 'event_at'], if_not_exists=True)


def downgrade():
    op.drop_index('idx_plugin_events_source_event_at', 'plugin_analytics_events')
    op.drop_index('idx_plugin_events_user_event_at', 'plugin_analytics_events')
    op.drop_index('idx_plugin_events_tool_event_at', 'plugin_analytics_events')
    op.drop_index('idx_plugin_events_type_event_at', 'plugin_analytics_events')
    op.drop_index('idx_plugin_events_session_event_at', 'plugin_analytics_events')
    op.drop_index('idx_plugin_events_event_at', 'plugin_analytics_events')
    op.drop_table('plugin_analytics_events')
