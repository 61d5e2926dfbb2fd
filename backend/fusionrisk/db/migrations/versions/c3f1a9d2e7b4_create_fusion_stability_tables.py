"""create_fusion_stability_tables

Revision ID: c3f1a9d2e7b4
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON


# revision identifiers, used by Alembic.
revision: str = 'c3f1a9d2e7b4'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create metrics, risk event and audit tables."""

    # ============================================================================
    # 1. adaptive_workflow_metrics (written upstream, read by the pipeline)
    # ============================================================================
    op.create_table(
        'adaptive_workflow_metrics',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('workflow_id', sa.String(), nullable=True),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=True),
        sa.Column('feedback_score', sa.Float(), nullable=True),
        sa.Column('adjustment_type', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_adaptive_workflow_metrics_created_at', 'adaptive_workflow_metrics', ['created_at'], unique=False)
    op.create_index(
        'ix_adaptive_workflow_metrics_event_type_created',
        'adaptive_workflow_metrics',
        ['event_type', 'created_at'],
        unique=False,
    )

    # ============================================================================
    # 2. fusion_risk_events
    # ============================================================================
    op.create_table(
        'fusion_risk_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('predicted_variance', sa.Float(), nullable=False),
        sa.Column('predicted_stability', sa.Float(), nullable=False),
        sa.Column('risk_category', sa.String(), nullable=False),
        sa.Column('action_taken', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint(
            "risk_category IN ('Stable', 'Moderate Risk', 'High Risk')",
            name='ck_fusion_risk_events_category',
        ),
        sa.CheckConstraint(
            "action_taken IN ('maintain', 'reinforce', 'reset')",
            name='ck_fusion_risk_events_action',
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_fusion_risk_events_event_type'), 'fusion_risk_events', ['event_type'], unique=False)
    op.create_index('ix_fusion_risk_events_created_at', 'fusion_risk_events', ['created_at'], unique=False)

    # ============================================================================
    # 3. pipeline_audit_log
    # ============================================================================
    op.create_table(
        'pipeline_audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('event_source', sa.String(), nullable=False),
        sa.Column('event_payload', JSON, nullable=True),
        sa.Column('stability_score', sa.Float(), nullable=True),
        sa.Column('reinforcement_delta', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_pipeline_audit_log_source_created',
        'pipeline_audit_log',
        ['event_source', 'created_at'],
        unique=False,
    )


def downgrade() -> None:
    """Drop the pipeline tables."""
    op.drop_index('ix_pipeline_audit_log_source_created', table_name='pipeline_audit_log')
    op.drop_table('pipeline_audit_log')

    op.drop_index('ix_fusion_risk_events_created_at', table_name='fusion_risk_events')
    op.drop_index(op.f('ix_fusion_risk_events_event_type'), table_name='fusion_risk_events')
    op.drop_table('fusion_risk_events')

    op.drop_index('ix_adaptive_workflow_metrics_event_type_created', table_name='adaptive_workflow_metrics')
    op.drop_index('ix_adaptive_workflow_metrics_created_at', table_name='adaptive_workflow_metrics')
    op.drop_table('adaptive_workflow_metrics')
