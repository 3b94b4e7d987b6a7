"""Add content_submissions and moderation_actions tables

Revision ID: 001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # content_submissions: the moderation queue
    op.create_table(
        'content_submissions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('reference_id', sa.String(), nullable=False, index=True),
        sa.Column('reference_type', sa.String(), nullable=False, index=True),
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('region', sa.String(), nullable=True, index=True),
        # Triage
        sa.Column('status', sa.String(), nullable=False, server_default='pending', index=True),
        sa.Column('priority', sa.String(), nullable=False, server_default='standard', index=True),
        sa.Column('severity', sa.String(), nullable=False, server_default='low', index=True),
        sa.Column('risk_score', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('sla_minutes', sa.Integer(), nullable=True),
        # Ownership
        sa.Column('assigned_reviewer_id', sa.String(), nullable=True, index=True),
        sa.Column('assigned_team', sa.String(), nullable=True, index=True),
        # Outcome
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        # Timestamps
        sa.Column('submitted_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('last_activity_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='1'),
        # Constraints
        sa.CheckConstraint(
            "status IN ('pending', 'in_review', 'approved', 'rejected', 'escalated', 'needs_changes')",
            name='ck_content_submissions_status',
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'standard', 'high', 'urgent')",
            name='ck_content_submissions_priority',
        ),
        sa.CheckConstraint(
            "severity IN ('low', 'medium', 'high', 'critical')",
            name='ck_content_submissions_severity',
        ),
        sa.CheckConstraint(
            'risk_score >= 0 AND risk_score <= 999.99',
            name='ck_content_submissions_risk_score',
        ),
    )
    op.create_index(
        'ix_content_submissions_queue',
        'content_submissions',
        ['status', 'priority', 'severity', 'submitted_at'],
    )

    # moderation_actions: append-only decisions on a submission
    op.create_table(
        'moderation_actions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('submission_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('content_submissions.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('actor_id', sa.String(), nullable=True, index=True),
        sa.Column('actor_type', sa.String(), nullable=False, server_default='admin'),
        sa.Column('action', sa.String(), nullable=False, index=True),
        sa.Column('severity', sa.String(), nullable=True),
        sa.Column('risk_score', sa.Numeric(5, 2), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('guidance_link', sa.String(), nullable=True),
        sa.Column('resolution_summary', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False, index=True),
        sa.CheckConstraint(
            "action IN ('assign', 'approve', 'reject', 'escalate', 'request_changes', "
            "'restore', 'suspend', 'add_note')",
            name='ck_moderation_actions_action',
        ),
    )


def downgrade() -> None:
    op.drop_table('moderation_actions')
    op.drop_index('ix_content_submissions_queue', table_name='content_submissions')
    op.drop_table('content_submissions')
