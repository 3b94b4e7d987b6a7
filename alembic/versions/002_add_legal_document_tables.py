"""Add legal_documents, legal_document_versions and legal_document_audit_events tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    # legal_documents: locale-agnostic document identity
    op.create_table(
        'legal_documents',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('slug', sa.String(), nullable=False, unique=True, index=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=False, index=True),
        sa.Column('status', sa.String(), nullable=False, server_default='draft', index=True),
        sa.Column('region', sa.String(), nullable=False, server_default='global'),
        sa.Column('default_locale', sa.String(), nullable=False, server_default='en'),
        sa.Column('audience_roles', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('editor_roles', postgresql.JSONB(), nullable=False, server_default='[]'),
        sa.Column('tags', postgresql.JSONB(), nullable=False, server_default='[]'),
        # active_version_id added via ALTER after versions table exists
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('retired_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
        sa.Column('lock_version', sa.Integer(), nullable=False, server_default='1'),
        sa.CheckConstraint(
            "category IN ('terms', 'privacy', 'data_processing', 'cookie')",
            name='ck_legal_documents_category',
        ),
        sa.CheckConstraint(
            "status IN ('draft', 'active', 'archived')",
            name='ck_legal_documents_status',
        ),
    )

    # legal_document_versions: localized revisions, numbered per locale
    op.create_table(
        'legal_document_versions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('legal_documents.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('locale', sa.String(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='draft', index=True),
        # Content
        sa.Column('title', sa.String(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('change_summary', sa.Text(), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('external_url', sa.String(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        # Lifecycle
        sa.Column('effective_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('published_by', sa.String(), nullable=True),
        sa.Column('superseded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        # Provenance
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('updated_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
        # Constraints
        sa.CheckConstraint(
            "status IN ('draft', 'in_review', 'approved', 'published', 'archived')",
            name='ck_legal_document_versions_status',
        ),
        sa.UniqueConstraint(
            'document_id', 'locale', 'version',
            name='uq_legal_document_versions_doc_locale_version',
        ),
    )
    op.create_index(
        'ix_legal_document_versions_doc_status',
        'legal_document_versions',
        ['document_id', 'status'],
    )

    # Now add the active_version_id FK column to legal_documents
    op.add_column(
        'legal_documents',
        sa.Column('active_version_id', postgresql.UUID(as_uuid=True), nullable=True),
    )
    op.create_foreign_key(
        'fk_legal_documents_active_version',
        'legal_documents',
        'legal_document_versions',
        ['active_version_id'],
        ['id'],
        ondelete='SET NULL',
    )

    # legal_document_audit_events: append-only lifecycle trail
    op.create_table(
        'legal_document_audit_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('document_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('legal_documents.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('version_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('legal_document_versions.id', ondelete='SET NULL'),
                  nullable=True, index=True),
        sa.Column('actor_id', sa.String(), nullable=True),
        sa.Column('actor_type', sa.String(), nullable=False, server_default='admin'),
        sa.Column('action', sa.String(), nullable=False, index=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False, index=True),
    )


def downgrade() -> None:
    op.drop_table('legal_document_audit_events')
    op.drop_constraint('fk_legal_documents_active_version', 'legal_documents', type_='foreignkey')
    op.drop_column('legal_documents', 'active_version_id')
    op.drop_index('ix_legal_document_versions_doc_status', table_name='legal_document_versions')
    op.drop_table('legal_document_versions')
    op.drop_table('legal_documents')
