"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2025-01-24

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _enum(name: str, *values: str) -> postgresql.ENUM:
    return postgresql.ENUM(*values, name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # Create enum types
    op.execute("CREATE TYPE plantype AS ENUM ('free', 'crm_basic', 'crm_pro', 'build_pro_bundle')")
    op.execute("CREATE TYPE enterprisecategory AS ENUM ('land_projects', 'capital_sources', 'open_source_tools', 'network_organizers')")
    op.execute("CREATE TYPE personstatus AS ENUM ('active', 'prospect', 'inactive')")
    op.execute("CREATE TYPE opportunitystatus AS ENUM ('lead', 'qualified', 'proposal', 'negotiation', 'closed_won', 'closed_lost')")
    op.execute("CREATE TYPE entitytype AS ENUM ('enterprise', 'person', 'opportunity')")
    op.execute("CREATE TYPE importstatus AS ENUM ('uploaded', 'mapping', 'processing', 'completed', 'failed', 'cancelled')")
    op.execute("CREATE TYPE duplicatestrategy AS ENUM ('skip', 'update', 'create_new')")
    op.execute("CREATE TYPE importerrortype AS ENUM ('validation', 'duplicate', 'system')")

    # Users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255)),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('plan_type', _enum('plantype', 'free', 'crm_basic', 'crm_pro', 'build_pro_bundle'), nullable=False, server_default='free'),
        *_timestamps(),
    )

    # API Keys table
    op.create_table(
        'api_keys',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('key_hash', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('key_prefix', sa.String(10), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('last_used_at', sa.DateTime(timezone=True)),
        sa.Column('expires_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # Workspaces table
    op.create_table(
        'workspaces',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(255), nullable=False),
        *_timestamps(),
    )

    # Enterprises table
    op.create_table(
        'enterprises',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False, index=True),
        sa.Column('description', sa.Text()),
        sa.Column('category', _enum('enterprisecategory', 'land_projects', 'capital_sources', 'open_source_tools', 'network_organizers'), nullable=False, index=True),
        sa.Column('location', sa.String(255)),
        sa.Column('website', sa.String(500), index=True),
        sa.Column('contact_email', sa.String(255)),
        sa.Column('image_url', sa.String(500)),
        sa.Column('tags', postgresql.JSONB()),
        sa.Column('is_verified', sa.Boolean(), default=False),
        sa.Column('source', sa.String(50)),
        sa.Column('source_url', sa.String(500)),
        *_timestamps(),
    )
    # Duplicate detection compares lower(trim(...))
    op.create_index('ix_enterprises_name_normalized', 'enterprises', [sa.text('lower(trim(name))')])
    op.create_index('ix_enterprises_website_normalized', 'enterprises', [sa.text('lower(trim(website))')])

    # People table
    op.create_table(
        'people',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('workspace_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('enterprise_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('enterprises.id', ondelete='SET NULL'), index=True),
        sa.Column('first_name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), index=True),
        sa.Column('phone', sa.String(50)),
        sa.Column('title', sa.String(255)),
        sa.Column('linkedin_url', sa.String(500)),
        sa.Column('notes', sa.Text()),
        sa.Column('status', _enum('personstatus', 'active', 'prospect', 'inactive'), server_default='prospect'),
        sa.Column('source', sa.String(50)),
        *_timestamps(),
    )
    op.create_index('ix_people_workspace_email_normalized', 'people', ['workspace_id', sa.text('lower(trim(email))')])

    # Opportunities table
    op.create_table(
        'opportunities',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('workspace_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workspaces.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('enterprise_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('enterprises.id', ondelete='SET NULL'), index=True),
        sa.Column('primary_contact_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('people.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(255), nullable=False, index=True),
        sa.Column('description', sa.Text()),
        sa.Column('value', sa.Integer()),
        sa.Column('status', _enum('opportunitystatus', 'lead', 'qualified', 'proposal', 'negotiation', 'closed_won', 'closed_lost'), server_default='lead', index=True),
        sa.Column('probability', sa.Integer(), server_default='0'),
        sa.Column('expected_close_date', sa.Date()),
        sa.Column('notes', sa.Text()),
        sa.Column('source', sa.String(50)),
        *_timestamps(),
    )

    # Import Jobs table
    op.create_table(
        'import_jobs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('workspace_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('workspaces.id', ondelete='SET NULL'), index=True),
        sa.Column('entity_type', _enum('entitytype', 'enterprise', 'person', 'opportunity'), nullable=False),
        sa.Column('status', _enum('importstatus', 'uploaded', 'mapping', 'processing', 'completed', 'failed', 'cancelled'), nullable=False, server_default='uploaded', index=True),
        sa.Column('file_name', sa.String(500), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('file_data', sa.LargeBinary()),
        sa.Column('mapping_config', postgresql.JSONB()),
        sa.Column('duplicate_strategy', _enum('duplicatestrategy', 'skip', 'update', 'create_new'), nullable=False, server_default='skip'),
        sa.Column('total_rows', sa.Integer(), server_default='0'),
        sa.Column('processed_rows', sa.Integer(), server_default='0'),
        sa.Column('successful_rows', sa.Integer(), server_default='0'),
        sa.Column('failed_rows', sa.Integer(), server_default='0'),
        sa.Column('error_summary', sa.Text()),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # Import Row Errors table
    op.create_table(
        'import_row_errors',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('import_jobs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('row_number', sa.Integer(), nullable=False),
        sa.Column('row_data', postgresql.JSONB(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=False),
        sa.Column('error_type', _enum('importerrortype', 'validation', 'duplicate', 'system'), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('job_id', 'row_number', name='uq_import_error_row'),
    )


def downgrade() -> None:
    op.drop_table('import_row_errors')
    op.drop_table('import_jobs')
    op.drop_table('opportunities')
    op.drop_table('people')
    op.drop_table('enterprises')
    op.drop_table('workspaces')
    op.drop_table('api_keys')
    op.drop_table('users')

    # Drop enum types
    op.execute("DROP TYPE importerrortype")
    op.execute("DROP TYPE duplicatestrategy")
    op.execute("DROP TYPE importstatus")
    op.execute("DROP TYPE entitytype")
    op.execute("DROP TYPE opportunitystatus")
    op.execute("DROP TYPE personstatus")
    op.execute("DROP TYPE enterprisecategory")
    op.execute("DROP TYPE plantype")
