"""Initial schema: organizations, services, incidents, incident_services

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'organizations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('auth_provider_key', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_organizations_auth_provider_key', 'organizations', ['auth_provider_key'], unique=True)

    op.create_table(
        'services',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_services_org_id', 'services', ['org_id'])

    op.create_table(
        'incidents',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('impact', sa.String(20), nullable=False),
        sa.Column('type', sa.String(20), nullable=False, server_default='incident'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], ondelete='CASCADE'),
        sa.CheckConstraint(
            "status IN ('investigating', 'identified', 'monitoring', 'resolved')",
            name='ck_incidents_status',
        ),
        sa.CheckConstraint("impact IN ('minor', 'major', 'critical')", name='ck_incidents_impact'),
        sa.CheckConstraint("type IN ('incident', 'maintenance')", name='ck_incidents_type'),
    )
    op.create_index('ix_incidents_org_id', 'incidents', ['org_id'])

    op.create_table(
        'incident_services',
        sa.Column('incident_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.PrimaryKeyConstraint('incident_id', 'service_id'),
        sa.ForeignKeyConstraint(['incident_id'], ['incidents.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['service_id'], ['services.id']),
    )
    op.create_index('ix_incident_services_service_id', 'incident_services', ['service_id'])


def downgrade() -> None:
    op.drop_index('ix_incident_services_service_id', 'incident_services')
    op.drop_table('incident_services')
    op.drop_index('ix_incidents_org_id', 'incidents')
    op.drop_table('incidents')
    op.drop_index('ix_services_org_id', 'services')
    op.drop_table('services')
    op.drop_index('ix_organizations_auth_provider_key', 'organizations')
    op.drop_table('organizations')
