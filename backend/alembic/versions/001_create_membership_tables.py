"""Create membership tables

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('uuid_generate_v4()'))


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
    ]


def _status(name, default):
    # Enums are stored as VARCHAR (non-native) to match the ORM models
    return sa.Column(name, sa.String(32), nullable=False, server_default=default)


def _descriptive_columns():
    """Contact and systems-in-use columns shared by registrations, profiles and organizations."""
    contact = [
        sa.Column('primary_contact_title', sa.String(255), nullable=True),
        sa.Column('secondary_first_name', sa.String(255), nullable=True),
        sa.Column('secondary_last_name', sa.String(255), nullable=True),
        sa.Column('secondary_contact_title', sa.String(255), nullable=True),
        sa.Column('secondary_contact_email', sa.String(255), nullable=True),
        sa.Column('student_fte', sa.Integer, nullable=True),
        sa.Column('city', sa.String(255), nullable=True),
        sa.Column('state', sa.String(100), nullable=True),
        sa.Column('is_private_nonprofit', sa.Boolean, nullable=False, server_default='false'),
    ]
    systems = [
        sa.Column(name, sa.String(255), nullable=True)
        for name in (
            'student_information_system', 'financial_system', 'financial_aid', 'hcm_hr',
            'payroll_system', 'purchasing_system', 'housing_management',
            'learning_management', 'admissions_crm', 'alumni_advancement_crm',
        )
    ]
    hardware = [
        sa.Column(name, sa.Boolean, nullable=False, server_default='false')
        for name in (
            'primary_office_apple', 'primary_office_asus', 'primary_office_dell',
            'primary_office_hp', 'primary_office_microsoft', 'primary_office_other',
        )
    ]
    return contact + systems + hardware + [
        sa.Column('primary_office_other_details', sa.Text, nullable=True),
        sa.Column('other_software_comments', sa.Text, nullable=True),
    ]


def upgrade() -> None:
    """Create identity, membership and workflow tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # Identity provider
    op.create_table(
        'auth_users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('encrypted_password', sa.String(255), nullable=True),
        sa.Column('user_metadata', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('email_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_sign_in_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_auth_users_email', 'auth_users', ['email'], unique=True)

    op.create_table(
        'user_roles',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        _status('role', 'member'),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'role', name='uq_user_roles_user_role'),
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])

    op.create_table(
        'profiles',
        _id(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('auth_users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('organization', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('zip', sa.String(20), nullable=True),
        *_descriptive_columns(),
        *_timestamps(),
    )
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)
    op.create_index('ix_profiles_email', 'profiles', ['email'])

    op.create_table(
        'organizations',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('contact_person_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        _status('membership_status', 'pending'),
        sa.Column('membership_start_date', sa.Date, nullable=True),
        sa.Column('membership_end_date', sa.Date, nullable=True),
        sa.Column('annual_fee_amount', sa.Numeric(10, 2), nullable=True),
        _status('organization_type', 'member'),
        sa.Column('address_line_1', sa.String(255), nullable=True),
        sa.Column('address_line_2', sa.String(255), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('country', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('website', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_descriptive_columns(),
        *_timestamps(),
        sa.CheckConstraint('LENGTH(name) > 0', name='organization_name_not_empty'),
    )
    op.create_index('ix_organizations_name', 'organizations', ['name'], unique=True)
    op.create_index('ix_organizations_contact_person_id', 'organizations', ['contact_person_id'])

    op.create_table(
        'pending_registrations',
        _id(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False),
        sa.Column('organization_name', sa.String(255), nullable=False),
        sa.Column('state_association', sa.String(255), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('zip', sa.String(20), nullable=True),
        *_descriptive_columns(),
        _status('approval_status', 'pending'),
        _status('priority_level', 'normal'),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        sa.Column('admin_notes', sa.Text, nullable=True),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resubmission_count', sa.Integer, nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_index('ix_pending_registrations_email', 'pending_registrations', ['email'])
    op.create_index('ix_pending_registrations_organization_name', 'pending_registrations', ['organization_name'])
    op.create_index('ix_pending_registrations_approval_status', 'pending_registrations', ['approval_status'])

    # Organization dependents (purged before the organization row)
    op.create_table(
        'organization_reassignment_requests',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('new_contact_email', sa.String(255), nullable=False),
        sa.Column('new_organization_data', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('user_registration_data', postgresql.JSONB, nullable=True),
        _status('status', 'pending'),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_organization_reassignment_requests_organization_id', 'organization_reassignment_requests', ['organization_id'])
    op.create_index('ix_organization_reassignment_requests_status', 'organization_reassignment_requests', ['status'])

    op.create_table(
        'invoices',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('invoice_number', sa.String(50), nullable=False, unique=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        _status('status', 'draft'),
        sa.Column('invoice_date', sa.Date, nullable=False),
        sa.Column('due_date', sa.Date, nullable=False),
        sa.Column('period_start_date', sa.Date, nullable=True),
        sa.Column('period_end_date', sa.Date, nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_invoices_organization_id', 'invoices', ['organization_id'])

    op.create_table(
        'organization_invitations',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('token_hash', sa.String(255), nullable=False, unique=True),
        sa.Column('invited_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_organization_invitations_organization_id', 'organization_invitations', ['organization_id'])

    op.create_table(
        'custom_software_entries',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('system_field', sa.String(100), nullable=False),
        sa.Column('value', sa.String(255), nullable=False),
        _status('status', 'pending'),
        *_timestamps(),
    )
    op.create_index('ix_custom_software_entries_organization_id', 'custom_software_entries', ['organization_id'])

    op.create_table(
        'organization_profile_edit_requests',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('requested_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('original_data', postgresql.JSONB, nullable=True),
        sa.Column('updated_organization_data', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _status('status', 'pending'),
        sa.Column('admin_notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_organization_profile_edit_requests_organization_id', 'organization_profile_edit_requests', ['organization_id'])

    op.create_table(
        'organization_transfer_requests',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id'), nullable=False),
        sa.Column('current_contact_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('new_contact_email', sa.String(255), nullable=False),
        sa.Column('transfer_token', sa.String(255), nullable=True, unique=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        _status('status', 'pending'),
        *_timestamps(),
    )
    op.create_index('ix_organization_transfer_requests_organization_id', 'organization_transfer_requests', ['organization_id'])

    op.create_table(
        'member_registration_updates',
        _id(),
        sa.Column('submitted_email', sa.String(255), nullable=False),
        sa.Column('submission_type', sa.String(50), nullable=False, server_default='member_update'),
        sa.Column('existing_organization_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True),
        sa.Column('existing_organization_name', sa.String(255), nullable=True),
        sa.Column('registration_data', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('organization_data', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        _status('status', 'pending'),
        sa.Column('reviewed_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('auth_users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('admin_notes', sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_member_registration_updates_submitted_email', 'member_registration_updates', ['submitted_email'])
    op.create_index('ix_member_registration_updates_status', 'member_registration_updates', ['status'])

    # Ledgers
    op.create_table(
        'audit_events',
        _id(),
        sa.Column('organization_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', sa.String(32), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('diff_json', postgresql.JSONB, nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_audit_events_organization_id', 'audit_events', ['organization_id'])
    op.create_index('ix_audit_events_actor_id', 'audit_events', ['actor_id'])

    op.create_table(
        'workflow_runs',
        _id(),
        sa.Column('workflow', sa.String(64), nullable=False),
        sa.Column('subject_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=True),
        _status('status', 'completed'),
        sa.Column('steps', postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('result', postgresql.JSONB, nullable=True),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_workflow_runs_workflow', 'workflow_runs', ['workflow'])
    op.create_index('ix_workflow_runs_subject_id', 'workflow_runs', ['subject_id'])
    op.create_index('ix_workflow_runs_status', 'workflow_runs', ['status'])

    op.create_table(
        'bulk_operations',
        _id(),
        sa.Column('operation_type', sa.String(32), nullable=False),
        sa.Column('performed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('registration_ids', postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('operation_data', postgresql.JSONB, nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    """Drop membership tables."""
    op.drop_table('bulk_operations')
    op.drop_table('workflow_runs')
    op.drop_table('audit_events')
    op.drop_table('member_registration_updates')
    op.drop_table('organization_transfer_requests')
    op.drop_table('organization_profile_edit_requests')
    op.drop_table('custom_software_entries')
    op.drop_table('organization_invitations')
    op.drop_table('invoices')
    op.drop_table('organization_reassignment_requests')
    op.drop_table('pending_registrations')
    op.drop_table('organizations')
    op.drop_table('profiles')
    op.drop_table('user_roles')
    op.drop_table('auth_users')
