"""initial schema: orgs, users, rbac, guards, attendance, payroll, approvals

Revision ID: 4f1a9c2e7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CYCLE_STATUSES = ('draft', 'calculated', 'reviewed', 'approved', 'paid', 'locked')


def upgrade() -> None:
    op.create_table(
        'orgs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='auditor_readonly'),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('regional_office', sa.String(120), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_org_id', 'users', ['org_id'])
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(120), nullable=True),
    )
    op.create_table(
        'permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('module', sa.String(50), nullable=False),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('code', sa.String(120), nullable=False, unique=True),
        sa.Column('name', sa.String(150), nullable=True),
        sa.UniqueConstraint('module', 'action', name='uq_permission_module_action'),
    )
    op.create_table(
        'role_permissions',
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'guards',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('guard_code', sa.String(32), nullable=False),
        sa.Column('first_name', sa.String(80), nullable=False),
        sa.Column('last_name', sa.String(80), nullable=True),
        sa.Column('father_name', sa.String(120), nullable=True),
        sa.Column('cnic', sa.String(20), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('gender', sa.String(10), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('permanent_address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(80), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='applicant'),
        sa.Column('designation', sa.String(60), nullable=False, server_default='Security Guard'),
        sa.Column('employment_start_date', sa.Date(), nullable=True),
        sa.Column('employment_end_date', sa.Date(), nullable=True),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('bank_name', sa.String(120), nullable=True),
        sa.Column('bank_account_number', sa.String(40), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('org_id', 'guard_code', name='uq_guard_org_code'),
        sa.UniqueConstraint('org_id', 'cnic', name='uq_guard_org_cnic'),
    )
    op.create_index('ix_guard_org_status', 'guards', ['org_id', 'status'])

    op.create_table(
        'guard_status_history',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('guard_id', sa.Integer(), sa.ForeignKey('guards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('from_status', sa.String(16), nullable=True),
        sa.Column('to_status', sa.String(16), nullable=False),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('transitioned_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('transitioned_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_guard_status_history_guard_id', 'guard_status_history', ['guard_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('guard_id', sa.Integer(), sa.ForeignKey('guards.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('shift_type', sa.String(20), nullable=True),
        sa.Column('check_in_time', sa.DateTime(), nullable=True),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('work_hours', sa.Numeric(6, 2), nullable=True),
        sa.Column('overtime_hours', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(12), nullable=False, server_default='present'),
        sa.Column('verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verified_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('remarks', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.UniqueConstraint('guard_id', 'attendance_date', name='uq_attendance_guard_date'),
    )
    op.create_index('ix_attendance_records_org_id', 'attendance_records', ['org_id'])
    op.create_index('ix_attendance_records_guard_id', 'attendance_records', ['guard_id'])
    op.create_index('ix_attendance_org_date', 'attendance_records', ['org_id', 'attendance_date'])

    op.create_table(
        'payroll_cycles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('cycle_name', sa.String(120), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum(*CYCLE_STATUSES, name='payroll_cycle_status_enum'),
                  nullable=False, server_default='draft'),
        sa.Column('total_employees', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_gross', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_deductions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_net', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('calculated_at', sa.DateTime(), nullable=True),
        sa.Column('calculated_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('locked_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
    )
    op.create_index('ix_payroll_cycles_org_id', 'payroll_cycles', ['org_id'])

    op.create_table(
        'payroll_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cycle_id', sa.Integer(), sa.ForeignKey('payroll_cycles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('guard_id', sa.Integer(), sa.ForeignKey('guards.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('basic_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('allowances', sa.JSON(), nullable=True),
        sa.Column('overtime_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('bonus', sa.Numeric(14, 2), nullable=True),
        sa.Column('gross_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('deductions', sa.JSON(), nullable=True),
        sa.Column('loan_deduction', sa.Numeric(14, 2), nullable=True),
        sa.Column('advance_deduction', sa.Numeric(14, 2), nullable=True),
        sa.Column('tax', sa.Numeric(14, 2), nullable=True),
        sa.Column('total_deductions', sa.Numeric(14, 2), nullable=True),
        sa.Column('net_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('days_worked', sa.Integer(), nullable=True),
        sa.Column('days_absent', sa.Integer(), nullable=True),
        sa.Column('overtime_hours', sa.Numeric(8, 2), nullable=True),
        sa.Column('payment_method', sa.String(30), nullable=True),
        sa.Column('payment_status', sa.String(12), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('cycle_id', 'guard_id', name='uq_payroll_item_cycle_guard'),
    )
    op.create_index('ix_payroll_items_cycle_id', 'payroll_items', ['cycle_id'])
    op.create_index('ix_payroll_items_guard_id', 'payroll_items', ['guard_id'])

    op.create_table(
        'approval_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('org_id', sa.Integer(), sa.ForeignKey('orgs.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('request_type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('entity_data', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(12), nullable=False, server_default='pending'),
        sa.Column('requested_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('requested_by_name', sa.String(255), nullable=True),
        sa.Column('approved_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_by_name', sa.String(255), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.Column('rejection_reason', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_approval_requests_org_id', 'approval_requests', ['org_id'])
    op.create_index('ix_approval_org_status', 'approval_requests', ['org_id', 'status'])


def downgrade() -> None:
    for t in ('approval_requests', 'payroll_items', 'payroll_cycles', 'attendance_records',
              'guard_status_history', 'guards', 'role_permissions', 'permissions', 'roles',
              'users', 'orgs'):
        op.drop_table(t)
    sa.Enum(name='payroll_cycle_status_enum').drop(op.get_bind(), checkfirst=True)
