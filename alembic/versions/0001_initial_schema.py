"""Initial schema: batches, users, attendance, monthly exams and SMS.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


batchstatus = sa.Enum('active', 'inactive', 'completed', name='batchstatus')
userrole = sa.Enum('teacher', 'student', 'super_user', name='userrole')
attendancestatus = sa.Enum('present', 'excused', 'absent', name='attendancestatus')
smstype = sa.Enum(
    'attendance', 'exam_result', 'exam_notification', 'notice', 'reminder',
    name='smstype',
)
smsstatus = sa.Enum('sent', 'failed', name='smsstatus')


def timestamps() -> list[sa.Column]:
    """created_at / updated_at columns shared by most tables."""
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables."""
    op.create_table(
        'batches',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(50), nullable=False),
        sa.Column('batch_code', sa.String(50), nullable=False, unique=True),
        sa.Column('status', batchstatus, nullable=False, server_default='active'),
        *timestamps(),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('role', userrole, nullable=False, server_default='student'),
        sa.Column('phone_number', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('batch_id', sa.BigInteger(), sa.ForeignKey('batches.id', ondelete='SET NULL'), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_batch_id', 'users', ['batch_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('student_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('batch_id', sa.BigInteger(), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('status', attendancestatus, nullable=False, server_default='present'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('marked_by', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *timestamps(),
        sa.UniqueConstraint(
            'student_id', 'batch_id', 'attendance_date',
            name='uq_attendance_student_batch_date',
        ),
    )
    op.create_index('ix_attendance_records_student_id', 'attendance_records', ['student_id'])
    op.create_index('ix_attendance_records_batch_id', 'attendance_records', ['batch_id'])
    op.create_index('ix_attendance_records_attendance_date', 'attendance_records', ['attendance_date'])

    op.create_table(
        'monthly_exams',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('batch_id', sa.BigInteger(), sa.ForeignKey('batches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('is_finalized', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_by', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *timestamps(),
        sa.CheckConstraint('month BETWEEN 1 AND 12', name='ck_monthly_exam_month'),
    )
    op.create_index('ix_monthly_exams_batch_id', 'monthly_exams', ['batch_id'])

    op.create_table(
        'individual_exams',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('monthly_exam_id', sa.BigInteger(), sa.ForeignKey('monthly_exams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('subject', sa.String(50), nullable=False, server_default='math'),
        sa.Column('total_marks', sa.Integer(), nullable=False, server_default='100'),
        *timestamps(),
        sa.CheckConstraint('total_marks > 0', name='ck_individual_exam_total_marks'),
    )
    op.create_index('ix_individual_exams_monthly_exam_id', 'individual_exams', ['monthly_exam_id'])

    op.create_table(
        'monthly_marks',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('monthly_exam_id', sa.BigInteger(), sa.ForeignKey('monthly_exams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('individual_exam_id', sa.BigInteger(), sa.ForeignKey('individual_exams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('obtained_marks', sa.Integer(), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('monthly_exam_id', 'individual_exam_id', 'student_id', name='uq_monthly_mark'),
    )
    op.create_index('ix_monthly_marks_monthly_exam_id', 'monthly_marks', ['monthly_exam_id'])
    op.create_index('ix_monthly_marks_individual_exam_id', 'monthly_marks', ['individual_exam_id'])
    op.create_index('ix_monthly_marks_student_id', 'monthly_marks', ['student_id'])

    op.create_table(
        'monthly_results',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('monthly_exam_id', sa.BigInteger(), sa.ForeignKey('monthly_exams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('total_exam_marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('attendance_marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bonus_marks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('gpa', sa.Numeric(3, 2), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('monthly_exam_id', 'student_id', name='uq_monthly_result_student'),
    )
    op.create_index('ix_monthly_results_monthly_exam_id', 'monthly_results', ['monthly_exam_id'])
    op.create_index('ix_monthly_results_student_id', 'monthly_results', ['student_id'])

    op.create_table(
        'sms_logs',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('recipient_type', sa.String(50), nullable=False),
        sa.Column('recipient_phone', sa.String(50), nullable=False),
        sa.Column('recipient_name', sa.String(255), nullable=True),
        sa.Column('student_id', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('sms_type', smstype, nullable=False),
        sa.Column('subject', sa.String(255), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', smsstatus, nullable=False),
        sa.Column('sent_by', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_sms_logs_student_id', 'sms_logs', ['student_id'])
    op.create_index('ix_sms_logs_status', 'sms_logs', ['status'])
    op.create_index('ix_sms_logs_sent_at', 'sms_logs', ['sent_at'])

    op.create_table(
        'sms_templates',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('template_type', sa.String(50), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_by', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_sms_templates_template_type', 'sms_templates', ['template_type'])

    op.create_table(
        'system_settings',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('sms_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('sms_api_key', sa.String(255), nullable=True),
        sa.Column('sms_sender_id', sa.String(50), nullable=True),
        sa.Column('sms_api_url', sa.String(500), nullable=True),
        sa.Column('updated_by', sa.BigInteger(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    for table in (
        'system_settings',
        'sms_templates',
        'sms_logs',
        'monthly_results',
        'monthly_marks',
        'individual_exams',
        'monthly_exams',
        'attendance_records',
        'users',
        'batches',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (smsstatus, smstype, attendancestatus, userrole, batchstatus):
        enum_type.drop(bind, checkfirst=True)
