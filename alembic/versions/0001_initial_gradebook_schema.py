"""Initial gradebook schema.

Revision ID: 0001_initial_gradebook
Revises:
Create Date: 2026-10-18

Users (professors), their courses and subjects, students, grades and the
spreadsheet import history.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_gradebook'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# SQLAlchemy persists enum member names
recordkind = sa.Enum('COURSES', 'STUDENTS', 'GRADES', name='recordkind')
uploadstatus = sa.Enum('SUCCESS', 'FAILED', 'PARTIAL', 'PROCESSING', name='uploadstatus')
importstage = sa.Enum(
    'PARSED', 'VALIDATED', 'RESOLVED', 'PARTITIONED', 'PERSISTED', 'REPORTED', 'FAILED',
    name='importstage',
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
    ]


def _owner() -> sa.Column:
    return sa.Column(
        'owner_id', sa.BigInteger(),
        sa.ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False, index=True,
    )


def upgrade() -> None:
    """Create all gradebook tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'courses',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('total_semesters', sa.Integer(), nullable=False, server_default='8'),
        sa.Column('start_date', sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('owner_id', 'code', name='uq_course_owner_code'),
    )

    op.create_table(
        'subjects',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column(
            'course_id', sa.BigInteger(),
            sa.ForeignKey('courses.id', ondelete='SET NULL'),
            nullable=True, index=True,
        ),
        sa.Column('semester', sa.Integer(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('owner_id', 'code', name='uq_subject_owner_code'),
    )

    op.create_table(
        'students',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('registration_id', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column(
            'course_id', sa.BigInteger(),
            sa.ForeignKey('courses.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('gender', sa.String(50), nullable=True),
        sa.Column('ethnicity', sa.String(50), nullable=True),
        sa.Column('average_income', sa.DECIMAL(12, 2), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_students_registration_id', 'students', ['registration_id'], unique=True)

    op.create_table(
        'grades',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            'student_id', sa.BigInteger(),
            sa.ForeignKey('students.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column(
            'subject_id', sa.BigInteger(),
            sa.ForeignKey('subjects.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('grade', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('max_grade', sa.DECIMAL(10, 2), nullable=False),
        sa.Column('assessment_type', sa.String(100), nullable=False),
        sa.Column('assessment_name', sa.String(255), nullable=False),
        sa.Column('date_assigned', sa.Date(), nullable=False, index=True),
        *_timestamps(),
        sa.UniqueConstraint(
            'student_id', 'subject_id', 'assessment_name', 'assessment_type', 'date_assigned',
            name='uq_grade_assessment',
        ),
    )

    op.create_table(
        'uploads',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        _owner(),
        sa.Column('record_kind', recordkind, nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=False),
        sa.Column('status', uploadstatus, nullable=False),
        sa.Column('stage', importstage, nullable=False),
        sa.Column('total_rows', sa.Integer(), nullable=True),
        sa.Column('inserted_rows', sa.Integer(), nullable=True),
        sa.Column('updated_rows', sa.Integer(), nullable=True),
        sa.Column('skipped_rows', sa.Integer(), nullable=True),
        sa.Column('failed_rows', sa.Integer(), nullable=True),
        sa.Column('rationale', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('processing_started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_completed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'upload_errors',
        sa.Column('id', sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            'upload_id', sa.BigInteger(),
            sa.ForeignKey('uploads.id', ondelete='CASCADE'),
            nullable=False, index=True,
        ),
        sa.Column('row_number', sa.Integer(), nullable=False),
        sa.Column('identity', sa.String(500), nullable=False, server_default=''),
        sa.Column('error_type', sa.String(100), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=False),
    )


def downgrade() -> None:
    """Drop all gradebook tables."""
    op.drop_table('upload_errors')
    op.drop_table('uploads')
    op.drop_table('grades')
    op.drop_index('ix_students_registration_id', table_name='students')
    op.drop_table('students')
    op.drop_table('subjects')
    op.drop_table('courses')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    importstage.drop(bind, checkfirst=True)
    uploadstatus.drop(bind, checkfirst=True)
    recordkind.drop(bind, checkfirst=True)
