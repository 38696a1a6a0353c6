"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=True),
        sa.Column('full_name', sa.String(100), nullable=True),
        sa.Column('email_verified', sa.DateTime(timezone=True), nullable=True),
        sa.Column('membership', sa.String(20), nullable=False, server_default='free'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'auth_tokens',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('purpose', sa.String(32), nullable=False),
        sa.Column('identifier', sa.String(255), nullable=False),
        sa.Column('token_hash', sa.String(64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_auth_tokens_id', 'auth_tokens', ['id'])
    op.create_index('ix_auth_tokens_user_id', 'auth_tokens', ['user_id'])
    op.create_index('ix_auth_tokens_lookup', 'auth_tokens', ['purpose', 'identifier', 'token_hash'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_sessions_id', 'sessions', ['id'])
    op.create_index('ix_sessions_user_id', 'sessions', ['user_id'])

    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(200), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_courses_id', 'courses', ['id'])
    op.create_index('ix_courses_slug', 'courses', ['slug'], unique=True)

    op.create_table(
        'course_modules',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('course_id', sa.Uuid(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('course_id', 'position', name='uq_course_modules_course_position'),
    )
    op.create_index('ix_course_modules_id', 'course_modules', ['id'])
    op.create_index('ix_course_modules_course_id', 'course_modules', ['course_id'])

    op.create_table(
        'lessons',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('module_id', sa.Uuid(as_uuid=True), sa.ForeignKey('course_modules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(200), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('is_free_preview', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('module_id', 'position', name='uq_lessons_module_position'),
    )
    op.create_index('ix_lessons_id', 'lessons', ['id'])
    op.create_index('ix_lessons_module_id', 'lessons', ['module_id'])

    op.create_table(
        'enrollments',
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('course_id', sa.Uuid(as_uuid=True), sa.ForeignKey('courses.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('source', sa.String(50), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('active', 'trialing', 'canceled', 'expired', 'gifted')",
            name='ck_enrollments_status',
        ),
    )

    op.create_table(
        'user_lesson_progress',
        sa.Column('user_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('lesson_id', sa.Uuid(as_uuid=True), sa.ForeignKey('lessons.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_viewed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('user_lesson_progress')
    op.drop_table('enrollments')
    op.drop_table('lessons')
    op.drop_table('course_modules')
    op.drop_table('courses')
    op.drop_table('sessions')
    op.drop_table('auth_tokens')
    op.drop_table('users')
