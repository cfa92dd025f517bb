"""add studio, credit and audio log tables

Revision ID: 7c2e91a4d5b3
Revises:
Create Date: 2026-10-17 10:12:31.402918

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '7c2e91a4d5b3'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    connection = op.get_bind()

    if not connection.dialect.has_table(connection, 'studio'):
        op.create_table(
            'studio',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('chapters', sa.JSON(), nullable=True),
            sa.Column('cast', sa.JSON(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    if not connection.dialect.has_table(connection, 'galleries'):
        op.create_table(
            'galleries',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('files', sa.JSON(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

    if not connection.dialect.has_table(connection, 'projects'):
        op.create_table(
            'projects',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('owner_id', sa.String(), nullable=False),
            sa.Column('access_levels', sa.JSON(), nullable=True),
            sa.Column('studio_id', sa.String(), nullable=True),
            sa.Column('gallery_id', sa.String(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['studio_id'], ['studio.id']),
            sa.ForeignKeyConstraint(['gallery_id'], ['galleries.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_projects_owner_id'), 'projects', ['owner_id'], unique=False)

    if not connection.dialect.has_table(connection, 'credits_allocation'):
        op.create_table(
            'credits_allocation',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('user_id', sa.String(), nullable=False),
            sa.Column('credits_available', sa.Integer(), nullable=False),
            sa.Column('credits_used', sa.Integer(), nullable=False),
            sa.Column('total_credits_used', sa.Integer(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(
            op.f('ix_credits_allocation_user_id'), 'credits_allocation', ['user_id'], unique=True
        )

    if not connection.dialect.has_table(connection, 'block_audio_generation_log'):
        op.create_table(
            'block_audio_generation_log',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('project_id', sa.String(), nullable=False),
            sa.Column('studio_id', sa.String(), nullable=False),
            sa.Column('chapter_id', sa.String(), nullable=False),
            sa.Column('block_id', sa.String(), nullable=False),
            sa.Column('block_snapshot', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint(
                'project_id', 'studio_id', 'chapter_id', 'block_id', name='unique_block_audio_log'
            )
        )
        op.create_index(
            op.f('ix_block_audio_generation_log_project_id'),
            'block_audio_generation_log',
            ['project_id'],
            unique=False,
        )

    if not connection.dialect.has_table(connection, 'chapter_audio_generation_log'):
        op.create_table(
            'chapter_audio_generation_log',
            sa.Column('id', sa.String(), nullable=False),
            sa.Column('project_id', sa.String(), nullable=False),
            sa.Column('studio_id', sa.String(), nullable=False),
            sa.Column('chapter_id', sa.String(), nullable=False),
            sa.Column('chapter_snapshot', sa.JSON(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint(
                'project_id', 'studio_id', 'chapter_id', name='unique_chapter_audio_log'
            )
        )
        op.create_index(
            op.f('ix_chapter_audio_generation_log_project_id'),
            'chapter_audio_generation_log',
            ['project_id'],
            unique=False,
        )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(
        op.f('ix_chapter_audio_generation_log_project_id'), table_name='chapter_audio_generation_log'
    )
    op.drop_table('chapter_audio_generation_log')
    op.drop_index(
        op.f('ix_block_audio_generation_log_project_id'), table_name='block_audio_generation_log'
    )
    op.drop_table('block_audio_generation_log')
    op.drop_index(op.f('ix_credits_allocation_user_id'), table_name='credits_allocation')
    op.drop_table('credits_allocation')
    op.drop_index(op.f('ix_projects_owner_id'), table_name='projects')
    op.drop_table('projects')
    op.drop_table('galleries')
    op.drop_table('studio')
