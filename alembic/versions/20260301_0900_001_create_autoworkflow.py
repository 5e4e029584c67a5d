"""Create autoworkflow table

Revision ID: 001
Revises:
Create Date: 2026-03-01

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'autoworkflow',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('episode_interview_file_name', sa.String(512), nullable=False),
        # Script drafts
        sa.Column('episode_interview_script_1', sa.Text, nullable=True),
        sa.Column('episode_interview_script_2', sa.Text, nullable=True),
        sa.Column('episode_interview_script_3', sa.Text, nullable=True),
        sa.Column('episode_interview_script_4', sa.Text, nullable=True),
        sa.Column('episode_interview_full_script', sa.Text, nullable=True),
        sa.Column('episode_interview_file', sa.Text, nullable=True),
        # Stage statuses
        sa.Column('episode_interview_script_status', sa.String(32), nullable=True),
        sa.Column('episode_text_files_status', sa.String(32), nullable=True),
        sa.Column('podcast_status', sa.String(32), nullable=True),
        # Text files
        sa.Column('episode_titles', sa.Text, nullable=True),
        sa.Column('episode_description', sa.Text, nullable=True),
        sa.Column('episode_intro_transcript', sa.Text, nullable=True),
        sa.Column('linkedin_post', sa.Text, nullable=True),
        sa.Column('x_post', sa.Text, nullable=True),
        sa.Column('podcast_excerpt', sa.Text, nullable=True),
        # Episode assets
        sa.Column('show_notes', sa.Text, nullable=True),
        sa.Column('intro_audio', sa.Text, nullable=True),
        sa.Column('master_audio', sa.Text, nullable=True),
        # Podbean publishing
        sa.Column('podbean_cover_art_url', sa.Text, nullable=True),
        sa.Column('podbean_scheduled_date', sa.String(10), nullable=True),
        sa.Column('podbean_timestamp', sa.BigInteger, nullable=True),
    )
    op.create_index('ix_autoworkflow_episode_name', 'autoworkflow', ['episode_interview_file_name'])
    op.create_index('ix_autoworkflow_created_at', 'autoworkflow', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_autoworkflow_created_at', table_name='autoworkflow')
    op.drop_index('ix_autoworkflow_episode_name', table_name='autoworkflow')
    op.drop_table('autoworkflow')
