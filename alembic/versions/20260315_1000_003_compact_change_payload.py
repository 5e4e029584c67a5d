"""Send a compact change notification when the full row is too large

Revision ID: 003
Revises: 002
Create Date: 2026-03-15

pg_notify rejects payloads of 8000 bytes or more, which would abort the
INSERT or UPDATE that fired the trigger. Rows whose JSON does not fit are
announced as {"type", "table", "truncated": true, "record": {id, name}};
listeners re-read the row by id.
PostgreSQL only; other dialects skip this revision.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '003'
down_revision: Union[str, None] = '002'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute("""
        CREATE OR REPLACE FUNCTION notify_autoworkflow_change() RETURNS trigger AS $$
        DECLARE
            payload text;
        BEGIN
            payload := json_build_object(
                'type', TG_OP,
                'table', TG_TABLE_NAME,
                'record', row_to_json(NEW)
            )::text;
            IF octet_length(payload) >= 8000 THEN
                payload := json_build_object(
                    'type', TG_OP,
                    'table', TG_TABLE_NAME,
                    'truncated', true,
                    'record', json_build_object(
                        'id', NEW.id,
                        'episode_interview_file_name', NEW.episode_interview_file_name
                    )
                )::text;
            END IF;
            PERFORM pg_notify('autoworkflow_changes', payload);
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute("""
        CREATE OR REPLACE FUNCTION notify_autoworkflow_change() RETURNS trigger AS $$
        BEGIN
            PERFORM pg_notify(
                'autoworkflow_changes',
                json_build_object(
                    'type', TG_OP,
                    'table', TG_TABLE_NAME,
                    'record', row_to_json(NEW)
                )::text
            );
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
