"""Notify listeners on autoworkflow inserts and updates

Revision ID: 002
Revises: 001
Create Date: 2026-03-01

Adds a row trigger that publishes every INSERT and UPDATE on autoworkflow
to the `autoworkflow_changes` channel as
{"type": ..., "table": "autoworkflow", "record": <new row>}.
PostgreSQL only; other dialects skip this revision.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '002'
down_revision: Union[str, None] = '001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
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
    op.execute("""
        CREATE TRIGGER autoworkflow_change_notify
        AFTER INSERT OR UPDATE ON autoworkflow
        FOR EACH ROW EXECUTE FUNCTION notify_autoworkflow_change();
    """)


def downgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute("DROP TRIGGER IF EXISTS autoworkflow_change_notify ON autoworkflow;")
    op.execute("DROP FUNCTION IF EXISTS notify_autoworkflow_change();")
