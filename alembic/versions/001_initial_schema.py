"""Initial schema: sections and links document tables with change notifications.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

TABLES = ("sections", "links")


def upgrade():
    for table in TABLES:
        op.execute(f"""
            CREATE TABLE {table} (
                id TEXT PRIMARY KEY,
                data JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            );
        """)

    op.execute("CREATE INDEX idx_links_section_id ON links ((data->>'sectionId'));")
    op.execute("CREATE INDEX idx_links_created_at ON links (created_at);")

    # Payload is the table name; listeners re-read the whole collection
    op.execute("""
        CREATE OR REPLACE FUNCTION dochub_notify_change() RETURNS trigger AS $$
        BEGIN
            PERFORM pg_notify('dochub_changes', TG_TABLE_NAME);
            RETURN NULL;
        END;
        $$ LANGUAGE plpgsql;
    """)

    for table in TABLES:
        op.execute(f"""
            CREATE TRIGGER {table}_notify_change
            AFTER INSERT OR UPDATE OR DELETE ON {table}
            FOR EACH STATEMENT EXECUTE FUNCTION dochub_notify_change();
        """)


def downgrade():
    for table in TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS {table}_notify_change ON {table};")
    op.execute("DROP FUNCTION IF EXISTS dochub_notify_change();")
    op.execute("DROP INDEX IF EXISTS idx_links_created_at;")
    op.execute("DROP INDEX IF EXISTS idx_links_section_id;")
    for table in TABLES:
        op.execute(f"DROP TABLE IF EXISTS {table};")
