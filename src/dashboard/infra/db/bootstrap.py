from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import create_engine, text

from src.dashboard.config import settings
from src.dashboard.infra.db.models import Base

logger = logging.getLogger("schema")


def postgres_statements() -> List[str]:
    """DDL that only makes sense on the hosted PostgreSQL database.

    Covers id defaults, row level security and the stored functions the
    gateway exposes as remote procedures. Every statement is idempotent.
    """

    return [
        "CREATE EXTENSION IF NOT EXISTS pgcrypto",
        "ALTER TABLE patient_notes ALTER COLUMN id SET DEFAULT gen_random_uuid()",
        "ALTER TABLE patients ALTER COLUMN id SET DEFAULT gen_random_uuid()",
        "ALTER TABLE patient_notes ENABLE ROW LEVEL SECURITY",
        "ALTER TABLE patients ENABLE ROW LEVEL SECURITY",
        """
        DO $$
        BEGIN
            IF NOT EXISTS (
                SELECT 1 FROM pg_policies WHERE tablename = 'patients' AND policyname = 'patients_owner'
            ) THEN
                CREATE POLICY patients_owner ON patients
                    USING (user_id = auth.uid()) WITH CHECK (user_id = auth.uid());
            END IF;
            IF NOT EXISTS (
                SELECT 1 FROM pg_policies WHERE tablename = 'patient_notes' AND policyname = 'patient_notes_owner'
            ) THEN
                CREATE POLICY patient_notes_owner ON patient_notes
                    USING (user_id = auth.uid()) WITH CHECK (user_id = auth.uid());
            END IF;
        END $$
        """,
        f"""
        CREATE OR REPLACE FUNCTION {settings.notes_get_rpc}(p_patient_id text)
        RETURNS SETOF patient_notes
        LANGUAGE sql STABLE AS $$
            SELECT * FROM patient_notes
            WHERE patient_id = p_patient_id AND user_id = auth.uid()
            ORDER BY created_at DESC
        $$
        """,
        f"""
        CREATE OR REPLACE FUNCTION {settings.notes_add_rpc}(p_patient_id text, p_content text)
        RETURNS patient_notes
        LANGUAGE sql AS $$
            INSERT INTO patient_notes (patient_id, user_id, content)
            VALUES (p_patient_id, auth.uid(), p_content)
            RETURNING *
        $$
        """,
        f"""
        CREATE OR REPLACE FUNCTION {settings.notes_delete_rpc}(p_note_id uuid)
        RETURNS boolean
        LANGUAGE plpgsql AS $$
        BEGIN
            DELETE FROM patient_notes WHERE id = p_note_id AND user_id = auth.uid();
            RETURN FOUND;
        END
        $$
        """,
        """
        CREATE OR REPLACE FUNCTION create_patient_notes_table()
        RETURNS void
        LANGUAGE sql SECURITY DEFINER AS $$
            CREATE TABLE IF NOT EXISTS patient_notes (
                id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
                patient_id text NOT NULL,
                user_id uuid NOT NULL,
                content text NOT NULL,
                created_at timestamptz NOT NULL DEFAULT now()
            )
        $$
        """,
    ]


def init_schema(database_url: Optional[str] = None) -> bool:
    """Create the dashboard tables and, on PostgreSQL, the stored functions.

    This is a deployment-time step; the request path never manages schema.
    Returns ``False`` when no DATABASE_URL is configured.
    """

    db_url = database_url or settings.database_url
    if not db_url:
        logger.warning("DATABASE_URL is not configured; skipping schema bootstrap")
        return False

    engine = create_engine(db_url, future=True)
    try:
        Base.metadata.create_all(engine)
        if engine.dialect.name == "postgresql":
            with engine.begin() as conn:
                for statement in postgres_statements():
                    conn.execute(text(statement))
        else:
            logger.info("Dialect %s has no stored functions; created tables only", engine.dialect.name)
    finally:
        engine.dispose()

    logger.info("Schema bootstrap completed")
    return True


def main() -> None:  # pragma: no cover - console entry point
    logging.basicConfig(level=settings.log_level)
    if not init_schema():
        raise SystemExit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
