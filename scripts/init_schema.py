#!/usr/bin/env python3
"""
Initialize the tickets table with a direct PostgreSQL connection

Usage:
    python scripts/init_schema.py
    python scripts/init_schema.py --table tickets_staging
"""
import argparse
import os
import sys

import psycopg2
from dotenv import load_dotenv

load_dotenv()


def get_connection():
    """Get PostgreSQL connection using .env variables"""
    host = os.getenv("SUPABASE_DB_HOST")
    port = int(os.getenv("SUPABASE_DB_PORT", "6543"))
    database = os.getenv("SUPABASE_DB_NAME", "postgres")
    user = os.getenv("SUPABASE_DB_USER")
    password = os.getenv("SUPABASE_DB_PASSWORD")

    print(f"🔗 Connecting to: {host}:{port}")
    print(f"   Database: {database}")
    print(f"   User: {user}")

    return psycopg2.connect(
        host=host,
        port=port,
        database=database,
        user=user,
        password=password
    )


def schema_sql(table: str) -> str:
    """
    DDL for the tickets table

    ticket_key is unique: the store holds exactly one row per ticket and
    upserts resolve conflicts on it. Keys are stored upper-cased, which makes
    the unique constraint case-insensitive.
    """
    return f"""
    CREATE TABLE IF NOT EXISTS {table} (
        id BIGSERIAL PRIMARY KEY,
        ticket_key TEXT NOT NULL,
        title TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        ticket_type TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT '',
        priority TEXT NOT NULL DEFAULT '',
        assignee TEXT NOT NULL DEFAULT '',
        reporter TEXT NOT NULL DEFAULT '',
        project_key TEXT NOT NULL DEFAULT '',
        labels JSONB NOT NULL DEFAULT '[]',
        components JSONB NOT NULL DEFAULT '[]',
        affected_files JSONB NOT NULL DEFAULT '[]',
        pull_request_url TEXT NOT NULL DEFAULT '',
        pr_links JSONB NOT NULL DEFAULT '[]',
        resolution TEXT NOT NULL DEFAULT '',
        fix_versions JSONB NOT NULL DEFAULT '[]',
        related_tickets JSONB NOT NULL DEFAULT '[]',
        created_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_date TIMESTAMPTZ,
        resolved_date TIMESTAMPTZ,
        CONSTRAINT uq_{table}_ticket_key UNIQUE (ticket_key),
        CONSTRAINT ck_{table}_ticket_key_upper CHECK (ticket_key = UPPER(ticket_key))
    );

    CREATE INDEX IF NOT EXISTS idx_{table}_project_key ON {table}(project_key);
    CREATE INDEX IF NOT EXISTS idx_{table}_created_date ON {table}(created_date DESC);
    CREATE INDEX IF NOT EXISTS idx_{table}_status ON {table}(status);
    """


def create_schema(table: str) -> bool:
    """Create the tickets table and its indexes"""
    conn = None
    try:
        conn = get_connection()
        cur = conn.cursor()

        print(f"🔧 Creating table {table}...")
        cur.execute(schema_sql(table))
        conn.commit()
        print("✅ DDL executed successfully")

        cur.execute(f"SELECT COUNT(*) FROM {table}")
        count = cur.fetchone()[0]
        print(f"  {table}: {count} records")

        cur.close()
        return True

    except Exception as e:
        print(f"❌ Error: {str(e)}")
        if conn:
            conn.rollback()
        return False
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the tickets table")
    parser.add_argument("--table", default=os.getenv("TICKETS_TABLE", "tickets"))
    args = parser.parse_args()

    sys.exit(0 if create_schema(args.table) else 1)
