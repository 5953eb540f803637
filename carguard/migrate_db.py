#!/usr/bin/env python3
"""
Database migration script
Adds reminder settings to users and the informational columns to services
on databases created before those fields existed
"""

import logging
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# table -> [(column, DDL type)]
MIGRATIONS = {
    "users": [
        ("reminder_days", "INTEGER NOT NULL DEFAULT 30"),
        ("reminders_enabled", "BOOLEAN NOT NULL DEFAULT 1"),
    ],
    "services": [
        ("cost", "FLOAT"),
        ("liters", "FLOAT"),
        ("price_per_liter", "FLOAT"),
        ("fuel_type", "VARCHAR(32)"),
        ("notes", "VARCHAR"),
        ("updated_at", "DATETIME"),
    ],
}


def _existing_columns(cursor: sqlite3.Cursor, table: str) -> List[str]:
    cursor.execute(f"PRAGMA table_info({table})")
    return [row[1] for row in cursor.fetchall()]


def migrate_database(db_path: str = "carguard.db") -> Optional[List[str]]:
    """
    Apply database migrations

    Returns:
        List of "table.column" entries that were added (empty if the
        schema was already current), or None if the migration failed
    """
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    try:
        migrations_applied = []

        for table, columns in MIGRATIONS.items():
            existing = _existing_columns(cursor, table)
            if not existing:
                logger.info(f"Table {table} does not exist yet, skipping")
                continue

            for column, ddl in columns:
                if column in existing:
                    continue
                logger.info(f"Adding {column} column to {table}...")
                cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")
                migrations_applied.append(f"{table}.{column}")

        if migrations_applied:
            conn.commit()
            logger.info(
                f"✅ Migration complete! Added columns: {', '.join(migrations_applied)}"
            )
        else:
            logger.info("✅ Database already up to date, no migrations needed")

        return migrations_applied

    except sqlite3.Error as e:
        logger.error(f"❌ Migration failed: {e}")
        conn.rollback()
        return None
    finally:
        conn.close()


if __name__ == "__main__":
    # Setup basic logging for script execution
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    db_file = sys.argv[1] if len(sys.argv) > 1 else "carguard.db"

    if not Path(db_file).exists():
        logger.error(f"❌ Database file not found: {db_file}")
        sys.exit(1)

    applied = migrate_database(db_file)
    sys.exit(0 if applied is not None else 1)
