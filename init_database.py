#!/usr/bin/env python3
"""Database initialization script.

Creates the feedback database schema at FEEDBACK_DATABASE_PATH and verifies it.
It can be run standalone or as part of the setup process.
"""

import sys

from sqlalchemy import inspect

from schemamap.config import get_config
from schemamap.database.schema import init_database

EXPECTED_TABLES = ["mapping_feedback"]
EXPECTED_INDEXES = ["idx_mapping_feedback_request_hash", "idx_mapping_feedback_created_at"]


def main():
    """Initialize database and verify setup."""
    print("=" * 50)
    print("Feedback Database Initialization")
    print("=" * 50)
    print()

    try:
        config = get_config()
        db_path = config.feedback_database_path

        print(f"Database path: {db_path}")
        print()

        print("Initializing database schema...")
        engine = init_database(db_path, echo=False)
        print("✓ Database initialized successfully")

        print()
        print("Verifying database schema...")
        inspector = inspect(engine)
        tables = inspector.get_table_names()

        print(f"Found {len(tables)} table(s):")
        for table in sorted(tables):
            marker = "✓" if table in EXPECTED_TABLES else "?"
            print(f"  {marker} {table}")

        missing_tables = [t for t in EXPECTED_TABLES if t not in tables]
        if missing_tables:
            print()
            print(f"⚠ Warning: Some expected tables are missing: {missing_tables}")
            return 1

        indexes = [idx["name"] for idx in inspector.get_indexes("mapping_feedback")]
        print()
        print("Indexes on mapping_feedback:")
        for idx in sorted(indexes):
            marker = "✓" if idx in EXPECTED_INDEXES else "?"
            print(f"  {marker} {idx}")

        engine.dispose()

        print()
        print("=" * 50)
        print("Database initialization completed successfully!")
        print("=" * 50)
        return 0

    except Exception as e:
        print()
        print("=" * 50)
        print(f"❌ Error initializing database: {e}")
        print("=" * 50)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
