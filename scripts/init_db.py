#!/usr/bin/env python3
"""
Initialize the client ledger database.

Run this script to create the schema at the configured database path.
"""
from client_ledger.config.settings import ConfigLoader
from client_ledger.database.connection import SCHEMA_PATH, DatabaseConfig, DatabaseManager, execute_schema

def main():
    """initialize the database."""

    settings = ConfigLoader.load_settings()
    config = DatabaseConfig(settings.database_path)
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        conn = db.get_connection()

        print(f"Executing schema from: {SCHEMA_PATH}")
        execute_schema(conn)

        row = conn.execute(
            "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()

        if row:
            print(f"✓ Database initialized successfully!")
            print(f"  Schema version: {row['version']}")
            print(f"  Description: {row['description']}")
        else:
            print("✗ Database initialization may have failed")

if __name__ == "__main__":
    main()
