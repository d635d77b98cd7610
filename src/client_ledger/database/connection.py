import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Generator

from client_ledger.exceptions import PersistenceError

# Type alias for clarity
Connection = sqlite3.Connection
Cursor = sqlite3.Cursor

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Explicit adapters/converters; sqlite3's built-in date handling is deprecated
sqlite3.register_adapter(date, lambda d: d.isoformat())
sqlite3.register_adapter(datetime, lambda dt: dt.isoformat(" "))
sqlite3.register_adapter(Decimal, str) # Store as string for precision
sqlite3.register_converter("DATE", lambda b: date.fromisoformat(b.decode()))
sqlite3.register_converter("TIMESTAMP", lambda b: datetime.fromisoformat(b.decode()))

class DatabaseConfig:
    """Database configuration settings."""

    def __init__(self, db_path: Path | str = "data/ledger.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def connection_string(self) -> str:
        """Return the database file path as a string"""
        return str(self.db_path.absolute())

def configure_connection(conn: Connection) -> None:
    """
    Apply standard configuration to a SQLite connection.

    Args:
        conn: SQLite connection to configure
    """
    # Enable foreign key constraints (OFF by default in SQLite!)
    conn.execute("PRAGMA foreign_keys = ON")

    # Return rows as dict-like objects instead of tuples
    conn.row_factory = sqlite3.Row

class DatabaseManager:
    """
    Manages the SQLite connection.

    One lazily opened connection per manager; writes go through
    ``transaction()`` so they commit or roll back as a unit.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection: Connection | None = None

    def get_connection(self) -> Connection:
        """
        Get or create a database connection.

        Returns:
            sqlite3.Connection: Active database connection
        """
        if self._connection is None:
            self._connection = self._create_connection()
        return self._connection

    def _create_connection(self) -> Connection:
        conn = sqlite3.connect(
            self.config.connection_string,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
            check_same_thread=False,
        )
        configure_connection(conn)
        return conn

    def close(self) -> None:
        """Close the database connection if open."""
        if self._connection:
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Context manager for database transactions.

        Automatically commits on success, rolls back on exception.
        SQLite errors surface as PersistenceError.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO ...")
                conn.execute("UPDATE ...")
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database error: {e}") from e
        except Exception:
            conn.rollback()
            raise

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

def execute_schema(conn: Connection, schema_path: Path = SCHEMA_PATH) -> None:
    """
    Execute a SQL schema file.

    Args:
        conn: Database connection
        schema_path: Path to .sql file, defaults to the bundled schema
    """
    with open(schema_path) as f:
        schema = f.read()

    conn.executescript(schema)
    conn.commit()
