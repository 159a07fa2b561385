import sqlite3
from pathlib import Path
from typing import Any

from gemdesk.components.database.db_interface import DBInterface


class SqliteDB(DBInterface):
    def __init__(self, db_path: str):
        self.db_path = db_path
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """
        Open the database in autocommit mode, creating parent folders if needed.
        """
        if self.connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.connection = sqlite3.connect(self.db_path, isolation_level=None)
            self.connection.row_factory = sqlite3.Row

    def close(self) -> None:
        if self.connection:
            self.connection.close()
            self.connection = None

    def _cursor(self, query: str, params: tuple | None) -> sqlite3.Cursor:
        if self.connection is None:
            raise ConnectionError("Database not connected")
        return self.connection.execute(query, params or ())

    def execute(self, query: str, params: tuple | None = None) -> None:
        self._cursor(query, params)

    def execute_and_fetch(
        self, query: str, params: tuple | None = None
    ) -> list[dict[str, Any]]:
        """
        Execute a query and fetch all rows as dictionaries.
        """
        rows = self._cursor(query, params).fetchall()
        return [dict(row) for row in rows]

    def execute_and_fetchone(
        self, query: str, params: tuple | None = None
    ) -> dict[str, Any] | None:
        row = self._cursor(query, params).fetchone()
        if row:
            return dict(row)
        return None

    def begin_transaction(self) -> None:
        """
        Open an explicit transaction; autocommit resumes after commit or rollback.
        """
        self._cursor("BEGIN TRANSACTION", None)

    def commit(self) -> None:
        if self.connection is None:
            raise ConnectionError("Database not connected")
        self.connection.commit()

    def rollback(self) -> None:
        if self.connection is None:
            raise ConnectionError("Database not connected")
        self.connection.rollback()
