from gemdesk.repositories.preferences_repository.preferences_repository_interface import (
    PreferencesRepositoryInterface,
)
from gemdesk.components.database.db_interface import DBInterface


class SqlitePreferencesRepository(PreferencesRepositoryInterface):
    def __init__(self, db: DBInterface):
        self.db = db
        self._init_table()

    def _init_table(self):
        query = """
        CREATE TABLE IF NOT EXISTS preferences (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
        self.db.execute(query)

    def get_value(self, key: str) -> str | None:
        query = "SELECT value FROM preferences WHERE key = ?"
        result = self.db.execute_and_fetchone(query, (key,))
        if result:
            return result["value"]
        return None

    def set_value(self, key: str, value: str) -> None:
        query = """
        INSERT INTO preferences (key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value;
        """
        self.db.execute(query, (key, value))
