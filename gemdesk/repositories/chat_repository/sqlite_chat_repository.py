import json

from gemdesk.repositories.chat_repository.chat_repository_interface import (
    ChatRepositoryInterface,
)
from gemdesk.entities.message import ImageAttachment, MessagePayload
from gemdesk.components.database.db_interface import DBInterface
from gemdesk.utils.encoding import to_data_url


class SqliteChatRepository(ChatRepositoryInterface):
    def __init__(self, db: DBInterface):
        self.db = db
        self._init_table()

    def _init_table(self):
        query_messages = """
        CREATE TABLE IF NOT EXISTS messages (
            position INTEGER PRIMARY KEY,
            message_id TEXT NOT NULL,
            role TEXT NOT NULL,
            content TEXT NOT NULL,
            attachments TEXT NOT NULL,
            timestamp REAL NOT NULL
        );
        """
        self.db.execute(query_messages)

    def load_history(self) -> list[MessagePayload]:
        query = """
        SELECT message_id, role, content, attachments, timestamp
        FROM messages
        ORDER BY position
        """
        rows = self.db.execute_and_fetch(query)
        return [
            {
                "id": row["message_id"],
                "role": row["role"],
                "content": row["content"],
                "attachments": [
                    self._with_preview(attachment)
                    for attachment in json.loads(row["attachments"])
                ],
                "timestamp": row["timestamp"],
            }
            for row in rows
        ]

    def save_history(self, messages: list[MessagePayload]) -> None:
        query = """
        INSERT INTO messages (position, message_id, role, content, attachments, timestamp)
        VALUES (?, ?, ?, ?, ?, ?)
        """
        self.db.begin_transaction()
        try:
            self.clear_history()
            for position, message in enumerate(messages):
                self.db.execute(
                    query,
                    (
                        position,
                        message["id"],
                        message["role"],
                        message["content"],
                        json.dumps(self._storable(message["attachments"])),
                        message["timestamp"],
                    ),
                )
        except Exception:
            self.db.rollback()
            raise
        self.db.commit()

    def clear_history(self) -> None:
        self.db.execute("DELETE FROM messages")

    @staticmethod
    def _with_preview(attachment: ImageAttachment) -> ImageAttachment:
        attachment["preview_url"] = to_data_url(
            attachment["mime_type"], attachment["base64"]
        )
        return attachment

    @staticmethod
    def _storable(attachments: list[ImageAttachment]) -> list[dict]:
        # Previews are rebuilt from the payload on load.
        return [
            {key: value for key, value in attachment.items() if key != "preview_url"}
            for attachment in attachments
        ]
