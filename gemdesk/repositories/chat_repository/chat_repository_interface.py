from gemdesk.entities.message import MessagePayload


class ChatRepositoryInterface:
    def load_history(self) -> list[MessagePayload]:
        """Return the saved conversation in display order."""
        raise NotImplementedError

    def save_history(self, messages: list[MessagePayload]) -> None:
        """Replace the saved conversation with ``messages``."""
        raise NotImplementedError

    def clear_history(self) -> None:
        """Delete the saved conversation."""
        raise NotImplementedError
