from gemdesk.bootstrap.components import Components
from gemdesk.components.database.db_interface import DBInterface
from gemdesk.repositories.chat_repository.chat_repository_interface import (
    ChatRepositoryInterface,
)
from gemdesk.repositories.chat_repository.sqlite_chat_repository import (
    SqliteChatRepository,
)
from gemdesk.repositories.preferences_repository.preferences_repository_interface import (
    PreferencesRepositoryInterface,
)
from gemdesk.repositories.preferences_repository.sqlite_preferences_repository import (
    SqlitePreferencesRepository,
)


def get_chat_repository(components: Components) -> ChatRepositoryInterface:
    return SqliteChatRepository(components.get_component(DBInterface))


def get_preferences_repository(components: Components) -> PreferencesRepositoryInterface:
    return SqlitePreferencesRepository(components.get_component(DBInterface))
