from abc import ABC, abstractmethod


class PreferencesRepositoryInterface(ABC):
    @abstractmethod
    def get_value(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set_value(self, key: str, value: str) -> None:
        pass
