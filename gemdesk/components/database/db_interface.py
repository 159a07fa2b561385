from abc import ABC, abstractmethod
from typing import Any


class DBInterface(ABC):
    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def execute(self, query: str, params: tuple | None = None) -> None: ...

    @abstractmethod
    def execute_and_fetch(
        self, query: str, params: tuple | None = None
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    def execute_and_fetchone(
        self, query: str, params: tuple | None = None
    ) -> dict[str, Any] | None: ...

    @abstractmethod
    def begin_transaction(self) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
