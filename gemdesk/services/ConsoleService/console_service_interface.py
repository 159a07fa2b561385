from abc import ABC, abstractmethod


class ConsoleServiceInterface(ABC):
    @abstractmethod
    async def start(self) -> None:
        """Run the interactive chat loop until the user quits."""
        raise NotImplementedError
