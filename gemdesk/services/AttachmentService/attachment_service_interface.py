import asyncio
from abc import ABC, abstractmethod
from collections.abc import Sequence

from gemdesk.entities.message import ImageAttachment
from gemdesk.entities.source_file import SourceFile


class AttachmentServiceInterface(ABC):
    @property
    @abstractmethod
    def attachments(self) -> list[ImageAttachment]:
        """Completed attachments waiting to be sent, in completion order."""

    @property
    @abstractmethod
    def is_processing(self) -> bool:
        """True while at least one conversion is in flight."""

    @abstractmethod
    def submit_files(self, files: Sequence[SourceFile]) -> list[asyncio.Task]:
        """Start one concurrent conversion per image file in ``files``."""

    @abstractmethod
    def submit_paste(self, files: Sequence[SourceFile]) -> bool:
        """Submit the image items of a clipboard paste. False when none were images."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Abort every in-flight conversion."""

    @abstractmethod
    def remove_attachment(self, index: int) -> ImageAttachment:
        """Remove one completed attachment."""

    @abstractmethod
    def clear_attachments(self) -> None:
        """Abort in-flight conversions and drop every completed attachment."""

    @abstractmethod
    def take_attachments(self) -> list[ImageAttachment]:
        """Hand the completed attachments over to an outgoing message."""

    @abstractmethod
    async def wait_until_idle(self) -> None:
        """Wait until no conversion is in flight."""
