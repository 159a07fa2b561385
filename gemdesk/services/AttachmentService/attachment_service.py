"""
Attachment ingestion: validated, concurrent and cancellable image encoding.

Each accepted file gets its own asyncio task. The set of tasks still tracked
in ``_pending`` is the source of truth: a conversion only commits its result
while its task is still tracked, so aborting (which untracks synchronously)
closes the race with a read that already finished.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

from gemdesk.entities.message import ImageAttachment
from gemdesk.entities.source_file import SourceFile
from gemdesk.services.AttachmentService.attachment_service_interface import (
    AttachmentServiceInterface,
)
from gemdesk.utils.encoding import encode_base64, to_data_url


class AttachmentError(Exception):
    """Base error for attachment ingestion."""


class AttachmentValidationError(AttachmentError):
    def __init__(self, rejected: Sequence[SourceFile]) -> None:
        self.rejected = list(rejected)
        super().__init__("Only image files are supported.")


class AttachmentReadError(AttachmentError):
    """Raised inside a conversion when a file cannot be turned into an attachment."""


def is_image(file: SourceFile) -> bool:
    return (file.mime_type or "").lower().startswith("image/")


class AttachmentService(AttachmentServiceInterface):
    _DEFAULT_MAX_ATTACHMENT_BYTES: int = 20 * 1024 * 1024

    def __init__(
        self,
        logger: logging.Logger,
        max_attachment_bytes: int = _DEFAULT_MAX_ATTACHMENT_BYTES,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self.logger = logger
        self.max_attachment_bytes = max_attachment_bytes
        self.on_change = on_change
        self._attachments: list[ImageAttachment] = []
        self._pending: dict[asyncio.Task, SourceFile] = {}
        self._is_processing: bool = False

    @property
    def attachments(self) -> list[ImageAttachment]:
        return list(self._attachments)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def submit_files(self, files: Sequence[SourceFile]) -> list[asyncio.Task]:
        if not files:
            return []

        valid = [file for file in files if is_image(file)]
        rejected = [file for file in files if not is_image(file)]

        if not valid:
            self.logger.info("Rejected batch of %s non-image files", len(rejected))
            raise AttachmentValidationError(rejected)

        if rejected:
            self.logger.info(
                "Skipping %s non-image files: %s",
                len(rejected),
                ", ".join(file.name or "unnamed" for file in rejected),
            )

        tasks: list[asyncio.Task] = []
        for file in valid:
            task = asyncio.create_task(self._convert(file))
            self._pending[task] = file
            tasks.append(task)

        self.logger.debug("Started %s conversions", len(tasks))
        self._refresh()
        return tasks

    def submit_paste(self, files: Sequence[SourceFile]) -> bool:
        images = [file for file in files if "image" in (file.mime_type or "")]
        if not images:
            return False
        self.submit_files(images)
        return True

    def cancel_all(self) -> None:
        if not self._pending:
            return

        tasks = list(self._pending)
        self._pending.clear()
        for task in tasks:
            task.cancel()

        self.logger.info("Cancelled %s pending conversions", len(tasks))
        self._refresh()

    def remove_attachment(self, index: int) -> ImageAttachment:
        removed = self._attachments.pop(index)
        self._refresh()
        return removed

    def clear_attachments(self) -> None:
        self.cancel_all()
        self._attachments.clear()
        self._refresh()

    def take_attachments(self) -> list[ImageAttachment]:
        taken, self._attachments = self._attachments, []
        self._refresh()
        return taken

    async def wait_until_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _convert(self, file: SourceFile) -> ImageAttachment | None:
        task = asyncio.current_task()
        name = file.name or "unnamed"

        try:
            attachment = await self._read_attachment(file)
        except asyncio.CancelledError:
            self.logger.debug("Conversion of %s aborted", name)
            self._release(task)
            raise
        except Exception as exc:
            self.logger.warning("Failed to read attachment %s: %s", name, exc)
            self._release(task)
            return None

        if task not in self._pending:
            self.logger.debug("Discarding %s, its conversion was cancelled", name)
            return None

        self._attachments.append(attachment)
        self._release(task)
        self.logger.info(
            "Collected image attachment: %s (%s bytes)",
            name,
            attachment.get("size_bytes", 0),
        )
        return attachment

    async def _read_attachment(self, file: SourceFile) -> ImageAttachment:
        data = await file.read()
        size_bytes = len(data)

        if size_bytes == 0:
            raise AttachmentReadError("Empty attachment")

        if size_bytes > self.max_attachment_bytes:
            raise AttachmentReadError(
                f"Attachment exceeds size limit: {size_bytes} bytes"
            )

        encoded = encode_base64(data)
        return {
            "mime_type": file.mime_type,
            "base64": encoded,
            "preview_url": to_data_url(file.mime_type, encoded),
            "file_name": file.name,
            "size_bytes": size_bytes,
        }

    def _release(self, task: asyncio.Task | None) -> None:
        if task is not None:
            self._pending.pop(task, None)
        self._refresh()

    def _refresh(self) -> None:
        self._is_processing = bool(self._pending)
        if self.on_change is not None:
            self.on_change()
