from enum import Enum
from typing import Literal, NotRequired, TypedDict


class ImageAttachment(TypedDict):
    """Binary image payload encoded as base64."""

    base64: str
    mime_type: str
    preview_url: NotRequired[str | None]
    file_name: NotRequired[str | None]
    size_bytes: NotRequired[int]


class MessagePayload(TypedDict):
    """Conversation message shown to the user and replayed to the model."""

    id: str
    role: Literal["user", "model"]
    content: str
    attachments: list[ImageAttachment]
    timestamp: float


class TTSVoice(str, Enum):
    PUCK = "Puck"
    CHARON = "Charon"
    KORE = "Kore"
    FENRIR = "Fenrir"
    ZEPHYR = "Zephyr"


class PlaybackState(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    PLAYING = "playing"
