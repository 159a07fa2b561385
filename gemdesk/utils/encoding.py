"""Base64 and data URL helpers shared by attachments and synthesized audio."""

import base64
import binascii

_DATA_URL_PREFIX = "data:"
_BASE64_MARKER = ";base64"


def encode_base64(data: bytes) -> str:
    """Return the standard base64 text of ``data``."""
    return base64.b64encode(data).decode("ascii")


def decode_base64(encoded: str) -> bytes:
    """Decode base64 text, raising ``ValueError`` on malformed input."""
    try:
        return base64.b64decode(strip_data_url_prefix(encoded), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc


def to_data_url(mime_type: str, encoded: str) -> str:
    """Build a data URL usable as a preview reference."""
    return f"{_DATA_URL_PREFIX}{mime_type}{_BASE64_MARKER},{encoded}"


def split_data_url(data_url: str) -> tuple[str, str]:
    """Split ``data:<mime>;base64,<payload>`` into its mime type and payload."""
    if not data_url.startswith(_DATA_URL_PREFIX) or "," not in data_url:
        raise ValueError("Not a data URL")

    header, payload = data_url.split(",", 1)
    meta = header[len(_DATA_URL_PREFIX) :]
    if not meta.endswith(_BASE64_MARKER):
        raise ValueError("Only base64 data URLs are supported")

    mime_type = meta[: -len(_BASE64_MARKER)] or "application/octet-stream"
    return mime_type, payload


def strip_data_url_prefix(encoded: str) -> str:
    """Drop an embedded ``data:...;base64,`` header, leaving only the payload."""
    text = encoded.strip()
    if text.startswith(_DATA_URL_PREFIX) and "," in text:
        return text.split(",", 1)[1]
    return text
