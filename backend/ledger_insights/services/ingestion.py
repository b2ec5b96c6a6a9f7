"""Ingestion adapter: uploaded document -> request payload variant.

Binary documents (PDF by default) are forwarded as base64 attachments and
left for the inference service to read. Everything else is decoded as UTF-8,
with undecodable bytes replaced by U+FFFD, and truncated to the configured
ceiling. No parsing of columns, currencies or PDF structure happens here.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Optional, Union

from ledger_insights.core.config import get_settings
from ledger_insights.services.errors import IngestionError

logger = logging.getLogger(__name__)

TEXT_KIND = "text"
BINARY_KIND = "binary"
REPLACEMENT_CHAR = "\ufffd"


@dataclass(frozen=True)
class InputDocument:
    data: bytes
    media_type: str
    filename: str = ""


@dataclass(frozen=True)
class TextPayload:
    content: str
    original_length: int = 0

    kind = TEXT_KIND

    @property
    def truncated(self) -> bool:
        return self.original_length > len(self.content)


@dataclass(frozen=True)
class BinaryPayload:
    data: str  # base64
    mime_type: str

    kind = BINARY_KIND


RequestPayload = Union[TextPayload, BinaryPayload]


def normalize_media_type(media_type: str | None) -> str:
    """``"Text/CSV; charset=utf-8"`` -> ``"text/csv"``."""
    if not media_type:
        return ""
    return media_type.split(";", 1)[0].strip().lower()


def build_payload(
    document: InputDocument,
    *,
    text_max_chars: Optional[int] = None,
    binary_max_bytes: Optional[int] = None,
    binary_media_types: Optional[list[str]] = None,
) -> RequestPayload:
    """Classify *document* and build exactly one payload variant.

    Limits default to the settings values; pass them explicitly to override.
    Raises ``IngestionError`` when the document is empty, too large for the
    binary path, or has no decodable text at all.
    """
    settings = get_settings()
    if text_max_chars is None:
        text_max_chars = settings.analysis_text_max_chars
    if binary_max_bytes is None:
        binary_max_bytes = settings.analysis_binary_max_bytes
    if binary_media_types is None:
        binary_media_types = settings.analysis_binary_media_types

    if not document.data:
        raise IngestionError("empty_document", f"{document.filename or 'upload'} has no content")

    media_type = normalize_media_type(document.media_type)

    if media_type in binary_media_types:
        size = len(document.data)
        if binary_max_bytes is not None and size > binary_max_bytes:
            raise IngestionError(
                "binary_too_large",
                f"{size} bytes exceeds the {binary_max_bytes} byte limit",
            )
        # Keep the declared media type as given, parameters included.
        return BinaryPayload(
            data=base64.b64encode(document.data).decode("ascii"),
            mime_type=document.media_type,
        )

    text = document.data.decode("utf-8-sig", errors="replace")
    replaced = text.count(REPLACEMENT_CHAR) - document.data.count(REPLACEMENT_CHAR.encode("utf-8"))

    if not text.strip():
        raise IngestionError("empty_document", f"{document.filename or 'upload'} contains only whitespace")
    if replaced and not text.replace(REPLACEMENT_CHAR, "").strip():
        raise IngestionError("undecodable_text", f"{document.filename or 'upload'} is not readable as text")
    if replaced:
        logger.warning(
            "Replaced %d undecodable byte sequence(s) in %r",
            replaced,
            document.filename,
        )

    if len(text) > text_max_chars:
        logger.info(
            "Truncating text document %r from %d to %d characters",
            document.filename,
            len(text),
            text_max_chars,
        )
    return TextPayload(content=text[:text_max_chars], original_length=len(text))
