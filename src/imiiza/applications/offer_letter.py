"""Offer letters sent by sales staff as base64 data URLs."""

import base64
import binascii
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Dict

from ..domain.applications.errors import ApplicationValidationError
from ..domain.applications.history import format_timestamp
from ..domain.documents.ports.object_storage_port import ObjectStoragePort, StoredFile
from ..domain.documents.validation import (
    OFFER_LETTERS_ROOT,
    sanitize_filename,
    validate_file_size,
    validate_filename,
)


_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[\w.-]+)*;base64,(?P<payload>.*)$", re.DOTALL)


@dataclass
class DecodedOfferLetter:
    filename: str
    mime_type: str
    content: bytes


def decode_offer_letter(filename: str, data_url: str, max_size: int) -> DecodedOfferLetter:
    """Decode a ``data:<mime>;base64,<payload>`` string.

    Raises:
        ApplicationValidationError: If the filename, data URL or size is invalid

    Example:
        >>> decode_offer_letter("offer.pdf", "data:application/pdf;base64,JVBERi0=", 1024).content
        b'%PDF-'
    """
    is_valid, error = validate_filename(filename)
    if not is_valid:
        raise ApplicationValidationError(error, field="offerLetter")

    match = _DATA_URL.match(data_url.strip())
    if not match:
        raise ApplicationValidationError("Offer letter must be a base64 data URL", field="offerLetter")

    try:
        content = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError):
        raise ApplicationValidationError("Offer letter is not valid base64", field="offerLetter") from None

    is_valid, error = validate_file_size(len(content), max_size)
    if not is_valid:
        raise ApplicationValidationError(error, field="offerLetter")

    return DecodedOfferLetter(
        filename=sanitize_filename(filename),
        mime_type=match.group("mime") or "application/octet-stream",
        content=content,
    )


async def store_offer_letter(storage: ObjectStoragePort, letter: DecodedOfferLetter) -> StoredFile:
    return await storage.store_file(
        file=BytesIO(letter.content),
        prefix=OFFER_LETTERS_ROOT,
        filename=letter.filename,
        mime_type=letter.mime_type,
    )


def offer_letter_record(stored: StoredFile, filename: str, now) -> Dict[str, Any]:
    """Shape persisted in applications.offer_letter."""
    return {
        "url": stored.url,
        "storagePath": stored.storage_key,
        "filename": filename,
        "mimeType": stored.mime_type,
        "size": stored.size_bytes,
        "uploadDate": format_timestamp(now),
    }
