"""File validation utilities for applicant document uploads."""

import os
import re
from typing import Optional, Tuple


DOCUMENTS_ROOT = "imiiza_documents"
OFFER_LETTERS_ROOT = "offer_letters"

# Scans and photos as sent by applicants
SUPPORTED_MIME_TYPES = {
    'application/pdf',
    'image/jpeg',
    'image/png',
    'image/webp',
    'image/heic',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/octet-stream',
}

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024


def is_supported_mime_type(mime_type: Optional[str]) -> bool:
    """Check if MIME type is accepted for upload

    Example:
        >>> is_supported_mime_type('application/pdf')
        True
        >>> is_supported_mime_type('text/html')
        False
    """
    if not mime_type:
        return False
    return mime_type.split(';')[0].strip().lower() in SUPPORTED_MIME_TYPES


def validate_file_size(size_bytes: int, max_size: int = DEFAULT_MAX_FILE_SIZE) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate an uploaded filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No null bytes or control characters

    Directory components are not rejected here; sanitize_filename strips
    them.

    Example:
        >>> validate_filename('passport.pdf')
        (True, None)
        >>> validate_filename('')
        (False, 'Filename cannot be empty')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '\x00' in filename:
        return False, "Filename contains null bytes"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe storage

    Example:
        >>> sanitize_filename('../../passport.pdf')
        'passport.pdf'
        >>> sanitize_filename('photo (copy).jpg')
        'photo_copy_.jpg'
    """
    filename = os.path.basename(filename.replace('\\', '/'))
    filename = re.sub(r'[^\w\s.-]', '_', filename)
    filename = re.sub(r'[\s_]+', '_', filename)

    if len(filename) > 255:
        name, ext = os.path.splitext(filename)
        filename = name[:255 - len(ext)] + ext

    return filename


def document_type_slug(document_type: str) -> str:
    """Folder name for a document type: lowercase, whitespace runs to '_'.

    Example:
        >>> document_type_slug('Bank Statement')
        'bank_statement'
    """
    slug = re.sub(r'\s+', '_', document_type.strip().lower())
    return slug.replace('/', '_').replace('\\', '_').replace('..', '_')


def document_prefix(document_type: str) -> str:
    return f"{DOCUMENTS_ROOT}/{document_type_slug(document_type)}"
