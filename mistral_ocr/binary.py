"""
Binary payload normalization

Resolves the file bytes behind a host binary handle and fixes up the content
type before upload.
"""

from __future__ import annotations

import base64
import binascii
from types import MappingProxyType
from typing import Awaitable, Callable, Optional

from .config import MAX_FILE_SIZE, MIN_ENCODED_LENGTH
from .errors import EmptyOrCorruptData, FileTooLarge, UnsupportedFormat
from .logging import get_logger
from .types import BinaryData, NormalizedDocument

logger = get_logger(__name__)

FILESYSTEM_PREFIX = "filesystem-"
DEFAULT_MIME_TYPE = "application/pdf"
DEFAULT_FILE_NAME = "document"

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

EXTENSION_MIME_TYPES = MappingProxyType({
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    "docx": DOCX,
    "pptx": PPTX,
    "epub": "application/epub+zip",
    "rtf": "application/rtf",
    "odt": "application/vnd.oasis.opendocument.text",
    "tex": "application/x-latex",
    "ipynb": "application/x-ipynb+json",
})

SUPPORTED_MIME_TYPES = frozenset({
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/webp",
    "image/tiff",
    DOCX,
    PPTX,
    "application/epub+zip",
    "application/rtf",
    "application/vnd.oasis.opendocument.text",
    "application/x-latex",
    "application/x-ipynb+json",
    "text/troff",
    "text/x-dokuwiki",
})

# Top-level types accepted for any subtype
FAMILY_MATCH_TYPES = frozenset({"image"})

Dereference = Callable[[int, str], Awaitable[bytes]]


def file_extension(file_name: Optional[str]) -> str:
    if not file_name or "." not in file_name:
        return ""
    return file_name.lower().rsplit(".", 1)[-1]


def correct_mime_type(mime_type: Optional[str], file_name: Optional[str]) -> str:
    """Replace a text/plain misdetection with the type implied by the file extension."""
    mime_type = mime_type or DEFAULT_MIME_TYPE
    if mime_type != "text/plain" or not file_name:
        return mime_type

    corrected = EXTENSION_MIME_TYPES.get(file_extension(file_name))
    if corrected:
        logger.info(f"Fixed MIME type for {file_name}: {mime_type} -> {corrected}")
        return corrected
    return mime_type


def is_supported_mime_type(mime_type: str) -> bool:
    if mime_type in SUPPORTED_MIME_TYPES:
        return True
    top_level = mime_type.split("/", 1)[0]
    return top_level in FAMILY_MATCH_TYPES


def decoded_length(data: str) -> int:
    """Byte length of a base64 payload without decoding it; line breaks and spaces are ignored."""
    stripped = "".join(data.split())
    padding = len(stripped) - len(stripped.rstrip("="))
    return (len(stripped) * 3) // 4 - padding


def _check_size(size: int, max_file_size: int) -> None:
    if size > max_file_size:
        raise FileTooLarge(
            f"File size ({round(size / 1024 / 1024)}MB) exceeds the maximum allowed size "
            f"of {max_file_size // 1024 // 1024}MB"
        )


async def normalize_binary(
    binary: BinaryData,
    *,
    item_index: int = 0,
    property_name: str = "data",
    dereference: Optional[Dereference] = None,
    max_file_size: int = MAX_FILE_SIZE,
) -> NormalizedDocument:
    """
    Resolve bytes and content type for one binary handle.

    Raises:
        EmptyOrCorruptData: payload missing, shorter than 10 characters, or not base64
        UnsupportedFormat: content type outside the provider's allow-list
        FileTooLarge: decoded size above `max_file_size`
    """
    data = binary.data
    if not data or len(data) < MIN_ENCODED_LENGTH:
        raise EmptyOrCorruptData(
            f"Binary data is empty or corrupted. Expected a valid file but got "
            f"{len(data or '')} characters of data."
        )

    file_name = binary.file_name or DEFAULT_FILE_NAME
    mime_type = correct_mime_type(binary.mime_type, binary.file_name)
    if not is_supported_mime_type(mime_type):
        raise UnsupportedFormat(
            f'Unsupported file format: {mime_type}. File appears to be detected as "{binary.mime_type}". '
            "Supported formats: PDF, Images, Word, PowerPoint, RTF, EPUB, LaTeX, Jupyter Notebooks."
        )

    if data.startswith(FILESYSTEM_PREFIX):
        if dereference is None:
            raise EmptyOrCorruptData(f"No binary store available to resolve '{data}'")
        content = await dereference(item_index, property_name)
    else:
        _check_size(decoded_length(data), max_file_size)
        try:
            content = base64.b64decode(data, validate=False)
        except (binascii.Error, ValueError) as e:
            raise EmptyOrCorruptData(f"Binary data is not valid base64: {e}", cause=e) from e

    _check_size(len(content), max_file_size)
    if not content:
        raise EmptyOrCorruptData("Binary data decoded to an empty file")

    logger.debug(
        f"Normalized binary: file={file_name}, declared={binary.mime_type}, "
        f"mime={mime_type}, size={len(content)}"
    )
    return NormalizedDocument(content=content, mime_type=mime_type, file_name=file_name)
