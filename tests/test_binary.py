"""
Tests for mistral_ocr/binary.py
"""

import asyncio
import base64

import pytest

from mistral_ocr.binary import (
    correct_mime_type,
    decoded_length,
    is_supported_mime_type,
    normalize_binary,
)
from mistral_ocr.config import MAX_FILE_SIZE
from mistral_ocr.errors import EmptyOrCorruptData, FileTooLarge, UnsupportedFormat
from mistral_ocr.types import BinaryData

from conftest import PDF_BYTES


def _b64(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


class TestCorrectMimeType:
    def test_text_plain_pdf(self):
        assert correct_mime_type("text/plain", "invoice.pdf") == "application/pdf"

    def test_uppercase_extension(self):
        assert correct_mime_type("text/plain", "SCAN.JPG") == "image/jpeg"

    def test_unknown_extension_stays(self):
        assert correct_mime_type("text/plain", "notes.txt") == "text/plain"

    def test_only_text_plain_is_corrected(self):
        assert correct_mime_type("application/octet-stream", "invoice.pdf") == "application/octet-stream"

    def test_missing_mime_defaults_to_pdf(self):
        assert correct_mime_type(None, None) == "application/pdf"


class TestSupportedMimeType:
    def test_exact_matches(self):
        assert is_supported_mime_type("application/pdf")
        assert is_supported_mime_type("text/x-dokuwiki")
        assert is_supported_mime_type("application/x-ipynb+json")

    def test_image_family(self):
        assert is_supported_mime_type("image/bmp")

    def test_rejected(self):
        assert not is_supported_mime_type("text/plain")
        assert not is_supported_mime_type("application/zip")
        assert not is_supported_mime_type("video/mp4")


class TestNormalizeBinary:
    def test_inline_pdf(self):
        doc = asyncio.run(normalize_binary(BinaryData(_b64(PDF_BYTES), "application/pdf", "a.pdf")))
        assert doc.content == PDF_BYTES
        assert doc.mime_type == "application/pdf"
        assert doc.file_name == "a.pdf"

    def test_text_plain_corrected(self):
        doc = asyncio.run(normalize_binary(BinaryData(_b64(PDF_BYTES), "text/plain", "invoice.pdf")))
        assert doc.mime_type == "application/pdf"

    def test_text_plain_unknown_extension_rejected(self):
        with pytest.raises(UnsupportedFormat):
            asyncio.run(normalize_binary(BinaryData(_b64(b"hello world, plain text"), "text/plain", "notes.txt")))

    def test_default_file_name(self):
        doc = asyncio.run(normalize_binary(BinaryData(_b64(PDF_BYTES), "application/pdf")))
        assert doc.file_name == "document"

    def test_empty_payload(self):
        with pytest.raises(EmptyOrCorruptData):
            asyncio.run(normalize_binary(BinaryData("", "application/pdf", "a.pdf")))
        with pytest.raises(EmptyOrCorruptData):
            asyncio.run(normalize_binary(BinaryData(None, "application/pdf", "a.pdf")))

    def test_short_payload(self):
        with pytest.raises(EmptyOrCorruptData):
            asyncio.run(normalize_binary(BinaryData("JVBERi0=", "application/pdf", "a.pdf")))

    def test_invalid_base64(self):
        with pytest.raises(EmptyOrCorruptData):
            asyncio.run(normalize_binary(BinaryData("JVBERi0xLjQKa", "application/pdf", "a.pdf")))

    def test_file_too_large_with_small_limit(self):
        with pytest.raises(FileTooLarge):
            asyncio.run(normalize_binary(
                BinaryData(_b64(b"x" * 2048), "application/pdf", "a.pdf"),
                max_file_size=1024,
            ))

    def test_file_too_large_default_limit(self):
        encoded = "A" * (((MAX_FILE_SIZE + 3) // 3) * 4 + 4)
        assert decoded_length(encoded) > MAX_FILE_SIZE
        with pytest.raises(FileTooLarge):
            asyncio.run(normalize_binary(BinaryData(encoded, "application/pdf", "big.pdf")))


class TestFilesystemHandle:
    def test_dereferenced(self):
        calls = []

        async def dereference(item_index, property_name):
            calls.append((item_index, property_name))
            return PDF_BYTES

        doc = asyncio.run(normalize_binary(
            BinaryData("filesystem-v2:workflows/1/binary_data/abc", "application/pdf", "a.pdf"),
            item_index=2,
            property_name="document",
            dereference=dereference,
        ))
        assert doc.content == PDF_BYTES
        assert calls == [(2, "document")]

    def test_dereferenced_size_checked(self):
        async def dereference(item_index, property_name):
            return b"x" * 4096

        with pytest.raises(FileTooLarge):
            asyncio.run(normalize_binary(
                BinaryData("filesystem-abcdef.pdf", "application/pdf", "a.pdf"),
                dereference=dereference,
                max_file_size=1024,
            ))


class TestDecodedLength:
    def test_padding(self):
        assert decoded_length(_b64(b"abcd")) == 4
        assert decoded_length(_b64(b"abcde")) == 5
        assert decoded_length(_b64(b"abcdef")) == 6

    def test_line_wrapped_payload(self):
        encoded = _b64(b"x" * 300)
        wrapped = "\n".join(encoded[i:i + 76] for i in range(0, len(encoded), 76)) + "\n"
        assert decoded_length(wrapped) == 300

    def test_wrapped_payload_at_limit_accepted(self):
        content = b"%PDF-1.4\n" + b"x" * 1015
        encoded = _b64(content)
        wrapped = "\r\n".join(encoded[i:i + 64] for i in range(0, len(encoded), 64))

        document = asyncio.run(normalize_binary(
            BinaryData(wrapped, "application/pdf", "a.pdf"),
            max_file_size=len(content),
        ))
        assert document.content == content
