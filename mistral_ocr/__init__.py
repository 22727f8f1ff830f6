"""mistral_ocr package
====================

Runs documents through the Mistral OCR API: upload, signed URL, OCR
submission, with optional structured-data annotations.

Main submodules
---------------
- ``mistral_ocr.config``: provider limits, endpoints and environment settings
- ``mistral_ocr.types``: data model (field specs, request bodies, metadata)
- ``mistral_ocr.errors``: exception hierarchy
- ``mistral_ocr.pages``: page selection parsing
- ``mistral_ocr.templates``: document templates and field presets
- ``mistral_ocr.schema_builder``: field schema -> strict JSON-schema envelope
- ``mistral_ocr.field_resolver``: template / collection / JSON field sources
- ``mistral_ocr.binary``: binary payload and MIME normalization
- ``mistral_ocr.retry``: 429 retry with exponential backoff
- ``mistral_ocr.transport``: aiohttp transport and credentials
- ``mistral_ocr.context``: host collaborators
- ``mistral_ocr.orchestrator``: per-item pipeline
"""

from .errors import OcrAdapterError, RateLimitExceeded, SchemaBuildError, ValidationError
from .orchestrator import MistralOcrOrchestrator, build_ocr_request
from .pages import parse_pages
from .schema_builder import RequiredPolicy, build_json_schema

__all__ = [
    "OcrAdapterError",
    "RateLimitExceeded",
    "SchemaBuildError",
    "ValidationError",
    "MistralOcrOrchestrator",
    "build_ocr_request",
    "parse_pages",
    "RequiredPolicy",
    "build_json_schema",
]
