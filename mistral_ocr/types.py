"""Data model shared by the OCR pipeline"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .config import DEFAULT_EXPIRY_HOURS, clamp_expiry_hours
from .errors import SchemaBuildError


# =============================================================================
# Field definitions
# =============================================================================

class FieldType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"


@dataclass(frozen=True)
class FieldSpec:
    """One extractable field: JSON type, description, array item schema."""

    type: str
    description: str = ""
    items: Optional[Dict[str, Any]] = None
    required: bool = False

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "FieldSpec":
        if isinstance(data, FieldSpec):
            return data
        if not isinstance(data, Mapping):
            raise SchemaBuildError(f"Field '{name}' must be an object, got {type(data).__name__}")
        field_type = data.get("type")
        if not isinstance(field_type, str) or not field_type:
            raise SchemaBuildError(f"Field '{name}' is missing a type")
        items = data.get("items")
        if items is not None and not isinstance(items, Mapping):
            raise SchemaBuildError(f"Field '{name}' has invalid items: expected an object")
        return cls(
            type=field_type,
            description=data.get("description") or "",
            items=dict(items) if items is not None else None,
            required=data.get("required") is True,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "description": self.description}
        if self.items is not None:
            out["items"] = dict(self.items)
        if self.required:
            out["required"] = True
        return out


FieldSchema = Dict[str, FieldSpec]


class DocumentTemplateType(str, Enum):
    CUSTOM = "custom"
    INVOICE = "invoice"
    LETTER = "letter"
    CONTRACT = "contract"
    RECEIPT = "receipt"
    ID_DOCUMENT = "id_document"
    RESEARCH_PAPER = "research_paper"


class Operation(str, Enum):
    BASIC_OCR = "basicOcr"
    OCR_WITH_ANNOTATIONS = "ocrWithAnnotations"


# =============================================================================
# Host-side item / binary representation
# =============================================================================

@dataclass
class BinaryData:
    """Binary handle as delivered by the host: inline base64 or an indirect reference."""

    data: Optional[str]
    mime_type: Optional[str] = None
    file_name: Optional[str] = None


@dataclass
class WorkItem:
    json: Dict[str, Any] = field(default_factory=dict)
    binary: Dict[str, BinaryData] = field(default_factory=dict)


@dataclass
class OutputItem:
    json: Dict[str, Any]
    paired_item: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"json": self.json}
        if self.paired_item is not None:
            out["pairedItem"] = {"item": self.paired_item}
        return out


@dataclass
class NormalizedDocument:
    content: bytes
    mime_type: str
    file_name: str


# =============================================================================
# Provider request / response types
# =============================================================================

@dataclass
class FormField:
    name: str
    value: Any
    filename: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class RequestSpec:
    """One HTTP call, relative to the provider base URL."""

    method: str
    url: str
    qs: Optional[Dict[str, Any]] = None
    json: Optional[Dict[str, Any]] = None
    form: Optional[List[FormField]] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class UploadedDocument:
    id: str


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expiry_hours: int


@dataclass
class OcrOptions:
    include_image_base64: bool = False
    expiry_hours: int = DEFAULT_EXPIRY_HOURS

    @classmethod
    def from_param(cls, raw: Optional[Mapping[str, Any]]) -> "OcrOptions":
        raw = raw or {}
        return cls(
            include_image_base64=bool(raw.get("includeImageBase64", False)),
            expiry_hours=clamp_expiry_hours(raw.get("expiryHours") or DEFAULT_EXPIRY_HOURS),
        )


@dataclass
class OcrRequestBody:
    model: str
    document_url: str
    include_image_base64: bool = False
    document_annotation_format: Optional[Dict[str, Any]] = None
    bbox_annotation_format: Optional[Dict[str, Any]] = None
    pages: Optional[List[int]] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.model,
            "document": {
                "type": "document_url",
                "document_url": self.document_url,
            },
            "include_image_base64": self.include_image_base64,
        }
        if self.document_annotation_format is not None:
            body["document_annotation_format"] = self.document_annotation_format
        if self.bbox_annotation_format is not None:
            body["bbox_annotation_format"] = self.bbox_annotation_format
        if self.pages is not None:
            body["pages"] = list(self.pages)
        return body


@dataclass(frozen=True)
class ExecutionMetadata:
    """Orchestration record attached to every successful output under `_metadata`."""

    operation: str
    uploaded_file_id: str
    signed_url: str
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    document_template: Optional[str] = None
    include_bbox_annotations: Optional[bool] = None
    advanced_mode: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "operation": self.operation,
            "uploadedFileId": self.uploaded_file_id,
            "signedUrl": self.signed_url,
            "processedAt": self.processed_at.isoformat(),
        }
        if self.document_template is not None:
            out["documentTemplate"] = self.document_template
        if self.include_bbox_annotations is not None:
            out["includeBboxAnnotations"] = self.include_bbox_annotations
        if self.advanced_mode is not None:
            out["advancedMode"] = self.advanced_mode
        return out


METADATA_KEY = "_metadata"
