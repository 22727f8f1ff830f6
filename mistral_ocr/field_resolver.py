"""
Field source resolution

Document fields come from exactly one of three sources:

- a named template (TemplateSource)
- the visual field editor collection (CollectionSource)
- a raw JSON object, either the custom-fields JSON or the advanced
  document/bbox schema (RawJsonSource)

`select_document_source` picks the variant from the user's settings and
`resolve_field_source` turns any variant into a FieldSchema.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .errors import InvalidSchemaJson, SchemaBuildError
from .logging import get_logger
from .templates import DEFAULT_BBOX_SCHEMA, QUICK_FIELDS, get_document_template
from .types import DocumentTemplateType, FieldSchema, FieldSpec, FieldType

logger = get_logger(__name__)

CUSTOM_FIELD_SENTINEL = "__custom__"


@dataclass(frozen=True)
class TemplateSource:
    template_id: str


@dataclass(frozen=True)
class CollectionSource:
    collection: Any


@dataclass(frozen=True)
class RawJsonSource:
    text: Any
    label: str = "Custom Fields"


FieldSource = Union[TemplateSource, CollectionSource, RawJsonSource]


# =============================================================================
# Source parsers
# =============================================================================

def parse_fields_json(text: Any, label: str = "Custom Fields") -> FieldSchema:
    """
    Parse a JSON object of `name -> {type, description, items?, required?}`.

    Already-decoded mappings (hosts that deliver JSON parameters as objects)
    are accepted as-is.

    Raises:
        InvalidSchemaJson: text is not valid JSON
        SchemaBuildError: the JSON value is not an object of field objects
    """
    if isinstance(text, Mapping):
        data = text
    else:
        try:
            data = json.loads(text or "{}")
        except (TypeError, ValueError) as e:
            raise InvalidSchemaJson(f"Invalid {label} JSON: {e}", cause=e) from e

    if not isinstance(data, Mapping):
        raise SchemaBuildError(f"{label} must be a JSON object, got {type(data).__name__}")

    return {name: FieldSpec.from_dict(name, spec) for name, spec in data.items()}


def _collection_entries(collection: Any) -> list:
    if collection is None:
        return []
    if isinstance(collection, Mapping):
        entries = collection.get("field", [])
    else:
        entries = collection
    if not isinstance(entries, list):
        raise SchemaBuildError(
            f"Custom fields must be a list of field entries, got {type(entries).__name__}"
        )
    return entries


def build_fields_from_collection(collection: Any) -> FieldSchema:
    """
    Build fields from the visual editor collection (`{"field": [...]}` or a list).

    Entries with fieldName "__custom__" use customFieldName. Entries naming a
    quick field inherit its type, description and required flag when left
    empty. Incomplete entries are skipped; a repeated name overwrites the
    earlier entry.
    """
    schema: FieldSchema = {}

    for index, entry in enumerate(_collection_entries(collection)):
        if not isinstance(entry, Mapping):
            raise SchemaBuildError(f"Custom field entry {index} must be an object")

        name = entry.get("fieldName")
        if name == CUSTOM_FIELD_SENTINEL:
            name = entry.get("customFieldName")

        preset = QUICK_FIELDS.get(name) if isinstance(name, str) else None
        field_type = entry.get("fieldType") or (preset.type if preset else None)
        description = entry.get("description") or (preset.description if preset else None)
        if "required" in entry:
            required = entry.get("required") is True
        else:
            required = preset.required if preset else False

        if not (name and field_type and description):
            logger.debug(f"Skipping incomplete custom field entry {index}")
            continue

        try:
            field_type = FieldType(field_type).value
        except ValueError:
            raise SchemaBuildError(f"Custom field '{name}' has unsupported type '{field_type}'")

        schema[name] = FieldSpec(
            type=field_type,
            description=description,
            items={"type": "string"} if field_type == FieldType.ARRAY.value else None,
            required=required,
        )

    return schema


def resolve_field_source(source: FieldSource) -> FieldSchema:
    if isinstance(source, TemplateSource):
        return get_document_template(source.template_id)
    if isinstance(source, CollectionSource):
        return build_fields_from_collection(source.collection)
    if isinstance(source, RawJsonSource):
        return parse_fields_json(source.text, source.label)
    raise SchemaBuildError(f"Unknown field source: {source!r}")


# =============================================================================
# Selection
# =============================================================================

def select_document_source(
    template: str,
    custom_field_source: Any = None,
    advanced_mode: bool = False,
    document_schema_json: Optional[Any] = None,
) -> FieldSource:
    """
    Choose where document fields come from.

    advanced_mode wins over everything else: the raw schema JSON is used and a
    visual collection is ignored. Otherwise `custom_field_source` is only
    consulted for the custom template; a string (or decoded mapping without a
    "field" list) is custom-fields JSON, anything else a visual collection.
    """
    if advanced_mode:
        text = document_schema_json
        if text is None and isinstance(custom_field_source, str):
            text = custom_field_source
        return RawJsonSource(text, label="Document Annotation Schema")

    if template == DocumentTemplateType.CUSTOM.value:
        if isinstance(custom_field_source, str):
            return RawJsonSource(custom_field_source, label="Custom Fields")
        if isinstance(custom_field_source, Mapping) and "field" not in custom_field_source:
            return RawJsonSource(custom_field_source, label="Custom Fields")
        return CollectionSource(custom_field_source)

    return TemplateSource(template)


def resolve_document_fields(
    template: str,
    custom_field_source: Any = None,
    advanced_mode: bool = False,
    document_schema_json: Optional[Any] = None,
) -> FieldSchema:
    return resolve_field_source(
        select_document_source(template, custom_field_source, advanced_mode, document_schema_json)
    )


def resolve_bbox_fields(advanced_mode: bool, bbox_schema_json: Optional[Any] = None) -> FieldSchema:
    """Element-level fields: advanced JSON, or the fixed default bbox schema."""
    if advanced_mode:
        return parse_fields_json(bbox_schema_json, label="BBox Annotation Schema")
    return dict(DEFAULT_BBOX_SCHEMA)
