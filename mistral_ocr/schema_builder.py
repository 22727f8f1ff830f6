"""
Field schema -> provider JSON-schema envelope

The provider validates annotations against a strict schema: every property is
declared, `additionalProperties` is false, and `required` lists the fields the
model must always return.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping

from .errors import SchemaBuildError
from .types import FieldSpec, FieldType


class RequiredPolicy(Enum):
    """Which fields end up in the envelope's `required` list."""

    ALL = "all"              # every declared field
    DECLARED = "declared"    # only fields declared with required=True


def field_title(name: str) -> str:
    """invoice_date -> Invoice_Date"""
    return "_".join(word[:1].upper() + word[1:] for word in name.split("_"))


def _property(spec: FieldSpec, name: str) -> Dict[str, Any]:
    prop: Dict[str, Any] = {
        "type": spec.type,
        "title": field_title(name),
    }
    if spec.description:
        prop["description"] = spec.description
    if spec.type == FieldType.ARRAY.value and spec.items is not None:
        prop["items"] = dict(spec.items)
    return prop


def build_json_schema(
    fields: Mapping[str, Any],
    schema_name: str,
    required_policy: RequiredPolicy = RequiredPolicy.DECLARED,
) -> Dict[str, Any]:
    """
    Build the `json_schema` annotation format for a set of fields.

    Args:
        fields: field name -> FieldSpec (or a plain dict with the same keys)
        schema_name: schema title; the lower-cased form becomes the schema name
        required_policy: see RequiredPolicy

    Raises:
        SchemaBuildError: `fields` is not a mapping or a field is malformed
    """
    if not isinstance(fields, Mapping):
        raise SchemaBuildError(
            f"Schema for '{schema_name}' must be an object of fields, got {type(fields).__name__}"
        )

    properties: Dict[str, Dict[str, Any]] = {}
    required: List[str] = []

    for name, raw in fields.items():
        if not isinstance(name, str) or not name:
            raise SchemaBuildError(f"Schema for '{schema_name}' contains an empty field name")
        spec = FieldSpec.from_dict(name, raw)
        properties[name] = _property(spec, name)

        if required_policy is RequiredPolicy.ALL or spec.required:
            required.append(name)

    return {
        "type": "json_schema",
        "json_schema": {
            "schema": {
                "properties": properties,
                "required": required,
                "title": schema_name,
                "type": "object",
                "additionalProperties": False,
            },
            "name": schema_name.lower(),
            "strict": True,
        },
    }
