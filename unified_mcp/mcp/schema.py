"""
Field descriptors for tool input/output schemas.

Schemas are declared as mappings of field name to ``FieldSpec`` and rendered
to JSON Schema for discovery. ``validate_arguments`` is the single validation
routine used for every tool call.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import jsonschema

_MISSING = object()

SchemaFields = Mapping[str, "FieldSpec"]


class ArgumentValidationError(ValueError):
    """Raised when tool arguments do not match the declared input schema."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class FieldSpec:
    """Constraint set for a single schema field."""

    type: str
    description: Optional[str] = None
    required: bool = True
    default: Any = _MISSING
    enum: Optional[Tuple[str, ...]] = None
    format: Optional[str] = None
    max_items: Optional[int] = None
    items: Optional["FieldSpec"] = None
    properties: Optional[SchemaFields] = None

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {}
        if self.type != "any":
            schema["type"] = self.type
        if self.description:
            schema["description"] = self.description
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        if self.format is not None:
            schema["format"] = self.format
        if self.has_default:
            schema["default"] = self.default
        if self.max_items is not None:
            schema["maxItems"] = self.max_items
        if self.items is not None:
            schema["items"] = self.items.to_json_schema()
        if self.properties is not None:
            schema.update(object_schema(self.properties))
        return schema


def frozen_fields(**fields: FieldSpec) -> SchemaFields:
    """Build a read-only field mapping, preserving declaration order."""
    return MappingProxyType(dict(fields))


def object_schema(fields: SchemaFields) -> Dict[str, Any]:
    """Render a field mapping as a JSON Schema object."""
    schema: Dict[str, Any] = {
        "type": "object",
        "properties": {name: spec.to_json_schema() for name, spec in fields.items()},
    }
    required = [name for name, spec in fields.items() if spec.required and not spec.has_default]
    if required:
        schema["required"] = required
    return schema


def validate_arguments(fields: SchemaFields, arguments: Any) -> Dict[str, Any]:
    """
    Validate tool arguments and return them with declared defaults applied.

    Raises:
        ArgumentValidationError: If arguments violate the schema
    """
    if not isinstance(arguments, dict):
        raise ArgumentValidationError(["arguments must be an object"])

    validator = jsonschema.Draft202012Validator(
        object_schema(fields),
        format_checker=jsonschema.FormatChecker(),
    )
    errors = sorted(validator.iter_errors(arguments), key=lambda e: [str(part) for part in e.absolute_path])
    if errors:
        raise ArgumentValidationError([_describe(error) for error in errors])

    return _apply_defaults(fields, arguments)


def _describe(error: jsonschema.ValidationError) -> str:
    path = ".".join(str(part) for part in error.absolute_path)
    return f"{path}: {error.message}" if path else error.message


def _apply_defaults(fields: SchemaFields, values: Dict[str, Any]) -> Dict[str, Any]:
    resolved = dict(values)
    for name, spec in fields.items():
        if name not in resolved:
            if spec.has_default:
                resolved[name] = spec.default
            continue
        resolved[name] = _apply_nested_defaults(spec, resolved[name])
    return resolved


def _apply_nested_defaults(spec: FieldSpec, value: Any) -> Any:
    if spec.properties is not None and isinstance(value, dict):
        return _apply_defaults(spec.properties, value)
    if spec.items is not None and isinstance(value, list):
        return [_apply_nested_defaults(spec.items, item) for item in value]
    return value
