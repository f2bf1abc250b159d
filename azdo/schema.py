"""
Declarative parameter schemas for tools.

A ``ParameterSpec`` describes one input field as a closed set of kinds. The same
spec drives two things:

- ``validate()``: checks raw JSON arguments and returns a typed, defaulted copy.
- ``to_json_schema()``: produces the discovery document advertised to MCP
  clients in ``tools/list``.

Specs are built once at import time with the helper constructors at the bottom
of this module (``string()``, ``number()``, ``obj()`` ...) and never mutated.
"""

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .errors import SchemaDefinitionError, ToolValidationError

ROOT_PATH = "arguments"


class _Missing:
    """Sentinel for "no default declared" so that None, 0 and False stay usable defaults."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class Kind(str, Enum):
    """The shapes a parameter can take."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    ENUM = "enum"
    RECORD = "record"
    OBJECT = "object"


def describe_kind(value: Any) -> str:
    """Name the JSON kind of an arbitrary value, for error messages."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


@dataclass(frozen=True)
class ParameterSpec:
    """
    One input field.

    Attributes:
        kind: The shape of the value.
        description: Free text shown to the caller.
        default: Value applied when the field is absent. ``MISSING`` means none.
        optional: Field may be absent without a default.
        items: Item spec for arrays, value spec for records.
        enum_values: Allowed values for enums, in declaration order.
        properties: Field specs for objects, in declaration order.
    """

    kind: Kind
    description: str | None = None
    default: Any = MISSING
    optional: bool = False
    items: "ParameterSpec | None" = None
    enum_values: tuple[str, ...] = ()
    properties: Mapping[str, "ParameterSpec"] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.kind, Kind) and self.kind in Kind._value2member_map_:
            object.__setattr__(self, "kind", Kind(self.kind))
        if self.kind in (Kind.ARRAY, Kind.RECORD) and self.items is None:
            raise SchemaDefinitionError(f"{self.kind.value} parameter needs an item spec")
        if self.kind is Kind.ENUM:
            if not self.enum_values:
                raise SchemaDefinitionError("enum parameter needs at least one value")
            if not all(isinstance(v, str) for v in self.enum_values):
                raise SchemaDefinitionError("enum values must be strings")
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))
        if self.has_default:
            try:
                self.validate(self.default)
            except ToolValidationError as e:
                raise SchemaDefinitionError(
                    f"default {self.default!r} does not match its own schema: {e}"
                ) from e

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    @property
    def required(self) -> bool:
        """A field is required iff it has neither a default nor an optional marker."""
        return not self.optional and not self.has_default

    def validate(self, raw: Any, path: str = ROOT_PATH) -> Any:
        """
        Check ``raw`` against this spec and return the typed value.

        Raises:
            ToolValidationError: naming the offending path and the reason.
        """
        kind = self.kind
        if kind is Kind.OBJECT:
            return self._validate_object(raw, path)
        if kind is Kind.STRING:
            if not isinstance(raw, str):
                raise _mismatch(path, "string", raw)
            return raw
        if kind is Kind.NUMBER:
            if isinstance(raw, bool) or not isinstance(raw, (int, float)):
                raise _mismatch(path, "number", raw)
            return raw
        if kind is Kind.BOOLEAN:
            if not isinstance(raw, bool):
                raise _mismatch(path, "boolean", raw)
            return raw
        if kind is Kind.ENUM:
            if not isinstance(raw, str) or raw not in self.enum_values:
                allowed = ", ".join(self.enum_values)
                raise ToolValidationError(
                    path,
                    f"must be one of: {allowed} (got {raw!r})",
                    context={"allowed": list(self.enum_values)},
                )
            return raw
        if kind is Kind.ARRAY:
            if not isinstance(raw, (list, tuple)):
                raise _mismatch(path, "array", raw)
            return [self.items.validate(item, f"{path}[{index}]") for index, item in enumerate(raw)]
        if kind is Kind.RECORD:
            if not isinstance(raw, Mapping):
                raise _mismatch(path, "object", raw)
            return {key: self.items.validate(value, f"{path}.{key}") for key, value in raw.items()}
        # Unrecognised kinds are advertised as "accepts anything", so accept anything.
        return raw

    def _validate_object(self, raw: Any, path: str) -> dict[str, Any]:
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise _mismatch(path, "object", raw)

        result: dict[str, Any] = {}
        for name, spec in self.properties.items():
            field_path = f"{path}.{name}"
            value = raw.get(name)
            if name not in raw or (value is None and not spec.required):
                if spec.has_default:
                    result[name] = copy.deepcopy(spec.default)
                elif spec.required:
                    raise ToolValidationError(field_path, f"required field '{name}' is missing")
                continue
            result[name] = spec.validate(value, field_path)
        return result

    def to_json_schema(self) -> dict[str, Any]:
        """Build the discovery document for this spec. Never raises."""
        kind = self.kind
        if kind is Kind.OBJECT:
            document: dict[str, Any] = {
                "type": "object",
                "properties": {name: spec.to_json_schema() for name, spec in self.properties.items()},
            }
            required = [name for name, spec in self.properties.items() if spec.required]
            if required:
                document["required"] = required
        elif kind in (Kind.STRING, Kind.NUMBER, Kind.BOOLEAN):
            document = {"type": kind.value}
        elif kind is Kind.ARRAY and self.items is not None:
            document = {"type": "array", "items": self.items.to_json_schema()}
        elif kind is Kind.ENUM:
            document = {"type": "string", "enum": list(self.enum_values)}
        elif kind is Kind.RECORD and self.items is not None:
            document = {"type": "object", "additionalProperties": self.items.to_json_schema()}
        else:
            document = {}

        if self.description:
            document["description"] = self.description
        if self.has_default:
            document["default"] = copy.deepcopy(self.default)
        return document


def _mismatch(path: str, expected: str, value: Any) -> ToolValidationError:
    actual = describe_kind(value)
    return ToolValidationError(
        path, f"expected {expected}, got {actual}", context={"expected": expected, "actual": actual}
    )


# Constructors used by the tool tables.


def string(description: str | None = None, *, default: Any = MISSING, optional: bool = False) -> ParameterSpec:
    return ParameterSpec(Kind.STRING, description, default=default, optional=optional)


def number(description: str | None = None, *, default: Any = MISSING, optional: bool = False) -> ParameterSpec:
    return ParameterSpec(Kind.NUMBER, description, default=default, optional=optional)


def boolean(description: str | None = None, *, default: Any = MISSING, optional: bool = False) -> ParameterSpec:
    return ParameterSpec(Kind.BOOLEAN, description, default=default, optional=optional)


def array(
    items: ParameterSpec,
    description: str | None = None,
    *,
    default: Any = MISSING,
    optional: bool = False,
) -> ParameterSpec:
    return ParameterSpec(Kind.ARRAY, description, default=default, optional=optional, items=items)


def enum(
    values: "list[str] | tuple[str, ...]",
    description: str | None = None,
    *,
    default: Any = MISSING,
    optional: bool = False,
) -> ParameterSpec:
    return ParameterSpec(
        Kind.ENUM, description, default=default, optional=optional, enum_values=tuple(values)
    )


def record(
    values: ParameterSpec,
    description: str | None = None,
    *,
    default: Any = MISSING,
    optional: bool = False,
) -> ParameterSpec:
    return ParameterSpec(Kind.RECORD, description, default=default, optional=optional, items=values)


def obj(
    properties: Mapping[str, ParameterSpec] | None = None,
    description: str | None = None,
    *,
    optional: bool = False,
    **fields: ParameterSpec,
) -> ParameterSpec:
    """Object spec; fields come from ``properties`` followed by keyword arguments."""
    merged = dict(properties or {})
    merged.update(fields)
    return ParameterSpec(Kind.OBJECT, description, optional=optional, properties=merged)


# Numbers arrive as JSON numbers; IDs and limits must not be silently truncated.


def to_whole_number(value: Any, path: str) -> int:
    """
    Convert a validated number to ``int``.

    Raises:
        ToolValidationError: If ``value`` has a fractional part.
    """
    if isinstance(value, float) and not value.is_integer():
        raise ToolValidationError(path, f"expected a whole number, got {value!r}")
    return int(value)


def whole_number(args: Mapping[str, Any], name: str) -> int:
    """Read the number argument ``name`` as an ``int``."""
    return to_whole_number(args[name], f"{ROOT_PATH}.{name}")
