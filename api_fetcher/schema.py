"""Schema - Validation capability for parsed response bodies.

A schema is anything that can check (and optionally coerce) a value:
- pydantic types (BaseModel subclasses, builtins, generic aliases, Literal,
  Annotated, arbitrary classes checked by isinstance) via Schema
- JSON Schema documents (plain dicts) via JSONSchema
- any object exposing a callable ``parse(value)``

Every adapter exposes ``parse`` (raises SchemaValidationError) and
``safe_parse`` (returns a ParseResult and never raises).
"""

from __future__ import annotations

from dataclasses import dataclass, field, is_dataclass
from typing import Any, Generic, Protocol, TypeVar, is_typeddict, runtime_checkable

from jsonschema import Draft4Validator
from jsonschema.validators import validator_for
from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

# Classes pydantic has no schema for (FormData, Blob subclasses, ...) are
# validated with an isinstance check.
_ADAPTER_CONFIG = ConfigDict(arbitrary_types_allowed=True)


class SchemaValidationError(Exception):
    """Raised when a value does not conform to a schema.

    Attributes:
        errors: One dict per problem, each with at least "loc" and "msg".
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


@dataclass
class ParseResult(Generic[T]):
    """Outcome of safe_parse.

    Attributes:
        success: Whether the value passed validation.
        data: The validated (possibly coerced) value when successful.
        error: The validation error when unsuccessful.
    """

    success: bool
    data: T | None = None
    error: SchemaValidationError | None = field(default=None, repr=False)


@runtime_checkable
class Validator(Protocol[T_co]):
    """Anything usable as ``schema=`` once adapted by as_schema."""

    def parse(self, value: Any) -> T_co: ...


def _make_adapter(type_: Any) -> TypeAdapter[Any]:
    # pydantic refuses an explicit config for types that carry their own
    if (
        (isinstance(type_, type) and issubclass(type_, BaseModel))
        or is_dataclass(type_)
        or is_typeddict(type_)
    ):
        return TypeAdapter(type_)
    return TypeAdapter(type_, config=_ADAPTER_CONFIG)


class Schema(Generic[T]):
    """pydantic-backed schema.

    Usage:
        schema = Schema(dict[str, int])
        schema.parse({"a": "1"})          # {"a": 1} (lax coercion)
        Schema(dict[str, int], strict=True).safe_parse({"a": "1"}).success  # False
    """

    def __init__(self, type_: Any, *, strict: bool = False) -> None:
        self._type = type_
        self._strict = strict
        if isinstance(type_, TypeAdapter):
            self._adapter: TypeAdapter[Any] = type_
        else:
            self._adapter = _make_adapter(type_)

    def parse(self, value: Any) -> T:
        try:
            return self._adapter.validate_python(value, strict=self._strict or None)
        except PydanticValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise SchemaValidationError(
                f"Value does not match schema: {e.error_count()} error(s)", errors
            ) from e

    def safe_parse(self, value: Any) -> ParseResult[T]:
        try:
            return ParseResult(success=True, data=self.parse(value))
        except SchemaValidationError as e:
            return ParseResult(success=False, error=e)

    def __repr__(self) -> str:
        return f"Schema({self._type!r}, strict={self._strict})"


class JSONSchema:
    """JSON Schema document validated with jsonschema.

    The draft is taken from the document's "$schema" keyword and defaults to
    Draft 4. Values are never coerced: parse returns its input unchanged.
    """

    def __init__(self, document: dict[str, Any]) -> None:
        validator_cls = validator_for(document, default=Draft4Validator)
        validator_cls.check_schema(document)
        self._document = document
        self._validator = validator_cls(document)

    @property
    def document(self) -> dict[str, Any]:
        return self._document

    def parse(self, value: Any) -> Any:
        errors = sorted(self._validator.iter_errors(value), key=lambda e: list(e.absolute_path))
        if errors:
            details = [
                {"loc": list(err.absolute_path), "msg": err.message, "type": err.validator}
                for err in errors
            ]
            raise SchemaValidationError(
                f"Value does not match JSON schema: {errors[0].message}", details
            ) from errors[0]
        return value

    def safe_parse(self, value: Any) -> ParseResult[Any]:
        try:
            return ParseResult(success=True, data=self.parse(value))
        except SchemaValidationError as e:
            return ParseResult(success=False, error=e)


def as_schema(schema: Any) -> Validator[Any]:
    """Adapt a caller-supplied schema to the Validator protocol.

    Args:
        schema: A Schema/JSONSchema, an object with a callable ``parse``,
            a pydantic TypeAdapter, a JSON Schema dict, or any type
            pydantic can validate.

    Returns:
        An object exposing ``parse(value)``.
    """
    if isinstance(schema, (Schema, JSONSchema)):
        return schema
    if isinstance(schema, dict):
        return JSONSchema(schema)
    # Types go to pydantic even if they happen to define a parse attribute
    if not isinstance(schema, type) and callable(getattr(schema, "parse", None)):
        return schema
    return Schema(schema)
