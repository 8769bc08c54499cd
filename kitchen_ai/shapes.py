"""
shapes.py  —  Coercing untrusted model JSON into typed shapes

The extractor returns whatever JSON the model produced: fields go missing, a
number arrives as "12", a list arrives as a single string. Every consumer
declares a pydantic model whose fields ALL carry defaults, and coerce_shape()
keeps each field that validates and falls back to the default for the rest.
One bad field never discards the good ones.
"""

import logging
import typing
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

log = logging.getLogger(__name__)

ShapeT = TypeVar("ShapeT", bound=BaseModel)


@lru_cache(maxsize=None)
def _adapter(annotation) -> TypeAdapter:
    return TypeAdapter(annotation)


def _is_shape(annotation) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def _coerce_value(annotation, value: Any) -> Any:
    if _is_shape(annotation):
        if not isinstance(value, dict):
            raise ValueError(f"expected an object for {annotation.__name__}")
        return coerce_shape(annotation, value)

    # list[SubShape]: coerce item by item, drop items that are not objects
    if typing.get_origin(annotation) is list:
        (item_type,) = typing.get_args(annotation) or (Any,)
        if _is_shape(item_type):
            if not isinstance(value, list):
                raise ValueError("expected a list")
            return [coerce_shape(item_type, item) for item in value if isinstance(item, dict)]

    return _adapter(annotation).validate_python(value)


def coerce_shape(shape: type[ShapeT], data: Any) -> ShapeT:
    """
    Builds `shape` from `data`, field by field.

    Missing or mistyped fields take the model's default; unknown keys are
    ignored; anything other than a dict yields an all-defaults instance.
    """
    if not isinstance(data, dict):
        log.warning("Expected a JSON object for %s, got %s; using defaults.",
                    shape.__name__, type(data).__name__)
        data = {}

    values: dict[str, Any] = {}
    for name, field in shape.model_fields.items():
        if name not in data or data[name] is None:
            continue
        try:
            values[name] = _coerce_value(field.annotation, data[name])
        except (ValidationError, ValueError, TypeError) as e:
            log.debug("Field %s.%s rejected (%s); using default.", shape.__name__, name, e)

    return shape.model_construct(**values)
