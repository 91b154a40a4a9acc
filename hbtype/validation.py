"""
Проверка данных по схеме шаблона перед рендерингом.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Tuple

from .display import is_sequence
from .errors import RenderError, RenderErrorKind
from .evaluator import is_missing, lookup_field
from .schema import FieldKind, FieldType, ListType, ObjectType, OptionalType, ScalarType, Schema

logger = logging.getLogger(__name__)

_PRIMITIVES = (str, bytes, bytearray, int, float, bool)


def _format_path(path: Tuple[str, ...]) -> str:
    text = ""
    for part in path:
        text += part if part.startswith("[") or not text else "." + part
    return text or "<root>"


def _is_record(value: Any) -> bool:
    """Значение, у которого можно запрашивать поля по имени."""
    if isinstance(value, Mapping):
        return True
    return value is not None and not isinstance(value, _PRIMITIVES) and not is_sequence(value)


def _invalid(path: Tuple[str, ...], reason: str) -> RenderError:
    where = _format_path(path)
    return RenderError(RenderErrorKind.INVALID_DATA, f"Invalid data at '{where}': {reason}", path=where)


def _check(field_type: FieldType, value: Any, path: Tuple[str, ...]) -> None:
    if isinstance(field_type, OptionalType):
        if value is not None:
            _check(field_type.inner, value, path)
        return

    if value is None and field_type.get_kind() != FieldKind.ANY:
        raise _invalid(path, f"expected {field_type}, got None")

    if isinstance(field_type, ScalarType):
        if isinstance(value, Mapping):
            raise _invalid(path, "expected a scalar, got a mapping")
        return

    if isinstance(field_type, ListType):
        # {{#each}} перебирает и значения отображения
        if isinstance(value, Mapping):
            entries = list(value.items())
        elif is_sequence(value):
            entries = list(enumerate(value))
        else:
            raise _invalid(path, f"expected a list or a mapping, got {type(value).__name__}")
        for key, item in entries:
            _check(field_type.item, item, path + (f"[{key}]",))
        return

    if isinstance(field_type, ObjectType):
        if not _is_record(value):
            raise _invalid(path, f"expected an object, got {type(value).__name__}")
        for name, child_type in field_type.fields:
            child = lookup_field(value, name)
            if is_missing(child):
                # необязательное поле может отсутствовать
                if isinstance(child_type, OptionalType):
                    continue
                where = _format_path(path + (name,))
                raise RenderError(
                    RenderErrorKind.PATH_NOT_FOUND,
                    f"Required field '{where}' is missing",
                    path=where,
                )
            _check(child_type, child, path + (name,))

    # AnyType: без ограничений


def validate_data(schema: Schema, data: Any) -> None:
    """
    Проверяет, что data удовлетворяет схеме.

    Raises:
        RenderError: INVALID_DATA при несовпадении типа,
                     PATH_NOT_FOUND при отсутствии обязательного поля
    """
    if not _is_record(data):
        raise _invalid((), f"data must be a mapping or an object, got {type(data).__name__}")
    _check(schema.root, data, ())
    logger.debug("Data validated against %d root fields", len(schema))


__all__ = ["validate_data"]
