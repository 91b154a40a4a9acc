"""
Модель схемы данных шаблона.

Содержит классы для представления типов полей, которые выводятся из
шаблона: скаляр, необязательное значение, объект с вложенными полями,
список. Все типы неизменяемы; объединение двух требований к одному
и тому же пути выполняет merge_types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"


class FieldKind(Enum):
    """Виды типов полей."""
    SCALAR = "scalar"
    OPTIONAL = "optional"
    OBJECT = "object"
    LIST = "list"
    ANY = "any"


@dataclass(frozen=True)
class FieldType(ABC):
    """Базовый абстрактный класс для всех типов полей."""

    @abstractmethod
    def get_kind(self) -> FieldKind:
        """Возвращает вид типа."""
        pass

    @abstractmethod
    def to_json_schema(self) -> Dict[str, Any]:
        """Фрагмент JSON Schema, описывающий тип."""
        pass

    def __str__(self) -> str:
        return self._to_string()

    @abstractmethod
    def _to_string(self) -> str:
        pass


@dataclass(frozen=True)
class ScalarType(FieldType):
    """
    Значение, которое выводится как текст.

    Допускается любое значение, кроме None и отображений.
    """

    def get_kind(self) -> FieldKind:
        return FieldKind.SCALAR

    def to_json_schema(self) -> Dict[str, Any]:
        return {"not": {"type": ["object", "null"]}}

    def _to_string(self) -> str:
        return "scalar"


@dataclass(frozen=True)
class AnyType(FieldType):
    """Требований к значению нет (например, элемент {{#each}} без обращений)."""

    def get_kind(self) -> FieldKind:
        return FieldKind.ANY

    def to_json_schema(self) -> Dict[str, Any]:
        return {}

    def _to_string(self) -> str:
        return "any"


@dataclass(frozen=True)
class OptionalType(FieldType):
    """Значение может быть None. Вводится условиями {{#if}}/{{#unless}}/{{#with}}."""
    inner: FieldType

    def get_kind(self) -> FieldKind:
        return FieldKind.OPTIONAL

    def to_json_schema(self) -> Dict[str, Any]:
        return {"anyOf": [self.inner.to_json_schema(), {"type": "null"}]}

    def _to_string(self) -> str:
        return f"optional<{self.inner}>"


@dataclass(frozen=True)
class ListType(FieldType):
    """Список элементов одного типа. Вводится блоком {{#each}}."""
    item: FieldType

    def get_kind(self) -> FieldKind:
        return FieldKind.LIST

    def to_json_schema(self) -> Dict[str, Any]:
        return {"type": "array", "items": self.item.to_json_schema()}

    def _to_string(self) -> str:
        return f"list<{self.item}>"


@dataclass(frozen=True)
class ObjectType(FieldType):
    """
    Объект с именованными полями.

    Поля хранятся кортежем пар (имя, тип) в порядке первого появления
    в шаблоне.
    """
    fields: Tuple[Tuple[str, FieldType], ...] = ()

    @classmethod
    def of(cls, fields: Mapping[str, FieldType]) -> ObjectType:
        return cls(tuple(fields.items()))

    def get_kind(self) -> FieldKind:
        return FieldKind.OBJECT

    def get(self, name: str) -> Optional[FieldType]:
        for field_name, field_type in self.fields:
            if field_name == name:
                return field_type
        return None

    def names(self) -> List[str]:
        return [name for name, _ in self.fields]

    def as_dict(self) -> Dict[str, FieldType]:
        return dict(self.fields)

    def to_json_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {name: ft.to_json_schema() for name, ft in self.fields},
            "required": [name for name, ft in self.fields if not isinstance(ft, OptionalType)],
        }

    def _to_string(self) -> str:
        inner = ", ".join(f"{name}: {ft}" for name, ft in self.fields)
        return f"object{{{inner}}}"


SCALAR = ScalarType()
ANY = AnyType()


class TypeConflict(Exception):
    """
    Несовместимые требования к одному пути.

    Внутреннее исключение merge_types; вывод схемы превращает его
    в SchemaError с позициями в шаблоне.
    """

    def __init__(self, path: Tuple[str, ...], left: FieldType, right: FieldType):
        self.path = path
        self.left = left
        self.right = right
        where = ".".join(path) or "<root>"
        super().__init__(f"'{where}' is used both as {left} and as {right}")


def merge_types(left: FieldType, right: FieldType, path: Tuple[str, ...] = ()) -> FieldType:
    """
    Объединяет два требования к одному и тому же пути.

    Правила:
    - any + x -> x
    - scalar + scalar -> scalar
    - object + object -> поля объединяются по имени
    - list + list -> list<merge(items)>
    - optional<a> + b (или наоборот) -> optional<merge(a, b)>
    - всё остальное -> TypeConflict
    """
    left_kind = left.get_kind()
    right_kind = right.get_kind()

    if left_kind == FieldKind.ANY:
        return right
    if right_kind == FieldKind.ANY:
        return left

    if left_kind == FieldKind.OPTIONAL or right_kind == FieldKind.OPTIONAL:
        left_inner = left.inner if isinstance(left, OptionalType) else left
        right_inner = right.inner if isinstance(right, OptionalType) else right
        return OptionalType(merge_types(left_inner, right_inner, path))

    if left_kind != right_kind:
        raise TypeConflict(path, left, right)

    if isinstance(left, ScalarType):
        return left

    if isinstance(left, ListType) and isinstance(right, ListType):
        return ListType(merge_types(left.item, right.item, path + ("[]",)))

    if isinstance(left, ObjectType) and isinstance(right, ObjectType):
        merged: Dict[str, FieldType] = left.as_dict()
        for name, field_type in right.fields:
            existing = merged.get(name)
            merged[name] = field_type if existing is None else merge_types(existing, field_type, path + (name,))
        return ObjectType.of(merged)

    raise TypeConflict(path, left, right)


@dataclass(frozen=True)
class Schema:
    """
    Схема данных шаблона.

    root описывает верхний уровень данных (упорядоченное отображение
    имя -> тип), helpers содержит имена хелперов, которые вызывает шаблон.
    """
    root: ObjectType = field(default_factory=ObjectType)
    helpers: Tuple[str, ...] = ()

    @property
    def fields(self) -> Dict[str, FieldType]:
        return self.root.as_dict()

    def __getitem__(self, name: str) -> FieldType:
        field_type = self.root.get(name)
        if field_type is None:
            raise KeyError(name)
        return field_type

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.root.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self.root.names())

    def __len__(self) -> int:
        return len(self.root.fields)

    def describe(self) -> Dict[str, str]:
        """Текстовое описание типов верхнего уровня (для отчетов)."""
        return {name: str(ft) for name, ft in self.root.fields}

    def to_json_schema(self, title: Optional[str] = None) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"$schema": JSON_SCHEMA_DIALECT}
        if title:
            doc["title"] = title
        doc.update(self.root.to_json_schema())
        return doc

    def __str__(self) -> str:
        return "\n".join(f"{name}: {ft}" for name, ft in self.root.fields)


__all__ = [
    "FieldKind",
    "FieldType",
    "ScalarType",
    "AnyType",
    "OptionalType",
    "ListType",
    "ObjectType",
    "SCALAR",
    "ANY",
    "TypeConflict",
    "merge_types",
    "Schema",
]
