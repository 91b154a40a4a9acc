"""Тесты проверки данных по выведенной схеме."""

from dataclasses import dataclass
from typing import List

import pytest

from hbtype.errors import RenderError, RenderErrorKind
from hbtype.inference import infer_schema
from hbtype.parser import parse_template
from hbtype.validation import validate_data


def schema_of(text):
    return infer_schema(parse_template(text))


@dataclass
class Item:
    name: str


@dataclass
class Order:
    id: int
    items: List[Item]


class TestValidData:
    """Корректные данные проходят проверку."""

    def test_scalars(self):
        validate_data(schema_of("{{a}} {{b}} {{c}}"), {"a": "s", "b": 1, "c": [1, 2]})

    def test_optional_none(self):
        validate_data(schema_of("{{#if a}}{{a}}{{/if}}{{#with b}}{{c}}{{/with}}"), {"a": None, "b": None})

    def test_optional_absent(self):
        validate_data(schema_of("{{#if a}}{{a}}{{/if}}{{#with b}}{{c}}{{/with}}"), {})

    def test_absent_optional_nested(self):
        schema = schema_of("{{#with user}}{{#if nick}}{{nick}}{{/if}}{{name}}{{/with}}")

        validate_data(schema, {"user": {"name": "x"}})

    def test_objects_and_lists(self):
        schema = schema_of("{{#each orders}}{{id}}{{#each items}}{{name}}{{/each}}{{/each}}")

        validate_data(schema, {"orders": [{"id": 1, "items": [{"name": "x"}]}, {"id": 2, "items": []}]})

    def test_dataclass_data(self):
        schema = schema_of("{{#with order}}{{id}}{{#each items}}{{name}}{{/each}}{{/with}}")

        validate_data(schema, {"order": Order(1, [Item("a")])})

    def test_extra_fields_are_allowed(self):
        validate_data(schema_of("{{a}}"), {"a": 1, "b": 2})

    def test_any_item_accepts_anything(self):
        validate_data(schema_of("{{#each rows}}-{{/each}}"), {"rows": [None, {}, 1]})

    def test_mapping_for_list(self):
        validate_data(schema_of("{{#each prices}}{{amount}}{{/each}}"), {"prices": {"tea": {"amount": 2}}})


class TestInvalidData:
    """Несоответствия схеме."""

    def test_root_must_be_record(self):
        with pytest.raises(RenderError) as exc:
            validate_data(schema_of("{{a}}"), ["a"])

        assert exc.value.kind == RenderErrorKind.INVALID_DATA

    def test_missing_nested_field(self):
        with pytest.raises(RenderError) as exc:
            validate_data(schema_of("{{p.name}}"), {"p": {}})

        assert exc.value.kind == RenderErrorKind.PATH_NOT_FOUND
        assert exc.value.path == "p.name"

    def test_none_for_required_scalar(self):
        with pytest.raises(RenderError) as exc:
            validate_data(schema_of("{{a}}"), {"a": None})

        assert exc.value.kind == RenderErrorKind.INVALID_DATA
        assert exc.value.path == "a"

    def test_mapping_for_scalar(self):
        with pytest.raises(RenderError) as exc:
            validate_data(schema_of("{{a}}"), {"a": {"x": 1}})

        assert exc.value.kind == RenderErrorKind.INVALID_DATA

    def test_scalar_for_object(self):
        with pytest.raises(RenderError) as exc:
            validate_data(schema_of("{{a.b}}"), {"a": 5})

        assert exc.value.kind == RenderErrorKind.INVALID_DATA

    def test_bad_list_item_reports_index(self):
        schema = schema_of("{{#each items}}{{name}}{{/each}}")

        with pytest.raises(RenderError) as exc:
            validate_data(schema, {"items": [{"name": "a"}, {}]})

        assert exc.value.kind == RenderErrorKind.PATH_NOT_FOUND
        assert exc.value.path == "items[1].name"

    def test_string_is_not_a_list(self):
        with pytest.raises(RenderError) as exc:
            validate_data(schema_of("{{#each items}}{{/each}}"), {"items": "abc"})

        assert exc.value.kind == RenderErrorKind.INVALID_DATA
        assert "expected a list" in str(exc.value)
