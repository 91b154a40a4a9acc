"""
Сквозные тесты: компиляция шаблона и рендеринг с проверкой данных.
"""

import threading

import pytest

import hbtype
from hbtype import compile_template, render
from hbtype.errors import (
    CompileError,
    HbUserError,
    LexError,
    ParseError,
    RenderError,
    RenderErrorKind,
    SchemaError,
)
from hbtype.parser import parse_template
from hbtype.schema import SCALAR, ListType, ObjectType, OptionalType


class TestCompileTemplate:
    """compile_template()."""

    def test_compiled_parts(self):
        compiled = compile_template("Hello {{{name}}}!", name="hello.hbs")

        assert compiled.name == "hello.hbs"
        assert compiled.source == "Hello {{{name}}}!"
        assert len(compiled.ast) == 3
        assert compiled.schema["name"] == SCALAR

    def test_compiled_template_is_immutable(self):
        compiled = compile_template("{{a}}")

        with pytest.raises(Exception):
            compiled.name = "other"

    @pytest.mark.parametrize(
        "text,error",
        [
            ("{{name", LexError),
            ("{{#if a}}{{/with}}", ParseError),
            ("{{x.y}}{{#if x}}{{/if}}", SchemaError),
        ],
    )
    def test_compile_errors(self, text, error):
        with pytest.raises(error) as exc:
            compile_template(text)

        assert isinstance(exc.value, CompileError)
        assert isinstance(exc.value, HbUserError)

    def test_json_schema_uses_template_name(self):
        doc = compile_template("{{a}}", name="t.hbs").json_schema()

        assert doc["title"] == "t.hbs"
        assert doc["required"] == ["a"]

    def test_json_schema_optional_fields_not_required(self):
        doc = compile_template("{{#if a}}x{{/if}}{{#with b}}{{c}}{{/with}}{{d}}").json_schema()

        assert doc["required"] == ["d"]
        assert doc["properties"]["b"]["anyOf"][0]["required"] == ["c"]


class TestReferenceFixtures:
    """Эталонные примеры."""

    def test_raw_substitution(self):
        assert compile_template("Hello {{{name}}}!").render({"name": "King"}) == "Hello King!"

    def test_paths(self):
        compiled = compile_template("{{person.firstname}} {{person.lastname}}")

        assert compiled.render({"person": {"firstname": "King", "lastname": "Tubby"}}) == "King Tubby"

    def test_conditional(self):
        compiled = compile_template(
            "<div>{{#if has_author}}<h1>{{first_name}} {{last_name}}</h1>{{/if}}</div>"
        )
        data = {"first_name": "King", "last_name": "Tubby"}

        assert compiled.render(dict(data, has_author=True)) == "<div><h1>King Tubby</h1></div>"
        assert compiled.render(dict(data, has_author=False)) == "<div></div>"

    def test_with_scope(self):
        compiled = compile_template("{{#with author}}<p>{{first_name}} {{last_name}}</p>{{/with}}")

        assert compiled.schema["author"] == OptionalType(
            ObjectType.of({"first_name": SCALAR, "last_name": SCALAR})
        )
        assert compiled.render({"author": {"first_name": "King", "last_name": "Tubby"}}) == (
            "<p>King Tubby</p>"
        )
        assert compiled.render({"author": None}) == ""

    def test_with_else(self):
        compiled = compile_template("{{#with author}}{{name}}{{else}}Unknown{{/with}}")

        assert compiled.render({"author": None}) == "Unknown"

    def test_absent_with_subject(self):
        compiled = compile_template(
            "<div>{{#with author}}<h1>{{first_name}}</h1>{{else}}Unknown{{/with}}</div>"
        )

        assert compiled.render({}) == "<div>Unknown</div>"

    def test_absent_if_condition(self):
        compiled = compile_template("<div>{{#if has_author}}<h1>{{name}}</h1>{{/if}}</div>")

        assert compiled.render({"name": "King"}) == "<div></div>"
        assert compiled.render({"name": "King", "has_author": True}) == "<div><h1>King</h1></div>"

    def test_helper(self, registry):
        compiled = compile_template('Price: ${{format "{:.2}" price}}')

        assert compiled.render({"price": 12.2345}, registry) == "Price: $12.23"

    def test_each_empty_list_without_else(self):
        compiled = compile_template("<ul>{{#each items}}<li>{{name}}</li>{{/each}}</ul>")

        assert compiled.render({"items": []}) == "<ul></ul>"

    def test_each_empty_list_with_else(self):
        compiled = compile_template("{{#each items}}{{name}}{{else}}empty{{/each}}")

        assert compiled.render({"items": []}) == "empty"


class TestBlockParamsAndLookup:
    """Параметры блоков, перебор отображений и встроенный lookup через полный конвейер."""

    def test_each_block_params(self):
        compiled = compile_template(
            "<ul>{{#each items as |item i|}}<li>{{i}}. {{item.name}}</li>{{/each}}</ul>"
        )

        assert compiled.schema["items"] == ListType(ObjectType.of({"name": SCALAR}))
        assert compiled.render({"items": [{"name": "a"}, {"name": "b"}]}) == (
            "<ul><li>0. a</li><li>1. b</li></ul>"
        )

    def test_with_block_param(self):
        compiled = compile_template("{{#with author as |a|}}{{a.name}}{{else}}anon{{/with}}")

        assert compiled.render({"author": {"name": "King"}}) == "King"
        assert compiled.render({}) == "anon"

    def test_each_over_mapping(self):
        compiled = compile_template("{{#each prices}}{{@key}}: {{amount}}; {{/each}}")

        assert compiled.render({"prices": {"tea": {"amount": 2}, "cake": {"amount": 5}}}) == (
            "tea: 2; cake: 5; "
        )

    def test_mapping_values_are_validated(self):
        compiled = compile_template("{{#each prices}}{{amount}}{{/each}}")

        with pytest.raises(RenderError) as exc:
            compiled.render({"prices": {"tea": {"amount": 2}, "cake": {}}})

        assert exc.value.kind == RenderErrorKind.PATH_NOT_FOUND
        assert exc.value.path == "prices[cake].amount"

    def test_lookup_needs_no_registration(self):
        compiled = compile_template("{{lookup labels code}}")

        assert compiled.schema.helpers == ()
        assert compiled.render({"labels": {"ok": "Fine"}, "code": "ok"}) == "Fine"


class TestRenderContract:
    """Проверка данных и хелперов до рендеринга."""

    def test_missing_field_rejected_before_output(self):
        compiled = compile_template("a{{x}}b{{y}}")

        with pytest.raises(RenderError) as exc:
            compiled.render({"x": 1})

        assert exc.value.kind == RenderErrorKind.PATH_NOT_FOUND
        assert exc.value.path == "y"

    def test_wrong_shape_rejected(self):
        compiled = compile_template("{{#each items}}{{name}}{{/each}}")

        with pytest.raises(RenderError) as exc:
            compiled.render({"items": "abc"})

        assert exc.value.kind == RenderErrorKind.INVALID_DATA

    def test_unregistered_helper_rejected_before_output(self):
        compiled = compile_template("{{shout a}}{{format b c}}")

        with pytest.raises(RenderError) as exc:
            compiled.render({"a": 1, "b": 2, "c": 3}, {"shout": str})

        assert exc.value.kind == RenderErrorKind.UNKNOWN_HELPER
        assert exc.value.name == "format"

    def test_missing_helpers_checked_against_registry(self, registry):
        compiled = compile_template("{{shout a}}{{nope b}}{{other c}}")

        with pytest.raises(RenderError) as exc:
            compiled.render({"a": 1, "b": 2, "c": 3}, registry)

        assert exc.value.name == "nope"
        assert "also missing: other" in str(exc.value)
        assert not hasattr(registry, "missing")

    def test_validation_can_be_disabled(self):
        compiled = compile_template("[{{#if ok}}{{name}}{{/if}}]")

        assert compiled.render({}, validate=False) == "[]"

    def test_render_bare_ast(self, registry):
        ast = parse_template("{{shout name}}")

        assert render(ast, {"name": "hey"}, registry) == "HEY!"
        with pytest.raises(RenderError):
            render(ast, {}, registry)

    def test_public_api(self):
        assert hbtype.compile_template is compile_template
        assert issubclass(hbtype.RenderError, hbtype.HbUserError)


class TestConcurrency:
    """Скомпилированный шаблон можно рендерить из нескольких потоков."""

    def test_parallel_renders(self, registry):
        compiled = compile_template("{{#each xs}}{{shout this}}{{/each}}")
        results = {}

        def work(i):
            results[i] = compiled.render({"xs": [i, i + 1]}, registry)

        threads = [threading.Thread(target=work, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == {i: f"{i}!{i + 1}!" for i in range(16)}
