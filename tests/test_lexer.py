"""
Тесты для лексического анализатора шаблонов.

Проверяет токенизацию:
- обычного текста и позиций
- тегов {{...}}, {{{...}}}, {{#...}}, {{/...}}
- строк, чисел, путей и else
- комментариев и экранированных тегов
"""

import pytest

from hbtype.errors import LexError, LexErrorKind
from hbtype.lexer import TemplateLexer, tokenize_template
from hbtype import tokens as tokens_module
from hbtype.tokens import TokenType


def types(text):
    return [t.type for t in tokenize_template(text)]


class TestTemplateLexer:
    """Базовая функциональность лексера."""

    def test_empty_template(self):
        """Пустой шаблон возвращает только EOF."""
        tokens = TemplateLexer("").tokenize()

        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].line == 1
        assert tokens[0].column == 1

    def test_tokens_module_exports(self):
        """Модуль tokens экспортирует только типы токенов и позиций."""
        assert tokens_module.__all__ == ["TokenType", "Span", "Token"]
        assert all(hasattr(tokens_module, name) for name in tokens_module.__all__)

    def test_plain_text(self):
        tokens = tokenize_template("Hello, world!")

        assert [t.type for t in tokens] == [TokenType.TEXT, TokenType.EOF]
        assert tokens[0].value == "Hello, world!"

    def test_multiline_positions(self):
        """EOF стоит после последнего символа последней строки."""
        tokens = tokenize_template("Line 1\nLine 2\nLine 3")

        assert tokens[-1].line == 3
        assert tokens[-1].column == 7

    def test_simple_variable(self):
        tokens = tokenize_template("Hello {{name}}!")

        assert [t.type for t in tokens] == [
            TokenType.TEXT,
            TokenType.OPEN,
            TokenType.PATH,
            TokenType.CLOSE,
            TokenType.TEXT,
            TokenType.EOF,
        ]
        assert tokens[2].value == "name"
        assert tokens[2].column == 9

    def test_whitespace_inside_tag_is_skipped(self):
        tokens = tokenize_template("{{  person.name  }}")

        assert tokens[1].type == TokenType.PATH
        assert tokens[1].value == "person.name"


class TestDelimiters:
    """Открывающие и закрывающие разделители."""

    def test_raw_tag_longest_match(self):
        """{{{ не разбивается на {{ и {."""
        assert types("{{{name}}}") == [
            TokenType.OPEN_RAW,
            TokenType.PATH,
            TokenType.CLOSE_RAW,
            TokenType.EOF,
        ]

    def test_block_open_and_close(self):
        assert types("{{#if x}}y{{/if}}") == [
            TokenType.OPEN_BLOCK,
            TokenType.PATH,
            TokenType.PATH,
            TokenType.CLOSE,
            TokenType.TEXT,
            TokenType.CLOSE_BLOCK,
            TokenType.PATH,
            TokenType.CLOSE,
            TokenType.EOF,
        ]

    def test_else_keyword(self):
        tokens = tokenize_template("{{else}}")

        assert tokens[1].type == TokenType.ELSE

    def test_path_starting_with_else_is_a_path(self):
        tokens = tokenize_template("{{elsewhere}}")

        assert tokens[1].type == TokenType.PATH
        assert tokens[1].value == "elsewhere"


class TestTagItems:
    """Элементы внутри тегов."""

    def test_string_literal_without_escapes(self):
        tokens = tokenize_template('{{format "{:.2}" price}}')

        assert tokens[2].type == TokenType.STRING
        assert tokens[2].value == "{:.2}"
        assert tokens[3].type == TokenType.PATH

    def test_string_backslash_is_kept(self):
        tokens = tokenize_template(r'{{h "a\b"}}')

        assert tokens[2].value == r"a\b"

    @pytest.mark.parametrize("text", ["42", "-7", "3.14"])
    def test_numbers(self, text):
        tokens = tokenize_template("{{h " + text + "}}")

        assert tokens[2].type == TokenType.NUMBER
        assert tokens[2].value == text

    @pytest.mark.parametrize(
        "text",
        ["this", ".", "./name", "../title", "../../a.b", "@index", "first-name", "a_b.c"],
    )
    def test_paths(self, text):
        tokens = tokenize_template("{{" + text + "}}")

        assert tokens[1].type == TokenType.PATH
        assert tokens[1].value == text

    def test_block_params(self):
        tokens = tokenize_template("{{#each items as | item  index |}}")

        assert [t.type for t in tokens[1:5]] == [
            TokenType.PATH,
            TokenType.PATH,
            TokenType.PATH,
            TokenType.BLOCK_PARAMS,
        ]
        assert tokens[3].value == "as"
        assert tokens[4].value == "item index"
        assert tokens[4].span.column == 18


class TestCommentsAndEscapes:
    """Комментарии и экранированные теги."""

    def test_short_comment(self):
        tokens = tokenize_template("a{{! note }}b")

        assert [t.type for t in tokens] == [TokenType.TEXT, TokenType.COMMENT, TokenType.TEXT, TokenType.EOF]
        assert tokens[1].value == " note "

    def test_long_comment_may_contain_braces(self):
        tokens = tokenize_template("{{!-- {{name}} --}}")

        assert tokens[0].type == TokenType.COMMENT
        assert tokens[0].value == " {{name}} "

    def test_escaped_tag_is_text(self):
        tokens = tokenize_template(r"a \{{name}} b")

        assert [t.type for t in tokens] == [TokenType.TEXT, TokenType.TEXT, TokenType.TEXT, TokenType.EOF]
        assert "".join(t.value for t in tokens) == "a {{name}} b"


class TestLexerErrors:
    """Ошибки лексического анализа."""

    def test_unterminated_tag(self):
        with pytest.raises(LexError) as exc:
            tokenize_template("Hello {{name")

        assert exc.value.kind == LexErrorKind.UNTERMINATED_TAG
        assert exc.value.span.column == 7
        assert "1:7" in str(exc.value)

    def test_raw_tag_closed_with_two_braces(self):
        with pytest.raises(LexError) as exc:
            tokenize_template("{{{name}}")

        assert exc.value.kind == LexErrorKind.UNTERMINATED_TAG

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc:
            tokenize_template('{{h "abc}}')

        assert exc.value.kind == LexErrorKind.UNTERMINATED_STRING

    @pytest.mark.parametrize(
        "text",
        ["{{~name}}", "{{> partial}}", "{{(sub)}}", "{{#each xs as |a}}", "{{#each xs as ||}}"],
    )
    def test_unexpected_character(self, text):
        with pytest.raises(LexError) as exc:
            tokenize_template(text)

        assert exc.value.kind == LexErrorKind.UNEXPECTED_CHARACTER

    def test_unterminated_comment(self):
        with pytest.raises(LexError) as exc:
            tokenize_template("{{!-- never closed }}")

        assert exc.value.kind == LexErrorKind.UNTERMINATED_TAG
