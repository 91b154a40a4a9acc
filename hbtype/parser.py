"""
Парсер шаблонов.

Преобразует последовательность токенов в AST (абстрактное синтаксическое
дерево). Вложенность блоков {{#if}}/{{#unless}}/{{#with}}/{{#each}}
отслеживается явным стеком фреймов, а не стеком вызовов, поэтому глубина
вложенности шаблона не ограничена глубиной рекурсии интерпретатора.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import ParseError, ParseErrorKind
from .lexer import tokenize_template
from .nodes import (
    BLOCK_TYPES,
    CommentNode,
    HelperArg,
    HelperCallNode,
    LiteralArg,
    PathExpr,
    TemplateAST,
    TemplateNode,
    TextNode,
    VariableNode,
)
from .tokens import Span, Token, TokenType

logger = logging.getLogger(__name__)

# Ключевые слова, которые в аргументах хелперов считаются литералами
_LITERAL_KEYWORDS = {"true": True, "false": False, "null": None, "undefined": None}

_CLOSERS = (TokenType.CLOSE, TokenType.CLOSE_RAW)

# Сколько параметров "as |...|" принимает блок
_BLOCK_PARAM_LIMITS = {"with": 1, "each": 2}


@dataclass
class _BlockFrame:
    """
    Открытый блок на стеке парсера.

    Пока else_nodes равен None, узлы накапливаются в then_nodes;
    после {{else}} в else_nodes.
    """
    name: str
    path: PathExpr
    span: Span
    then_nodes: List[TemplateNode]
    else_nodes: Optional[List[TemplateNode]] = None
    params: Tuple[str, ...] = ()

    @property
    def target(self) -> List[TemplateNode]:
        return self.then_nodes if self.else_nodes is None else self.else_nodes


class TemplateParser:
    """
    Парсер шаблонов со стеком открытых блоков.

    Обрабатывает последовательность токенов и строит AST, корректно
    обрабатывая вложенные блоки, ветки else и вызовы хелперов.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0
        self._stack: List[_BlockFrame] = []
        self._root: List[TemplateNode] = []

    def parse(self) -> TemplateAST:
        """
        Парсит всю последовательность токенов в AST.

        Returns:
            Кортеж корневых узлов AST

        Raises:
            ParseError: При ошибке синтаксического анализа
        """
        self.position = 0
        self._stack = []
        self._root = []

        while not self._is_at_end():
            token = self._current_token()

            if token.type == TokenType.TEXT:
                self._advance()
                self._target().append(TextNode(text=token.value))
            elif token.type == TokenType.COMMENT:
                self._advance()
                self._target().append(CommentNode(text=token.value))
            elif token.type in (TokenType.OPEN, TokenType.OPEN_RAW):
                self._parse_mustache()
            elif token.type == TokenType.OPEN_BLOCK:
                self._parse_block_open()
            elif token.type == TokenType.CLOSE_BLOCK:
                self._parse_block_close()
            else:
                raise ParseError(
                    ParseErrorKind.UNEXPECTED_TOKEN,
                    f"Unexpected token at top level: {token.type.name}",
                    token.span,
                )

        if self._stack:
            frame = self._stack[-1]
            raise ParseError(
                ParseErrorKind.UNCLOSED_BLOCK,
                f"Block '{frame.name}' is never closed",
                frame.span,
                expected=frame.name,
            )

        logger.debug("Parsed template into %d root nodes", len(self._root))
        return tuple(self._root)

    # ---------- теги ----------

    def _parse_mustache(self) -> None:
        """Парсит {{...}} или {{{...}}}: переменную, хелпер или {{else}}."""
        opener = self._advance()
        escape = opener.type == TokenType.OPEN
        items = self._collect_tag_items()
        closer = self._advance()

        if not items:
            raise ParseError(ParseErrorKind.EMPTY_TAG, "Empty tag", opener.span)

        first = items[0]
        if first.type == TokenType.ELSE:
            if not escape or len(items) > 1:
                raise ParseError(
                    ParseErrorKind.UNEXPECTED_TOKEN,
                    "Malformed else tag",
                    first.span,
                )
            self._handle_else(self._join_span(opener, closer))
            return

        if first.type != TokenType.PATH:
            raise ParseError(
                ParseErrorKind.UNEXPECTED_TOKEN,
                f"Expected path or helper name, got {first.type.name}",
                first.span,
            )

        if len(items) == 1:
            self._target().append(VariableNode(path=self._make_path(first), escape=escape))
            return

        name = self._expect_identifier(first, "Invalid helper name")
        args = tuple(self._make_argument(item) for item in items[1:])
        self._target().append(
            HelperCallNode(name=name, args=args, escape=escape, span=self._join_span(opener, closer))
        )

    def _parse_block_open(self) -> None:
        """Парсит {{#name path}} или {{#name path as |x|}} и кладет новый фрейм на стек."""
        opener = self._advance()
        items = self._collect_tag_items()
        closer = self._advance()
        span = self._join_span(opener, closer)

        if not items:
            raise ParseError(ParseErrorKind.EMPTY_TAG, "Empty block tag", opener.span)

        first = items[0]
        if first.type != TokenType.PATH:
            raise ParseError(
                ParseErrorKind.UNEXPECTED_TOKEN,
                f"Expected block name, got {first.type.name}",
                first.span,
            )

        name = self._expect_identifier(first, "Invalid block name")
        if name not in BLOCK_TYPES:
            raise ParseError(
                ParseErrorKind.UNKNOWN_BLOCK,
                f"Unknown block '{name}' (supported: {', '.join(sorted(BLOCK_TYPES))})",
                first.span,
            )

        if len(items) < 2 or items[1].type != TokenType.PATH:
            raise ParseError(
                ParseErrorKind.INVALID_BLOCK_ARGUMENT,
                f"Block '{name}' expects exactly one path argument",
                span,
            )

        path = self._make_path(items[1])
        params = self._parse_block_params(name, items[2:], span)
        self._stack.append(_BlockFrame(name=name, path=path, span=span, then_nodes=[], params=params))

    def _parse_block_params(self, name: str, items: List[Token], span: Span) -> Tuple[str, ...]:
        """Разбирает хвост "as |item index|" (или "as item") открывающего тега."""
        if not items:
            return ()

        max_params = _BLOCK_PARAM_LIMITS.get(name, 0)
        if max_params == 0 or items[0].type != TokenType.PATH or items[0].value != "as":
            raise ParseError(
                ParseErrorKind.INVALID_BLOCK_ARGUMENT,
                f"Block '{name}' expects exactly one path argument",
                span,
            )

        if len(items) != 2 or items[1].type not in (TokenType.BLOCK_PARAMS, TokenType.PATH):
            raise ParseError(
                ParseErrorKind.INVALID_BLOCK_ARGUMENT,
                f"Expected block parameters after 'as' in block '{name}'",
                span,
            )

        if items[1].type == TokenType.PATH:
            params: Tuple[str, ...] = (self._expect_identifier(items[1], "Invalid block parameter"),)
        else:
            params = tuple(items[1].value.split())

        if len(params) > max_params or len(set(params)) != len(params) or "this" in params:
            raise ParseError(
                ParseErrorKind.INVALID_BLOCK_ARGUMENT,
                f"Block '{name}' accepts at most {max_params} distinct block parameter(s), "
                f"got |{' '.join(params)}|",
                items[1].span,
            )
        return params

    def _parse_block_close(self) -> None:
        """Парсит {{/name}}, снимает фрейм со стека и добавляет блок к родителю."""
        opener = self._advance()
        items = self._collect_tag_items()
        closer = self._advance()
        span = self._join_span(opener, closer)

        if len(items) != 1 or items[0].type != TokenType.PATH:
            raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, "Malformed closing tag", span)

        found = items[0].value
        if not self._stack:
            raise ParseError(
                ParseErrorKind.UNMATCHED_BLOCK,
                f"Closing tag '{found}' without an open block",
                span,
                expected=None,
                found=found,
            )

        frame = self._stack[-1]
        if frame.name != found:
            raise ParseError(
                ParseErrorKind.UNMATCHED_BLOCK,
                f"Expected closing tag for '{frame.name}', found '{found}'",
                span,
                expected=frame.name,
                found=found,
            )

        self._stack.pop()
        node_cls = BLOCK_TYPES[frame.name]
        node = node_cls(
            path=frame.path,
            then_nodes=tuple(frame.then_nodes),
            else_nodes=None if frame.else_nodes is None else tuple(frame.else_nodes),
            params=frame.params,
        )
        self._target().append(node)

    def _handle_else(self, span: Span) -> None:
        if not self._stack:
            raise ParseError(ParseErrorKind.UNEXPECTED_ELSE, "'else' outside of a block", span)

        frame = self._stack[-1]
        if frame.else_nodes is not None:
            raise ParseError(
                ParseErrorKind.UNEXPECTED_ELSE,
                f"Duplicate 'else' in block '{frame.name}'",
                span,
            )
        frame.else_nodes = []

    # ---------- содержимое тегов ----------

    def _collect_tag_items(self) -> List[Token]:
        """Собирает токены содержимого тега до закрывающего разделителя."""
        items: List[Token] = []
        while self._current_token().type not in _CLOSERS:
            token = self._current_token()
            if token.type == TokenType.EOF:
                # Лексер гарантирует закрытие тега, но поток токенов мог быть собран вручную
                raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, "Unexpected end of tag", token.span)
            items.append(self._advance())
        return items

    def _make_path(self, token: Token) -> PathExpr:
        """Строит PathExpr из значения PATH-токена."""
        value = token.value
        depth = 0
        while value.startswith("../"):
            depth += 1
            value = value[3:]

        if value.startswith("@"):
            return PathExpr(segments=tuple(value[1:].split(".")), depth=depth, data=True, span=token.span)

        if value == ".":
            segments: List[str] = []
        elif value.startswith("./"):
            segments = value[2:].split(".")
        else:
            segments = value.split(".")
            if segments[0] == "this":
                segments = segments[1:]

        return PathExpr(segments=tuple(segments), depth=depth, span=token.span)

    def _make_argument(self, token: Token) -> HelperArg:
        if token.type == TokenType.STRING:
            return LiteralArg(value=token.value, span=token.span)
        if token.type == TokenType.NUMBER:
            number = float(token.value) if "." in token.value else int(token.value)
            return LiteralArg(value=number, span=token.span)
        if token.type == TokenType.PATH:
            if token.value in _LITERAL_KEYWORDS:
                return LiteralArg(value=_LITERAL_KEYWORDS[token.value], span=token.span)
            return self._make_path(token)
        raise ParseError(
            ParseErrorKind.UNEXPECTED_TOKEN,
            f"Unexpected {token.type.name} in helper arguments",
            token.span,
        )

    @staticmethod
    def _expect_identifier(token: Token, message: str) -> str:
        """Имя хелпера или блока должно быть простым идентификатором."""
        value = token.value
        if "." in value or "/" in value or value.startswith("@") or value == "this":
            raise ParseError(ParseErrorKind.UNEXPECTED_TOKEN, f"{message}: '{value}'", token.span)
        return value

    # ---------- навигация ----------

    def _target(self) -> List[TemplateNode]:
        """Список, в который сейчас добавляются узлы."""
        return self._stack[-1].target if self._stack else self._root

    def _current_token(self) -> Token:
        """Возвращает текущий токен без продвижения позиции."""
        if self.position >= len(self.tokens):
            last = self.tokens[-1].span if self.tokens else Span(0, 0, 1, 1)
            return Token(TokenType.EOF, "", Span(last.end, last.end, last.line, last.column))
        return self.tokens[self.position]

    def _advance(self) -> Token:
        """Продвигается к следующему токену и возвращает предыдущий."""
        current = self._current_token()
        if self.position < len(self.tokens):
            self.position += 1
        return current

    def _is_at_end(self) -> bool:
        return self._current_token().type == TokenType.EOF

    @staticmethod
    def _join_span(first: Token, last: Token) -> Span:
        return Span(first.span.start, last.span.end, first.span.line, first.span.column)


def parse_template(text: str) -> TemplateAST:
    """
    Удобная функция: токенизирует и парсит шаблон.

    Raises:
        LexError: При ошибке лексического анализа
        ParseError: При ошибке синтаксического анализа
    """
    return TemplateParser(tokenize_template(text)).parse()


__all__ = ["TemplateParser", "parse_template"]
