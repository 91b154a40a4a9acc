"""
Лексический анализатор шаблонов.

Токенизирует исходный текст шаблона, разбивая его на последовательность
токенов для последующего синтаксического анализа.
"""

from __future__ import annotations

import logging
import re
from typing import List

from .errors import LexError, LexErrorKind
from .tokens import Span, Token, TokenType

logger = logging.getLogger(__name__)


class TemplateLexer:
    """
    Лексический анализатор шаблонов.

    Разбивает исходный текст на токены, учитывая различные контексты:
    - обычный текст
    - внутри тегов {{...}}, {{{...}}}, {{#...}}, {{/...}}
    - комментарии {{! ... }} и {{!-- ... --}}
    - экранированные теги \\{{...}}, которые выводятся как текст
    """

    # Регулярные выражения для содержимого тегов
    _PATTERNS = {
        TokenType.NUMBER: re.compile(r'-?\d+(?:\.\d+)?(?![\w.])'),
        # ../ префиксы, затем: идентификаторы через точку (в т.ч. this и @index),
        # ./name или одиночная точка
        TokenType.PATH: re.compile(
            r'(?:\.\./)*'
            r'(?:@?[^\W\d][\w\-]*(?:\.[^\W\d][\w\-]*)*'
            r'|\./[^\W\d][\w\-]*(?:\.[^\W\d][\w\-]*)*'
            r'|\.(?![\w./]))'
        ),
    }

    _WHITESPACE = re.compile(r'\s+')

    # |name| или |name index|
    _BLOCK_PARAMS = re.compile(r'\|\s*([^\W\d]\w*(?:\s+[^\W\d]\w*)*)\s*\|')

    # Открывающие разделители; длиннейшее совпадение первым
    _OPENERS = [
        ("{{{", TokenType.OPEN_RAW),
        ("{{#", TokenType.OPEN_BLOCK),
        ("{{/", TokenType.CLOSE_BLOCK),
        ("{{", TokenType.OPEN),
    ]

    def __init__(self, text: str):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1
        self.length = len(text)
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """
        Токенизирует весь исходный текст и возвращает список токенов.

        Список всегда завершается токеном EOF.

        Raises:
            LexError: При незакрытом теге, незакрытой строке или
                      неожиданном символе внутри тега
        """
        self.tokens = []

        while self.position < self.length:
            tag_start = self.text.find("{{", self.position)
            if tag_start == -1:
                self._emit_text(self.length)
                break

            # \{{: тег выводится как есть, без обратного слэша
            if tag_start > self.position and self.text[tag_start - 1] == "\\":
                self._emit_text(tag_start - 1)
                self._advance(1)
                self._lex_escaped_tag()
                continue

            self._emit_text(tag_start)
            self._lex_tag()

        self.tokens.append(Token(TokenType.EOF, "", self._span_from(self.position, self.line, self.column)))
        logger.debug("Tokenized template into %d tokens", len(self.tokens))
        return self.tokens

    # ---------- текст ----------

    def _emit_text(self, end: int) -> None:
        """Выдает TEXT-токен от текущей позиции до end (если он непустой)."""
        if end <= self.position:
            return
        start_pos, start_line, start_column = self.position, self.line, self.column
        value = self.text[self.position:end]
        self._advance(len(value))
        self.tokens.append(Token(TokenType.TEXT, value, self._span_from(start_pos, start_line, start_column)))

    def _lex_escaped_tag(self) -> None:
        start_pos, start_line, start_column = self.position, self.line, self.column
        close = self.text.find("}}", self.position + 2)
        if close == -1:
            raise LexError(
                LexErrorKind.UNTERMINATED_TAG,
                "Unterminated escaped tag",
                Span(start_pos, self.length, start_line, start_column),
            )
        value = self.text[self.position:close + 2]
        self._advance(len(value))
        self.tokens.append(Token(TokenType.TEXT, value, self._span_from(start_pos, start_line, start_column)))

    # ---------- теги ----------

    def _lex_tag(self) -> None:
        """Разбирает один тег, начиная с текущей позиции ('{{')."""
        start_pos, start_line, start_column = self.position, self.line, self.column

        if self.text.startswith("{{!", self.position):
            self._lex_comment()
            return

        opener_type = TokenType.OPEN
        for literal, token_type in self._OPENERS:
            if self.text.startswith(literal, self.position):
                opener_type = token_type
                self._advance(len(literal))
                self.tokens.append(
                    Token(token_type, literal, self._span_from(start_pos, start_line, start_column))
                )
                break

        open_span = self._span_from(start_pos, start_line, start_column)
        raw = opener_type == TokenType.OPEN_RAW

        while True:
            ws = self._WHITESPACE.match(self.text, self.position)
            if ws:
                self._advance(len(ws.group(0)))

            if self.position >= self.length:
                raise LexError(
                    LexErrorKind.UNTERMINATED_TAG,
                    "Unterminated tag",
                    Span(open_span.start, self.length, open_span.line, open_span.column),
                )

            tok_pos, tok_line, tok_column = self.position, self.line, self.column

            if raw and self.text.startswith("}}}", self.position):
                self._advance(3)
                self.tokens.append(Token(TokenType.CLOSE_RAW, "}}}", self._span_from(tok_pos, tok_line, tok_column)))
                return

            if self.text.startswith("}}", self.position):
                if raw:
                    raise LexError(
                        LexErrorKind.UNTERMINATED_TAG,
                        "Expected '}}}' to close raw tag",
                        Span(open_span.start, self.position + 2, open_span.line, open_span.column),
                    )
                self._advance(2)
                self.tokens.append(Token(TokenType.CLOSE, "}}", self._span_from(tok_pos, tok_line, tok_column)))
                return

            self.tokens.append(self._lex_tag_item())

    def _lex_tag_item(self) -> Token:
        """Токенизирует один элемент внутри тега: строку, число или путь."""
        start_pos, start_line, start_column = self.position, self.line, self.column
        char = self.text[self.position]

        if char == '"':
            close = self.text.find('"', self.position + 1)
            if close == -1:
                raise LexError(
                    LexErrorKind.UNTERMINATED_STRING,
                    "Unterminated string literal",
                    Span(start_pos, self.length, start_line, start_column),
                )
            value = self.text[self.position + 1:close]
            self._advance(close + 1 - self.position)
            return Token(TokenType.STRING, value, self._span_from(start_pos, start_line, start_column))

        if char == "|":
            return self._lex_block_params()

        for token_type in (TokenType.NUMBER, TokenType.PATH):
            match = self._PATTERNS[token_type].match(self.text, self.position)
            if match and match.group(0):
                value = match.group(0)
                self._advance(len(value))
                if token_type == TokenType.PATH and value == "else":
                    token_type = TokenType.ELSE
                return Token(token_type, value, self._span_from(start_pos, start_line, start_column))

        raise LexError(
            LexErrorKind.UNEXPECTED_CHARACTER,
            f"Unexpected character in tag: {char!r}",
            Span(start_pos, start_pos + 1, start_line, start_column),
        )

    def _lex_block_params(self) -> Token:
        """Параметры блока |item| или |item index|; значение: имена через пробел."""
        start_pos, start_line, start_column = self.position, self.line, self.column
        match = self._BLOCK_PARAMS.match(self.text, self.position)
        if not match:
            raise LexError(
                LexErrorKind.UNEXPECTED_CHARACTER,
                "Malformed block parameters, expected |name| or |name index|",
                Span(start_pos, start_pos + 1, start_line, start_column),
            )
        self._advance(len(match.group(0)))
        names = " ".join(match.group(1).split())
        return Token(TokenType.BLOCK_PARAMS, names, self._span_from(start_pos, start_line, start_column))

    def _lex_comment(self) -> None:
        """Разбирает комментарий {{! ... }} или {{!-- ... --}}."""
        start_pos, start_line, start_column = self.position, self.line, self.column

        if self.text.startswith("{{!--", self.position):
            body_start, closer = self.position + 5, "--}}"
        else:
            body_start, closer = self.position + 3, "}}"

        close = self.text.find(closer, body_start)
        if close == -1:
            raise LexError(
                LexErrorKind.UNTERMINATED_TAG,
                "Unterminated comment",
                Span(start_pos, self.length, start_line, start_column),
            )

        body = self.text[body_start:close]
        self._advance(close + len(closer) - self.position)
        self.tokens.append(Token(TokenType.COMMENT, body, self._span_from(start_pos, start_line, start_column)))

    # ---------- позиции ----------

    def _advance(self, count: int) -> None:
        """
        Перемещает позицию на указанное количество символов,
        обновляя номера строк и колонок.
        """
        for _ in range(count):
            if self.position < self.length:
                if self.text[self.position] == '\n':
                    self.line += 1
                    self.column = 1
                else:
                    self.column += 1
                self.position += 1

    def _span_from(self, start: int, line: int, column: int) -> Span:
        return Span(start, self.position, line, column)


def tokenize_template(text: str) -> List[Token]:
    """
    Удобная функция для токенизации шаблона.

    Args:
        text: Исходный текст шаблона

    Returns:
        Список токенов

    Raises:
        LexError: При ошибке лексического анализа
    """
    lexer = TemplateLexer(text)
    return lexer.tokenize()


__all__ = ["TemplateLexer", "tokenize_template"]
