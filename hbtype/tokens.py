"""
Лексические типы.

Определяет типы токенов шаблона и позиционную информацию (Span),
которая переносится в узлы AST и в сообщения об ошибках.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class TokenType(enum.Enum):
    """Типы токенов в шаблоне."""

    # Текстовый контент
    TEXT = "TEXT"

    # Открывающие разделители
    OPEN = "OPEN"                    # {{
    OPEN_RAW = "OPEN_RAW"            # {{{
    OPEN_BLOCK = "OPEN_BLOCK"        # {{#
    CLOSE_BLOCK = "CLOSE_BLOCK"      # {{/

    # Содержимое тегов
    ELSE = "ELSE"
    PATH = "PATH"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BLOCK_PARAMS = "BLOCK_PARAMS"    # |item index|

    # Закрывающие разделители
    CLOSE = "CLOSE"                  # }}
    CLOSE_RAW = "CLOSE_RAW"          # }}}

    # Комментарии {{! ... }} и {{!-- ... --}}
    COMMENT = "COMMENT"

    EOF = "EOF"


@dataclass(frozen=True)
class Span:
    """Фрагмент исходного текста: смещения [start, end) и начальная позиция."""
    start: int
    end: int
    line: int           # Номер строки (начиная с 1)
    column: int         # Номер колонки (начиная с 1)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Token:
    """
    Токен с позиционной информацией для точной диагностики ошибок.
    """
    type: TokenType
    value: str
    span: Span

    @property
    def line(self) -> int:
        return self.span.line

    @property
    def column(self) -> int:
        return self.span.column

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


__all__ = ["TokenType", "Span", "Token"]
