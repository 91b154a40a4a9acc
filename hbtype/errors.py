"""
Base exceptions for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from HbUserError.

Programming errors and bugs should NOT inherit from HbUserError;
they will propagate with full tracebacks.
"""

from __future__ import annotations

import enum
from typing import Optional

from .tokens import Span


class HbUserError(Exception):
    """
    Base class for all user-facing errors in hbtype.

    These errors indicate problems that the user can fix:
    malformed templates, data that does not match a schema,
    missing helpers, broken configuration.
    """
    pass


class CompileError(HbUserError):
    """Ошибка компиляции шаблона (лексер, парсер или вывод схемы)."""

    def __init__(self, message: str, span: Optional[Span] = None):
        if span is not None:
            message = f"{message} at {span.line}:{span.column}"
        super().__init__(message)
        self.span = span


class LexErrorKind(enum.Enum):
    UNTERMINATED_TAG = "UnterminatedTag"
    UNTERMINATED_STRING = "UnterminatedString"
    UNEXPECTED_CHARACTER = "UnexpectedCharacter"


class LexError(CompileError):
    """Ошибка лексического анализа."""

    def __init__(self, kind: LexErrorKind, message: str, span: Span):
        super().__init__(message, span)
        self.kind = kind


class ParseErrorKind(enum.Enum):
    UNMATCHED_BLOCK = "UnmatchedBlock"
    UNEXPECTED_ELSE = "UnexpectedElse"
    UNCLOSED_BLOCK = "UnclosedBlock"
    UNKNOWN_BLOCK = "UnknownBlock"
    INVALID_BLOCK_ARGUMENT = "InvalidBlockArgument"
    EMPTY_TAG = "EmptyTag"
    UNEXPECTED_TOKEN = "UnexpectedToken"


class ParseError(CompileError):
    """
    Ошибка синтаксического анализа.

    Для UNMATCHED_BLOCK заполнены expected (имя ближайшего открытого блока
    или None, если открытых блоков нет) и found (имя закрывающего тега).
    """

    def __init__(
        self,
        kind: ParseErrorKind,
        message: str,
        span: Span,
        *,
        expected: Optional[str] = None,
        found: Optional[str] = None,
    ):
        super().__init__(message, span)
        self.kind = kind
        self.expected = expected
        self.found = found


class SchemaErrorKind(enum.Enum):
    CONFLICT = "Conflict"
    PATH_OUT_OF_SCOPE = "PathOutOfScope"
    UNKNOWN_DATA_VARIABLE = "UnknownDataVariable"


class SchemaError(CompileError):
    """
    Ошибка вывода схемы.

    span_a указывает на первое обращение к корневому полю root,
    span_b указывает на обращение, которое с ним несовместимо.
    """

    def __init__(
        self,
        kind: SchemaErrorKind,
        message: str,
        *,
        root: Optional[str] = None,
        span_a: Optional[Span] = None,
        span_b: Optional[Span] = None,
    ):
        super().__init__(message, span_b)
        self.kind = kind
        self.root = root
        self.span_a = span_a
        self.span_b = span_b


class RenderErrorKind(enum.Enum):
    UNKNOWN_HELPER = "UnknownHelper"
    PATH_NOT_FOUND = "PathNotFound"
    HELPER_FAILED = "HelperFailed"
    INVALID_DATA = "InvalidData"


class RenderError(HbUserError):
    """Ошибка рендеринга: неизвестный хелпер, отсутствующий путь, неверные данные."""

    def __init__(
        self,
        kind: RenderErrorKind,
        message: str,
        *,
        name: Optional[str] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.name = name
        self.path = path


class ConfigError(HbUserError):
    """Ошибка загрузки конфигурации hbtype.yaml."""
    pass


__all__ = [
    "HbUserError",
    "CompileError",
    "LexErrorKind",
    "LexError",
    "ParseErrorKind",
    "ParseError",
    "SchemaErrorKind",
    "SchemaError",
    "RenderErrorKind",
    "RenderError",
    "ConfigError",
]
