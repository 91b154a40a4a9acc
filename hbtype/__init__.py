"""
Компилятор Handlebars-шаблонов в строго типизированную схему данных.

Шаблон является источником истины: из него выводится форма данных,
которую шаблон требует, и рендеринг принимает только данные этой формы.
"""

from __future__ import annotations

from .compiler import CompiledTemplate, compile_template, render
from .config import HbConfig, load_config
from .errors import (
    CompileError,
    ConfigError,
    HbUserError,
    LexError,
    LexErrorKind,
    ParseError,
    ParseErrorKind,
    RenderError,
    RenderErrorKind,
    SchemaError,
    SchemaErrorKind,
)
from .evaluator import TemplateEvaluator
from .helpers import HelperRegistry, load_helpers
from .inference import infer_schema
from .lexer import tokenize_template
from .parser import parse_template
from .schema import (
    AnyType,
    FieldType,
    ListType,
    ObjectType,
    OptionalType,
    ScalarType,
    Schema,
)
from .validation import validate_data

__all__ = [
    # Compiler
    "CompiledTemplate",
    "compile_template",
    "render",
    "tokenize_template",
    "parse_template",
    "infer_schema",
    "TemplateEvaluator",
    "validate_data",

    # Schema
    "Schema",
    "FieldType",
    "ScalarType",
    "OptionalType",
    "ObjectType",
    "ListType",
    "AnyType",

    # Helpers & config
    "HelperRegistry",
    "load_helpers",
    "HbConfig",
    "load_config",

    # Errors
    "HbUserError",
    "CompileError",
    "LexError",
    "LexErrorKind",
    "ParseError",
    "ParseErrorKind",
    "SchemaError",
    "SchemaErrorKind",
    "RenderError",
    "RenderErrorKind",
    "ConfigError",
]
