"""
Компиляция шаблона: текст -> AST + схема данных.

compile_template() выполняет лексический анализ, парсинг и вывод схемы
и возвращает неизменяемый CompiledTemplate. Рендеринг скомпилированного
шаблона сначала проверяет данные по схеме и наличие всех хелперов,
поэтому ошибки данных обнаруживаются до начала вывода.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .errors import RenderError, RenderErrorKind
from .evaluator import HelperSource, TemplateEvaluator
from .inference import infer_schema
from .lexer import tokenize_template
from .nodes import TemplateAST, TemplateNode
from .parser import TemplateParser
from .schema import Schema
from .validation import validate_data

logger = logging.getLogger(__name__)


def _missing_helpers(names: Sequence[str], helpers: Optional[HelperSource]) -> List[str]:
    if helpers is None:
        return list(names)
    return [name for name in names if helpers.get(name) is None]


def _check_helpers(names: Sequence[str], helpers: Optional[HelperSource]) -> None:
    missing = _missing_helpers(names, helpers)
    if missing:
        raise RenderError(
            RenderErrorKind.UNKNOWN_HELPER,
            f"Unknown helper '{missing[0]}'"
            + (f" (also missing: {', '.join(missing[1:])})" if len(missing) > 1 else ""),
            name=missing[0],
        )


@dataclass(frozen=True)
class CompiledTemplate:
    """
    Скомпилированный шаблон.

    Attributes:
        name: Имя шаблона (для сообщений)
        source: Исходный текст
        ast: Корневая последовательность узлов
        schema: Выведенная схема данных
    """
    name: str
    source: str
    ast: TemplateAST
    schema: Schema

    def render(self, data: Any, helpers: Optional[HelperSource] = None, *, validate: bool = True) -> str:
        """
        Рендерит шаблон с данными.

        Args:
            data: Данные (отображение или объект с атрибутами)
            helpers: Реестр хелперов или отображение имя -> функция
            validate: Проверять данные по схеме перед рендерингом

        Raises:
            RenderError: Данные не соответствуют схеме, хелпер не
                         зарегистрирован или завершился с ошибкой
        """
        _check_helpers(self.schema.helpers, helpers)
        if validate:
            validate_data(self.schema, data)
        return TemplateEvaluator(helpers).render(self.ast, data)

    def json_schema(self) -> Dict[str, Any]:
        return self.schema.to_json_schema(title=self.name)


def compile_template(text: str, name: str = "<string>") -> CompiledTemplate:
    """
    Компилирует текст шаблона.

    Raises:
        LexError, ParseError, SchemaError: все наследуют CompileError
    """
    tokens = tokenize_template(text)
    ast = TemplateParser(tokens).parse()
    schema = infer_schema(ast)
    logger.debug("Compiled template %s: %d nodes, %d root fields", name, len(ast), len(schema))
    return CompiledTemplate(name=name, source=text, ast=ast, schema=schema)


def render(ast: Sequence[TemplateNode], data: Any, helpers: Optional[HelperSource] = None) -> str:
    """
    Рендерит готовый AST: выводит схему, проверяет данные и хелперы.
    """
    schema = infer_schema(ast)
    _check_helpers(schema.helpers, helpers)
    validate_data(schema, data)
    return TemplateEvaluator(helpers).render(ast, data)


__all__ = ["CompiledTemplate", "compile_template", "render"]
