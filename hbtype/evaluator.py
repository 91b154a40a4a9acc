"""
Вычислитель (рендерер) AST шаблона.

Проходит по AST и строит результирующий текст для конкретных данных.
Семантика подстановок, экранирования, условий, областей видимости и
итерации совпадает с эталонной реализацией Handlebars.

Вычислитель не хранит состояния между вызовами: стек областей видимости
и буфер вывода создаются заново на каждый вызов render().
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, Union

from .display import escape_html, is_empty, is_sequence, is_truthy, to_display
from .errors import HbUserError, RenderError, RenderErrorKind
from .helpers import HelperFn, HelperRegistry
from .nodes import (
    CommentNode,
    EachBlockNode,
    HelperCallNode,
    IfBlockNode,
    LiteralArg,
    PathExpr,
    TemplateNode,
    TextNode,
    UnlessBlockNode,
    VariableNode,
    WithBlockNode,
)

logger = logging.getLogger(__name__)

HelperSource = Union[HelperRegistry, Mapping[str, HelperFn]]

_MISSING = object()

# Значения этих типов не рассматриваются как объекты с полями
_OPAQUE_TYPES = (str, bytes, bytearray, int, float, bool)


@dataclass
class _Frame:
    """Область видимости: текущее значение, @-переменные итерации и параметры блока."""
    value: Any
    data: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, Any]] = None


class _RenderState:
    """Состояние одного вызова render()."""

    def __init__(self, data: Any):
        self.parts: List[str] = []
        self.frames: List[_Frame] = [_Frame(data)]

    def push(
        self,
        value: Any,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.frames.append(_Frame(value, data, params))

    def pop(self) -> None:
        self.frames.pop()


def lookup_field(value: Any, name: str) -> Any:
    """
    Возвращает поле name значения value или _MISSING.

    Поддерживаются отображения (по ключу) и объекты (по атрибуту,
    кроме приватных).
    """
    if isinstance(value, Mapping):
        return value[name] if name in value else _MISSING
    if isinstance(value, _OPAQUE_TYPES) or is_sequence(value) or name.startswith("_"):
        return _MISSING
    return getattr(value, name, _MISSING)


def is_missing(value: Any) -> bool:
    return value is _MISSING


def lookup_helper(container: Any, key: Any) -> Any:
    """
    Встроенный хелпер {{lookup container key}}.

    Индекс для последовательности, ключ для отображения, атрибут для объекта.
    Отсутствующее значение дает None.
    """
    if container is None or key is None:
        return None
    if is_sequence(container):
        if isinstance(key, bool):
            return None
        try:
            index = int(key)
        except (TypeError, ValueError):
            return None
        return container[index] if 0 <= index < len(container) else None
    if isinstance(container, Mapping) and key in container:
        return container[key]
    value = lookup_field(container, to_display(key))
    return None if value is _MISSING else value


# Хелперы, доступные без регистрации; зарегистрированный хелпер с тем же именем важнее
BUILTIN_HELPERS: Dict[str, HelperFn] = {"lookup": lookup_helper}


class TemplateEvaluator:
    """
    Рендерер AST шаблона.

    Args:
        helpers: Реестр хелперов или отображение имя -> функция
    """

    def __init__(self, helpers: Optional[HelperSource] = None):
        self.helpers = helpers
        self._renderers: Dict[Type[TemplateNode], Callable[[Any, _RenderState], None]] = {
            TextNode: self._render_text,
            CommentNode: self._render_comment,
            VariableNode: self._render_variable,
            HelperCallNode: self._render_helper_call,
            IfBlockNode: self._render_if,
            UnlessBlockNode: self._render_unless,
            WithBlockNode: self._render_with,
            EachBlockNode: self._render_each,
        }

    def render(self, ast: Sequence[TemplateNode], data: Any) -> str:
        """
        Рендерит AST с данными data.

        Returns:
            Результирующий текст

        Raises:
            RenderError: Неизвестный хелпер, отсутствующий обязательный путь
                         или ошибка внутри хелпера. Частичный вывод не возвращается.
        """
        state = _RenderState(data)
        self._render_nodes(ast, state)
        result = "".join(state.parts)
        logger.debug("Rendered %d nodes into %d characters", len(ast), len(result))
        return result

    def _render_nodes(self, nodes: Sequence[TemplateNode], state: _RenderState) -> None:
        for node in nodes:
            renderer = self._renderers.get(type(node))
            if renderer is None:
                raise TypeError(f"Unsupported AST node: {type(node).__name__}")
            renderer(node, state)

    # ---------- листовые узлы ----------

    def _render_text(self, node: TextNode, state: _RenderState) -> None:
        state.parts.append(node.text)

    def _render_comment(self, node: CommentNode, state: _RenderState) -> None:
        pass

    def _render_variable(self, node: VariableNode, state: _RenderState) -> None:
        value = self._resolve(node.path, state, required=True)
        self._emit(value, node.escape, state)

    def _render_helper_call(self, node: HelperCallNode, state: _RenderState) -> None:
        fn = self.helpers.get(node.name) if self.helpers is not None else None
        if fn is None:
            fn = BUILTIN_HELPERS.get(node.name)
        if fn is None:
            raise RenderError(
                RenderErrorKind.UNKNOWN_HELPER,
                f"Unknown helper '{node.name}'",
                name=node.name,
            )

        args = [
            arg.value if isinstance(arg, LiteralArg) else self._resolve(arg, state, required=True)
            for arg in node.args
        ]

        try:
            result = fn(*args)
        except HbUserError:
            raise
        except Exception as e:
            raise RenderError(
                RenderErrorKind.HELPER_FAILED,
                f"Helper '{node.name}' failed: {e}",
                name=node.name,
            ) from e

        self._emit(result, node.escape, state)

    @staticmethod
    def _emit(value: Any, escape: bool, state: _RenderState) -> None:
        text = to_display(value)
        state.parts.append(escape_html(text) if escape else text)

    # ---------- блоки ----------

    def _render_if(self, node: IfBlockNode, state: _RenderState) -> None:
        value = self._resolve(node.path, state, required=False)
        if is_truthy(value):
            self._render_nodes(node.then_nodes, state)
        elif node.else_nodes is not None:
            self._render_nodes(node.else_nodes, state)

    def _render_unless(self, node: UnlessBlockNode, state: _RenderState) -> None:
        value = self._resolve(node.path, state, required=False)
        if not is_truthy(value):
            self._render_nodes(node.then_nodes, state)
        elif node.else_nodes is not None:
            self._render_nodes(node.else_nodes, state)

    def _render_with(self, node: WithBlockNode, state: _RenderState) -> None:
        value = self._resolve(node.path, state, required=False)
        if is_empty(value):
            if node.else_nodes is not None:
                self._render_nodes(node.else_nodes, state)
            return

        state.push(value, params=dict(zip(node.params, (value,))) or None)
        try:
            self._render_nodes(node.then_nodes, state)
        finally:
            state.pop()

    def _render_each(self, node: EachBlockNode, state: _RenderState) -> None:
        value = self._resolve(node.path, state, required=True)
        if isinstance(value, Mapping):
            entries = list(value.items())
        elif value is None or is_sequence(value):
            entries = list(enumerate(value or ()))
        else:
            raise RenderError(
                RenderErrorKind.INVALID_DATA,
                f"'{node.path}' must be a list or a mapping, got {type(value).__name__}",
                path=str(node.path),
            )

        if not entries:
            if node.else_nodes is not None:
                self._render_nodes(node.else_nodes, state)
            return

        last = len(entries) - 1
        for index, (key, item) in enumerate(entries):
            data = {
                "index": index,
                "key": key,
                "value": item,
                "first": index == 0,
                "last": index == last,
            }
            state.push(item, data, dict(zip(node.params, (item, key))) or None)
            try:
                self._render_nodes(node.item_nodes, state)
            finally:
                state.pop()

    # ---------- разрешение путей ----------

    def _resolve(self, path: PathExpr, state: _RenderState, *, required: bool) -> Any:
        """
        Разрешает путь относительно текущей области видимости.

        Первый сегмент пути без ../ сначала ищется среди параметров блоков
        (от внутреннего к внешнему). Отсутствующее поле в обязательной
        позиции дает PATH_NOT_FOUND, в позиции условия дает None.
        Проход через None дает None.
        """
        if path.data:
            return self._resolve_data(path, state)

        segments = path.segments
        current: Any = _MISSING
        if path.depth == 0 and segments:
            for frame in reversed(state.frames):
                if frame.params and segments[0] in frame.params:
                    current = frame.params[segments[0]]
                    segments = segments[1:]
                    break

        if current is _MISSING:
            if path.depth >= len(state.frames):
                raise RenderError(
                    RenderErrorKind.PATH_NOT_FOUND,
                    f"Path '{path}' climbs above the template root",
                    path=str(path),
                )
            current = state.frames[-1 - path.depth].value

        for segment in segments:
            if current is None:
                return None
            current = lookup_field(current, segment)
            if current is _MISSING:
                if required:
                    raise RenderError(
                        RenderErrorKind.PATH_NOT_FOUND,
                        f"Path '{path}' not found in data",
                        path=str(path),
                    )
                return None
        return current

    @staticmethod
    def _resolve_data(path: PathExpr, state: _RenderState) -> Any:
        """@-переменная; каждый ../ пропускает одну итерацию {{#each}}."""
        remaining = path.depth
        for frame in reversed(state.frames):
            if frame.data is None:
                continue
            if remaining == 0:
                return frame.data.get(".".join(path.segments))
            remaining -= 1
        return None


def render_ast(ast: Sequence[TemplateNode], data: Any, helpers: Optional[HelperSource] = None) -> str:
    """Рендерит AST без проверки данных по схеме."""
    return TemplateEvaluator(helpers).render(ast, data)


__all__ = [
    "BUILTIN_HELPERS",
    "HelperSource",
    "TemplateEvaluator",
    "lookup_field",
    "lookup_helper",
    "is_missing",
    "render_ast",
]
