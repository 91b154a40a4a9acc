"""
Вывод схемы данных из AST шаблона.

Обходит AST один раз в глубину и собирает требования к данным.
Каждое обращение к пути превращается в требование уровня корня:
тип листа оборачивается в объекты по сегментам пути, а затем во все
охватывающие области видимости ({{#with}} и {{#each}}). Требования
объединяются через merge_types; несовместимые требования дают SchemaError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import SchemaError, SchemaErrorKind
from .evaluator import BUILTIN_HELPERS
from .nodes import (
    DATA_VARIABLES,
    BlockNode,
    EachBlockNode,
    HelperCallNode,
    IfBlockNode,
    PathExpr,
    TemplateNode,
    UnlessBlockNode,
    VariableNode,
    WithBlockNode,
)
from .schema import (
    ANY,
    SCALAR,
    FieldType,
    ListType,
    ObjectType,
    OptionalType,
    Schema,
    TypeConflict,
    merge_types,
)
from .tokens import Span

logger = logging.getLogger(__name__)


def _nest(segments: Sequence[str], leaf: FieldType) -> FieldType:
    """Оборачивает тип листа в объекты: ("a", "b"), T -> object{a: object{b: T}}."""
    result = leaf
    for segment in reversed(segments):
        result = ObjectType(((segment, result),))
    return result


Wrap = Callable[[FieldType], FieldType]


@dataclass(frozen=True)
class _Scope:
    """
    Лексическая область видимости при выводе схемы.

    wrap переводит требование к значению области в требование к корню данных.
    params: параметры блока (as |item index|) -> их wrap; None для индекса
    или ключа, к которым требования не предъявляются.
    """
    kind: str  # "root" | "with" | "each"
    wrap: Optional[Wrap]
    params: Mapping[str, Optional[Wrap]] = field(default_factory=dict)


def _identity(field_type: FieldType) -> FieldType:
    return field_type


class SchemaInferencer:
    """
    Вычислитель схемы данных шаблона.

    Экземпляр хранит состояние одного обхода; infer() можно вызывать
    повторно, состояние сбрасывается.
    """

    def __init__(self) -> None:
        self._root = ObjectType()
        self._first_seen: Dict[str, Optional[Span]] = {}
        self._helpers: List[str] = []

    def infer(self, ast: Sequence[TemplateNode]) -> Schema:
        """
        Выводит схему данных для AST.

        Raises:
            SchemaError: При несовместимых обращениях к одному пути,
                         выходе ../ за корень или неизвестной @-переменной
        """
        self._root = ObjectType()
        self._first_seen = {}
        self._helpers = []

        self._visit_all(ast, [_Scope("root", _identity)])

        schema = Schema(root=self._root, helpers=tuple(self._helpers))
        logger.debug("Inferred schema with %d root fields, %d helpers", len(schema), len(schema.helpers))
        return schema

    # ---------- обход ----------

    def _visit_all(self, nodes: Sequence[TemplateNode], scopes: List[_Scope]) -> None:
        for node in nodes:
            self._visit(node, scopes)

    def _visit(self, node: TemplateNode, scopes: List[_Scope]) -> None:
        if isinstance(node, VariableNode):
            self._require(node.path, SCALAR, scopes)

        elif isinstance(node, HelperCallNode):
            builtin = node.name in BUILTIN_HELPERS
            if not builtin and node.name not in self._helpers:
                self._helpers.append(node.name)
            for position, arg in enumerate(node.args):
                if isinstance(arg, PathExpr):
                    # контейнер lookup может быть списком или объектом
                    leaf = ANY if builtin and position == 0 else SCALAR
                    self._require(arg, leaf, scopes)

        elif isinstance(node, (IfBlockNode, UnlessBlockNode)):
            self._require(node.path, OptionalType(SCALAR), scopes)
            self._visit_all(node.then_nodes, scopes)
            self._visit_all(node.else_nodes or (), scopes)

        elif isinstance(node, WithBlockNode):
            self._require(node.path, OptionalType(ANY), scopes)
            inner = self._rebase(node, "with", OptionalType, scopes)
            self._visit_all(node.then_nodes, scopes + [inner])
            self._visit_all(node.else_nodes or (), scopes)

        elif isinstance(node, EachBlockNode):
            self._require(node.path, ListType(ANY), scopes)
            inner = self._rebase(node, "each", ListType, scopes)
            self._visit_all(node.item_nodes, scopes + [inner])
            self._visit_all(node.else_nodes or (), scopes)

        # TextNode и CommentNode требований не добавляют

    # ---------- области видимости ----------

    def _rebase(
        self,
        node: BlockNode,
        kind: str,
        wrapper: Wrap,
        scopes: List[_Scope],
    ) -> _Scope:
        """Создает область видимости, привязанную к значению блока node."""
        base_wrap, segments = self._locate(node.path, scopes)
        inner_wrap: Optional[Wrap] = None
        if base_wrap is not None:
            def wrap(field_type: FieldType) -> FieldType:
                return base_wrap(_nest(segments, wrapper(field_type)))
            inner_wrap = wrap

        # второй параметр each (индекс или ключ) требований не несет
        params = dict(zip(node.params, (inner_wrap, None)))
        return _Scope(kind, inner_wrap, params)

    def _locate(self, path: PathExpr, scopes: List[_Scope]) -> Tuple[Optional[Wrap], Tuple[str, ...]]:
        """
        Находит область, от которой отсчитывается путь.

        Возвращает wrap этой области и оставшиеся сегменты пути.
        """
        if path.depth == 0 and path.segments:
            for scope in reversed(scopes):
                if path.segments[0] in scope.params:
                    return scope.params[path.segments[0]], path.segments[1:]
        return self._resolve_scope(path, scopes).wrap, path.segments

    def _resolve_scope(self, path: PathExpr, scopes: List[_Scope]) -> _Scope:
        if path.depth >= len(scopes):
            raise SchemaError(
                SchemaErrorKind.PATH_OUT_OF_SCOPE,
                f"Path '{path}' climbs above the template root",
                span_b=path.span,
            )
        return scopes[-1 - path.depth]

    # ---------- требования ----------

    def _require(self, path: PathExpr, leaf: FieldType, scopes: List[_Scope]) -> None:
        """Записывает требование leaf к значению по пути path."""
        if path.data:
            self._check_data_variable(path, scopes)
            return

        wrap, segments = self._locate(path, scopes)
        if wrap is None:
            return
        requirement = wrap(_nest(segments, leaf))

        if not isinstance(requirement, ObjectType):
            raise SchemaError(
                SchemaErrorKind.PATH_OUT_OF_SCOPE,
                f"'{path}' refers to the template root, which is not a {leaf}",
                span_b=path.span,
            )

        root_name = requirement.fields[0][0]
        try:
            self._root = merge_types(self._root, requirement)
        except TypeConflict as exc:
            root = exc.path[0] if exc.path else root_name
            raise SchemaError(
                SchemaErrorKind.CONFLICT,
                f"Conflicting uses of '{root}': {exc}",
                root=root,
                span_a=self._first_seen.get(root),
                span_b=path.span,
            ) from None

        self._first_seen.setdefault(root_name, path.span)

    @staticmethod
    def _check_data_variable(path: PathExpr, scopes: List[_Scope]) -> None:
        name = ".".join(path.segments)
        if name not in DATA_VARIABLES:
            raise SchemaError(
                SchemaErrorKind.UNKNOWN_DATA_VARIABLE,
                f"Unknown data variable '@{name}' (supported: "
                f"{', '.join('@' + v for v in sorted(DATA_VARIABLES))})",
                span_b=path.span,
            )
        each_depth = sum(1 for scope in scopes if scope.kind == "each")
        if each_depth == 0:
            raise SchemaError(
                SchemaErrorKind.UNKNOWN_DATA_VARIABLE,
                f"Data variable '@{name}' is only available inside {{{{#each}}}}",
                span_b=path.span,
            )
        if path.depth >= each_depth:
            raise SchemaError(
                SchemaErrorKind.UNKNOWN_DATA_VARIABLE,
                f"Data variable '{path}' climbs above the outermost {{{{#each}}}}",
                span_b=path.span,
            )


def infer_schema(ast: Sequence[TemplateNode]) -> Schema:
    """Удобная функция для вывода схемы."""
    return SchemaInferencer().infer(ast)


__all__ = ["SchemaInferencer", "infer_schema"]
