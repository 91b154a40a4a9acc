"""
AST-узлы шаблона.

Определяет иерархию неизменяемых классов узлов для представления
структуры шаблонов. Дочерние последовательности хранятся в кортежах,
чтобы скомпилированный AST можно было разделять между потоками.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .tokens import Span

# Допустимые имена переменных данных внутри {{#each}}
DATA_VARIABLES = frozenset({"index", "key", "value", "first", "last"})


@dataclass(frozen=True)
class PathExpr:
    """
    Путь к значению относительно текущей области видимости.

    Примеры:
        person.firstname -> segments=("person", "firstname")
        this / .         -> segments=()
        ../title         -> segments=("title",), depth=1
        @index           -> segments=("index",), data=True
        ../@index        -> segments=("index",), depth=1, data=True (внешний each)
    """
    segments: Tuple[str, ...]
    depth: int = 0
    data: bool = False
    span: Optional[Span] = field(default=None, compare=False)

    @property
    def is_this(self) -> bool:
        return not self.segments and not self.data

    def __str__(self) -> str:
        prefix = "../" * self.depth
        if self.data:
            return prefix + "@" + ".".join(self.segments)
        if not self.segments:
            return prefix + "this" if prefix else "this"
        return prefix + ".".join(self.segments)


@dataclass(frozen=True)
class LiteralArg:
    """Литеральный аргумент хелпера: строка, число, true/false/null."""
    value: Union[str, int, float, bool, None]
    span: Optional[Span] = field(default=None, compare=False)


HelperArg = Union[PathExpr, LiteralArg]


@dataclass(frozen=True)
class TemplateNode:
    """Базовый класс для всех узлов AST шаблона."""
    pass


@dataclass(frozen=True)
class TextNode(TemplateNode):
    """
    Обычный текстовый контент в шаблоне.

    Представляет статический текст, который не требует обработки
    и выводится в результат как есть.
    """
    text: str


@dataclass(frozen=True)
class CommentNode(TemplateNode):
    """Комментарий {{! ... }}. В вывод не попадает."""
    text: str


@dataclass(frozen=True)
class VariableNode(TemplateNode):
    """Подстановка значения: {{path}} (escape=True) или {{{path}}}."""
    path: PathExpr
    escape: bool = True


@dataclass(frozen=True)
class HelperCallNode(TemplateNode):
    """Вызов хелпера: {{name arg1 "literal" ...}}."""
    name: str
    args: Tuple[HelperArg, ...]
    escape: bool = True
    span: Optional[Span] = field(default=None, compare=False)


@dataclass(frozen=True)
class BlockNode(TemplateNode):
    """
    Базовый класс блочных конструкций {{#name path}}...{{/name}}.

    else_nodes равен None, если ветка {{else}} отсутствует.
    params: имена параметров блока из {{#each items as |item index|}}.
    """
    path: PathExpr
    then_nodes: Tuple[TemplateNode, ...]
    else_nodes: Optional[Tuple[TemplateNode, ...]] = None
    params: Tuple[str, ...] = ()

    block_name = ""


@dataclass(frozen=True)
class IfBlockNode(BlockNode):
    """{{#if path}}...{{else}}...{{/if}}"""
    block_name = "if"


@dataclass(frozen=True)
class UnlessBlockNode(BlockNode):
    """{{#unless path}}...{{else}}...{{/unless}}, инверсия if."""
    block_name = "unless"


@dataclass(frozen=True)
class WithBlockNode(BlockNode):
    """{{#with path}}...{{else}}...{{/with}}: переключает область видимости."""
    block_name = "with"


@dataclass(frozen=True)
class EachBlockNode(BlockNode):
    """
    {{#each path}}...{{else}}...{{/each}}

    then_nodes выводятся для каждого элемента списка (или значения
    отображения); else_nodes для пустой коллекции.
    """
    block_name = "each"

    @property
    def item_nodes(self) -> Tuple[TemplateNode, ...]:
        return self.then_nodes


BLOCK_TYPES = {
    cls.block_name: cls
    for cls in (IfBlockNode, UnlessBlockNode, WithBlockNode, EachBlockNode)
}

# Алиас для последовательности узлов (AST)
TemplateAST = Tuple[TemplateNode, ...]


__all__ = [
    "DATA_VARIABLES",
    "PathExpr",
    "LiteralArg",
    "HelperArg",
    "TemplateNode",
    "TextNode",
    "CommentNode",
    "VariableNode",
    "HelperCallNode",
    "BlockNode",
    "IfBlockNode",
    "UnlessBlockNode",
    "WithBlockNode",
    "EachBlockNode",
    "BLOCK_TYPES",
    "TemplateAST",
]
