"""
Реестр хелперов шаблонов.

Хелпер это именованная функция, которая вызывается из тега
{{name arg1 "literal" ...}} с вычисленными аргументами и возвращает
значение для вывода. Поиск выполняется по точному совпадению имени.
Повторная регистрация имени заменяет прежний хелпер (с предупреждением
в логе).
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

HelperFn = Callable[..., Any]


class HelperRegistry:
    """
    Централизованный реестр хелперов.

    Реестр только читается во время рендеринга, поэтому один экземпляр
    можно использовать из нескольких потоков после регистрации хелперов.
    """

    def __init__(self, helpers: Optional[Mapping[str, HelperFn]] = None):
        self._helpers: Dict[str, HelperFn] = {}
        for name, fn in (helpers or {}).items():
            self.register(name, fn)

    def register(self, name: str, fn: HelperFn) -> None:
        """
        Регистрирует хелпер.

        Raises:
            ValueError: Если имя пустое или fn не вызываемый объект
        """
        if not name:
            raise ValueError("Helper name cannot be empty")
        if not callable(fn):
            raise ValueError(f"Helper '{name}' must be callable, got {type(fn).__name__}")

        if name in self._helpers:
            logger.warning(f"Helper '{name}' overwrites existing helper")
        self._helpers[name] = fn
        logger.debug("Registered helper '%s'", name)

    def helper(self, name: Optional[str] = None) -> Callable[[HelperFn], HelperFn]:
        """
        Декоратор для регистрации хелпера.

        Пример:
            @registry.helper("upper")
            def upper(value): ...
        """
        def decorator(fn: HelperFn) -> HelperFn:
            self.register(name or fn.__name__, fn)
            return fn
        return decorator

    def get(self, name: str) -> Optional[HelperFn]:
        return self._helpers.get(name)

    def names(self) -> List[str]:
        return sorted(self._helpers)

    def __contains__(self, name: object) -> bool:
        return name in self._helpers

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)


def import_helper(spec: str) -> HelperFn:
    """
    Импортирует хелпер по строке вида "package.module:attribute".

    Raises:
        ConfigError: Если строка некорректна, модуль или атрибут не найдены
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"Invalid helper reference '{spec}'. Expected 'module:attribute'")

    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import helper module '{module_name}': {e}") from e

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError:
            raise ConfigError(f"Helper '{spec}' not found: no attribute '{attr}'") from None

    if not callable(target):
        raise ConfigError(f"Helper '{spec}' is not callable")
    return target


def load_helpers(specs: Mapping[str, str], registry: Optional[HelperRegistry] = None) -> HelperRegistry:
    """Строит реестр (или дополняет существующий) из отображения имя -> "module:attr"."""
    registry = registry if registry is not None else HelperRegistry()
    for name, spec in specs.items():
        registry.register(name, import_helper(spec))
    return registry


__all__ = ["HelperFn", "HelperRegistry", "import_helper", "load_helpers"]
