"""
Преобразование значений в текст, HTML-экранирование и истинность.

Правила повторяют эталонную реализацию Handlebars (JavaScript):
None выводится как пустая строка, булевы значения как true/false,
целые float без ".0", последовательности через запятую.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

# Порядок важен: & заменяется первым
_HTML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
)


def escape_html(text: str) -> str:
    """Экранирует &, <, >, " и ' для вывода {{...}}."""
    for char, entity in _HTML_ESCAPES:
        text = text.replace(char, entity)
    return text


def is_sequence(value: Any) -> bool:
    """Последовательность, которую можно перебрать в {{#each}} (строки не считаются)."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _format_float(value: float) -> str:
    """
    Конечное число в записи Number.prototype.toString из JavaScript.

    Кратчайшие цифры берутся из repr(); экспонента используется только
    вне диапазона 1e-6 <= |x| < 1e21 и пишется без ведущих нулей (1e-7, 1e+21).
    """
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    digits = "".join(map(str, digit_tuple)).rstrip("0") or "0"
    exponent += len(digit_tuple) - len(digits)
    point = exponent + len(digits)
    prefix = "-" if value < 0 else ""

    if len(digits) <= point <= 21:
        text = digits + "0" * (point - len(digits))
    elif 0 < point <= 21:
        text = digits[:point] + "." + digits[point:]
    elif -6 < point <= 0:
        text = "0." + "0" * -point + digits
    else:
        mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
        text = f"{mantissa}e{'+' if point - 1 >= 0 else '-'}{abs(point - 1)}"
    return prefix + text


def to_display(value: Any) -> str:
    """Текстовое представление значения."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return _format_float(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return "[object Object]"
    if is_sequence(value):
        return ",".join(to_display(item) for item in value)
    return str(value)


def is_truthy(value: Any) -> bool:
    """
    Истинность условия для {{#if}} и {{#unless}}.

    Ложны: None, False, "", 0, NaN и пустые последовательности.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return value != ""
    if is_sequence(value):
        return len(value) > 0
    return True


def is_empty(value: Any) -> bool:
    """
    Пустота значения для {{#with}}: как ложность, но 0 считается значением.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return isinstance(value, float) and math.isnan(value)
    return not is_truthy(value)


__all__ = ["escape_html", "is_sequence", "to_display", "is_truthy", "is_empty"]
