from __future__ import annotations

import json
from typing import Any


def dumps(data: Any) -> str:
    """JSON для stdout: без экранирования не-ASCII, с отступами и переводом строки."""
    return json.dumps(data, ensure_ascii=False, indent=2) + "\n"


__all__ = ["dumps"]
