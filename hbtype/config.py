from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError

SCHEMA_VERSION = 1
DEFAULT_CFG_FILE = "hbtype.yaml"

# --------------------------------------------------------------------------- #
# ДЕФОЛТЫ
# --------------------------------------------------------------------------- #
_DEFAULT_CFG: Dict[str, Any] = {
    "schema_version": SCHEMA_VERSION,
    # проверять данные по выведенной схеме перед рендерингом
    "validate": True,
    # имя хелпера -> "package.module:attribute"
    "helpers": {},
}

_KNOWN_KEYS = frozenset(_DEFAULT_CFG)

# --------------------------------------------------------------------------- #
# YAML loader
# --------------------------------------------------------------------------- #
_yaml = YAML(typ="safe")


@dataclass(frozen=True)
class HbConfig:
    schema_version: int = SCHEMA_VERSION
    validate: bool = True
    helpers: Mapping[str, str] = field(default_factory=dict)


# --------------------------------------------------------------------------- #
# HELPERS
# --------------------------------------------------------------------------- #
def _merge_defaults(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Накладываем значения пользователя поверх дефолтов."""
    cfg = dict(_DEFAULT_CFG)
    cfg.update(raw)
    return cfg


def _to_config(cfg: Dict[str, Any], path: Path) -> HbConfig:
    unknown = sorted(set(cfg) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"{path}: unknown config keys: {', '.join(unknown)}")

    validate = cfg["validate"]
    if not isinstance(validate, bool):
        raise ConfigError(f"{path}: 'validate' must be true or false, got {validate!r}")

    helpers = cfg["helpers"] or {}
    if not isinstance(helpers, dict):
        raise ConfigError(f"{path}: 'helpers' must be a mapping of name -> 'module:attr'")
    for name, spec in helpers.items():
        if not isinstance(name, str) or not isinstance(spec, str):
            raise ConfigError(f"{path}: helper entries must be strings, got {name!r}: {spec!r}")

    return HbConfig(schema_version=cfg["schema_version"], validate=validate, helpers=dict(helpers))


# --------------------------------------------------------------------------- #
# PUBLIC API
# --------------------------------------------------------------------------- #
def load_config(path: Path) -> HbConfig:
    """
    Загрузить hbtype.yaml.

    • Если файла нет, вернуть дефолты.
    • Если schema_version отсутствует, считаем, что это актуальная версия.
    • Проверяем несовместимость схем и типы ключей.
    """
    if not path.exists():
        return _to_config(dict(_DEFAULT_CFG), path)

    try:
        with path.open(encoding="utf-8") as f:
            raw = _yaml.load(f) or {}
    except YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: config must be a mapping, got {type(raw).__name__}")

    if raw.get("schema_version", SCHEMA_VERSION) != SCHEMA_VERSION:
        raise ConfigError(
            f"Unsupported config schema {raw.get('schema_version')} "
            f"(tool expects {SCHEMA_VERSION})"
        )

    return _to_config(_merge_defaults(raw), path)


__all__ = ["HbConfig", "load_config", "DEFAULT_CFG_FILE", "SCHEMA_VERSION"]
