from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .compiler import compile_template
from .config import DEFAULT_CFG_FILE, HbConfig, load_config
from .errors import HbUserError
from .helpers import load_helpers
from .jsonic import dumps as jdumps
from .report import build_template_report, check_failed, check_ok
from .version import tool_version

_LOG = logging.getLogger("hbtype")

_data_yaml = YAML(typ="safe")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hbtype",
        description="Handlebars template -> typed data schema compiler",
        add_help=True,
    )
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {tool_version()}")
    p.add_argument(
        "--config",
        metavar="PATH",
        help=f"файл конфигурации (по умолчанию ./{DEFAULT_CFG_FILE})",
    )
    p.add_argument("--debug", action="store_true", help="подробный лог (DEBUG)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_schema = sub.add_parser("schema", help="JSON-отчёт: выведенная схема данных шаблона")
    sp_schema.add_argument("template", help="путь к шаблону или - для чтения из stdin")

    sp_render = sub.add_parser("render", help="Отрендерить шаблон с данными (текст)")
    sp_render.add_argument("template", help="путь к шаблону или - для чтения из stdin")
    sp_render.add_argument(
        "--data",
        metavar="FILE|@FILE|-",
        help=(
            "данные в YAML/JSON: путь к файлу, @file, - для чтения из stdin "
            "или строка с YAML/JSON"
        ),
    )
    sp_render.add_argument(
        "--no-validate",
        action="store_true",
        help="не проверять данные по схеме перед рендерингом",
    )

    sp_check = sub.add_parser("check", help="Проверить шаблоны (JSON), код выхода 1 при ошибках")
    sp_check.add_argument("templates", nargs="+", help="пути к шаблонам")

    return p


def _setup_logging(debug: bool) -> None:
    level = logging.DEBUG if debug or os.environ.get("HBTYPE_DEBUG") else logging.WARNING
    _LOG.setLevel(level)
    if not _LOG.handlers:
        h = logging.StreamHandler()
        h.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        _LOG.addHandler(h)


def _read_template(arg: str) -> Tuple[str, str]:
    """Возвращает (имя, текст) шаблона."""
    if arg == "-":
        return "<stdin>", sys.stdin.read()

    path = Path(arg)
    if not path.is_file():
        raise HbUserError(f"Template file not found: {path}")
    try:
        return str(path), path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise HbUserError(f"Failed to read template {path}: {e}") from e


def _read_data_text(arg: Optional[str]) -> Tuple[str, str]:
    """
    Парсит аргумент --data.

    Поддерживает четыре формата:
    - Из stdin: -
    - Из файла: @path/to/data.yaml
    - Путь к существующему файлу
    - Строка YAML/JSON
    """
    if arg is None:
        return "<empty>", "{}"
    if arg == "-":
        return "<stdin>", sys.stdin.read()

    file_arg = arg[1:] if arg.startswith("@") else arg
    path = Path(file_arg)
    if arg.startswith("@") or path.is_file():
        if not path.is_file():
            raise HbUserError(f"Data file not found: {path}")
        try:
            return str(path), path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise HbUserError(f"Failed to read data file {path}: {e}") from e

    return "<argument>", arg


def _load_data(arg: Optional[str]) -> Any:
    source, text = _read_data_text(arg)
    try:
        data = _data_yaml.load(text)
    except YAMLError as e:
        raise HbUserError(f"Invalid data in {source}: {e}") from e
    return {} if data is None else data


def _load_cfg(ns: argparse.Namespace) -> HbConfig:
    path = Path(ns.config) if ns.config else Path.cwd() / DEFAULT_CFG_FILE
    if ns.config and not path.is_file():
        raise HbUserError(f"Config file not found: {path}")
    return load_config(path)


def _cmd_schema(ns: argparse.Namespace) -> int:
    name, text = _read_template(ns.template)
    compiled = compile_template(text, name=name)
    sys.stdout.write(jdumps(build_template_report(compiled).model_dump(mode="json")))
    return 0


def _cmd_render(ns: argparse.Namespace) -> int:
    if ns.template == "-" and ns.data == "-":
        raise HbUserError("Template and data cannot both be read from stdin")

    cfg = _load_cfg(ns)
    helpers = load_helpers(cfg.helpers)
    name, text = _read_template(ns.template)
    compiled = compile_template(text, name=name)
    data = _load_data(ns.data)

    validate = cfg.validate and not ns.no_validate
    sys.stdout.write(compiled.render(data, helpers, validate=validate))
    return 0


def _cmd_check(ns: argparse.Namespace) -> int:
    results = []
    for arg in ns.templates:
        try:
            name, text = _read_template(arg)
            compile_template(text, name=name)
        except HbUserError as e:
            _LOG.debug("Template %s failed: %s", arg, e)
            results.append(check_failed(arg, e))
        else:
            results.append(check_ok(arg))

    sys.stdout.write(jdumps([r.model_dump(mode="json") for r in results]))
    return 0 if all(r.ok for r in results) else 1


_COMMANDS = {
    "schema": _cmd_schema,
    "render": _cmd_render,
    "check": _cmd_check,
}


def main(argv: List[str] | None = None) -> int:
    ns = _build_parser().parse_args(argv)
    _setup_logging(ns.debug)

    try:
        return _COMMANDS[ns.cmd](ns)
    except HbUserError as e:
        sys.stderr.write(str(e).rstrip() + "\n")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
