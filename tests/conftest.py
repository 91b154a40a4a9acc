import json
import os
import re
import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from hbtype.helpers import HelperRegistry

REPO_ROOT = Path(__file__).resolve().parent.parent


def write(p: Path, text: str) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return p


def run_cli(root: Path, *args: str, stdin: str = "") -> subprocess.CompletedProcess:
    """Запускает hbtype.cli отдельным процессом в каталоге root."""
    env = os.environ.copy()
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(REPO_ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "hbtype.cli", *args],
        cwd=root,
        env=env,
        input=stdin,
        capture_output=True,
        text=True,
        encoding="utf-8",
    )


def jload(s: str):
    return json.loads(s)


def format_number(fmt: str, value) -> str:
    """Хелпер в стиле "{:.2}": число знаков после запятой."""
    return re.sub(r"\{:\.(\d+)\}", r"{:.\1f}", fmt).format(value)


def shout(value) -> str:
    return f"{value}!".upper()


@pytest.fixture
def registry() -> HelperRegistry:
    """Реестр с хелперами format и shout."""
    reg = HelperRegistry()
    reg.register("format", format_number)
    reg.register("shout", shout)
    return reg


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    """Временный каталог, установленный текущим (для поиска hbtype.yaml)."""
    monkeypatch.chdir(tmp_path)
    return tmp_path
