"""Тесты реестра хелперов."""

import logging

import pytest

from hbtype.errors import ConfigError
from hbtype.helpers import HelperRegistry, import_helper, load_helpers


class TestHelperRegistry:
    """Регистрация и поиск."""

    def test_register_and_get(self):
        reg = HelperRegistry()
        reg.register("upper", str.upper)

        assert reg.get("upper") is str.upper
        assert reg.get("lower") is None
        assert "upper" in reg
        assert len(reg) == 1

    def test_exact_name_lookup(self):
        reg = HelperRegistry({"Upper": str.upper})

        assert reg.get("upper") is None

    def test_decorator(self):
        reg = HelperRegistry()

        @reg.helper()
        def twice(v):
            return v * 2

        @reg.helper("thrice")
        def _t(v):
            return v * 3

        assert reg.names() == ["thrice", "twice"]
        assert reg.get("twice")(2) == 4
        assert twice(1) == 2

    def test_last_registration_wins_with_warning(self, caplog):
        reg = HelperRegistry()
        reg.register("h", str.upper)

        with caplog.at_level(logging.WARNING, logger="hbtype.helpers"):
            reg.register("h", str.lower)

        assert reg.get("h") is str.lower
        assert "overwrites" in caplog.text

    @pytest.mark.parametrize("name,fn", [("", str), ("x", "not callable")])
    def test_invalid_registration(self, name, fn):
        with pytest.raises(ValueError):
            HelperRegistry().register(name, fn)


class TestImportHelpers:
    """Загрузка хелперов по строкам "module:attr"."""

    def test_import_helper(self):
        assert import_helper("os.path:join") is __import__("os").path.join

    def test_nested_attribute(self):
        assert import_helper("os:path.basename")("a/b") == "b"

    @pytest.mark.parametrize(
        "spec",
        ["no_colon", "os:", ":join", "hbtype_missing_module:x", "os:missing_attr", "os:sep"],
    )
    def test_invalid_specs(self, spec):
        with pytest.raises(ConfigError):
            import_helper(spec)

    def test_load_helpers_into_registry(self):
        reg = HelperRegistry({"keep": str})

        result = load_helpers({"join": "os.path:join"}, reg)

        assert result is reg
        assert reg.names() == ["join", "keep"]
