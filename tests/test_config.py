"""
tests/test_config.py

Schema files (YAML / JSON) and logging setup.
"""

import logging

import pytest

from vax.config import HANDLER_NAME, configure_logging, load_schema
from vax.core.exceptions import InvalidInput
from vax.sdto import FieldSpec


PURCHASE_YAML = """\
type: object
properties:
  name:
    type: string
    min: "1"
    max: "50"
  amount:
    type: number
    min: 0
    max: 1000000
  status:
    type: string
    enum: [pending, done]
"""


class TestLoadSchema:

    def test_yaml(self, tmp_path, purchase_schema):
        path = tmp_path / "purchase.yaml"
        path.write_text(PURCHASE_YAML)
        schema = load_schema(path)
        assert schema["name"] == purchase_schema["name"]
        assert schema["amount"] == purchase_schema["amount"]
        assert schema["status"] == FieldSpec(type="string", enum=("pending", "done"))

    def test_json_bare_form(self, tmp_path, purchase_schema):
        path = tmp_path / "purchase.json"
        path.write_text('{"name": {"type": "string", "min": "1", "max": "50"},'
                        ' "amount": {"type": "number", "min": "0", "max": "1000000"}}')
        assert dict(load_schema(str(path))) == dict(purchase_schema)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_schema(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("properties: [unclosed")
        with pytest.raises(InvalidInput):
            load_schema(path)

    def test_duplicate_json_keys(self, tmp_path):
        path = tmp_path / "dup.json"
        path.write_text('{"a": {"type": "string"}, "a": {"type": "number"}}')
        with pytest.raises(InvalidInput):
            load_schema(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- name\n- amount\n")
        with pytest.raises(InvalidInput):
            load_schema(path)


@pytest.fixture(autouse=True)
def restore_vax_logger():
    logger = logging.getLogger("vax")
    level, handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers


class TestConfigureLogging:

    def test_explicit_level(self):
        configure_logging("debug")
        assert logging.getLogger("vax").level == logging.DEBUG

    def test_env_default(self, monkeypatch):
        monkeypatch.setenv("VAX_LOG_LEVEL", "ERROR")
        configure_logging()
        assert logging.getLogger("vax").level == logging.ERROR

    def test_single_handler(self):
        configure_logging("INFO")
        configure_logging("INFO")
        handlers = logging.getLogger("vax").handlers
        assert len([h for h in handlers if h.get_name() == HANDLER_NAME]) == 1

    def test_handler_follows_current_stderr(self, capsys):
        configure_logging("INFO")
        logging.getLogger("vax.test").info("bound")
        assert "vax.test: bound" in capsys.readouterr().err

    def test_unknown_level(self):
        with pytest.raises(InvalidInput):
            configure_logging("LOUD")
