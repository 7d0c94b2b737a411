"""
vax/config.py

Schema files and logging setup.

Schemas are distributed as files in their transport form, or bare
(field name -> record). Suffix decides the parser:

    .yaml / .yml  →  yaml.safe_load
    anything else →  strict VAX-JCS parse (rejects duplicate keys and NaN)

The library itself installs no log handlers. configure_logging() is for
entry points such as the CLI.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Union

import yaml

from vax.core.canonical import parse_text
from vax.core.exceptions import EncodingError, InvalidInput
from vax.sdto.field_spec import ActionSchema, parse_schema


LOG_LEVEL_ENV = "VAX_LOG_LEVEL"
LOG_FORMAT    = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
HANDLER_NAME  = "vax-stderr"

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


def load_schema(path: Union[str, Path]) -> ActionSchema:
    """
    Read a schema file.

    Raises:
        FileNotFoundError — path does not exist
        InvalidInput      — file does not parse or holds an invalid schema
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    raw = path.read_bytes()
    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise InvalidInput(f"{path}: not valid YAML: {exc}") from exc
    else:
        try:
            data = parse_text(raw)
        except EncodingError as exc:
            raise InvalidInput(f"{path}: not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise InvalidInput(f"{path}: schema must be a mapping")
    return parse_schema(data)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Bind a stderr handler to the "vax" logger, replacing one from an earlier call.
    Level falls back to $VAX_LOG_LEVEL, then WARNING.
    """
    name = (level or os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        raise InvalidInput(f"unknown log level: {name}")

    root = logging.getLogger("vax")
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric)
