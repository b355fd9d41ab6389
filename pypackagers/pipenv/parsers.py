"""Read the requested Python version from a Pipfile or Pipfile.lock."""

from __future__ import annotations

import json
import os
import tomllib
from typing import Any

from pypackagers.framework import PackagerError


def _lookup(document: Any, *keys: str, source: str) -> str:
    value = document
    for key in keys:
        if value is None:
            return ""
        if not isinstance(value, dict):
            raise PackagerError(f"invalid {source}: expected a table at '{key}'")
        value = value.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PackagerError(f"invalid {source}: '{keys[-1]}' must be a string")
    return value


class PipfileLockParser:
    """Reads ``_meta.requires.python_version`` from ``Pipfile.lock``."""

    def parse_version(self, path: str) -> str:
        """Return the Python version, or an empty string when none is set.

        OS errors such as a missing file propagate unchanged.
        """
        with open(os.path.join(path, "Pipfile.lock"), encoding="utf-8") as handle:
            try:
                document = json.load(handle)
            except ValueError as err:
                raise PackagerError(f"invalid Pipfile.lock: {err}") from err
        return _lookup(document, "_meta", "requires", "python_version", source="Pipfile.lock")


class PipfileParser:
    """Reads ``requires.python_version`` from ``Pipfile``."""

    def parse_version(self, path: str) -> str:
        """Return the Python version, or an empty string when none is set.

        OS errors such as a missing file propagate unchanged.
        """
        with open(os.path.join(path, "Pipfile"), "rb") as handle:
            try:
                document = tomllib.load(handle)
            except (tomllib.TOMLDecodeError, UnicodeDecodeError) as err:
                raise PackagerError(f"Pipfile parsing error: {err}") from err
        return _lookup(document, "requires", "python_version", source="Pipfile")