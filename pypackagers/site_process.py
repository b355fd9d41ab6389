"""Locate the user site-packages directory inside a layer."""

from __future__ import annotations

import io
import os

from pypackagers.framework import Executable, Execution, PackagerError

_SITE_ARGS = ["-m", "site", "--user-site"]


class SiteProcess:
    """Asks ``python -m site`` where user site-packages live for a layer."""

    def __init__(self, executable: Executable) -> None:
        self._executable = executable

    def execute(self, layer_path: str) -> str:
        output = io.StringIO()
        execution = Execution(
            args=list(_SITE_ARGS),
            env=os.environ | {"PYTHONUSERBASE": layer_path},
            stdout=output,
            stderr=output,
        )
        try:
            self._executable.execute(execution)
        except Exception as err:
            message = f"failed to locate site packages:\n{output.getvalue()}\nerror: {err}"
            raise PackagerError(message) from err

        if path := output.getvalue().strip():
            return path
        raise PackagerError("failed to locate site packages: output is empty")