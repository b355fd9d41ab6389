"""Run ``poetry install`` and find the virtual environment it created."""

from __future__ import annotations

import io
import os

from pypackagers.emitter import Emitter
from pypackagers.framework import Executable, Execution, PackagerError


def _clean_path(text: str) -> str:
    if not text:
        return "."
    cleaned = os.path.normpath(text)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


class PoetryInstallProcess:
    """Installs pyproject.toml dependencies into a virtual env with poetry."""

    def __init__(self, executable: Executable, logger: Emitter) -> None:
        self._executable = executable
        self._logger = logger

    def _env(self, target_path: str, cache_path: str) -> dict[str, str]:
        return {
            **os.environ,
            "POETRY_CACHE_DIR": cache_path,
            "POETRY_VIRTUALENVS_PATH": target_path,
        }

    def execute(self, working_dir: str, target_path: str, cache_path: str) -> str:
        """Install into a virtual env under ``target_path``; return its directory."""
        args = ["install"]

        self._logger.subprocess(
            "Running 'POETRY_CACHE_DIR=%s POETRY_VIRTUALENVS_PATH=%s poetry %s'",
            cache_path,
            target_path,
            " ".join(args),
        )

        writer = self._logger.action_writer
        try:
            self._executable.execute(
                Execution(
                    args=args,
                    env=self._env(target_path, cache_path),
                    dir=working_dir,
                    stdout=writer,
                    stderr=writer,
                )
            )
        except Exception as err:
            raise PackagerError(f"poetry install failed:\nerror: {err}") from err

        return self._find_venv_dir(working_dir, target_path, cache_path)

    def _find_venv_dir(self, working_dir: str, target_path: str, cache_path: str) -> str:
        out_buffer = io.StringIO()
        err_buffer = io.StringIO()
        try:
            self._executable.execute(
                Execution(
                    args=["env", "info", "--path"],
                    env=self._env(target_path, cache_path),
                    dir=working_dir,
                    stdout=out_buffer,
                    stderr=err_buffer,
                )
            )
        except Exception as err:
            raise PackagerError(
                "failed to find virtual env directory:\n"
                f"{out_buffer.getvalue()}\n{err_buffer.getvalue()}\nerror: {err}"
            ) from err

        return _clean_path(out_buffer.getvalue().strip())