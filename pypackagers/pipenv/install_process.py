"""Run ``pipenv install`` for the application's Pipfile."""

from __future__ import annotations

import io
import os

from pypackagers.emitter import Emitter
from pypackagers.framework import Executable, Execution, Layer, PackagerError


class PipenvInstallProcess:
    """Installs Pipfile dependencies into a target layer with pipenv."""

    def __init__(self, executable: Executable, logger: Emitter) -> None:
        self._executable = executable
        self._logger = logger

    def execute(self, working_dir: str, target_layer: Layer, cache_layer: Layer) -> None:
        """Install into ``target_layer``, caching in ``cache_layer``.

        With a Pipfile.lock the install is checked against it and the
        environment is cleaned afterwards; without one no lock is written.
        """
        target_path = target_layer.path
        cache_path = cache_layer.path

        try:
            os.stat(os.path.join(working_dir, "Pipfile.lock"))
            lock_exists = True
        except FileNotFoundError:
            lock_exists = False
        except OSError as err:
            raise PackagerError(f"failed to stat Pipfile.lock: {err}") from err

        # --deploy checks that the Pipfile and its lock are in sync.
        args = ["install", "--deploy"] if lock_exists else ["install", "--skip-lock"]

        self._logger.subprocess("Running 'pipenv %s'", " ".join(args))

        buffer = io.StringIO()
        try:
            self._executable.execute(
                Execution(
                    args=args,
                    env={
                        **os.environ,
                        # pipenv ignores PYTHONUSERBASE; WORKON_HOME sets the target.
                        "PIP_USER": "1",
                        "PIP_IGNORE_INSTALLED": "1",
                        "WORKON_HOME": target_path,
                        "PIPENV_CACHE_DIR": cache_path,
                    },
                    dir=working_dir,
                    stdout=buffer,
                    stderr=buffer,
                )
            )
        except Exception as err:
            raise PackagerError(
                f"pipenv install failed:\n{buffer.getvalue()}\nerror: {err}"
            ) from err

        # Cleaning without a lock file would generate one, which is expensive.
        if not lock_exists:
            return

        self._logger.subprocess("Running 'pipenv clean'")
        buffer = io.StringIO()
        try:
            self._executable.execute(
                Execution(
                    args=["clean"],
                    env={
                        **os.environ,
                        "PIP_USER": "1",
                        "WORKON_HOME": target_path,
                        "PIPENV_CACHE_DIR": cache_path,
                    },
                    dir=working_dir,
                    stdout=buffer,
                    stderr=buffer,
                )
            )
        except Exception as err:
            raise PackagerError(
                f"pipenv clean failed:\n{buffer.getvalue()}\nerror: {err}"
            ) from err