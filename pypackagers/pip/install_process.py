"""Run ``pip install`` for the application's requirements."""

from __future__ import annotations

import os

from pypackagers.emitter import Emitter
from pypackagers.framework import Executable, Execution, PackagerError


def _pip_args(requirements: str, cache_path: str | None) -> list[str]:
    """Build pip arguments; without a cache path the install runs offline."""
    if cache_path is None:
        args = ["install", "--ignore-installed", "--exists-action=w", "--no-index"]
    else:
        args = ["install", "--exists-action=w", f"--cache-dir={cache_path}"]
    args += ["--compile", "--user", "--disable-pip-version-check"]
    args += [f"--requirement={value}" for value in requirements.split(" ")]
    return args


class PipInstallProcess:
    """Installs requirements into a target directory with pip."""

    def __init__(self, executable: Executable, logger: Emitter) -> None:
        self._executable = executable
        self._logger = logger

    def execute(self, working_dir: str, target_path: str, cache_path: str) -> None:
        """Install requirements into ``target_path`` using ``cache_path`` as pip cache.

        If a vendor directory (``BP_PIP_DEST_PATH``, default ``vendor``)
        exists, the install runs offline from it.
        """
        env = os.environ
        requirements = env.get("BP_PIP_REQUIREMENT", "requirements.txt")
        vendor_dir = os.path.normpath(
            os.path.join(working_dir, env.get("BP_PIP_DEST_PATH", "vendor"))
        )
        find_links = [env.get("BP_PIP_FIND_LINKS", ""), env.get("PIP_FIND_LINKS", "")]

        try:
            os.stat(vendor_dir)
        except FileNotFoundError:
            args = _pip_args(requirements, cache_path)
        else:
            find_links.append(vendor_dir)
            args = _pip_args(requirements, None)

        self._logger.subprocess("Running 'pip %s'", " ".join(args))

        writer = self._logger.action_writer
        execution = Execution(
            args=args,
            env=env
            | {
                "PYTHONUSERBASE": target_path,
                "PIP_FIND_LINKS": " ".join(find_links).lstrip(" "),
            },
            dir=working_dir,
            stdout=writer,
            stderr=writer,
        )
        try:
            self._executable.execute(execution)
        except Exception as err:
            raise PackagerError(f"pip install failed:\nerror: {err}") from err