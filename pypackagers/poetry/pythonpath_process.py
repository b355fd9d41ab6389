"""Find the site-packages directory inside a poetry virtual environment."""

from __future__ import annotations

import os

from pypackagers.framework import PackagerError


def _single_entry(directory: str) -> os.DirEntry[str]:
    try:
        with os.scandir(directory) as iterator:
            entries = list(iterator)
    except OSError as err:
        raise PackagerError(f"failed to read directory: '{directory}':\nerror: {err}") from err

    if len(entries) > 1:
        raise PackagerError(
            f"expected one directory and zero files in directory: '{directory}' - found multiple"
        )
    if not entries:
        raise PackagerError(
            f"expected one directory and zero files in directory: '{directory}' - found none"
        )
    return entries[0]


class PythonPathProcess:
    """Walks ``<venv>/lib/pythonX.Y/site-packages`` to find the Python path."""

    def execute(self, venv_dir: str) -> str:
        lib_dir = os.path.join(venv_dir, "lib")
        python_dir = _single_entry(lib_dir)

        python_dir_path = os.path.join(lib_dir, python_dir.name)
        if not python_dir.is_dir(follow_symlinks=False):
            raise PackagerError(f"expected a directory at: '{python_dir_path}'")

        site_packages = _single_entry(python_dir_path)
        site_packages_path = os.path.join(python_dir_path, "site-packages")

        if site_packages.name != "site-packages":
            raise PackagerError(
                f"expected \"site-packages\" directory at: '{site_packages_path}', "
                f"found: {site_packages.name}"
            )
        if not site_packages.is_dir(follow_symlinks=False):
            raise PackagerError(f"expected a directory at: '{site_packages_path}'")

        return site_packages_path