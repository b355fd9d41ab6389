"""Find the virtual environment pipenv created under a directory."""

from __future__ import annotations

import os

from pypackagers.framework import PackagerError


class VenvLocator:
    """Finds the first subdirectory holding a ``pyvenv.cfg``."""

    def locate_venv_dir(self, path: str) -> str:
        try:
            with os.scandir(path) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as err:
            raise PackagerError(
                f"reading target directory {path} failed:\nerror: {err}"
            ) from err

        for entry in entries:
            if not entry.is_dir():
                continue
            try:
                os.stat(os.path.join(path, entry.name, "pyvenv.cfg"))
            except FileNotFoundError:
                continue
            except OSError as err:
                raise PackagerError(
                    f"pipenv virtual env dir lookup failed in target {path}: {err}"
                ) from err
            return os.path.join(path, entry.name)

        raise PackagerError(f"pipenv virtual env directory not found in target {path}")