"""Detection for applications managed with pipenv."""

from __future__ import annotations

import os
from typing import Protocol

from pypackagers.framework import (
    BuildPlan,
    BuildPlanMetadata,
    BuildPlanProvision,
    BuildPlanRequirement,
    DetectContext,
    DetectFailure,
    DetectResult,
)

SITE_PACKAGES = "site-packages"
"""Dependency provided by the pipenv packager."""

MANAGER = "manager-pipenv"
"""Self-consumed plan entry that marks pipenv as the package manager."""

CPYTHON = "cpython"
"""Python runtime dependency."""

PIPENV = "pipenv"
"""The pipenv tool dependency."""

PACKAGES_LAYER_NAME = "packages"
"""Layer that dependencies are installed to."""

CACHE_LAYER_NAME = "cache"
"""Layer that holds the pipenv cache."""


class Parser(Protocol):
    def parse_version(self, path: str) -> str: ...


def _exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


def _version_from(parser: Parser, working_dir: str) -> str:
    try:
        return parser.parse_version(working_dir)
    except FileNotFoundError:
        return ""


def detect(context: DetectContext, pipfile_parser: Parser, lock_parser: Parser) -> DetectResult:
    """Provide site-packages when a Pipfile is present.

    The requested CPython version comes from Pipfile.lock when it exists,
    otherwise from the Pipfile.
    """
    if not _exists(os.path.join(context.working_dir, "Pipfile")):
        raise DetectFailure("no 'Pipfile' found")

    try:
        lock_exists = _exists(os.path.join(context.working_dir, "Pipfile.lock"))
    except OSError as err:
        raise DetectFailure(f"failed trying to stat Pipfile.lock: {err}") from err

    if lock_exists:
        version, source = _version_from(lock_parser, context.working_dir), "Pipfile.lock"
    else:
        version, source = _version_from(pipfile_parser, context.working_dir), "Pipfile"

    at_build = BuildPlanMetadata(build=True)
    cpython_metadata = (
        BuildPlanMetadata(build=True, version=version, version_source=source)
        if version
        else at_build
    )

    return DetectResult(
        plan=BuildPlan(
            provides=[
                BuildPlanProvision(name=SITE_PACKAGES),
                BuildPlanProvision(name=MANAGER),
            ],
            requires=[
                BuildPlanRequirement(name=CPYTHON, metadata=cpython_metadata),
                BuildPlanRequirement(name=PIPENV, metadata=at_build),
                BuildPlanRequirement(name=MANAGER, metadata=at_build),
            ],
        )
    )