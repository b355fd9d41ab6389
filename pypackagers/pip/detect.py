"""Detection for applications whose dependencies are listed in requirements files."""

from __future__ import annotations

import os

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
"""Dependency provided by the pip packager."""

MANAGER = "manager-pip"
"""Self-consumed plan entry that marks pip as the package manager."""

CPYTHON = "cpython"
"""Python runtime dependency."""

PIP = "pip"
"""The pip tool dependency."""

PACKAGES_LAYER_NAME = "packages"
"""Layer that dependencies are installed to."""

CACHE_LAYER_NAME = "cache"
"""Layer that holds the pip cache."""

DEFAULT_REQUIREMENTS = "requirements.txt"


def _exists(path: str) -> bool:
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    return True


def detect(context: DetectContext) -> DetectResult:
    """Provide site-packages when every requirements file is present.

    The files are named by ``BP_PIP_REQUIREMENT`` (space separated) and
    default to ``requirements.txt``.
    """
    requirements = os.environ.get("BP_PIP_REQUIREMENT", DEFAULT_REQUIREMENTS)

    missing = [
        filename
        for filename in requirements.split(" ")
        if not _exists(os.path.join(context.working_dir, filename))
    ]
    if missing:
        joined = "', '".join(missing)
        raise DetectFailure(f"requirements file not found at: '{joined}'")

    at_build = BuildPlanMetadata(build=True)
    return DetectResult(
        plan=BuildPlan(
            provides=[
                BuildPlanProvision(name=SITE_PACKAGES),
                BuildPlanProvision(name=MANAGER),
            ],
            requires=[
                BuildPlanRequirement(name=CPYTHON, metadata=at_build),
                BuildPlanRequirement(name=PIP, metadata=at_build),
                BuildPlanRequirement(name=MANAGER, metadata=at_build),
            ],
        )
    )