"""Detection for applications managed with poetry."""

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
from pypackagers.pip.detect import CACHE_LAYER_NAME, CPYTHON

__all__ = ["CACHE_LAYER_NAME", "CPYTHON", "POETRY", "POETRY_VENV", "VENV_LAYER_NAME", "detect"]

POETRY_VENV = "poetry-venv"
POETRY = "poetry"
VENV_LAYER_NAME = POETRY_VENV


def detect(context: DetectContext) -> DetectResult:
    """Provide a poetry virtual environment when pyproject.toml is present."""
    try:
        os.stat(os.path.join(context.working_dir, "pyproject.toml"))
    except FileNotFoundError:
        raise DetectFailure("no 'pyproject.toml' found") from None

    return DetectResult(
        plan=BuildPlan(
            provides=[BuildPlanProvision(name=POETRY_VENV)],
            requires=[
                BuildPlanRequirement(name=name, metadata=BuildPlanMetadata(build=True))
                for name in (CPYTHON, POETRY)
            ],
        )
    )