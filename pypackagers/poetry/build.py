"""Build step that installs poetry dependencies into a virtual env layer."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from pypackagers.framework import (
    BuildContext,
    BuildpackPlanEntry,
    BuildResult,
    CommonBuildParameters,
    is_empty_dir,
)
from pypackagers.poetry.detect import CACHE_LAYER_NAME, POETRY_VENV, VENV_LAYER_NAME


class _EntryResolver(Protocol):
    def merge_layer_types(
        self, name: str, entries: Sequence[BuildpackPlanEntry]
    ) -> tuple[bool, bool]: ...


class _InstallProcess(Protocol):
    def execute(self, working_dir: str, target_path: str, cache_path: str) -> str: ...


class _PythonPathLookupProcess(Protocol):
    def execute(self, venv_dir: str) -> str: ...


def _format_duration(duration: timedelta | float) -> str:
    """Render a duration rounded to the millisecond."""
    seconds = duration.total_seconds() if isinstance(duration, timedelta) else float(duration)
    millis = round(seconds * 1000)
    if millis == 0:
        return "0s"
    if abs(millis) < 1000:
        return f"{millis}ms"
    return f"{millis / 1000:g}s"


@dataclass
class PoetryBuildParameters:
    """The poetry-specific collaborators of the build."""

    entry_resolver: _EntryResolver
    install_process: _InstallProcess
    python_path_lookup_process: _PythonPathLookupProcess


def build(
    build_parameters: PoetryBuildParameters,
    parameters: CommonBuildParameters,
    context: BuildContext,
) -> BuildResult:
    """Install poetry dependencies into a virtual env layer, reusing a cache layer."""
    logger = parameters.logger
    clock = parameters.clock
    info = context.buildpack_info

    logger.title("%s %s", info.name, info.version)

    venv_layer = context.layers.get(VENV_LAYER_NAME)
    cache_layer = context.layers.get(CACHE_LAYER_NAME)

    logger.process("Executing build process")
    venv_dir, duration = clock.measure(
        lambda: build_parameters.install_process.execute(
            context.working_dir, venv_layer.path, cache_layer.path
        )
    )
    logger.action("Completed in %s", _format_duration(duration))
    logger.break_()

    python_path_dir = build_parameters.python_path_lookup_process.execute(venv_dir)

    venv_layer.launch, venv_layer.build = build_parameters.entry_resolver.merge_layer_types(
        POETRY_VENV, context.plan.entries
    )
    venv_layer.cache = venv_layer.launch or venv_layer.build
    cache_layer.cache = True

    logger.generating_sbom(venv_layer.path)
    sbom, duration = clock.measure(
        lambda: parameters.sbom_generator.generate(context.working_dir)
    )
    logger.action("Completed in %s", _format_duration(duration))
    logger.break_()

    logger.formatting_sbom(*info.sbom_formats)
    venv_layer.sbom = sbom.in_formats(*info.sbom_formats)

    venv_layer.shared_env.default("POETRY_VIRTUALENVS_PATH", venv_layer.path)
    venv_layer.shared_env.prepend("PYTHONPATH", python_path_dir, os.pathsep)
    venv_layer.shared_env.prepend("PATH", os.path.join(venv_dir, "bin"), os.pathsep)

    logger.environment_variables(venv_layer)

    layers = [venv_layer]
    if os.path.exists(cache_layer.path) and not is_empty_dir(cache_layer.path):
        layers.append(cache_layer)

    return BuildResult(layers=layers)