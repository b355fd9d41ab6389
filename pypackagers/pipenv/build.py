"""Build step that installs Pipfile dependencies into a packages layer."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol

from pypackagers.framework import (
    BuildContext,
    BuildResult,
    CommonBuildParameters,
    Layer,
    is_empty_dir,
    merge_layer_types,
)
from pypackagers.pipenv.detect import CACHE_LAYER_NAME, PACKAGES_LAYER_NAME, SITE_PACKAGES


class _InstallProcess(Protocol):
    def execute(self, working_dir: str, target_layer: Layer, cache_layer: Layer) -> None: ...


class _SitePackagesProcess(Protocol):
    def execute(self, layer_path: str) -> str: ...


class _VenvDirLocator(Protocol):
    def locate_venv_dir(self, path: str) -> str: ...


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
class PipenvBuildParameters:
    """The pipenv-specific collaborators of the build."""

    install_process: _InstallProcess
    site_process: _SitePackagesProcess
    venv_dir_locator: _VenvDirLocator


def build(
    build_parameters: PipenvBuildParameters,
    parameters: CommonBuildParameters,
    context: BuildContext,
) -> BuildResult:
    """Install pipenv dependencies into the packages layer, reusing a cache layer."""
    logger = parameters.logger
    clock = parameters.clock
    info = context.buildpack_info

    logger.title("%s %s", info.name, info.version)

    packages_layer = context.layers.get(PACKAGES_LAYER_NAME)
    cache_layer = context.layers.get(CACHE_LAYER_NAME)

    packages_layer.launch, packages_layer.build = merge_layer_types(
        SITE_PACKAGES, context.plan.entries
    )
    packages_layer.cache = packages_layer.launch or packages_layer.build
    cache_layer.cache = True

    logger.process("Executing build process")
    _, duration = clock.measure(
        lambda: build_parameters.install_process.execute(
            context.working_dir, packages_layer, cache_layer
        )
    )
    logger.action("Completed in %s", _format_duration(duration))
    logger.break_()

    venv_dir = build_parameters.venv_dir_locator.locate_venv_dir(packages_layer.path)
    site_packages_path = build_parameters.site_process.execute(packages_layer.path)

    logger.generating_sbom(packages_layer.path)
    sbom, duration = clock.measure(
        lambda: parameters.sbom_generator.generate(context.working_dir)
    )
    logger.action("Completed in %s", _format_duration(duration))
    logger.break_()

    logger.formatting_sbom(*info.sbom_formats)
    packages_layer.sbom = sbom.in_formats(*info.sbom_formats)

    packages_layer.shared_env.prepend("PATH", os.path.join(venv_dir, "bin"), ":")
    packages_layer.shared_env.prepend("PYTHONPATH", site_packages_path, os.pathsep)

    logger.environment_variables(packages_layer)

    layers = [packages_layer]
    if os.path.exists(cache_layer.path) and not is_empty_dir(cache_layer.path):
        layers.append(cache_layer)

    return BuildResult(layers=layers)