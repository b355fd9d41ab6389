"""Build step that installs requirements into a packages layer."""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol, TypeVar

from pypackagers.emitter import Emitter
from pypackagers.framework import (
    BuildContext,
    BuildResult,
    Clock,
    CommonBuildParameters,
    is_empty_dir,
    merge_layer_types,
)
from pypackagers.pip.detect import CACHE_LAYER_NAME, PACKAGES_LAYER_NAME, SITE_PACKAGES

_T = TypeVar("_T")


class _InstallProcess(Protocol):
    def execute(self, working_dir: str, target_path: str, cache_path: str) -> None: ...


class _SitePackagesProcess(Protocol):
    def execute(self, layer_path: str) -> str: ...


@dataclass
class PipBuildParameters:
    """The pip-specific collaborators of the build."""

    install_process: _InstallProcess
    site_packages_process: _SitePackagesProcess


def _duration_text(duration: timedelta) -> str:
    """Render a duration rounded to milliseconds, e.g. ``250ms`` or ``1m2.5s``."""
    ms = round(duration.total_seconds() * 1000)
    if ms < 1000:
        return f"{ms}ms" if ms else "0s"
    minutes, rest = divmod(ms, 60_000)
    hours, minutes = divmod(minutes, 60)
    text = f"{rest / 1000:.3f}".rstrip("0").rstrip(".") + "s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    return f"{hours}h{text}" if hours else text


def _timed(clock: Clock, logger: Emitter, func: Callable[[], _T]) -> _T:
    result, duration = clock.measure(func)
    logger.action("Completed in %s", _duration_text(duration))
    logger.break_()
    return result


def build(
    build_parameters: PipBuildParameters,
    parameters: CommonBuildParameters,
    context: BuildContext,
) -> BuildResult:
    """Install pip dependencies into the packages layer, reusing a cache layer."""
    logger = parameters.logger
    info = context.buildpack_info

    logger.title("%s %s", info.name, info.version)

    packages = context.layers.get(PACKAGES_LAYER_NAME)
    cache = context.layers.get(CACHE_LAYER_NAME)

    logger.process("Executing build process")
    _timed(
        parameters.clock,
        logger,
        lambda: build_parameters.install_process.execute(
            context.working_dir, packages.path, cache.path
        ),
    )

    packages.launch, packages.build = merge_layer_types(SITE_PACKAGES, context.plan.entries)
    packages.cache = packages.launch or packages.build
    cache.cache = True

    site_packages_path = build_parameters.site_packages_process.execute(packages.path)

    logger.generating_sbom(packages.path)
    sbom = _timed(
        parameters.clock,
        logger,
        lambda: parameters.sbom_generator.generate(context.working_dir),
    )

    logger.formatting_sbom(*info.sbom_formats)
    packages.sbom = sbom.in_formats(*info.sbom_formats)

    packages.shared_env.prepend("PYTHONPATH", site_packages_path, os.pathsep)
    logger.environment_variables(packages)

    keep_cache = os.path.exists(cache.path) and not is_empty_dir(cache.path)
    return BuildResult(layers=[packages, cache] if keep_cache else [packages])