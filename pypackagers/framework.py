"""Build and detect primitives shared by the Python packagers."""

from __future__ import annotations

import enum
import os
import shutil
import time
import tomllib
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from typing import IO, TYPE_CHECKING, Any, Protocol, TypeVar

if TYPE_CHECKING:
    from pypackagers.emitter import Emitter

T = TypeVar("T")


class PackagerError(Exception):
    """Raised when a build or detect step fails."""


class DetectFailure(PackagerError):
    """Raised when a packager does not apply to the application."""


class Environment(dict[str, str]):
    """Layer environment, keyed as ``NAME.operation`` like the lifecycle expects."""

    def prepend(self, name: str, value: str, delim: str) -> None:
        self[f"{name}.prepend"] = value
        self[f"{name}.delim"] = delim

    def default(self, name: str, value: str) -> None:
        self[f"{name}.default"] = value


class SBOMFormat(enum.Enum):
    """Supported SBOM media types."""

    CYCLONEDX = "application/vnd.cyclonedx+json"
    SPDX = "application/spdx+json"
    SYFT = "application/vnd.syft+json"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]


_EXTENSIONS = {
    SBOMFormat.CYCLONEDX: "cdx.json",
    SBOMFormat.SPDX: "spdx.json",
    SBOMFormat.SYFT: "syft.json",
}


@dataclass(frozen=True)
class FormattedSBOM:
    """An SBOM paired with the formats it is to be written in."""

    sbom: SBOM
    selected: tuple[SBOMFormat, ...] = ()

    def formats(self) -> list[SBOMFormat]:
        return list(self.selected)


@dataclass
class SBOM:
    """A software bill of materials."""

    packages: list[dict[str, Any]] = field(default_factory=list)

    def in_formats(self, *args: str | SBOMFormat) -> FormattedSBOM:
        selected = []
        for item in args:
            try:
                selected.append(SBOMFormat(item))
            except ValueError:
                raise PackagerError(f"unsupported SBOM format: '{item}'") from None
        return FormattedSBOM(self, tuple(selected))


@dataclass
class Layer:
    """A buildpack layer directory and its settings."""

    path: str
    name: str = ""
    build: bool = False
    launch: bool = False
    cache: bool = False
    shared_env: Environment = field(default_factory=Environment)
    build_env: Environment = field(default_factory=Environment)
    launch_env: Environment = field(default_factory=Environment)
    process_launch_env: dict[str, Environment] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    sbom: FormattedSBOM | None = None

    def reset(self) -> Layer:
        """Clear all settings and empty the layer directory."""
        self.build = self.launch = self.cache = False
        self.shared_env = Environment()
        self.build_env = Environment()
        self.launch_env = Environment()
        self.process_launch_env = {}
        self.metadata = {}
        self.sbom = None
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as err:
            raise PackagerError(f"error could not remove file: {err}") from err
        try:
            os.makedirs(self.path, exist_ok=True)
        except OSError as err:
            raise PackagerError(f"error could not create directory: {err}") from err
        return self


@dataclass(frozen=True)
class Layers:
    """The directory holding all layers of a buildpack."""

    path: str

    def get(self, name: str) -> Layer:
        layer = Layer(path=os.path.join(self.path, name), name=name)
        toml_path = os.path.join(self.path, f"{name}.toml")
        try:
            with open(toml_path, "rb") as handle:
                content = tomllib.load(handle)
        except FileNotFoundError:
            return layer
        except (OSError, tomllib.TOMLDecodeError) as err:
            raise PackagerError(f"failed to parse layer content metadata: {err}") from err
        types = content.get("types", {})
        layer.build = types.get("build") is True
        layer.launch = types.get("launch") is True
        layer.cache = types.get("cache") is True
        layer.metadata = dict(content.get("metadata", {}))
        return layer


@dataclass
class BuildpackInfo:
    name: str = ""
    version: str = ""
    sbom_formats: list[str] = field(default_factory=list)


@dataclass
class BuildpackPlanEntry:
    name: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class BuildpackPlan:
    entries: list[BuildpackPlanEntry] = field(default_factory=list)


@dataclass
class BuildContext:
    working_dir: str
    layers: Layers
    buildpack_info: BuildpackInfo = field(default_factory=BuildpackInfo)
    plan: BuildpackPlan = field(default_factory=BuildpackPlan)
    cnb_path: str = ""
    platform_path: str = ""
    stack: str = ""


@dataclass
class BuildResult:
    layers: list[Layer] = field(default_factory=list)


@dataclass(frozen=True)
class BuildPlanMetadata:
    build: bool = False
    version: str = ""
    version_source: str = ""


@dataclass(frozen=True)
class BuildPlanProvision:
    name: str


@dataclass(frozen=True)
class BuildPlanRequirement:
    name: str
    metadata: BuildPlanMetadata = field(default_factory=BuildPlanMetadata)


@dataclass
class BuildPlan:
    provides: list[BuildPlanProvision] = field(default_factory=list)
    requires: list[BuildPlanRequirement] = field(default_factory=list)


@dataclass
class DetectContext:
    working_dir: str
    cnb_path: str = ""
    buildpack_info: BuildpackInfo = field(default_factory=BuildpackInfo)


@dataclass
class DetectResult:
    plan: BuildPlan = field(default_factory=BuildPlan)


@dataclass
class Execution:
    """One invocation of an external tool."""

    args: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    dir: str = ""
    stdout: IO[str] | None = None
    stderr: IO[str] | None = None


class Executable(Protocol):
    def execute(self, execution: Execution) -> None:
        """Run the tool; raise on failure."""


class SBOMGenerator(Protocol):
    def generate(self, path: str) -> SBOM:
        """Produce an SBOM for the given directory."""


@dataclass(frozen=True)
class Clock:
    """Measures how long a step takes."""

    now: Callable[[], float] = time.monotonic

    def measure(self, func: Callable[[], T]) -> tuple[T, timedelta]:
        start = self.now()
        result = func()
        return result, timedelta(seconds=self.now() - start)


@dataclass
class CommonBuildParameters:
    sbom_generator: SBOMGenerator
    logger: Emitter
    clock: Clock = field(default_factory=Clock)


def merge_layer_types(name: str, entries: Iterable[BuildpackPlanEntry]) -> tuple[bool, bool]:
    """Return (launch, build) merged across plan entries of the given name."""
    launch = build = False
    for entry in entries:
        if entry.name != name:
            continue
        launch = launch or entry.metadata.get("launch") is True
        build = build or entry.metadata.get("build") is True
    return launch, build


def is_empty_dir(path: str) -> bool:
    """True if path is a readable directory with no entries."""
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is None
    except OSError:
        return False