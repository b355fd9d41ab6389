import io
import os

import pytest

from pypackagers.emitter import Emitter
from pypackagers.framework import (
    SBOM,
    BuildContext,
    BuildpackInfo,
    BuildpackPlan,
    BuildpackPlanEntry,
    CommonBuildParameters,
    Layers,
    PackagerError,
    SBOMFormat,
)
from pypackagers.poetry.build import PoetryBuildParameters, build


class FakeEntryResolver:
    def __init__(self):
        self.launch = False
        self.build = False
        self.received = None

    def merge_layer_types(self, name, entries):
        self.received = (name, list(entries))
        return self.launch, self.build


class FakeInstallProcess:
    def __init__(self):
        self.received = None
        self.result = "some-venv-dir"
        self.error = None
        self.stub = None

    def execute(self, working_dir, target_path, cache_path):
        self.received = (working_dir, target_path, cache_path)
        if self.stub is not None:
            return self.stub(working_dir, target_path, cache_path)
        if self.error is not None:
            raise self.error
        return self.result


class FakePythonPathProcess:
    def __init__(self):
        self.received = None
        self.error = None

    def execute(self, venv_dir):
        self.received = venv_dir
        if self.error is not None:
            raise self.error
        return "some-python-path"


class FakeSBOMGenerator:
    def __init__(self):
        self.received = None
        self.error = None

    def generate(self, path):
        self.received = path
        if self.error is not None:
            raise self.error
        return SBOM()


@pytest.fixture
def setup(tmp_path):
    layers_dir = tmp_path / "layers"
    working_dir = tmp_path / "working"
    layers_dir.mkdir()
    working_dir.mkdir()
    buffer = io.StringIO()
    fakes = {
        "resolver": FakeEntryResolver(),
        "install": FakeInstallProcess(),
        "pythonpath": FakePythonPathProcess(),
        "sbom": FakeSBOMGenerator(),
    }
    params = PoetryBuildParameters(fakes["resolver"], fakes["install"], fakes["pythonpath"])
    common = CommonBuildParameters(sbom_generator=fakes["sbom"], logger=Emitter(buffer))
    context = BuildContext(
        working_dir=str(working_dir),
        layers=Layers(str(layers_dir)),
        buildpack_info=BuildpackInfo(
            name="Some Buildpack",
            version="some-version",
            sbom_formats=[SBOMFormat.CYCLONEDX.value, SBOMFormat.SPDX.value],
        ),
        plan=BuildpackPlan(entries=[BuildpackPlanEntry(name="poetry-venv")]),
        stack="some-stack",
    )
    return {
        "layers_dir": str(layers_dir),
        "working_dir": str(working_dir),
        "buffer": buffer,
        "params": params,
        "common": common,
        "context": context,
        **fakes,
    }


def _assert_env(layer, layers_dir, venv_dir):
    assert not layer.build_env
    assert not layer.launch_env
    assert not layer.process_launch_env
    assert len(layer.shared_env) == 5
    assert layer.shared_env["PATH.prepend"] == f"{venv_dir}/bin"
    assert layer.shared_env["PATH.delim"] == ":"
    assert layer.shared_env["PYTHONPATH.prepend"] == "some-python-path"
    assert layer.shared_env["PYTHONPATH.delim"] == ":"
    assert layer.shared_env["POETRY_VIRTUALENVS_PATH.default"] == os.path.join(
        layers_dir, "poetry-venv"
    )


def test_runs_build_and_returns_layers(setup):
    result = build(setup["params"], setup["common"], setup["context"])
    layers_dir = setup["layers_dir"]

    assert len(result.layers) == 1
    venv_layer = result.layers[0]
    assert venv_layer.name == "poetry-venv"
    assert venv_layer.path == os.path.join(layers_dir, "poetry-venv")
    assert (venv_layer.build, venv_layer.launch, venv_layer.cache) == (False, False, False)
    _assert_env(venv_layer, layers_dir, "some-venv-dir")

    extensions = sorted(fmt.extension for fmt in venv_layer.sbom.formats())
    assert extensions == ["cdx.json", "spdx.json"]

    assert setup["install"].received == (
        setup["working_dir"],
        os.path.join(layers_dir, "poetry-venv"),
        os.path.join(layers_dir, "cache"),
    )
    assert setup["pythonpath"].received == "some-venv-dir"
    assert setup["sbom"].received == setup["working_dir"]
    assert setup["resolver"].received == ("poetry-venv", [BuildpackPlanEntry(name="poetry-venv")])

    output = setup["buffer"].getvalue()
    assert "Some Buildpack some-version" in output
    assert "Executing build process" in output


def test_required_at_build_and_launch(setup):
    setup["resolver"].launch = True
    setup["resolver"].build = True
    result = build(setup["params"], setup["common"], setup["context"])
    assert len(result.layers) == 1
    layer = result.layers[0]
    assert layer.name == "poetry-venv"
    assert (layer.build, layer.launch, layer.cache) == (True, True, True)


def test_required_only_at_launch(setup):
    setup["resolver"].launch = True
    result = build(setup["params"], setup["common"], setup["context"])
    assert len(result.layers) == 1
    layer = result.layers[0]
    assert (layer.build, layer.launch, layer.cache) == (False, True, True)
    _assert_env(layer, setup["layers_dir"], "some-venv-dir")


def test_cache_layer_included_when_used(setup):
    def stub(_working, _target, cache_path):
        os.makedirs(os.path.join(cache_path, "something"))
        return "some-cached-venv-dir"

    setup["install"].stub = stub
    setup["resolver"].launch = True
    setup["resolver"].build = True
    result = build(setup["params"], setup["common"], setup["context"])

    assert len(result.layers) == 2
    venv_layer, cache_layer = result.layers
    assert venv_layer.name == "poetry-venv"
    assert (venv_layer.build, venv_layer.launch, venv_layer.cache) == (True, True, True)
    _assert_env(venv_layer, setup["layers_dir"], "some-cached-venv-dir")

    assert cache_layer.name == "cache"
    assert cache_layer.path == os.path.join(setup["layers_dir"], "cache")
    assert (cache_layer.build, cache_layer.launch, cache_layer.cache) == (False, False, True)
    assert not cache_layer.shared_env
    assert not cache_layer.build_env
    assert not cache_layer.launch_env
    assert not cache_layer.process_launch_env
    assert cache_layer.metadata == {}


def test_install_process_error(setup):
    setup["install"].error = PackagerError("could not run install process")
    with pytest.raises(PackagerError) as info:
        build(setup["params"], setup["common"], setup["context"])
    assert str(info.value) == "could not run install process"


def test_python_path_process_error(setup):
    setup["pythonpath"].error = PackagerError("could not run Python path process")
    with pytest.raises(PackagerError) as info:
        build(setup["params"], setup["common"], setup["context"])
    assert str(info.value) == "could not run Python path process"


def test_unsupported_sbom_format(setup):
    setup["context"].buildpack_info.sbom_formats = ["random-format"]
    with pytest.raises(PackagerError) as info:
        build(setup["params"], setup["common"], setup["context"])
    assert str(info.value) == "unsupported SBOM format: 'random-format'"


def test_sbom_generation_error(setup):
    setup["sbom"].error = PackagerError("failed to generate SBOM")
    with pytest.raises(PackagerError) as info:
        build(setup["params"], setup["common"], setup["context"])
    assert "failed to generate SBOM" in str(info.value)