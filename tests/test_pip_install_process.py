import io
import os

import pytest

from pypackagers.emitter import Emitter
from pypackagers.framework import PackagerError
from pypackagers.pip.install_process import PipInstallProcess

COMMON_TAIL = ["--compile", "--user", "--disable-pip-version-check"]
OFFLINE_HEAD = ["install", "--ignore-installed", "--exists-action=w", "--no-index"]
FIND_LINKS = "some-find-links-dir some-other-find-links-dir"


class _FakeExecutable:
    def __init__(self, error=None):
        self.executions = []
        self.error = error

    def execute(self, execution):
        self.executions.append(execution)
        for stream, text in ((execution.stdout, "stdout output"), (execution.stderr, "stderr output")):
            stream.write(text + "\n")
        if self.error is not None:
            raise self.error


@pytest.fixture
def dirs(tmp_path, monkeypatch):
    for name in ("BP_PIP_REQUIREMENT", "BP_PIP_DEST_PATH", "BP_PIP_FIND_LINKS"):
        monkeypatch.delenv(name, raising=False)
    paths = {name: str(tmp_path / name) for name in ("packages", "cache", "working", "pipsrc")}
    for path in paths.values():
        os.mkdir(path)
    monkeypatch.setenv("PIP_FIND_LINKS", paths["pipsrc"])
    return paths


@pytest.fixture
def buffer():
    return io.StringIO()


@pytest.fixture
def executable():
    return _FakeExecutable()


def _run(dirs, executable, buffer, env=None, vendor=None, monkeypatch=None):
    for key, value in (env or {}).items():
        monkeypatch.setenv(key, value)
    if vendor is not None:
        os.mkdir(os.path.join(dirs["working"], vendor))
    PipInstallProcess(executable, Emitter(buffer)).execute(
        dirs["working"], dirs["packages"], dirs["cache"]
    )
    return executable.executions[-1]


def _expected_args(dirs, offline, requirements):
    head = OFFLINE_HEAD if offline else ["install", "--exists-action=w", f"--cache-dir={dirs['cache']}"]
    return [*head, *COMMON_TAIL, *(f"--requirement={r}" for r in requirements)]


@pytest.mark.parametrize(
    "env, vendor, requirements, links",
    [
        ({}, None, ["requirements.txt"], ["{pipsrc}"]),
        ({}, "vendor", ["requirements.txt"], ["{pipsrc}", "{vendor}"]),
        ({"BP_PIP_DEST_PATH": "fake-vendor"}, None, ["requirements.txt"], ["{pipsrc}"]),
        (
            {"BP_PIP_DEST_PATH": "fake-vendor"},
            "fake-vendor",
            ["requirements.txt"],
            ["{pipsrc}", "{vendor}"],
        ),
        ({"BP_PIP_REQUIREMENT": "requirements-dev.txt"}, None, ["requirements-dev.txt"], ["{pipsrc}"]),
        (
            {"BP_PIP_REQUIREMENT": "requirements.txt requirements-lint.txt"},
            None,
            ["requirements.txt", "requirements-lint.txt"],
            ["{pipsrc}"],
        ),
        (
            {"BP_PIP_FIND_LINKS": FIND_LINKS, "BP_PIP_DEST_PATH": "fake-vendor"},
            None,
            ["requirements.txt"],
            [FIND_LINKS, "{pipsrc}"],
        ),
        (
            {"BP_PIP_FIND_LINKS": FIND_LINKS, "BP_PIP_DEST_PATH": "fake-vendor"},
            "fake-vendor",
            ["requirements.txt"],
            [FIND_LINKS, "{pipsrc}", "{vendor}"],
        ),
    ],
)
def test_runs_installation(
    dirs, executable, buffer, monkeypatch, env, vendor, requirements, links
):
    execution = _run(dirs, executable, buffer, env, vendor, monkeypatch)

    vendor_path = os.path.join(dirs["working"], vendor) if vendor else ""
    assert execution.args == _expected_args(dirs, vendor is not None, requirements)
    assert execution.dir == dirs["working"]
    assert execution.env["PYTHONUSERBASE"] == dirs["packages"]
    assert execution.env["PIP_FIND_LINKS"] == " ".join(
        link.format(pipsrc=dirs["pipsrc"], vendor=vendor_path) for link in links
    )


@pytest.mark.parametrize(
    "vendor, command",
    [
        (
            None,
            "install --exists-action=w --cache-dir={cache} --compile --user "
            "--disable-pip-version-check --requirement=requirements.txt",
        ),
        (
            "vendor",
            "install --ignore-installed --exists-action=w --no-index --compile --user "
            "--disable-pip-version-check --requirement=requirements.txt",
        ),
    ],
)
def test_logs_command_and_output(dirs, executable, buffer, vendor, command):
    _run(dirs, executable, buffer, vendor=vendor)
    expected = [
        f"    Running 'pip {command.format(cache=dirs['cache'])}'",
        "      stdout output",
        "      stderr output",
    ]
    lines = buffer.getvalue().splitlines()
    assert any(
        lines[start : start + len(expected)] == expected
        for start in range(len(lines) - len(expected) + 1)
    )


def test_find_links_leading_space_is_trimmed(dirs, executable, buffer, monkeypatch):
    monkeypatch.delenv("PIP_FIND_LINKS")
    execution = _run(dirs, executable, buffer, vendor="vendor")
    assert execution.env["PIP_FIND_LINKS"] == os.path.join(dirs["working"], "vendor")


def test_vendor_stat_failure_raises(tmp_path, dirs, executable, buffer):
    not_a_dir = tmp_path / "file"
    not_a_dir.write_text("")
    with pytest.raises(NotADirectoryError):
        PipInstallProcess(executable, Emitter(buffer)).execute(
            str(not_a_dir), dirs["packages"], dirs["cache"]
        )
    assert executable.executions == []


def test_executable_failure_raises(dirs, buffer):
    with pytest.raises(PackagerError) as excinfo:
        _run(dirs, _FakeExecutable(RuntimeError("boom")), buffer)
    assert str(excinfo.value) == "pip install failed:\nerror: boom"