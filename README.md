# pypackagers

Detect and build steps that install a Python application's dependencies
into buildpack layers, for three package managers:

- **pip** (`pypackagers.pip`): installs from one or more requirements files
  into a `packages` layer and prepends its `site-packages` to `PYTHONPATH`.
- **pipenv** (`pypackagers.pipenv`): installs from `Pipfile` (checked against
  `Pipfile.lock` when present) into a virtual environment inside a
  `packages` layer, prepending the environment's `bin` to `PATH` and its
  `site-packages` to `PYTHONPATH`.
- **poetry** (`pypackagers.poetry`): installs from `pyproject.toml` into a
  `poetry-venv` layer, prepending the environment's `bin` to `PATH` and its
  `site-packages` to `PYTHONPATH`, and setting `POETRY_VIRTUALENVS_PATH` to
  the layer as a default.

Each manager also uses a `cache` layer. It is returned with the build result
only when the install left something in it.

The package has no third-party dependencies.

## Building blocks

`pypackagers.framework` holds the shared types:

- `DetectContext`, `DetectResult`, `BuildPlan`, `BuildPlanProvision`,
  `BuildPlanRequirement`, `BuildPlanMetadata` for detection;
- `BuildContext`, `BuildpackInfo`, `BuildpackPlan`, `BuildpackPlanEntry`,
  `BuildResult`, `Layers` and `Layer` for building. `Layers.get(name)` returns
  the layer under the layers directory, reading its build, launch and cache
  flags and metadata from `<name>.toml` when that file exists. `Layer.reset()`
  clears the settings and empties the layer directory. A layer's environments
  are `Environment` mappings keyed as `NAME.prepend`, `NAME.delim`,
  `NAME.default`;
- `SBOM`, whose `in_formats(...)` takes media types (see `SBOMFormat`:
  CycloneDX, SPDX, Syft JSON) and raises `PackagerError` with
  `unsupported SBOM format: '...'` for anything else;
- `Execution` (arguments, environment, directory, output streams), the
  `Executable` and `SBOMGenerator` protocols, `Clock` (whose `measure(func)`
  returns the result and a `timedelta`) and `CommonBuildParameters`;
- `merge_layer_types(name, entries)`, returning `(launch, build)` from the
  `launch`/`build` metadata of matching plan entries, and `is_empty_dir(path)`.

Failures raise `PackagerError`; a manager that does not apply raises its
subclass `DetectFailure`.

`pypackagers.emitter.Emitter` writes indented build output to a stream
(standard output by default): `title`, `process`, `subprocess`, `action`,
`break_`, `generating_sbom`, `formatting_sbom` and `environment_variables`,
plus `action_writer`, a stream that indents tool output.

## Detection

Each manager has a `detect` function taking a `DetectContext`:

| Function                          | Required file(s)               | Failure message                          |
|-----------------------------------|--------------------------------|------------------------------------------|
| `pypackagers.pip.detect.detect`    | `requirements.txt` (see below) | `requirements file not found at: '...'`  |
| `pypackagers.pipenv.detect.detect` | `Pipfile`                      | `no 'Pipfile' found`                     |
| `pypackagers.poetry.detect.detect` | `pyproject.toml`               | `no 'pyproject.toml' found`              |

The pipenv `detect(context, pipfile_parser, lock_parser)` also takes two
parsers. When `Pipfile.lock` exists the Python version comes from
`PipfileLockParser` (`_meta.requires.python_version`), otherwise from
`PipfileParser` (`[requires] python_version`), both in
`pypackagers.pipenv.parsers`. A version found is added to the `cpython`
requirement together with the file it came from.

```python
from pypackagers.framework import DetectContext, DetectFailure
from pypackagers.pip.detect import detect

try:
    result = detect(DetectContext(working_dir="/workspace"))
except DetectFailure as failure:
    print(failure)
else:
    for requirement in result.plan.requires:
        print(requirement.name, requirement.metadata.build)
```

## Building

Each manager has `build(build_parameters, parameters, context)`, taking its
own parameters, the shared `CommonBuildParameters` and a `BuildContext`, and
returning a `BuildResult`:

- `pypackagers.pip.build`: `PipBuildParameters(install_process,
  site_packages_process)`;
- `pypackagers.pipenv.build`: `PipenvBuildParameters(install_process,
  site_process, venv_dir_locator)`;
- `pypackagers.poetry.build`: `PoetryBuildParameters(entry_resolver,
  install_process, python_path_lookup_process)`, where `entry_resolver` is
  any object with a `merge_layer_types(name, entries)` method.

The collaborators provided here are:

- `PipInstallProcess`, `PipenvInstallProcess`, `PoetryInstallProcess`: build
  the `pip`, `pipenv` and `poetry` invocations as `Execution` objects and hand
  them to the `Executable` they are given. `PoetryInstallProcess` then runs
  `env info --path` the same way and returns the cleaned virtual environment
  path. `PipenvInstallProcess` runs `clean` after installing when a lock file
  exists.
- `pypackagers.site_process.SiteProcess`: runs `-m site --user-site` through
  its `Executable` with `PYTHONUSERBASE` set to the layer and returns the
  printed path.
- `pypackagers.pipenv.venv_locator.VenvLocator`: returns the first
  subdirectory (by name) that holds a `pyvenv.cfg`.
- `pypackagers.poetry.pythonpath_process.PythonPathProcess`: returns
  `<venv>/lib/<python>/site-packages`, insisting that each level holds exactly
  one entry.

### pip settings

| Variable             | Effect                                                                  |
|----------------------|-------------------------------------------------------------------------|
| `BP_PIP_REQUIREMENT` | Space-separated requirements files; default `requirements.txt`.         |
| `BP_PIP_DEST_PATH`   | Vendor directory, relative to the app; default `vendor`. When it exists, pip runs offline (`--no-index`) and the directory is added to the find-links. |
| `BP_PIP_FIND_LINKS`  | Extra space-separated find-links locations, placed before `PIP_FIND_LINKS`. |

## What this package does not do

- It starts no processes. Every tool call goes through an `Executable` you
  supply, which decides how (or whether) to run it.
- It has no SBOM generator; `CommonBuildParameters` takes any object with a
  `generate(path)` method returning an `SBOM`, and SBOM documents are not
  written out.
- It does not write layer files or metadata to disk, and has no command-line
  entry point tying detect and build into a buildpack executable.

## Tests

The test suite uses pytest, available through the `test` extra.