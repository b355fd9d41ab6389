[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pypackagers"
version = "0.1.0"
description = "Detect and build steps that install a Python application's dependencies with pip, pipenv or poetry into buildpack layers."
requires-python = ">=3.11"
dependencies = []
keywords = ["buildpack", "pip", "pipenv", "poetry", "site-packages", "virtualenv", "layers"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pypackagers"]

[tool.pytest.ini_options]
addopts = "-ra"
