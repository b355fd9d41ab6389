"""Detection, install and build steps for pyproject.toml with poetry."""