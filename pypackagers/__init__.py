"""Detect and build steps for installing Python dependencies with pip, pipenv or poetry."""

__version__ = "0.1.0"