"""Indented build log output."""

from __future__ import annotations

import json
import sys
from collections.abc import Mapping
from typing import IO

from pypackagers.framework import Layer

_INDENT = "  "


class _IndentedWriter:
    """A text stream that indents every line written to it."""

    def __init__(self, stream: IO[str], indent: str) -> None:
        self._stream = stream
        self._indent = indent
        self._at_line_start = True

    def write(self, text: str) -> int:
        for chunk in text.splitlines(keepends=True):
            if self._at_line_start and chunk != "\n":
                self._stream.write(self._indent)
            self._stream.write(chunk)
            self._at_line_start = chunk.endswith("\n")
        return len(text)

    def flush(self) -> None:
        self._stream.flush()


def _format_environment(env: Mapping[str, str]) -> str:
    formatted: dict[str, str] = {}
    for key, value in env.items():
        name, _, kind = key.partition(".")
        delim = env.get(f"{name}.delim", "")
        if kind in ("override", "default"):
            formatted[name] = value
        elif kind == "prepend":
            formatted[name] = delim.join([value, f"${name}"])
        elif kind == "append":
            formatted[name] = delim.join([f"${name}", value])
    width = max((len(name) for name in formatted), default=0)
    return "\n".join(
        f"{name.ljust(width)} -> {json.dumps(value, ensure_ascii=False)}"
        for name, value in sorted(formatted.items())
    )


class Emitter:
    """Writes build progress at fixed indentation levels."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout

    @property
    def action_writer(self) -> _IndentedWriter:
        """A stream for tool output, indented at the action level."""
        return _IndentedWriter(self._stream, _INDENT * 3)

    def _log(self, level: int, message: str, args: tuple) -> None:
        text = message % args if args else message
        indent = _INDENT * level
        for line in text.split("\n"):
            self._stream.write(f"{indent}{line}\n" if line else "\n")

    def title(self, message: str, *args: object) -> None:
        self._log(0, message, args)

    def process(self, message: str, *args: object) -> None:
        self._log(1, message, args)

    def subprocess(self, message: str, *args: object) -> None:
        self._log(2, message, args)

    def action(self, message: str, *args: object) -> None:
        self._log(3, message, args)

    def break_(self) -> None:
        self._stream.write("\n")

    def generating_sbom(self, path: str) -> None:
        self.process("Generating SBOM for %s", path)

    def formatting_sbom(self, *args: str) -> None:
        self.process("Writing SBOM in the following format(s):")
        for media_type in args:
            self.subprocess(media_type)
        self.break_()

    def environment_variables(self, layer: Layer) -> None:
        build_env = {**layer.shared_env, **layer.build_env}
        launch_env = {**layer.shared_env, **layer.launch_env}
        if build_env:
            self.process("Configuring build environment")
            self.subprocess(_format_environment(build_env))
            self.break_()
        if launch_env:
            self.process("Configuring launch environment")
            self.subprocess(_format_environment(launch_env))
            self.break_()
        for process_type, env in sorted(layer.process_launch_env.items()):
            if env:
                self.process('Configuring launch environment for "%s"', process_type)
                self.subprocess(_format_environment(env))
                self.break_()