"""Exceptions raised by the script transformation core."""

from __future__ import annotations

from pathlib import Path


class TransformError(Exception):
    """A single file could not be transformed.

    The synchronization driver treats this as a per-file failure: it is
    reported and the original file is copied instead.
    """

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        message = super().__str__()
        if self.path is not None:
            return f"{self.path}: {message}"
        return message


class MalformedDescriptorError(TransformError):
    """A scene descriptor exists but is not the expected JSON document."""


class DescriptorTooDeepError(MalformedDescriptorError):
    """A scene descriptor nests display items beyond the recursion budget."""

    def __init__(self, depth: int, path: str | Path | None = None):
        super().__init__(f"display list nesting exceeds {depth} levels", path=path)
        self.depth = depth


class UnsupportedSyntaxError(TransformError):
    """Source text could not be parsed as script or typed script."""

    def __init__(
        self,
        message: str,
        path: str | Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message, path=path)
        self.line = line
        self.column = column


class ConfigError(Exception):
    """Invalid phaserflow configuration."""
