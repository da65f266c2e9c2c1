"""Per-file transformation driver.

Decides whether an editor script should be rewritten and, if so, rewrites
it. A script qualifies when all of the following hold:

1. It is a ``.js`` or ``.ts`` file
2. It lives under the configured conversion directory
3. It does not export a class (hand-written modules are left alone)
4. It declares at least one top-level function

Anything else comes back as ``UNCHANGED`` and the caller copies the file
verbatim. Failures raise a TransformError subclass; nothing partial is
ever returned.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from phaserflow.config import TransformOptions
from phaserflow.descriptor import read_public_members
from phaserflow.rewriter import ScriptRewriter
from phaserflow.syntax import (
    dialect_for_path,
    find_function_sites,
    has_exported_class,
    parse_script,
)

logger = logging.getLogger(__name__)


class TransformStatus(Enum):
    """Outcome of transforming one file."""

    REWRITTEN = "rewritten"
    UNCHANGED = "unchanged"


@dataclass
class TransformResult:
    """Result of transforming one file.

    ``text`` is only set for rewritten files; ``reason`` explains why an
    unchanged file was not rewritten.
    """

    status: TransformStatus
    text: str | None = None
    reason: str | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def is_rewritten(self) -> bool:
        return self.status == TransformStatus.REWRITTEN


class ScriptTransformer:
    """Rewrites qualifying editor scripts."""

    def __init__(self, options: TransformOptions | None = None):
        self.options = options or TransformOptions()
        self._rewriter = ScriptRewriter(
            context_name=self.options.context_name,
            scene_type=self.options.scene_type,
        )

    def should_transform(self, path: str | Path) -> bool:
        """Check the path-based part of eligibility (extension and location)."""
        if dialect_for_path(path) is None:
            return False
        conversion_dir = self.options.conversion_dir
        if conversion_dir is None:
            return False
        return _is_within(path, conversion_dir)

    def transform(self, path: str | Path, text: str) -> TransformResult:
        """Transform the content of one script.

        Args:
            path: Source path of the script (used for eligibility and to
                locate the sibling scene descriptor)
            text: Script content

        Returns:
            TransformResult, rewritten or unchanged

        Raises:
            UnsupportedSyntaxError: The script cannot be parsed
            MalformedDescriptorError: The sibling descriptor cannot be parsed
        """
        path = Path(path)
        if not self.should_transform(path):
            return TransformResult(
                TransformStatus.UNCHANGED, reason="not a script under the conversion directory"
            )

        dialect = dialect_for_path(path)
        parsed = parse_script(text, dialect, path)

        if has_exported_class(parsed):
            return TransformResult(TransformStatus.UNCHANGED, reason="exports a class")
        if not find_function_sites(parsed):
            return TransformResult(TransformStatus.UNCHANGED, reason="declares no functions")

        # Members only become fields in the typed dialect
        members = read_public_members(
            path,
            extension=self.options.descriptor_extension,
            max_depth=self.options.max_descriptor_depth,
        )

        outcome = self._rewriter.rewrite(parsed, members)
        for warning in outcome.warnings:
            logger.warning("%s: %s", path, warning)

        logger.debug("Rewrote %s (%d scene fields)", path, len(outcome.fields))
        return TransformResult(
            TransformStatus.REWRITTEN, text=outcome.text, warnings=outcome.warnings
        )


def should_transform(path: str | Path, options: TransformOptions | None = None) -> bool:
    """Check whether a path is eligible for transformation."""
    return ScriptTransformer(options).should_transform(path)


def transform(
    path: str | Path, text: str, options: TransformOptions | None = None
) -> TransformResult:
    """Transform one script. See ScriptTransformer.transform."""
    return ScriptTransformer(options).transform(path, text)


def _is_within(path: str | Path, directory: str | Path) -> bool:
    path = Path(os.path.abspath(path))
    directory = Path(os.path.abspath(directory))
    return path == directory or directory in path.parents
