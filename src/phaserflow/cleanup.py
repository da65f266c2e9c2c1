"""Production build cleanup.

After a production build the copied editor tree only needs its JSON assets
(pack files, animations, atlases); scripts were bundled and scene files are
editor-only. Files listed in the ``publicroot`` manifest of the output
directory are removed as well.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

PUBLIC_ROOT_MANIFEST = "publicroot"
KEPT_EXTENSION = ".json"


@dataclass
class CleanupReport:
    """Paths removed (or that would be removed) by a cleanup."""

    removed: list[Path] = field(default_factory=list)
    refused: list[str] = field(default_factory=list)


def clean_non_json_files(directory: str | Path, dry_run: bool = False) -> list[Path]:
    """Delete every non-JSON file under directory and prune empty directories.

    Args:
        directory: Root of the tree to clean
        dry_run: Only report what would be removed

    Returns:
        Removed file paths
    """
    directory = Path(directory)
    removed: list[Path] = []

    for dirpath, dirnames, filenames in os.walk(directory, topdown=False):
        current = Path(dirpath)
        for name in sorted(filenames):
            path = current / name
            if path.suffix != KEPT_EXTENSION:
                removed.append(path)
                if not dry_run:
                    path.unlink()

        if current != directory and not dry_run and not any(current.iterdir()):
            current.rmdir()

    return removed


def read_manifest(directory: str | Path) -> list[str]:
    """Read the entries of the publicroot manifest in directory.

    Returns:
        Relative paths listed in the manifest (empty if there is none)
    """
    manifest = Path(directory) / PUBLIC_ROOT_MANIFEST
    if not manifest.is_file():
        return []
    lines = manifest.read_text(encoding="utf-8").split("\n")
    return [line.replace("\r", "").strip() for line in lines if line.strip()]


def clean_public_root_files(directory: str | Path, dry_run: bool = False) -> CleanupReport:
    """Remove the paths listed in the publicroot manifest, then the manifest.

    Entries are relative to directory; entries that point outside of it are
    refused.
    """
    directory = Path(directory)
    report = CleanupReport()
    manifest = directory / PUBLIC_ROOT_MANIFEST
    if not manifest.is_file():
        return report

    root = Path(os.path.abspath(directory))
    for entry in read_manifest(directory):
        path = Path(os.path.abspath(root / entry.lstrip("/\\")))
        if path == root or root not in path.parents:
            logger.warning("Refusing to remove %r: outside of %s", entry, root)
            report.refused.append(entry)
            continue
        if not (path.exists() or path.is_symlink()):
            continue

        report.removed.append(path)
        if dry_run:
            continue
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()

    report.removed.append(manifest)
    if not dry_run:
        manifest.unlink()
    return report


def clean_build(
    output_path: str | Path, watch_dir_name: str, dry_run: bool = False
) -> CleanupReport:
    """Run the production cleanup on a build output directory.

    Args:
        output_path: Bundler output directory
        watch_dir_name: Name of the copied editor directory inside output_path
        dry_run: Only report what would be removed
    """
    output_path = Path(output_path)
    report = CleanupReport()

    copied_tree = output_path / watch_dir_name
    if copied_tree.is_dir():
        report.removed.extend(clean_non_json_files(copied_tree, dry_run=dry_run))

    public_root = clean_public_root_files(output_path, dry_run=dry_run)
    report.removed.extend(public_root.removed)
    report.refused.extend(public_root.refused)
    return report
