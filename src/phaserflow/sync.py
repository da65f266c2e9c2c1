"""Editor tree synchronization.

Mirrors the Phaser Editor project directory into the build output, copying
assets verbatim and rewriting scene scripts on the way. In watch mode a
watchdog observer keeps the output in step with edits made in the editor.

Destination files are only written when their bytes actually change, so an
unchanged save in the editor does not trigger a rebuild downstream.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import Lock
from weakref import WeakValueDictionary

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from phaserflow.config import SyncConfig
from phaserflow.descriptor import SCRIPT_EXTENSIONS
from phaserflow.errors import TransformError
from phaserflow.transformer import ScriptTransformer

logger = logging.getLogger(__name__)


class SyncAction(Enum):
    """What happened to one source path."""

    CREATED_DIR = "created_dir"
    COPIED = "copied"
    TRANSFORMED = "transformed"
    SKIPPED = "skipped"  # destination already up to date
    REMOVED = "removed"
    IGNORED = "ignored"


@dataclass
class SyncOutcome:
    """Result of synchronizing one source path.

    ``error`` is set when a transform failed and the file was copied
    verbatim instead, or when the path could not be synchronized at all.
    """

    source: Path
    action: SyncAction
    target: Path | None = None
    error: str | None = None


@dataclass
class SyncReport:
    """Summary of a full synchronization pass."""

    outcomes: list[SyncOutcome] = field(default_factory=list)

    def count(self, action: SyncAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def failures(self) -> list[SyncOutcome]:
        """Outcomes that hit an error (failed transform or I/O failure)."""
        return [o for o in self.outcomes if o.error is not None]

    def summary(self) -> str:
        parts = [
            f"{self.count(action)} {action.value.replace('_', ' ')}"
            for action in SyncAction
            if self.count(action)
        ]
        if self.failures:
            parts.append(f"{len(self.failures)} failed")
        return ", ".join(parts) if parts else "nothing to do"


class SceneSyncer:
    """Synchronizes an editor directory into an output directory."""

    def __init__(self, config: SyncConfig, transformer: ScriptTransformer | None = None):
        """Initialize the syncer.

        Args:
            config: Directories and transformation settings
            transformer: Script transformer (built from config if None)
        """
        self.config = config
        self.transformer = transformer or ScriptTransformer(config.transform_options())
        self._watch_root = Path(os.path.abspath(config.watch_dir))
        self._output_root = Path(os.path.abspath(config.output_dir))
        self._observer: Observer | None = None
        self._state_lock = Lock()
        # Entries disappear once no thread holds or waits on the lock
        self._target_locks: WeakValueDictionary[Path, Lock] = WeakValueDictionary()
        self._target_locks_guard = Lock()

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def target_for(self, source: str | Path) -> Path:
        """Map a path under the watch directory to the output directory.

        Raises:
            ValueError: The path is outside the watch directory
        """
        relative = Path(os.path.abspath(source)).relative_to(self._watch_root)
        return self._output_root / relative

    def is_excluded(self, path: str | Path) -> bool:
        """Check whether any exclude pattern occurs in the path."""
        path_str = str(path)
        return any(pattern in path_str for pattern in self.config.exclude_patterns)

    def add_path(self, source: str | Path, follow_descriptors: bool = True) -> SyncOutcome:
        """Bring the output for one created or modified source path up to date.

        Args:
            source: Path under the watch directory
            follow_descriptors: When source is a scene descriptor, also
                resynchronize the script it belongs to

        Returns:
            SyncOutcome for source
        """
        source = Path(source)
        if self.is_excluded(source) or not source.exists():
            return SyncOutcome(source, SyncAction.IGNORED)

        target = self.target_for(source)
        with self._lock_for(target):
            if source.is_dir():
                if target.is_dir():
                    return SyncOutcome(source, SyncAction.SKIPPED, target)
                target.mkdir(parents=True, exist_ok=True)
                return SyncOutcome(source, SyncAction.CREATED_DIR, target)

            outcome = self._sync_file(source, target)

        if follow_descriptors and source.suffix == self.config.descriptor_extension:
            self._resync_scripts_for(source)
        return outcome

    def remove_path(self, source: str | Path) -> SyncOutcome:
        """Delete the output for a removed source path."""
        source = Path(source)
        if self.is_excluded(source):
            return SyncOutcome(source, SyncAction.IGNORED)

        target = self.target_for(source)
        with self._lock_for(target):
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
            else:
                return SyncOutcome(source, SyncAction.IGNORED, target)

        logger.info("Removed %s", target)
        if source.suffix == self.config.descriptor_extension:
            self._resync_scripts_for(source)
        return SyncOutcome(source, SyncAction.REMOVED, target)

    def sync_all(self) -> SyncReport:
        """Synchronize the whole watch directory once."""
        report = SyncReport()
        self._add_reported(report, self._watch_root)

        for dirpath, dirnames, filenames in os.walk(self._watch_root):
            dirnames[:] = sorted(d for d in dirnames if not self.is_excluded(Path(dirpath, d)))
            for name in dirnames:
                self._add_reported(report, Path(dirpath, name))
            for name in sorted(filenames):
                self._add_reported(report, Path(dirpath, name), follow_descriptors=False)

        return report

    def start(self) -> SyncReport | None:
        """Synchronize once, then watch for changes.

        Returns:
            Report of the initial pass, or None if already watching
        """
        with self._state_lock:
            if self._observer is not None:
                return None

            report = self.sync_all()
            observer = Observer()
            observer.schedule(_SyncEventHandler(self), str(self._watch_root), recursive=True)
            observer.start()
            self._observer = observer

        logger.info("Watching %s -> %s", self._watch_root, self._output_root)
        return report

    def stop(self) -> None:
        """Stop watching. Does nothing if not watching."""
        with self._state_lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()

    def __enter__(self) -> SceneSyncer:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _sync_file(self, source: Path, target: Path) -> SyncOutcome:
        error = None
        if self.transformer.should_transform(source):
            try:
                result = self.transformer.transform(source, source.read_text(encoding="utf-8"))
            except (TransformError, UnicodeDecodeError) as e:
                logger.warning("Cannot transform %s, copying it unchanged: %s", source, e)
                error = str(e)
            else:
                if result.is_rewritten:
                    written = _write_if_changed(target, result.text.encode("utf-8"))
                    action = SyncAction.TRANSFORMED if written else SyncAction.SKIPPED
                    return SyncOutcome(source, action, target)

        written = _write_if_changed(target, source.read_bytes())
        action = SyncAction.COPIED if written else SyncAction.SKIPPED
        return SyncOutcome(source, action, target, error=error)

    def _add_reported(
        self, report: SyncReport, source: Path, follow_descriptors: bool = True
    ) -> None:
        try:
            report.outcomes.append(self.add_path(source, follow_descriptors))
        except OSError as e:
            logger.warning("Failed to synchronize %s: %s", source, e)
            report.outcomes.append(SyncOutcome(source, SyncAction.IGNORED, error=str(e)))

    def _resync_scripts_for(self, descriptor: Path) -> None:
        for extension in SCRIPT_EXTENSIONS:
            script = descriptor.with_suffix(extension)
            if script.is_file():
                self.add_path(script, follow_descriptors=False)

    def _lock_for(self, target: Path) -> Lock:
        with self._target_locks_guard:
            return self._target_locks.setdefault(target, Lock())


class _SyncEventHandler(FileSystemEventHandler):
    """Forwards watchdog events to a SceneSyncer."""

    def __init__(self, syncer: SceneSyncer):
        super().__init__()
        self._syncer = syncer

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle(self._syncer.add_path, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(self._syncer.add_path, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle(self._syncer.remove_path, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle(self._syncer.remove_path, event.src_path)
        self._handle(self._syncer.add_path, event.dest_path)

    def _handle(self, operation, path: str | bytes) -> None:
        path = os.fsdecode(path)
        try:
            outcome = operation(path)
        except (OSError, ValueError) as e:
            logger.warning("Failed to synchronize %s: %s", path, e)
            return
        if outcome.action not in (SyncAction.IGNORED, SyncAction.SKIPPED):
            logger.info("%s %s", outcome.action.value, outcome.target)


def _write_if_changed(target: Path, data: bytes) -> bool:
    """Write data to target unless it already holds exactly these bytes."""
    if target.is_file() and target.read_bytes() == data:
        return False
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return True
