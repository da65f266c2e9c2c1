"""Command-line interface for phaserflow.

Provides commands for transforming scene scripts, synchronizing a Phaser
Editor project into a build directory, and cleaning production output.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path

import click

from phaserflow import __version__
from phaserflow.cleanup import clean_build
from phaserflow.config import CONFIG_FILE_NAME, SyncConfig, TransformOptions, load_config
from phaserflow.errors import ConfigError, TransformError
from phaserflow.rewriter import DEFAULT_CONTEXT_NAME, DEFAULT_SCENE_TYPE
from phaserflow.sync import SceneSyncer
from phaserflow.transformer import ScriptTransformer


@click.group()
@click.version_option(version=__version__, prog_name="phaserflow")
@click.option("-v", "--verbose", is_flag=True, help="Log every file operation")
def main(verbose: bool) -> None:
    """Phaser Editor scene script synchronizer.

    Copies an editor project into the build tree and rewrites scene scripts
    into exported functions that receive the scene as their first parameter.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--conversion-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory whose scripts are rewritten (default: the file's directory)",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file path (default: stdout)",
)
@click.option(
    "--context-name",
    default=DEFAULT_CONTEXT_NAME,
    show_default=True,
    help="Scene parameter name",
)
@click.option(
    "--scene-type",
    default=DEFAULT_SCENE_TYPE,
    show_default=True,
    help="Scene parameter type",
)
def transform(
    file: Path,
    conversion_dir: Path | None,
    output: Path | None,
    context_name: str,
    scene_type: str,
) -> None:
    """Transform a single scene script.

    Examples:

        # Preview the rewritten script
        phaserflow transform editor/scenes/Level.ts

        # Write it somewhere
        phaserflow transform editor/scenes/Level.ts -o build/Level.ts
    """
    options = TransformOptions(
        conversion_dir=conversion_dir or file.parent,
        context_name=context_name,
        scene_type=scene_type,
    )
    transformer = ScriptTransformer(options)

    try:
        result = transformer.transform(file, file.read_text(encoding="utf-8"))
    except TransformError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except UnicodeDecodeError as e:
        click.echo(f"Error: {file}: not UTF-8 text: {e}", err=True)
        sys.exit(1)

    if not result.is_rewritten:
        click.echo(f"Unchanged: {result.reason}", err=True)
        return

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.text, encoding="utf-8", newline="\n")
        click.echo(f"Transformed: {file} -> {output}")
    else:
        click.echo(result.text, nl=False)


@main.command()
@click.argument("watch_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.argument("output_dir", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help=f"Configuration file (default: ./{CONFIG_FILE_NAME} if present)",
)
@click.option(
    "--conversion-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory whose scripts are rewritten",
)
@click.option(
    "--exclude",
    "exclude_patterns",
    multiple=True,
    help="Skip paths containing this text (repeatable)",
)
@click.option("--watch", is_flag=True, help="Keep watching for changes until interrupted")
def sync(
    watch_dir: Path | None,
    output_dir: Path | None,
    config_file: Path | None,
    conversion_dir: Path | None,
    exclude_patterns: tuple[str, ...],
    watch: bool,
) -> None:
    """Synchronize an editor directory into an output directory.

    Examples:

        # One-shot sync
        phaserflow sync editor public/editor --conversion-dir editor/scenes

        # Keep syncing while the editor is open
        phaserflow sync --config phaserflow.yaml --watch
    """
    try:
        config = _resolve_sync_config(
            watch_dir, output_dir, config_file, conversion_dir, exclude_patterns
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not config.watch_dir.is_dir():
        click.echo(f"Error: Not a directory: {config.watch_dir}", err=True)
        sys.exit(1)

    syncer = SceneSyncer(config)

    if not watch:
        report = syncer.sync_all()
        for failure in report.failures:
            click.echo(f"Warning: {failure.source}: {failure.error}", err=True)
        click.echo(f"Synchronized {config.watch_dir} -> {config.output_dir}: {report.summary()}")
        return

    report = syncer.start()
    click.echo(f"Synchronized {config.watch_dir} -> {config.output_dir}: {report.summary()}")
    click.echo("Watching for changes (Ctrl+C to stop)...")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        syncer.stop()
    click.echo("Stopped.")


@main.command()
@click.argument("output_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--watch-dir-name",
    required=True,
    help="Name of the copied editor directory inside OUTPUT_PATH",
)
@click.option("--dry-run", is_flag=True, help="Show what would be removed without removing it")
def clean(output_path: Path, watch_dir_name: str, dry_run: bool) -> None:
    """Remove editor-only files from a production build.

    Deletes every non-JSON file under OUTPUT_PATH/WATCH_DIR_NAME and the
    paths listed in OUTPUT_PATH/publicroot.
    """
    report = clean_build(output_path, watch_dir_name, dry_run=dry_run)

    for entry in report.refused:
        click.echo(f"Warning: Refusing to remove '{entry}' (outside {output_path})", err=True)

    if dry_run:
        for path in report.removed:
            click.echo(f"Would remove: {path}")
        click.echo(f"Would remove {len(report.removed)} path(s)")
    else:
        click.echo(f"Removed {len(report.removed)} path(s)")


def _resolve_sync_config(
    watch_dir: Path | None,
    output_dir: Path | None,
    config_file: Path | None,
    conversion_dir: Path | None,
    exclude_patterns: tuple[str, ...],
) -> SyncConfig:
    """Combine the configuration file with command-line overrides."""
    if config_file is None and Path(CONFIG_FILE_NAME).is_file():
        config_file = Path(CONFIG_FILE_NAME)

    if config_file is not None:
        config = load_config(config_file)
    elif watch_dir is None or output_dir is None:
        raise ConfigError("WATCH_DIR and OUTPUT_DIR are required without a configuration file")
    else:
        config = SyncConfig(watch_dir=watch_dir, output_dir=output_dir)

    if watch_dir is not None:
        config.watch_dir = watch_dir
    if output_dir is not None:
        config.output_dir = output_dir
    if conversion_dir is not None:
        config.conversion_dir = conversion_dir
    if exclude_patterns:
        config.exclude_patterns = list(exclude_patterns)
    return config


if __name__ == "__main__":
    main()
