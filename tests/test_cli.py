"""Tests for CLI interface."""

import json

import pytest
from click.testing import CliRunner

from phaserflow.cli import main


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def editor(tmp_path):
    """Create an editor directory with one scene."""
    scenes = tmp_path / "editor" / "scenes"
    scenes.mkdir(parents=True)
    (scenes / "Level.ts").write_text(
        "function create() {\n  this.add.image(0, 0, 'sky');\n}\n", encoding="utf-8"
    )
    (scenes / "Level.scene").write_text(
        json.dumps({"displayList": [{"label": "bg", "type": "Image", "scope": "PUBLIC"}]}),
        encoding="utf-8",
    )
    (tmp_path / "editor" / "pack.json").write_text("{}", encoding="utf-8")
    return tmp_path / "editor"


class TestTransformCommand:
    """Tests for the transform command."""

    def test_transform_to_stdout(self, runner, editor):
        """Test printing the rewritten script."""
        result = runner.invoke(main, ["transform", str(editor / "scenes" / "Level.ts")])

        assert result.exit_code == 0
        assert "export function create(scene: Phaser.Scene | any) {" in result.output
        assert "  bg: Phaser.GameObjects.Image;" in result.output

    def test_transform_to_file(self, runner, editor, tmp_path):
        """Test writing the rewritten script to a file."""
        output_file = tmp_path / "build" / "Level.ts"

        result = runner.invoke(
            main, ["transform", str(editor / "scenes" / "Level.ts"), "-o", str(output_file)]
        )

        assert result.exit_code == 0
        assert "Transformed:" in result.output
        assert output_file.read_text(encoding="utf-8").startswith("export function create(")

    def test_transform_with_options(self, runner, editor):
        """Test custom parameter name and type."""
        result = runner.invoke(
            main,
            [
                "transform",
                str(editor / "scenes" / "Level.ts"),
                "--context-name",
                "level",
                "--scene-type",
                "Level",
            ],
        )

        assert result.exit_code == 0
        assert "export function create(level: Level | any) {" in result.output
        assert "level.add.image" in result.output

    def test_transform_outside_conversion_dir(self, runner, editor):
        """Test a script outside the conversion directory is left alone."""
        result = runner.invoke(
            main,
            [
                "transform",
                str(editor / "scenes" / "Level.ts"),
                "--conversion-dir",
                str(editor / "prefabs"),
            ],
        )

        assert result.exit_code == 0
        assert "Unchanged: not a script under the conversion directory" in result.output

    def test_transform_malformed_descriptor(self, runner, editor):
        """Test a broken descriptor is reported as an error."""
        (editor / "scenes" / "Level.scene").write_text("[1, 2", encoding="utf-8")

        result = runner.invoke(main, ["transform", str(editor / "scenes" / "Level.ts")])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "invalid JSON" in result.output

    def test_transform_binary_file(self, runner, editor):
        """Test a script that is not UTF-8 is reported as an error."""
        script = editor / "scenes" / "Level.ts"
        script.write_bytes(b"function create() {}\n\xff\xfe\n")

        result = runner.invoke(main, ["transform", str(script)])

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "not UTF-8 text" in result.output

    def test_transform_option_defaults(self, runner):
        """Test option defaults match the rewriter defaults."""
        result = runner.invoke(main, ["transform", "--help"])

        assert result.exit_code == 0
        assert "[default: scene]" in result.output
        assert "[default: Phaser.Scene]" in result.output

    def test_transform_invalid_file(self, runner):
        """Test transforming a non-existent file."""
        result = runner.invoke(main, ["transform", "/nonexistent/Level.ts"])

        assert result.exit_code != 0


class TestSyncCommand:
    """Tests for the sync command."""

    def test_sync_directories(self, runner, editor, tmp_path):
        """Test a one-shot sync from command-line arguments."""
        output_dir = tmp_path / "public" / "editor"

        result = runner.invoke(
            main,
            [
                "sync",
                str(editor),
                str(output_dir),
                "--conversion-dir",
                str(editor / "scenes"),
            ],
        )

        assert result.exit_code == 0
        assert "Synchronized" in result.output
        assert "1 transformed" in result.output
        assert (output_dir / "pack.json").exists()
        level = (output_dir / "scenes" / "Level.ts").read_text(encoding="utf-8")
        assert level.startswith("export function create(scene: Phaser.Scene | any)")

    def test_sync_with_config(self, runner, editor, tmp_path):
        """Test a sync driven by a configuration file."""
        config_file = tmp_path / "phaserflow.yaml"
        config_file.write_text(
            "watch_dir: editor\n"
            "output_dir: out\n"
            "conversion_dir: editor/scenes\n"
            "exclude:\n"
            "  - pack.json\n",
            encoding="utf-8",
        )

        result = runner.invoke(main, ["sync", "--config", str(config_file)])

        assert result.exit_code == 0
        assert not (tmp_path / "out" / "pack.json").exists()
        assert (tmp_path / "out" / "scenes" / "Level.ts").exists()

    def test_sync_exclude_option(self, runner, editor, tmp_path):
        """Test --exclude overrides."""
        output_dir = tmp_path / "out"

        result = runner.invoke(
            main, ["sync", str(editor), str(output_dir), "--exclude", "scenes"]
        )

        assert result.exit_code == 0
        assert (output_dir / "pack.json").exists()
        assert not (output_dir / "scenes").exists()

    def test_sync_reports_failures(self, runner, editor, tmp_path):
        """Test per-file failures are reported as warnings."""
        (editor / "scenes" / "Level.scene").write_text("{", encoding="utf-8")

        result = runner.invoke(
            main,
            ["sync", str(editor), str(tmp_path / "out"), "--conversion-dir", str(editor / "scenes")],
        )

        assert result.exit_code == 0
        assert "Warning:" in result.output
        assert "1 failed" in result.output

    def test_sync_missing_arguments(self, runner, tmp_path):
        """Test sync without directories or a configuration file."""
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["sync"])

        assert result.exit_code == 1
        assert "WATCH_DIR and OUTPUT_DIR are required" in result.output

    def test_sync_bad_config(self, runner, tmp_path):
        """Test an invalid configuration file."""
        config_file = tmp_path / "phaserflow.yaml"
        config_file.write_text("watch_dir: editor\n", encoding="utf-8")

        result = runner.invoke(main, ["sync", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "missing required keys: output_dir" in result.output

    def test_sync_watch_dir_not_found(self, runner, tmp_path):
        """Test syncing a directory that does not exist."""
        result = runner.invoke(main, ["sync", str(tmp_path / "nope"), str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "Not a directory" in result.output


class TestCleanCommand:
    """Tests for the clean command."""

    @pytest.fixture
    def dist(self, tmp_path):
        dist = tmp_path / "dist"
        (dist / "editor").mkdir(parents=True)
        (dist / "editor" / "pack.json").write_text("{}", encoding="utf-8")
        (dist / "editor" / "Level.ts").write_text("", encoding="utf-8")
        (dist / "debug.html").write_text("", encoding="utf-8")
        (dist / "publicroot").write_text("debug.html\n../outside\n", encoding="utf-8")
        return dist

    def test_clean(self, runner, dist):
        """Test removing editor-only files."""
        result = runner.invoke(main, ["clean", str(dist), "--watch-dir-name", "editor"])

        assert result.exit_code == 0
        assert "Removed 3 path(s)" in result.output
        assert "Refusing to remove '../outside'" in result.output
        assert (dist / "editor" / "pack.json").exists()
        assert not (dist / "debug.html").exists()

    def test_clean_dry_run(self, runner, dist):
        """Test dry run leaves everything in place."""
        result = runner.invoke(
            main, ["clean", str(dist), "--watch-dir-name", "editor", "--dry-run"]
        )

        assert result.exit_code == 0
        assert "Would remove 3 path(s)" in result.output
        assert "Would remove:" in result.output
        assert (dist / "debug.html").exists()

    def test_clean_requires_watch_dir_name(self, runner, dist):
        """Test --watch-dir-name is required."""
        result = runner.invoke(main, ["clean", str(dist)])

        assert result.exit_code != 0


class TestVersion:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "phaserflow" in result.output
