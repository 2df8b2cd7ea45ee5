"""Tests for the srcbundle command-line interface."""
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from srcbundle.bundler import BundleConfig
from srcbundle.cli import CLIError, build_config_from_args, exclude_output, main, parse_arguments
from srcbundle.core.constants import SRCBUNDLE_VERSION
from srcbundle.infrastructure.logger import LogLevel, get_logger


@pytest.fixture
def output(tmp_path: Path) -> Path:
    out_dir = tmp_path / "dist"
    out_dir.mkdir()
    return out_dir / "app.zip"


def read_zip(path):
    with zipfile.ZipFile(path) as zf:
        return {info.filename: (zf.read(info), info.compress_type) for info in zf.infolist()}


class TestParseArguments:
    """Test argument parsing."""

    def test_parse_basic_arguments(self, project_root, output):
        args = parse_arguments([str(project_root), "-o", str(output)])

        assert args.project_root == str(project_root)
        assert args.output == str(output)
        assert args.includes is None
        assert args.minify is None
        assert args.compress is None
        assert not args.debug

    def test_repeatable_rules(self, project_root, output):
        args = parse_arguments(
            [
                str(project_root),
                "-o",
                str(output),
                "--include",
                "lib/**",
                "--include",
                "*.json",
                "--exclude",
                "**/*.test.js",
            ]
        )

        assert args.includes == ["lib/**", "*.json"]
        assert args.excludes == ["**/*.test.js"]

    def test_transform_flags(self, project_root, output):
        args = parse_arguments(
            [str(project_root), "-o", str(output), "--method", "compile", "--minify", "--no-compress"]
        )

        assert args.method == "compile"
        assert args.minify is True
        assert args.compress is False

    def test_unknown_method_exits(self, project_root, output):
        with pytest.raises(SystemExit):
            parse_arguments([str(project_root), "-o", str(output), "--method", "webpack"])

    def test_output_required(self, project_root):
        with pytest.raises(SystemExit):
            parse_arguments([str(project_root)])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["--version"])

        assert exc_info.value.code == 0
        assert SRCBUNDLE_VERSION in capsys.readouterr().out

    def test_missing_root(self, tmp_path, output):
        with pytest.raises(CLIError, match="does not exist"):
            parse_arguments([str(tmp_path / "missing"), "-o", str(output)])

    def test_root_is_file(self, tmp_path, output):
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        with pytest.raises(CLIError, match="not a directory"):
            parse_arguments([str(file_path), "-o", str(output)])

    def test_missing_output_directory(self, project_root, tmp_path):
        with pytest.raises(CLIError, match="Output directory"):
            parse_arguments([str(project_root), "-o", str(tmp_path / "nope" / "app.zip")])

    def test_missing_config_file(self, project_root, output, tmp_path):
        with pytest.raises(CLIError, match="Configuration file"):
            parse_arguments([str(project_root), "-o", str(output), "-c", str(tmp_path / "x.yaml")])


class TestBuildConfigFromArgs:
    """Test the CLI configuration layer."""

    def test_only_given_options_are_set(self, project_root, output):
        args = parse_arguments([str(project_root), "-o", str(output)])

        assert build_config_from_args(args) == {}

    def test_all_options(self, project_root, output, tmp_path):
        args = parse_arguments(
            [
                str(project_root),
                "-o",
                str(output),
                "--include",
                "lib/**",
                "--exclude",
                "*.md",
                "--method",
                "compile",
                "--minify",
                "--no-compress",
                "--filter-files",
                "--debug",
                "--log-file",
                str(tmp_path / "run.log"),
            ]
        )

        assert build_config_from_args(args) == {
            "includes": ["lib/**"],
            "excludes": ["*.md"],
            "method": "compile",
            "minify": True,
            "compress": False,
            "filter_files": True,
            "logging": {"level": "DEBUG", "file": str(tmp_path / "run.log")},
        }


class TestExcludeOutput:
    """Test keeping the archive out of its own contents."""

    def test_output_inside_root_is_excluded(self, tmp_path):
        config = BundleConfig(project_root=tmp_path.resolve(), includes=["**"])

        updated = exclude_output(config, str(tmp_path / "dist" / "app[1].zip"))

        pattern = updated.excludes[-1]
        assert pattern.search("dist/app[1].zip")
        assert not pattern.search("dist/app1.zip")

    def test_output_outside_root_is_untouched(self, tmp_path):
        config = BundleConfig(project_root=(tmp_path / "project").resolve())

        assert exclude_output(config, str(tmp_path / "app.zip")) is config


class TestMain:
    """Test the main entry point."""

    def test_bundles_into_zip(self, project_root, output):
        code = main(
            [str(project_root), "-o", str(output), "--include", "lib/**", "--exclude", "**/*.test.js"]
        )

        assert code == 0
        entries = read_zip(output)
        assert list(entries) == ["lib/a.js", "lib/util/b.js"]
        assert entries["lib/a.js"][0] == (project_root / "lib" / "a.js").read_bytes()
        assert entries["lib/a.js"][1] == zipfile.ZIP_DEFLATED

    def test_no_compress(self, project_root, output):
        assert main([str(project_root), "-o", str(output), "--include", "*.md", "--no-compress"]) == 0

        assert read_zip(output)["README.md"][1] == zipfile.ZIP_STORED

    def test_project_config_discovered(self, project_root, output):
        (project_root / "srcbundle.yaml").write_text(
            yaml.dump({"srcbundle": {"includes": ["config/**"]}})
        )

        assert main([str(project_root), "-o", str(output)]) == 0

        assert list(read_zip(output)) == ["config/app.json"]

    def test_cli_overrides_config_file(self, project_root, output, tmp_path):
        config_path = tmp_path / "custom.yaml"
        config_path.write_text(yaml.dump({"includes": ["config/**"]}))

        code = main([str(project_root), "-o", str(output), "-c", str(config_path), "--include", "*.md"])

        assert code == 0
        assert list(read_zip(output)) == ["README.md"]

    def test_filter_files(self, project_root, output):
        (project_root / ".srcbundle-include").write_text("lib/**\n")
        (project_root / "lib" / ".srcbundle-ignore").write_text("*.test.js\nutil/\n")

        assert main([str(project_root), "-o", str(output), "--filter-files"]) == 0

        assert list(read_zip(output)) == ["lib/.srcbundle-ignore", "lib/a.js"]

    def test_output_inside_project_not_bundled(self, project_root):
        (project_root / "dist").mkdir()
        output = project_root / "dist" / "app.zip"

        assert main([str(project_root), "-o", str(output), "--include", "**"]) == 0

        assert "dist/app.zip" not in read_zip(output)

    def test_debug_sets_log_level(self, project_root, output):
        main([str(project_root), "-o", str(output), "--debug"])

        assert get_logger().get_level() == LogLevel.DEBUG

    def test_log_file(self, project_root, output, tmp_path):
        log_file = tmp_path / "run.log"

        assert main([str(project_root), "-o", str(output), "--include", "*.md", "--log-file", str(log_file)]) == 0

        for handler in get_logger().logger.handlers:
            handler.flush()
        assert "Wrote artifact" in log_file.read_text()

    def test_invalid_pattern_returns_error(self, project_root, output, capsys):
        code = main([str(project_root), "-o", str(output), "--include", "lib/[oops"])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_compile_config_returns_error(self, project_root, output, capsys):
        code = main([str(project_root), "-o", str(output), "--include", "**", "--method", "compile"])

        assert code == 1
        assert ".babelrc" in capsys.readouterr().err
        assert not output.exists()

    def test_failed_stage_leaves_no_archive(self, project_root, output, fake_tool, capsys):
        (project_root / "srcbundle.yaml").write_text(
            yaml.dump(
                {
                    "srcbundle": {
                        "includes": ["**"],
                        "minify": True,
                        "minify_command": fake_tool("minify", "--fail"),
                    }
                }
            )
        )
        output.write_bytes(b"previous build")

        code = main([str(project_root), "-o", str(output)])

        assert code == 1
        assert "minify" in capsys.readouterr().err
        assert not output.exists()

    def test_cli_error_returns_error(self, tmp_path, output, capsys):
        code = main([str(tmp_path / "missing"), "-o", str(output)])

        assert code == 1
        assert "does not exist" in capsys.readouterr().err

    def test_keyboard_interrupt(self, project_root, output, capsys):
        with patch("srcbundle.cli.run", side_effect=KeyboardInterrupt):
            code = main([str(project_root), "-o", str(output)])

        assert code == 130
        assert "Interrupted" in capsys.readouterr().err

    def test_undecodable_marker_returns_error(self, project_root, output, capsys):
        (project_root / ".srcbundle-include").write_bytes(b"\xff\xfe\n")

        code = main([str(project_root), "-o", str(output), "--filter-files"])

        assert code == 1
        assert "not valid UTF-8" in capsys.readouterr().err
