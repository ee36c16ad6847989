"""Tests for sectionwatch.cli module."""

import sys
from io import StringIO
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock, patch

import pytest

from sectionwatch.cli import (
    DEFAULT_CONFIG_TEMPLATE,
    create_default_config,
    list_sections,
    main,
    parse_args,
    resolve_config,
)
from sectionwatch.config import default_config, load_config
from sectionwatch.errors import ConfigurationError


class TestCreateDefaultConfig:
    """Tests for create_default_config function."""

    def test_create_default_config_success(self):
        """Test successful config creation."""
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "sectionwatch.toml"
            result = create_default_config(config_path)

            assert result is True
            assert config_path.exists()
            assert config_path.read_text() == DEFAULT_CONFIG_TEMPLATE

    def test_create_default_config_already_exists(self):
        """Test that existing config is not overwritten."""
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "sectionwatch.toml"
            existing_content = "# Existing config"
            config_path.write_text(existing_content)

            result = create_default_config(config_path)

            assert result is False
            assert config_path.read_text() == existing_content

    def test_create_default_config_creates_parent_dirs(self):
        """Test that parent directories are created."""
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "subdir" / "nested" / "sectionwatch.toml"
            result = create_default_config(config_path)

            assert result is True
            assert config_path.exists()

    def test_create_default_config_template_valid_toml(self):
        """Test that the written template loads."""
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "sectionwatch.toml"
            create_default_config(config_path)

            config = load_config(config_path)
            assert [r.name for r in config.roots] == ["manual", "builder"]


class TestParseArgs:
    """Tests for parse_args function."""

    def test_parse_args_default(self):
        """Test default arguments."""
        args = parse_args([])
        assert args.root == "."
        assert args.config is None
        assert not args.init
        assert not args.list
        assert not args.verbose

    def test_parse_args_flags(self):
        """Test short flags."""
        args = parse_args(["-r", "site", "-c", "custom.toml", "-v"])
        assert args.root == "site"
        assert args.config == "custom.toml"
        assert args.verbose

    def test_parse_args_version_flag(self):
        """Test --version flag exits with version."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_parse_args_help_flag(self):
        """Test --help flag exits with help."""
        with patch("sys.stdout", new_callable=StringIO), pytest.raises(SystemExit) as exc_info:
            parse_args(["--help"])
        assert exc_info.value.code == 0


class TestResolveConfig:
    """Tests for config discovery."""

    def test_defaults_without_file(self, project):
        assert resolve_config(project, None) == default_config(project)

    def test_project_file_used(self, project):
        (project / "sectionwatch.toml").write_text("quiet_window_ms = 200\n")
        assert resolve_config(project, None).quiet_window == pytest.approx(0.2)

    def test_explicit_file_must_exist(self, project):
        with pytest.raises(ConfigurationError):
            resolve_config(project, str(project / "missing.toml"))

    def test_list_sections(self, project):
        lines = list_sections(default_config(project))
        assert lines[0].startswith("1-intro")
        assert lines[0].endswith("npm run build:1")
        assert lines[-1].split() == ["website", "npm", "run", "build:website"]


class TestMain:
    """Tests for main function."""

    def test_main_runs_dispatcher(self, project):
        """Test main builds a Dispatcher and serves it without changing directory."""
        cwd = Path.cwd()
        with (
            patch("sectionwatch.cli.Dispatcher") as mock_dispatcher,
            patch("sectionwatch.cli.asyncio.run") as mock_run,
        ):
            main(["--root", str(project)])

        config = mock_dispatcher.call_args[0][0]
        assert config.project_root == project.resolve()
        mock_run.assert_called_once_with(mock_dispatcher.return_value.serve.return_value)
        assert Path.cwd() == cwd

    def test_main_init(self, tmp_path):
        """Test --init writes the template and exits."""
        with patch("builtins.print") as mock_print:
            main(["--root", str(tmp_path), "--init"])

        assert (tmp_path / "sectionwatch.toml").read_text() == DEFAULT_CONFIG_TEMPLATE
        assert "Created default config at:" in mock_print.call_args[0][0]

    def test_main_list(self, project, capsys):
        main(["--root", str(project), "--list"])
        out = capsys.readouterr().out
        assert "3-testing" in out
        assert "npm run build:3" in out

    def test_main_missing_root_directory(self, project):
        """Test a missing watch root exits non-zero with a diagnostic."""
        with (
            patch("sectionwatch.cli.Dispatcher", side_effect=ConfigurationError("Watch root 'manual' not found")),
            patch("sys.stderr", new_callable=StringIO) as stderr,
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["--root", str(project)])

        assert exc_info.value.code == 1
        assert "manual" in stderr.getvalue()

    def test_main_missing_project_root(self, tmp_path):
        with patch("sys.stderr", new_callable=StringIO), pytest.raises(SystemExit) as exc_info:
            main(["--root", str(tmp_path / "nope")])
        assert exc_info.value.code == 1

    def test_main_keyboard_interrupt(self, project):
        """Test handling of KeyboardInterrupt (Ctrl+C)."""
        with (
            patch("sectionwatch.cli.Dispatcher", return_value=MagicMock()),
            patch("sectionwatch.cli.asyncio.run", side_effect=KeyboardInterrupt()),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["--root", str(project)])

        assert exc_info.value.code == 130

    def test_main_permission_error(self, tmp_path):
        """Test handling of permission errors."""
        with (
            patch("sectionwatch.cli.create_default_config", side_effect=PermissionError("Access denied")),
            patch("sys.stderr", new_callable=StringIO),
            pytest.raises(SystemExit) as exc_info,
        ):
            main(["--root", str(tmp_path), "--init"])

        assert exc_info.value.code == 1


def test_module_has_entry_point():
    """Test the console script target exists."""
    assert callable(sys.modules["sectionwatch.cli"].main)
