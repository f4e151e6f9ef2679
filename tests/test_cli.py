import os
import shutil
import sys

import pytest
from click.testing import CliRunner

from pluto.cli.main import main


@pytest.fixture
def runner():
    return CliRunner()


def test_geometry_command(runner):
    result = runner.invoke(main, ["geometry", "--columns", "100", "--lines", "50"])

    assert result.exit_code == 0, result.output
    for value in ("80", "36", "10", "6"):
        assert value in result.output


def test_geometry_command_with_config(runner, tmp_path):
    config_file = tmp_path / "pluto.toml"
    config_file.write_text("[dimensions]\nwidth = 0.5\n")

    result = runner.invoke(
        main, ["geometry", "--columns", "100", "--lines", "50", "--config", str(config_file)]
    )

    assert result.exit_code == 0, result.output
    assert "50" in result.output


def test_config_command_shows_overrides(runner, tmp_path):
    config_file = tmp_path / "pluto.toml"
    config_file.write_text('border = "double"\n\n[task]\ncommand = "clang"\n')

    result = runner.invoke(main, ["config", "--config", str(config_file)])

    assert result.exit_code == 0, result.output
    assert "double" in result.output
    assert "clang" in result.output
    assert "default_shell" in result.output


def test_config_command_rejects_invalid_file(runner, tmp_path):
    config_file = tmp_path / "pluto.toml"
    config_file.write_text("blend = 500\n")

    result = runner.invoke(main, ["config", "--config", str(config_file)])

    assert result.exit_code != 0


@pytest.mark.skipif(
    sys.platform == "win32" or not os.path.exists("/bin/sh") or shutil.which("cc") is None,
    reason="requires a POSIX pseudo-terminal, /bin/sh and a C compiler",
)
def test_cmpi_command_runs_program(runner, tmp_path, monkeypatch, restore_logging):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "pluto.toml").write_text('[task]\ncommand = "cc"\n')
    (tmp_path / "hello.c").write_text('#include <stdio.h>\nint main(void){puts("cli-pluto");return 0;}\n')

    result = runner.invoke(
        main,
        ["cmpi", "hello.c", "--config", "pluto.toml", "--shell", "/bin/sh", "--idle", "3", "--log-dir", str(tmp_path / "logs")],
    )

    assert result.exit_code == 0, result.output
    assert "cli-pluto" in result.output
    assert (tmp_path / "logs" / "debug.log").exists()
