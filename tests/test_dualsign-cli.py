#! /usr/bin/env python3
#  -*- coding: utf-8 -*-


__intname__ = "dualsign_cli_tests"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "BSD-3-Clause"
__build__ = "2025061001"


"""
Launch the CLI the way a build script would, and check exit codes
External tools are never reached since every run here fails on preconditions
"""

import sys
import pytest
from dualsign import __main__
from dualsign import __env__
from dualsign.common import command_to_string, hide_secrets
from dualsign.environment import Environment
from dualsign.errors import CertificateError, ToolError
from dualsign.tool_runner import ToolRunner


@pytest.fixture(autouse=True)
def no_atexit(monkeypatch):
    # Don't stack exit handlers on the test process
    monkeypatch.setattr(__main__.atexit, "register", lambda *args, **kwargs: None)


def _run_cli(tmp_path, *args):
    with pytest.raises(SystemExit) as exc_info:
        __main__.main(["--log-file", str(tmp_path / "dualsign.log")] + list(args))
    return exc_info.value.code


def test_cli_version(tmp_path, capsys):
    assert _run_cli(tmp_path, "--version") == 0
    assert "dualsign" in capsys.readouterr().out


def test_cli_not_admin(tmp_path, monkeypatch):
    monkeypatch.setattr(Environment, "is_admin", lambda self: False)
    exit_code = _run_cli(tmp_path, "-p", "Proj", "-d", str(tmp_path))
    assert exit_code == __env__.EXIT_NOT_ADMIN


def test_cli_missing_publish_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(Environment, "is_admin", lambda self: True)
    exit_code = _run_cli(tmp_path, "-p", "Proj", "-d", str(tmp_path / "nonexistent"))
    assert exit_code == __env__.EXIT_NO_PUBLISH_DIR


def test_cli_missing_application_files(tmp_path, monkeypatch):
    monkeypatch.setattr(Environment, "is_admin", lambda self: True)
    exit_code = _run_cli(tmp_path, "-p", "Proj", "-d", str(tmp_path))
    assert exit_code == __env__.EXIT_NO_APPLICATION_FILES
    log_content = (tmp_path / "dualsign.log").read_text(encoding="utf-8")
    assert "No 'Application Files' directory" in log_content


def test_cli_malformed_fingerprint(publish_dir, tmp_path, monkeypatch):
    monkeypatch.setattr(Environment, "is_admin", lambda self: True)
    exit_code = _run_cli(
        tmp_path, "-p", "Proj", "-d", str(publish_dir), "--fingerprint", "ABCDEF"
    )
    assert exit_code == __env__.EXIT_BAD_FINGERPRINT


def test_cli_config_file_error(tmp_path):
    exit_code = _run_cli(tmp_path, "-c", str(tmp_path / "nonexistent.conf"))
    assert exit_code == __env__.EXIT_CONFIG_ERROR


def test_cli_arguments_override_config_file(publish_dir, tmp_path, monkeypatch):
    """
    Config file points to a nonexistent directory, command line fixes it
    """
    monkeypatch.setattr(Environment, "is_admin", lambda self: True)
    config_file = tmp_path / "dualsign.conf"
    config_file.write_text(
        "conf_version: 1.0.0\nproject_name: Proj\npublish_dir: /nonexistent\ntimestamp_url: not_an_url\n",
        encoding="utf-8",
    )
    exit_code = _run_cli(tmp_path, "-c", str(config_file), "-d", str(publish_dir))
    assert exit_code == __env__.EXIT_BAD_TIMESTAMP_URL


def test_hide_secrets():
    assert hide_secrets("certutil -p s3cr3t", ["s3cr3t"]) == f"certutil -p {__env__.HIDDEN_BY_DUALSIGN}"
    assert hide_secrets("nothing to hide", [None, ""]) == "nothing to hide"
    assert hide_secrets(None, ["s3cr3t"]) is None


def test_command_to_string():
    command = ["C:\\Program Files\\mage.exe", "-Publisher", "My Company", "-p", "pass:s3cr3t"]
    line = command_to_string(command, ["s3cr3t"])
    assert '"C:\\Program Files\\mage.exe"' in line
    assert '"My Company"' in line
    assert "s3cr3t" not in line


def test_tool_runner_runs_argument_lists():
    runner = ToolRunner(timeout=60)
    exit_code, output = runner.run([sys.executable, "-c", "print('signed')"])
    assert exit_code == 0
    assert "signed" in output


def test_tool_runner_hides_secrets_in_output():
    runner = ToolRunner(timeout=60)
    _, output = runner.run([sys.executable, "-c", "print('s3cr3t')"], secrets=["s3cr3t"])
    assert "s3cr3t" not in output


def test_tool_runner_check_raises():
    runner = ToolRunner(timeout=60)
    with pytest.raises(ToolError) as exc_info:
        runner.check([sys.executable, "-c", "import sys; sys.exit(3)"], msg="Tool failed")
    assert exc_info.value.tool_exit_code == 3

    output = runner.check(
        [sys.executable, "-c", "import sys; sys.exit(3)"], ignore_errors=True
    )
    assert output == ""


def test_tool_runner_dry_run():
    runner = ToolRunner(dry_run=True)
    assert runner.run([sys.executable, "-c", "import sys; sys.exit(3)"]) == (0, "")
    # Lookups still happen so dry runs report missing certificates
    exit_code, _ = runner.run(
        [sys.executable, "-c", "import sys; sys.exit(3)"], read_only=True
    )
    assert exit_code == 3


def test_tool_runner_check_raises_certificate_error():
    runner = ToolRunner(timeout=60)
    with pytest.raises(CertificateError) as exc_info:
        runner.check(
            [sys.executable, "-c", "import sys; sys.exit(1)"],
            error_class=CertificateError,
            msg="Cannot decode certificate bundle",
        )
    assert exc_info.value.exit_code == __env__.EXIT_CERTIFICATE_FAILURE
    assert exc_info.value.tool_exit_code == 1


def test_find_configured_tool(tmp_path):
    tool = tmp_path / "signtool.exe"
    tool.write_bytes(b"MZ")
    environment = Environment()
    assert environment.find_tool("signtool", str(tool)) == str(tool)
    assert environment.find_tool("signtool", str(tmp_path / "missing.exe")) is None
