#! /usr/bin/env python3
#  -*- coding: utf-8 -*-


__intname__ = "dualsign_configuration_tests"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "BSD-3-Clause"
__build__ = "2025061001"


import os
import pytest
from dualsign import __env__
from dualsign.configuration import g, s, load_config
from dualsign.errors import ConfigurationError
from dualsign.orchestrator import SigningRequest


CONFIG_FILE_CONTENT = r"""
conf_version: 1.0.0
project_name: MyApp
publish_dir: C:\build\publish
publisher: My Company
certificate:
  fingerprint: 0123456789ABCDEF0123456789ABCDEF01234567
tools:
  mage: C:\Tools\mage.exe
options:
  version_sort: natural
  timeout: 120
"""


def test_default_config():
    full_config = load_config()
    assert g(full_config, "timestamp_url") == __env__.DEFAULT_TIMESTAMP_URL
    assert g(full_config, "options.marker_extension") == ".deploy"
    assert g(full_config, "options.version_sort") == "lexical"
    assert g(full_config, "certificate.pfx") is None


def test_load_config_file(tmp_path):
    config_file = tmp_path / "dualsign.conf"
    config_file.write_text(CONFIG_FILE_CONTENT, encoding="utf-8")

    full_config = load_config(config_file)
    assert g(full_config, "project_name") == "MyApp"
    assert g(full_config, "publish_dir") == "C:\\build\\publish"
    assert g(full_config, "tools.mage") == "C:\\Tools\\mage.exe"
    # Values not in file keep their defaults
    assert g(full_config, "options.installer") == "setup.exe"
    assert g(full_config, "timestamp_url") == __env__.DEFAULT_TIMESTAMP_URL

    request = SigningRequest.from_config(full_config)
    assert request.fingerprint == "0123456789ABCDEF0123456789ABCDEF01234567"
    assert request.version_sort == "natural"
    assert request.timeout == 120
    assert request.mage == "C:\\Tools\\mage.exe"
    assert request.signtool is None


def test_dist_config_file_loads():
    dist_file = os.path.join(
        os.path.dirname(__file__), os.pardir, "dualsign", "dualsign.conf.dist"
    )
    full_config = load_config(dist_file)
    assert g(full_config, "project_name") == "MyApp"
    assert g(full_config, "certificate.pfx_password") is None


def test_empty_config_file(tmp_path):
    config_file = tmp_path / "empty.conf"
    config_file.write_text("", encoding="utf-8")
    with pytest.raises(ConfigurationError) as exc_info:
        load_config(config_file)
    assert exc_info.value.exit_code == __env__.EXIT_CONFIG_ERROR


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "nonexistent.conf")


@pytest.mark.parametrize("conf_version", ["0.9.0", "2.0.0", "not a version"])
def test_bogus_conf_version(tmp_path, conf_version):
    config_file = tmp_path / "dualsign.conf"
    config_file.write_text(f"conf_version: {conf_version}\nproject_name: MyApp\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_file)


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / "dualsign.conf"
    config_file.write_text("conf_version: 1.0.0\nproject_name: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_file)


def test_dot_notation_helpers():
    full_config = {"options": {"timeout": None}}
    assert g(full_config, "options.timeout", default=600) == 600
    assert g(full_config, "options.missing.deeper", default="x") == "x"
    s(full_config, "options.timeout", 30)
    s(full_config, "tools.signtool", "C:\\signtool.exe")
    assert g(full_config, "options.timeout") == 30
    assert g(full_config, "tools.signtool") == "C:\\signtool.exe"
