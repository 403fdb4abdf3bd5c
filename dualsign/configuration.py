#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.configuration"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import Any
from copy import deepcopy
from pathlib import Path
import zlib
from logging import getLogger
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError
from ruamel.yaml.comments import CommentedMap
from packaging.version import parse as version_parse, InvalidVersion
from dualsign import __env__
from dualsign.errors import ConfigurationError


MIN_CONF_VERSION = "1.0.0"
MAX_CONF_VERSION = "1.99.99"
CURRENT_CONF_VERSION = "1.0.0"


logger = getLogger()


# This is what a config file looks like
empty_config_dict = {
    "conf_version": CURRENT_CONF_VERSION,
    "project_name": None,
    "publish_dir": None,
    "publisher": None,
    "timestamp_url": __env__.DEFAULT_TIMESTAMP_URL,
    "certificate": {
        "pfx": None,
        "pfx_password": None,
        "fingerprint": None,
    },
    "tools": {
        "signtool": None,
        "mage": None,
        "openssl": None,
        "certutil": None,
    },
    "options": {
        "installer": __env__.DEFAULT_INSTALLER,
        "icon_file": None,
        "marker_extension": __env__.DEFAULT_MARKER_EXTENSION,
        "version_sort": "lexical",
        "ignore_tool_errors": False,
        "verify": False,
        "timeout": __env__.DEFAULT_TOOL_TIMEOUT,
    },
}


def convert_to_commented_map(
    source_dict,
):
    if isinstance(source_dict, dict):
        return CommentedMap(
            {k: convert_to_commented_map(v) for k, v in source_dict.items()}
        )
    return source_dict


def get_default_config() -> dict:
    """
    Returns a config dict as nested CommentedMaps (used by ruamel.yaml to keep comments intact)
    """
    full_config = deepcopy(empty_config_dict)

    return convert_to_commented_map(full_config)


def g(config: dict, path: str, sep: str = ".", default: Any = None) -> Any:
    """
    Getter for dot notation in a dict
    g(config, 'options.timeout') == config['options']['timeout']
    Missing keys and empty values give default
    """
    data = config
    for key in path.split(sep):
        if not isinstance(data, dict) or key not in data:
            return default
        data = data[key]
    return default if data is None else data


def s(config: dict, path: str, value: Any, sep: str = ".") -> None:
    """
    Setter for dot notation in a dict, creates intermediate levels if needed
    """
    data = config
    keys = path.split(sep)
    for key in keys[:-1]:
        if not isinstance(data.get(key), dict):
            data[key] = CommentedMap()
        data = data[key]
    data[keys[-1]] = value


def merge_config(base: dict, overrides: dict) -> dict:
    """
    Recursively apply non empty override values onto base
    """
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_config(base[key], value)
        elif value is not None:
            base[key] = value
    return base


def _get_config_file_checksum(config_file: Path) -> str:
    """
    It's nice to log checksums of config file to see whenever it was changed
    """
    with open(config_file, "rb") as fh:
        cur_hash = 0
        while True:
            s = fh.read(65536)
            if len(s) == 0:
                break
            cur_hash = zlib.crc32(s, cur_hash)
        return "%08X" % (cur_hash & 0xFFFFFFFF)


def _load_config_file(config_file: Path) -> dict:
    try:
        with open(config_file, "r", encoding="utf-8") as file_handle:
            yaml = YAML(typ="rt")
            file_config = yaml.load(file_handle)
    except OSError as exc:
        raise ConfigurationError(
            f"Cannot load configuration file from {config_file}: {exc}"
        )
    except YAMLError as exc:
        raise ConfigurationError(f"Config file {config_file} is not valid YAML: {exc}")

    if not file_config:
        raise ConfigurationError(f"Config file {config_file} seems empty !")
    if not isinstance(file_config, dict):
        raise ConfigurationError(f"Config file {config_file} is not a mapping")

    try:
        conf_version = version_parse(str(file_config.get("conf_version")))
    except InvalidVersion as exc:
        raise ConfigurationError(
            f"Cannot read conf version from config file {config_file}, which seems bogus: {exc}"
        )
    if not version_parse(MIN_CONF_VERSION) <= conf_version <= version_parse(
        MAX_CONF_VERSION
    ):
        raise ConfigurationError(
            f"Config file {config_file} version {str(conf_version)} is not in required version range min={MIN_CONF_VERSION}, max={MAX_CONF_VERSION}"
        )
    return file_config


def load_config(config_file: Path = None) -> dict:
    """
    Returns default config, updated with given config file values if any
    """
    full_config = get_default_config()
    if config_file is None:
        return full_config
    if not isinstance(config_file, Path):
        config_file = Path(config_file)
    file_config = _load_config_file(config_file)
    merge_config(full_config, file_config)
    logger.info(
        f"Loaded config {_get_config_file_checksum(config_file)} in {config_file.absolute()}"
    )
    return full_config
