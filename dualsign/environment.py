#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.environment"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import List, Optional
import os
import glob
import shutil
from logging import getLogger


logger = getLogger()


def _program_files_x86() -> str:
    return os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)")


def _program_files() -> str:
    return os.environ.get("ProgramFiles", r"C:\Program Files")


def _system_root() -> str:
    return os.environ.get("SystemRoot", r"C:\Windows")


# Glob patterns of default install locations, newest version wins
DEFAULT_TOOL_LOCATIONS = {
    "signtool": lambda: [
        os.path.join(
            _program_files_x86(), "Windows Kits", "10", "bin", "10.*", "x64", "signtool.exe"
        ),
        os.path.join(_program_files_x86(), "Windows Kits", "10", "bin", "x64", "signtool.exe"),
    ],
    "mage": lambda: [
        os.path.join(
            _program_files_x86(),
            "Microsoft SDKs",
            "Windows",
            "*",
            "bin",
            "NETFX * Tools",
            "mage.exe",
        ),
    ],
    "openssl": lambda: [
        os.path.join(_program_files(), "OpenSSL-Win64", "bin", "openssl.exe"),
        os.path.join(_program_files(), "Git", "usr", "bin", "openssl.exe"),
    ],
    "certutil": lambda: [
        os.path.join(_system_root(), "System32", "certutil.exe"),
    ],
}

# Tools that are usually found in PATH before looking at install locations
PATH_FIRST_TOOLS = ("openssl", "certutil")


class Environment:
    """
    Everything we need to know about the machine we run on
    Tests replace this with a fake
    """

    def is_admin(self) -> bool:
        if os.name == "nt":
            try:
                import ctypes

                return bool(ctypes.windll.shell32.IsUserAnAdmin())
            except (AttributeError, OSError) as exc:
                logger.debug(f"Cannot determine admin status: {exc}")
                return False
        return os.geteuid() == 0

    @staticmethod
    def _find_in_locations(patterns: List[str]) -> Optional[str]:
        for pattern in patterns:
            candidates = sorted(glob.glob(pattern), reverse=True)
            for candidate in candidates:
                if os.path.isfile(candidate):
                    return candidate
        return None

    def find_tool(self, name: str, configured_path: str = None) -> Optional[str]:
        """
        Returns full path to given tool, or None if not found
        A configured path must exist, we won't silently fall back to another binary
        """
        if configured_path:
            if os.path.isfile(configured_path):
                return configured_path
            logger.error(f"Configured {name} path {configured_path} does not exist")
            return None

        patterns = DEFAULT_TOOL_LOCATIONS.get(name, lambda: [])()
        if name in PATH_FIRST_TOOLS:
            tool_path = shutil.which(name) or self._find_in_locations(patterns)
        else:
            tool_path = self._find_in_locations(patterns) or shutil.which(name)
        if tool_path:
            logger.debug(f"Found {name} at {tool_path}")
        return tool_path
