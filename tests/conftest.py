#! /usr/bin/env python3
#  -*- coding: utf-8 -*-


__intname__ = "dualsign_tests_conftest"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "BSD-3-Clause"
__build__ = "2025061001"


"""
Fakes for external tools and environment, plus publish directory and certificate fixtures
"""

import sys
import os
import ntpath
import shutil
import datetime
from pathlib import Path
import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import BestAvailableEncryption, pkcs12

sys.path.insert(0, os.path.normpath(os.path.join(os.path.dirname(__file__), "..")))

from dualsign.tool_runner import ToolRunner


PROJECT = "Proj"
PFX_PASSWORD = "s3cr3t p@ss"

# Payload files, relative to the version directory, as the publish step leaves them
PAYLOAD_FILES = [
    "Proj.exe.deploy",
    "Proj.dll.deploy",
    "Proj.ico.deploy",
    os.path.join("Resources", "fr", "Proj.resources.dll.deploy"),
    os.path.join("Data", "settings.json.deploy"),
]
DESCRIPTOR_FILES = ["Proj.exe.manifest", "Proj.application"]


def tool_name(command):
    """
    Tool paths are windows paths, even when tests run elsewhere
    """
    name = ntpath.basename(command[0]).lower()
    if name.endswith(".exe"):
        name = name[:-4]
    return name


class FakeEnvironment:
    def __init__(self, admin=True, missing=()):
        self.admin = admin
        self.missing = missing

    def is_admin(self):
        return self.admin

    def find_tool(self, name, configured_path=None):
        if name in self.missing:
            return None
        return configured_path or f"C:\\Tools\\{name}.exe"


class FakeRunner(ToolRunner):
    """
    Records commands instead of running them
    handlers is a dict of tool name -> callable(command) returning an exit code (or None for 0)
    """

    def __init__(self, handlers=None, dry_run=False):
        super().__init__(dry_run=dry_run)
        self.handlers = handlers or {}
        self.commands = []

    def run(self, command, secrets=None, read_only=False):
        self.commands.append(list(command))
        if self.dry_run and not read_only:
            return 0, ""
        handler = self.handlers.get(tool_name(command))
        exit_code = 0
        if handler:
            exit_code = handler(command) or 0
        return exit_code, "" if exit_code == 0 else "tool failure"

    def tools_called(self):
        return [tool_name(command) for command in self.commands]

    def commands_for(self, tool):
        return [command for command in self.commands if tool_name(command) == tool]


def make_publish_dir(root: Path, versions=("1_0_0_1",), project=PROJECT) -> Path:
    publish_dir = root / "publish"
    publish_dir.mkdir()
    (publish_dir / "setup.exe").write_bytes(b"MZ setup")
    (publish_dir / f"{project}.application").write_text("<assembly/>")
    for version in versions:
        version_dir = publish_dir / "Application Files" / f"{project}_{version}"
        for relative_path in PAYLOAD_FILES + DESCRIPTOR_FILES:
            file_path = version_dir / relative_path.replace("Proj", project)
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_text(relative_path)
    return publish_dir


def list_files(directory: Path):
    return sorted(
        str(path.relative_to(directory)) for path in directory.rglob("*") if path.is_file()
    )


@pytest.fixture
def publish_dir(tmp_path):
    return make_publish_dir(tmp_path)


@pytest.fixture
def version_dir(publish_dir):
    return publish_dir / "Application Files" / f"{PROJECT}_1_0_0_1"


@pytest.fixture(scope="session")
def certificate_bundle(tmp_path_factory):
    """
    Self signed code signing certificate as PKCS#12 bundle
    Returns bundle path and expected thumbprint
    """
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "dualsign test")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    pfx_data = pkcs12.serialize_key_and_certificates(
        b"dualsign test",
        key,
        certificate,
        None,
        BestAvailableEncryption(PFX_PASSWORD.encode("utf-8")),
    )
    pfx_file = tmp_path_factory.mktemp("certs") / "codesign.pfx"
    pfx_file.write_bytes(pfx_data)
    return pfx_file, certificate.fingerprint(hashes.SHA1()).hex().upper()


def openssl_handler(pfx_file):
    """
    Fakes openssl by producing the re-encoded bundle as a copy of the original one
    """

    def _handler(command):
        if "-export" in command:
            shutil.copyfile(pfx_file, command[command.index("-out") + 1])
        else:
            Path(command[command.index("-out") + 1]).write_text("PEM")

    return _handler


def certutil_handler(present=False, import_exit_code=0):
    """
    Fakes certutil, with the certificate either already in the store or not
    """

    def _handler(command):
        if "-verifystore" in command:
            return 0 if present else 0x80092004
        if "-importpfx" in command:
            return import_exit_code
        return 0

    return _handler
