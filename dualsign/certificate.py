#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.certificate"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


import os
import re
import shutil
import tempfile
from logging import getLogger
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import pkcs12
from dualsign import __env__
from dualsign.errors import CertificateError
from dualsign.tool_runner import ToolRunner


logger = getLogger()

FINGERPRINT_PATTERN = re.compile(r"^[0-9A-Fa-f]{40}$")


def is_valid_fingerprint(fingerprint: str) -> bool:
    if not isinstance(fingerprint, str):
        return False
    return FINGERPRINT_PATTERN.match(fingerprint.strip()) is not None


def normalize_fingerprint(fingerprint: str) -> str:
    return fingerprint.strip().upper()


def get_pfx_thumbprint(pfx_file: str, password: str) -> str:
    """
    Returns the SHA1 thumbprint of the certificate held in a PKCS#12 bundle,
    which is what Windows uses to identify certificates in its stores
    """
    try:
        with open(pfx_file, "rb") as file_handle:
            pfx_data = file_handle.read()
    except OSError as exc:
        raise CertificateError(f"Cannot read certificate bundle {pfx_file}: {exc}")
    try:
        _, certificate, _ = pkcs12.load_key_and_certificates(
            pfx_data, password.encode("utf-8") if password else None
        )
    except ValueError as exc:
        raise CertificateError(
            f"Cannot decode certificate bundle {pfx_file}, is the password correct ? {exc}"
        )
    if certificate is None:
        raise CertificateError(f"Certificate bundle {pfx_file} holds no certificate")
    return certificate.fingerprint(hashes.SHA1()).hex().upper()


class CertificateHandle:
    """
    Certificate we sign with, imported tells whether we need to remove it afterwards
    """

    def __init__(self, thumbprint: str, imported: bool = False):
        self.thumbprint = normalize_fingerprint(thumbprint)
        self.imported = imported

    def __repr__(self):
        return f"CertificateHandle({self.thumbprint}, imported={self.imported})"


class CertificateStore:
    """
    Current user certificate store, handled by certutil
    """

    def __init__(
        self,
        runner: ToolRunner,
        certutil: str,
        store: str = __env__.CERTIFICATE_STORE,
    ):
        self.runner = runner
        self.certutil = certutil
        self.store = store

    def contains(self, thumbprint: str) -> bool:
        exit_code, output = self.runner.run(
            [self.certutil, "-user", "-verifystore", self.store, thumbprint],
            read_only=True,
        )
        if exit_code != 0:
            logger.debug(f"Certificate {thumbprint} lookup failed:\n{output}")
        return exit_code == 0

    def import_pfx(self, pfx_file: str, password: str) -> None:
        self.runner.check(
            [
                self.certutil,
                "-f",
                "-user",
                "-p",
                password or "",
                "-importpfx",
                self.store,
                pfx_file,
            ],
            error_class=CertificateError,
            msg=f"Cannot import certificate into {self.store} store",
            secrets=[password],
        )
        logger.info(f"Imported certificate bundle into current user {self.store} store")

    def delete(self, name: str) -> bool:
        """
        Best effort removal, we never fail on this one
        """
        exit_code, output = self.runner.run(
            [self.certutil, "-user", "-delstore", self.store, name]
        )
        if exit_code != 0:
            logger.warning(
                f"Could not remove certificate {name} from {self.store} store (exit code {exit_code}):\n{output}"
            )
            return False
        logger.info(f"Removed certificate {name} from {self.store} store")
        return True


class CertificateProvisioner:
    """
    Re-encodes a PKCS#12 bundle so the Windows store accepts it, then imports it

    openssl is used twice with the same password:
    - export the bundle to an unencrypted PEM
    - export the PEM back to a bundle using legacy 3DES encryption and sha1 mac
    """

    def __init__(self, runner: ToolRunner, store: CertificateStore, openssl: str):
        self.runner = runner
        self.store = store
        self.openssl = openssl

    def convert(self, pfx_file: str, password: str, work_dir: str) -> str:
        pem_file = os.path.join(work_dir, "certificate.pem")
        converted_file = os.path.join(work_dir, "certificate.pfx")
        password_arg = "pass:" + (password or "")
        self.runner.check(
            [
                self.openssl,
                "pkcs12",
                "-in",
                pfx_file,
                "-out",
                pem_file,
                "-nodes",
                "-passin",
                password_arg,
            ],
            error_class=CertificateError,
            msg=f"Cannot decode certificate bundle {pfx_file}",
            secrets=[password],
        )
        self.runner.check(
            [
                self.openssl,
                "pkcs12",
                "-export",
                "-in",
                pem_file,
                "-out",
                converted_file,
                "-passout",
                password_arg,
                "-keypbe",
                __env__.PKCS12_STORE_ENCRYPTION,
                "-certpbe",
                __env__.PKCS12_STORE_ENCRYPTION,
                "-macalg",
                __env__.PKCS12_STORE_MAC,
            ],
            error_class=CertificateError,
            msg="Cannot re-encode certificate bundle",
            secrets=[password],
        )
        return converted_file

    def provision(self, pfx_file: str, password: str) -> CertificateHandle:
        logger.info(f"Provisioning certificate from {pfx_file}")
        # The PEM file holds an unencrypted private key, keep it in a private directory
        work_dir = tempfile.mkdtemp(prefix="dualsign_")
        try:
            converted_file = self.convert(pfx_file, password, work_dir)
            if self.runner.dry_run:
                # Nothing was converted, the original bundle holds the same certificate
                thumbprint = get_pfx_thumbprint(pfx_file, password)
            else:
                thumbprint = get_pfx_thumbprint(converted_file, password)
            if self.store.contains(thumbprint):
                # Not ours to remove afterwards
                logger.info(
                    f"Certificate {thumbprint} already present in current user {self.store.store} store, not importing it"
                )
                handle = CertificateHandle(thumbprint)
            else:
                self.store.import_pfx(converted_file, password)
                handle = CertificateHandle(thumbprint, imported=not self.runner.dry_run)
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
        logger.info(f"Using certificate thumbprint {handle.thumbprint}")
        return handle
