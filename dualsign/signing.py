#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.signing"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import List
import os
from logging import getLogger
from dualsign import __env__
from dualsign.errors import SigningError, ManifestSigningError
from dualsign.payload import marker_extension_stripped
from dualsign.target import ResolvedTarget
from dualsign.tool_runner import ToolRunner


logger = getLogger()


class ExecutableSigner:
    """
    signtool wrapper, signs with sha256 file and timestamp digests
    """

    def __init__(
        self,
        runner: ToolRunner,
        signtool: str,
        timestamp_url: str,
        verbose: bool = False,
        verify: bool = False,
        ignore_errors: bool = False,
    ):
        self.runner = runner
        self.signtool = signtool
        self.timestamp_url = timestamp_url
        self.verbose = verbose
        self.verify = verify
        self.ignore_errors = ignore_errors

    def sign_command(self, executable: str, thumbprint: str) -> List[str]:
        command = [
            self.signtool,
            "sign",
            "/sha1",
            thumbprint,
            "/fd",
            __env__.EXECUTABLE_DIGEST,
            "/tr",
            self.timestamp_url,
            "/td",
            __env__.EXECUTABLE_DIGEST,
        ]
        if self.verbose:
            command.append("/v")
        command.append(executable)
        return command

    def verify_command(self, executable: str) -> List[str]:
        return [self.signtool, "verify", "/pa", executable]

    def sign(self, executable: str, thumbprint: str) -> None:
        if not os.path.isfile(executable) and not self.runner.dry_run:
            msg = f"Cannot sign {executable}, file does not exist"
            if not self.ignore_errors:
                raise SigningError(msg)
            logger.error(msg)
            return
        logger.info(f"Signing {executable}")
        self.runner.check(
            self.sign_command(executable, thumbprint),
            error_class=SigningError,
            msg=f"Could not sign {executable}",
            ignore_errors=self.ignore_errors,
        )
        if self.verify:
            self.runner.check(
                self.verify_command(executable),
                error_class=SigningError,
                msg=f"Signature of {executable} does not verify",
                ignore_errors=self.ignore_errors,
            )

    def sign_target(self, target: ResolvedTarget, thumbprint: str) -> None:
        for executable in (target.installer, target.executable):
            self.sign(executable, thumbprint)


class ManifestSigner:
    """
    mage wrapper, which only accepts sha1RSA for manifest signatures
    """

    def __init__(
        self,
        runner: ToolRunner,
        mage: str,
        timestamp_url: str,
        publisher: str,
        icon_file: str = None,
        ignore_errors: bool = False,
    ):
        self.runner = runner
        self.mage = mage
        self.timestamp_url = timestamp_url
        self.publisher = publisher
        self.icon_file = icon_file
        self.ignore_errors = ignore_errors

    def manifest_command(self, target: ResolvedTarget, thumbprint: str) -> List[str]:
        icon_file = self.icon_file or target.project_name + ".ico"
        return [
            self.mage,
            "-Update",
            target.manifest,
            "-FromDirectory",
            target.directory,
            "-CertHash",
            thumbprint,
            "-Algorithm",
            __env__.MANIFEST_ALGORITHM,
            "-IconFile",
            icon_file,
            "-TimestampUri",
            self.timestamp_url,
        ]

    def descriptor_command(self, target: ResolvedTarget, thumbprint: str) -> List[str]:
        return [
            self.mage,
            "-Update",
            target.descriptor,
            "-AppManifest",
            target.manifest,
            "-CertHash",
            thumbprint,
            "-Algorithm",
            __env__.MANIFEST_ALGORITHM,
            "-Publisher",
            self.publisher,
            "-TimestampUri",
            self.timestamp_url,
        ]

    def sign_target(self, target: ResolvedTarget, thumbprint: str) -> None:
        journal_file = os.path.join(target.publish_dir, __env__.JOURNAL_FILENAME)
        with marker_extension_stripped(
            target.directory,
            target.marker_extension,
            journal_file,
            excluded=(target.manifest, target.descriptor),
            dry_run=self.runner.dry_run,
        ):
            logger.info(f"Signing manifest {target.manifest}")
            self.runner.check(
                self.manifest_command(target, thumbprint),
                error_class=ManifestSigningError,
                msg=f"Could not sign manifest {target.manifest}",
                ignore_errors=self.ignore_errors,
            )
            logger.info(f"Signing deployment descriptor {target.descriptor}")
            self.runner.check(
                self.descriptor_command(target, thumbprint),
                error_class=ManifestSigningError,
                msg=f"Could not sign deployment descriptor {target.descriptor}",
                ignore_errors=self.ignore_errors,
            )
