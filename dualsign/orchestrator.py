#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.orchestrator"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import Dict, Optional
import os
from urllib.parse import urlparse
from logging import getLogger
from dualsign import __env__
from dualsign.configuration import g
from dualsign.environment import Environment
from dualsign.errors import ConfigurationError, DualSignError, PreconditionError
from dualsign.certificate import (
    CertificateHandle,
    CertificateProvisioner,
    CertificateStore,
    is_valid_fingerprint,
    normalize_fingerprint,
)
from dualsign.payload import repair_interrupted_run
from dualsign.signing import ExecutableSigner, ManifestSigner
from dualsign.target import ResolvedTarget, resolve_target, VERSION_SORT_MODES
from dualsign.tool_runner import ToolRunner


logger = getLogger()


class SigningRequest:
    """
    Validated inputs of a signing run
    """

    def __init__(
        self,
        project_name: str = None,
        publish_dir: str = None,
        pfx: str = None,
        pfx_password: str = None,
        fingerprint: str = None,
        timestamp_url: str = __env__.DEFAULT_TIMESTAMP_URL,
        publisher: str = None,
        signtool: str = None,
        mage: str = None,
        openssl: str = None,
        certutil: str = None,
        installer: str = __env__.DEFAULT_INSTALLER,
        icon_file: str = None,
        marker_extension: str = __env__.DEFAULT_MARKER_EXTENSION,
        version_sort: str = "lexical",
        ignore_tool_errors: bool = False,
        verify: bool = False,
        timeout: int = __env__.DEFAULT_TOOL_TIMEOUT,
        verbose: bool = False,
        dry_run: bool = False,
    ):
        self.project_name = project_name
        self.publish_dir = publish_dir
        self.pfx = pfx
        self.pfx_password = pfx_password
        self.fingerprint = fingerprint
        self.timestamp_url = timestamp_url
        # Publisher defaults to project name, as the publish step does
        self.publisher = publisher or project_name
        self.signtool = signtool
        self.mage = mage
        self.openssl = openssl
        self.certutil = certutil
        self.installer = installer
        self.icon_file = icon_file
        self.marker_extension = marker_extension
        self.version_sort = version_sort
        self.ignore_tool_errors = ignore_tool_errors
        self.verify = verify
        self.timeout = timeout
        self.verbose = verbose
        self.dry_run = dry_run

    @classmethod
    def from_config(cls, full_config: dict, verbose: bool = False, dry_run: bool = False):
        pfx_password = g(full_config, "certificate.pfx_password")
        if pfx_password is None:
            pfx_password = os.environ.get(__env__.PFX_PASSWORD_ENV, None)
        timeout = g(full_config, "options.timeout", default=__env__.DEFAULT_TOOL_TIMEOUT)
        try:
            timeout = int(timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Bogus timeout given: {timeout}")
        # YAML may give us numbers for names and fingerprints
        return cls(
            project_name=_str_or_none(g(full_config, "project_name")),
            publish_dir=g(full_config, "publish_dir"),
            pfx=g(full_config, "certificate.pfx"),
            pfx_password=_str_or_none(pfx_password),
            fingerprint=_str_or_none(g(full_config, "certificate.fingerprint")),
            timestamp_url=g(full_config, "timestamp_url", default=__env__.DEFAULT_TIMESTAMP_URL),
            publisher=_str_or_none(g(full_config, "publisher")),
            signtool=g(full_config, "tools.signtool"),
            mage=g(full_config, "tools.mage"),
            openssl=g(full_config, "tools.openssl"),
            certutil=g(full_config, "tools.certutil"),
            installer=g(full_config, "options.installer", default=__env__.DEFAULT_INSTALLER),
            icon_file=g(full_config, "options.icon_file"),
            marker_extension=g(
                full_config, "options.marker_extension", default=__env__.DEFAULT_MARKER_EXTENSION
            ),
            version_sort=g(full_config, "options.version_sort", default="lexical"),
            ignore_tool_errors=bool(g(full_config, "options.ignore_tool_errors", default=False)),
            verify=bool(g(full_config, "options.verify", default=False)),
            timeout=timeout,
            verbose=verbose,
            dry_run=dry_run,
        )


def _str_or_none(value):
    return None if value is None else str(value)


def is_valid_timestamp_url(url: str) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_marker_extension(marker_extension: str) -> bool:
    """
    Marker must look like an extension, an empty one would match every file
    """
    if not marker_extension or not isinstance(marker_extension, str):
        return False
    return (
        marker_extension.startswith(".")
        and len(marker_extension) > 1
        and os.path.basename(marker_extension) == marker_extension
        and "\\" not in marker_extension
    )


class SigningOrchestrator:
    """
    Runs the whole signing sequence:
    - preconditions
    - certificate provisioning
    - executable signing with signtool (sha256)
    - manifest signing with mage (sha1RSA), with payload marker extensions stripped
    - certificate cleanup
    """

    def __init__(
        self,
        request: SigningRequest,
        environment: Environment = None,
        runner: ToolRunner = None,
    ):
        self.request = request
        self.environment = environment or Environment()
        self.runner = runner or ToolRunner(
            timeout=request.timeout,
            dry_run=request.dry_run,
            live_output=request.verbose,
        )
        self.tools: Dict[str, str] = {}
        self.target: Optional[ResolvedTarget] = None
        self.store: Optional[CertificateStore] = None

    def _require_tool(self, name: str, configured_path: str, exit_code: int) -> str:
        tool_path = self.environment.find_tool(name, configured_path)
        if not tool_path:
            raise PreconditionError(
                f"Cannot find {name}{' at ' + configured_path if configured_path else ''}",
                exit_code=exit_code,
            )
        self.tools[name] = tool_path
        return tool_path

    def check_preconditions(self) -> ResolvedTarget:
        """
        Every check that can be done without touching anything
        """
        request = self.request
        if not self.environment.is_admin():
            raise PreconditionError(
                "This program must be run with administrative privileges",
                exit_code=__env__.EXIT_NOT_ADMIN,
            )

        if (
            not request.project_name
            or os.path.basename(request.project_name) != request.project_name
            or request.project_name in (".", "..")
        ):
            raise PreconditionError(
                f"Bogus project name given: {request.project_name}",
                exit_code=__env__.EXIT_BAD_PROJECT_NAME,
            )
        if request.version_sort not in VERSION_SORT_MODES:
            raise PreconditionError(
                f"Bogus version sort mode given: {request.version_sort}",
                exit_code=__env__.EXIT_CONFIG_ERROR,
            )
        if not is_valid_marker_extension(request.marker_extension):
            raise PreconditionError(
                f"Bogus marker extension given: {request.marker_extension}",
                exit_code=__env__.EXIT_CONFIG_ERROR,
            )

        self.target = resolve_target(
            request.publish_dir,
            request.project_name,
            version_sort=request.version_sort,
            marker_extension=request.marker_extension,
            installer=request.installer,
        )

        if request.fingerprint and not is_valid_fingerprint(request.fingerprint):
            raise PreconditionError(
                f"Certificate fingerprint {request.fingerprint} is not a 40 character hexadecimal string",
                exit_code=__env__.EXIT_BAD_FINGERPRINT,
            )

        if not is_valid_timestamp_url(request.timestamp_url):
            raise PreconditionError(
                f"Timestamp URL {request.timestamp_url} is not a valid http(s) URL",
                exit_code=__env__.EXIT_BAD_TIMESTAMP_URL,
            )

        if request.pfx:
            if not os.path.isfile(request.pfx):
                raise PreconditionError(
                    f"Certificate bundle {request.pfx} does not exist",
                    exit_code=__env__.EXIT_NO_CERTIFICATE,
                )
            if request.pfx_password is None:
                raise PreconditionError(
                    f"No password given for certificate bundle {request.pfx}",
                    exit_code=__env__.EXIT_NO_CERTIFICATE,
                )
        elif not request.fingerprint:
            raise PreconditionError(
                "Neither a certificate bundle nor a certificate fingerprint was given",
                exit_code=__env__.EXIT_NO_CERTIFICATE,
            )

        self._require_tool("signtool", request.signtool, __env__.EXIT_NO_SIGNTOOL)
        self._require_tool("mage", request.mage, __env__.EXIT_NO_MAGE)
        if request.pfx:
            self._require_tool("openssl", request.openssl, __env__.EXIT_NO_CERT_TOOL)
        self._require_tool("certutil", request.certutil, __env__.EXIT_NO_CERT_TOOL)
        self.store = CertificateStore(self.runner, self.tools["certutil"])

        if not request.pfx:
            thumbprint = normalize_fingerprint(request.fingerprint)
            if not self.store.contains(thumbprint):
                raise PreconditionError(
                    f"Certificate {thumbprint} not found in current user {self.store.store} store",
                    exit_code=__env__.EXIT_FINGERPRINT_NOT_IN_STORE,
                )
        return self.target

    def provision_certificate(self) -> CertificateHandle:
        request = self.request
        if request.pfx:
            provisioner = CertificateProvisioner(
                self.runner, self.store, self.tools["openssl"]
            )
            handle = provisioner.provision(request.pfx, request.pfx_password)
            if (
                request.fingerprint
                and normalize_fingerprint(request.fingerprint) != handle.thumbprint
            ):
                logger.warning(
                    f"Given fingerprint {request.fingerprint} differs from certificate bundle thumbprint {handle.thumbprint}, using the latter"
                )
            return handle

        # Presence was checked with the preconditions
        thumbprint = normalize_fingerprint(request.fingerprint)
        logger.info(f"Using certificate {thumbprint} from current user store")
        return CertificateHandle(thumbprint, imported=False)

    def cleanup(self, handle: CertificateHandle) -> None:
        if not handle.imported:
            return
        try:
            self.store.delete(self.request.publisher)
        except (DualSignError, OSError) as exc:
            logger.warning(f"Certificate cleanup failed: {exc}")

    def run(self) -> bool:
        request = self.request
        target = self.check_preconditions()

        journal_file = os.path.join(target.publish_dir, __env__.JOURNAL_FILENAME)
        if not self.runner.dry_run:
            repair_interrupted_run(journal_file)

        handle = self.provision_certificate()
        try:
            executable_signer = ExecutableSigner(
                self.runner,
                self.tools["signtool"],
                request.timestamp_url,
                verbose=request.verbose,
                verify=request.verify,
                ignore_errors=request.ignore_tool_errors,
            )
            executable_signer.sign_target(target, handle.thumbprint)

            manifest_signer = ManifestSigner(
                self.runner,
                self.tools["mage"],
                request.timestamp_url,
                request.publisher,
                icon_file=request.icon_file,
                ignore_errors=request.ignore_tool_errors,
            )
            manifest_signer.sign_target(target, handle.thumbprint)
        finally:
            self.cleanup(handle)
        logger.info(f"Signed {target.project_name} in {target.directory}")
        return True
