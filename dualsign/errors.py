#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.errors"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from dualsign import __env__


class DualSignError(Exception):
    """
    Base class for every error that ends a signing run
    exit_code is what the CLI returns to the calling environment
    """

    exit_code = __env__.EXIT_UNHANDLED_ERROR

    def __init__(self, msg: str, exit_code: int = None):
        super().__init__(msg)
        if exit_code is not None:
            self.exit_code = exit_code


class PreconditionError(DualSignError):
    """
    Environment or input is not usable, nothing has been touched yet
    """


class ConfigurationError(DualSignError):
    exit_code = __env__.EXIT_CONFIG_ERROR


class ToolError(DualSignError):
    """
    Failure of a step driven by an external tool
    tool_exit_code is set when the tool itself returned a non zero exit code
    """

    def __init__(self, msg: str, exit_code: int = None, tool_exit_code: int = None):
        super().__init__(msg, exit_code=exit_code)
        self.tool_exit_code = tool_exit_code


class CertificateError(ToolError):
    exit_code = __env__.EXIT_CERTIFICATE_FAILURE


class SigningError(ToolError):
    exit_code = __env__.EXIT_SIGNING_FAILURE


class ManifestSigningError(ToolError):
    exit_code = __env__.EXIT_MANIFEST_FAILURE
