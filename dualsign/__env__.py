#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.__env__"
__author__ = "Orsiris de Jong"
__description__ = "Dual algorithm ClickOnce signer"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"


##################
# CONSTANTS FILE #
##################

# Folder created by the publish step, which holds one directory per published version
APPLICATION_FILES_DIR = "Application Files"

# Suffix appended by the publish step to every payload file
DEFAULT_MARKER_EXTENSION = ".deploy"

# Installer launcher found in the publish root
DEFAULT_INSTALLER = "setup.exe"

DEFAULT_TIMESTAMP_URL = "http://timestamp.digicert.com"

# signtool accepts sha256 for file and timestamp digests
EXECUTABLE_DIGEST = "sha256"
# mage only signs manifests properly with the legacy algorithm
MANIFEST_ALGORITHM = "sha1RSA"

# Legacy PKCS#12 encryption the Windows certificate store imports without complaining
PKCS12_STORE_ENCRYPTION = "PBE-SHA1-3DES"
PKCS12_STORE_MAC = "sha1"

# Current user personal certificate store
CERTIFICATE_STORE = "My"

# Per tool timeout in seconds. signtool timestamping can be slow on some authorities
DEFAULT_TOOL_TIMEOUT = 600

# Left in the publish directory while payload files are stripped from their marker extension
JOURNAL_FILENAME = ".dualsign-journal.json"

# Environment variable which may hold the certificate bundle password
PFX_PASSWORD_ENV = "DUALSIGN_PFX_PASSWORD"

# Replacement string for sensitive data
HIDDEN_BY_DUALSIGN = "_[o_O]_hidden_by_dualsign"


##############
# EXIT CODES #
##############

EXIT_NOT_ADMIN = 1
EXIT_NO_PUBLISH_DIR = 2
EXIT_NO_APPLICATION_FILES = 3
EXIT_NO_TARGET = 4
EXIT_BAD_FINGERPRINT = 5
EXIT_FINGERPRINT_NOT_IN_STORE = 6
EXIT_NO_SIGNTOOL = 7
EXIT_NO_MAGE = 8
EXIT_BAD_TIMESTAMP_URL = 9
EXIT_NO_CERT_TOOL = 10
EXIT_NO_CERTIFICATE = 11
EXIT_CERTIFICATE_FAILURE = 12
EXIT_SIGNING_FAILURE = 13
EXIT_MANIFEST_FAILURE = 14
EXIT_BAD_PROJECT_NAME = 15
EXIT_CONFIG_ERROR = 16
# Same as the rest of our tools
EXIT_KEYBOARD_INTERRUPT = 200
EXIT_UNHANDLED_ERROR = 201
