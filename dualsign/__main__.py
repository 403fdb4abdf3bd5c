#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign-cli"


import os
import sys
import atexit
from argparse import ArgumentParser
from datetime import datetime, timezone
import logging
import ofunctions.logger_utils
from ofunctions.process import kill_childs
from dualsign import __env__
from dualsign.__version__ import version_string
from dualsign.__debug__ import _DEBUG
from dualsign.common import execution_logs
from dualsign.configuration import load_config, s
from dualsign.errors import DualSignError
from dualsign.orchestrator import SigningOrchestrator, SigningRequest


logger = logging.getLogger()

# This is the path to a python script or a compiled binary
CURRENT_DIR = os.path.dirname(os.path.abspath(sys.argv[0]))
LOG_FILE = os.path.join(CURRENT_DIR, "dualsign.log")

# argparse destination -> configuration key
CONFIG_OVERRIDES = {
    "project_name": "project_name",
    "publish_dir": "publish_dir",
    "publisher": "publisher",
    "timestamp_url": "timestamp_url",
    "pfx": "certificate.pfx",
    "pfx_password": "certificate.pfx_password",
    "fingerprint": "certificate.fingerprint",
    "signtool": "tools.signtool",
    "mage": "tools.mage",
    "openssl": "tools.openssl",
    "certutil": "tools.certutil",
    "installer": "options.installer",
    "icon_file": "options.icon_file",
    "marker_extension": "options.marker_extension",
    "version_sort": "options.version_sort",
    "timeout": "options.timeout",
}
# Flags can only enable options, config file may enable them too
CONFIG_FLAGS = {
    "ignore_tool_errors": "options.ignore_tool_errors",
    "verify": "options.verify",
}


def cli_interface(argv=None):
    global logger

    parser = ArgumentParser(
        prog=f"{__intname__}",
        description="""Dual algorithm signer for ClickOnce deployments\n
Signs executables with sha256 using signtool, and manifests with sha1RSA using mage\n
This program is distributed under the GNU General Public License and comes with ABSOLUTELY NO WARRANTY.""",
    )

    parser.add_argument(
        "-c",
        "--config-file",
        dest="config_file",
        type=str,
        default=None,
        required=False,
        help="Path to optional YAML configuration file. Command line arguments override its values",
    )
    parser.add_argument(
        "-p",
        "--project-name",
        dest="project_name",
        type=str,
        default=None,
        required=False,
        help="Project name, used to find <project>_<version> directories and file names",
    )
    parser.add_argument(
        "-d",
        "--publish-dir",
        dest="publish_dir",
        type=str,
        default=None,
        required=False,
        help="Publish output directory, which must contain an 'Application Files' directory",
    )
    parser.add_argument(
        "--pfx",
        type=str,
        default=None,
        required=False,
        help="Certificate bundle to import before signing",
    )
    parser.add_argument(
        "--pfx-password",
        dest="pfx_password",
        type=str,
        default=None,
        required=False,
        help=f"Certificate bundle password. Can also be given by {__env__.PFX_PASSWORD_ENV} environment variable",
    )
    parser.add_argument(
        "--fingerprint",
        type=str,
        default=None,
        required=False,
        help="Thumbprint of a certificate already present in the current user personal store",
    )
    parser.add_argument(
        "--timestamp-url",
        dest="timestamp_url",
        type=str,
        default=None,
        required=False,
        help=f"Timestamp authority URL, defaults to {__env__.DEFAULT_TIMESTAMP_URL}",
    )
    parser.add_argument(
        "--publisher",
        type=str,
        default=None,
        required=False,
        help="Publisher display name, defaults to project name",
    )
    for tool in ("signtool", "mage", "openssl", "certutil"):
        parser.add_argument(
            f"--{tool}",
            type=str,
            default=None,
            required=False,
            help=f"Path to {tool} executable, detected if not given",
        )
    parser.add_argument(
        "--installer",
        type=str,
        default=None,
        required=False,
        help=f"Installer launcher file name in publish directory, defaults to {__env__.DEFAULT_INSTALLER}",
    )
    parser.add_argument(
        "--icon-file",
        dest="icon_file",
        type=str,
        default=None,
        required=False,
        help="Icon file referenced in application manifest, defaults to <project>.ico",
    )
    parser.add_argument(
        "--marker-extension",
        dest="marker_extension",
        type=str,
        default=None,
        required=False,
        help=f"Extension appended to payload files, defaults to {__env__.DEFAULT_MARKER_EXTENSION}",
    )
    parser.add_argument(
        "--version-sort",
        dest="version_sort",
        choices=["lexical", "natural"],
        default=None,
        required=False,
        help="How to pick the newest version directory. lexical (default) is plain string ordering",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        required=False,
        help=f"Timeout in seconds for every external tool, defaults to {__env__.DEFAULT_TOOL_TIMEOUT}",
    )
    parser.add_argument(
        "--ignore-tool-errors",
        dest="ignore_tool_errors",
        action="store_true",
        default=False,
        help="Keep going when signtool or mage fail",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        default=False,
        help="Verify executable signatures after signing",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=False,
        help="Don't actually sign anything, just log commands",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False, help="Show verbose output"
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        type=str,
        default=None,
        required=False,
        help=f"Optional path for logfile, defaults to {LOG_FILE}",
    )
    parser.add_argument(
        "-V", "--version", action="store_true", help="Show program version"
    )

    args = parser.parse_args(argv)

    log_file = args.log_file if args.log_file else LOG_FILE
    logger = ofunctions.logger_utils.logger_get_logger(
        log_file, debug=_DEBUG or args.verbose
    )

    if args.version:
        print(version_string)
        sys.exit(0)

    logger.info(version_string)

    full_config = load_config(args.config_file)
    for dest, key in CONFIG_OVERRIDES.items():
        value = getattr(args, dest)
        if value is not None:
            s(full_config, key, value)
    for dest, key in CONFIG_FLAGS.items():
        if getattr(args, dest):
            s(full_config, key, True)

    request = SigningRequest.from_config(
        full_config, verbose=args.verbose, dry_run=args.dry_run
    )
    if request.dry_run:
        logger.info("Running in dry mode")
    SigningOrchestrator(request).run()


def main(argv=None):
    # Make sure we log execution time and error state at the end of the program
    atexit.register(
        execution_logs,
        datetime.now(timezone.utc),
    )
    # kill_childs normally would not be necessary, but let's just be foolproof here (kills signtool / mage in all cases)
    atexit.register(kill_childs, os.getpid(), grace_period=30)
    try:
        cli_interface(argv)
        sys.exit(0)
    except DualSignError as exc:
        logger.critical(str(exc))
        logger.debug("Trace:", exc_info=True)
        sys.exit(exc.exit_code)
    except KeyboardInterrupt as exc:
        logger.error(f"Program interrupted by keyboard: {exc}")
        logger.info("Trace:", exc_info=True)
        # EXIT_CODE 200 = keyboard interrupt
        sys.exit(__env__.EXIT_KEYBOARD_INTERRUPT)
    except Exception as exc:
        logger.error(f"Program interrupted by error: {exc}")
        logger.info("Trace:", exc_info=True)
        # EXIT_CODE 201 = Non handled exception
        sys.exit(__env__.EXIT_UNHANDLED_ERROR)


if __name__ == "__main__":
    main()
