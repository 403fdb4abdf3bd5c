#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.target"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import List
import os
import glob
import fnmatch
from logging import getLogger
from packaging.version import parse as version_parse, InvalidVersion
from dualsign import __env__
from dualsign.errors import PreconditionError


logger = getLogger()

VERSION_SORT_MODES = ("lexical", "natural")


class ResolvedTarget:
    """
    Versioned directory holding the deployed application, and the file names we sign in it
    """

    def __init__(
        self,
        publish_dir: str,
        directory: str,
        project_name: str,
        marker_extension: str = __env__.DEFAULT_MARKER_EXTENSION,
        installer: str = __env__.DEFAULT_INSTALLER,
    ):
        self.publish_dir = publish_dir
        self.directory = directory
        self.project_name = project_name
        self.marker_extension = marker_extension
        self.installer_name = installer

    @property
    def version_dir_name(self) -> str:
        return os.path.basename(self.directory)

    @property
    def installer(self) -> str:
        return os.path.join(self.publish_dir, self.installer_name)

    @property
    def executable(self) -> str:
        return os.path.join(
            self.directory, self.project_name + ".exe" + self.marker_extension
        )

    @property
    def manifest(self) -> str:
        return os.path.join(self.directory, self.project_name + ".exe.manifest")

    @property
    def descriptor(self) -> str:
        return os.path.join(self.directory, self.project_name + ".application")

    def __repr__(self):
        return f"ResolvedTarget({self.directory})"


def _natural_key(name: str, project_name: str):
    version = name[len(project_name) + 1 :].replace("_", ".")
    try:
        return (1, version_parse(version), name)
    except InvalidVersion:
        # Unparseable versions sort below every real one
        return (0, version_parse("0"), name)


def sort_version_dirs(
    names: List[str], project_name: str, version_sort: str = "lexical"
) -> List[str]:
    """
    Sort version directory names, newest first

    lexical is plain string ordering, so Proj_1.0.0.2 comes before Proj_1.0.0.10
    natural compares the version suffix as a version number
    """
    if version_sort == "lexical":
        return sorted(names, reverse=True)
    if version_sort == "natural":
        return sorted(names, key=lambda name: _natural_key(name, project_name), reverse=True)
    raise ValueError(f"Bogus version sort mode given: {version_sort}")


def find_version_dirs(application_files_dir: str, project_name: str) -> List[str]:
    """
    List immediate subdirectories named <project_name>_*
    Case sensitivity follows the OS
    """
    pattern = glob.escape(project_name) + "_*"
    return [
        entry.name
        for entry in os.scandir(application_files_dir)
        if entry.is_dir() and fnmatch.fnmatch(entry.name, pattern)
    ]


def resolve_target(
    publish_dir: str,
    project_name: str,
    version_sort: str = "lexical",
    marker_extension: str = __env__.DEFAULT_MARKER_EXTENSION,
    installer: str = __env__.DEFAULT_INSTALLER,
) -> ResolvedTarget:
    if not publish_dir or not os.path.isdir(publish_dir):
        raise PreconditionError(
            f"Publish directory {publish_dir} does not exist",
            exit_code=__env__.EXIT_NO_PUBLISH_DIR,
        )
    application_files_dir = os.path.join(publish_dir, __env__.APPLICATION_FILES_DIR)
    if not os.path.isdir(application_files_dir):
        raise PreconditionError(
            f"No '{__env__.APPLICATION_FILES_DIR}' directory found in {publish_dir}",
            exit_code=__env__.EXIT_NO_APPLICATION_FILES,
        )

    candidates = find_version_dirs(application_files_dir, project_name)
    if not candidates:
        raise PreconditionError(
            f"No {project_name}_* directory found in {application_files_dir}",
            exit_code=__env__.EXIT_NO_TARGET,
        )

    ordered = sort_version_dirs(candidates, project_name, version_sort)
    if len(ordered) > 1:
        logger.info(f"Found {len(ordered)} versions: {', '.join(ordered)}")
        if version_sort == "lexical":
            natural_choice = sort_version_dirs(candidates, project_name, "natural")[0]
            if natural_choice != ordered[0]:
                logger.warning(
                    f"Lexical ordering selects {ordered[0]} whereas {natural_choice} looks newer. Use natural version sort if this is not intended"
                )

    target = ResolvedTarget(
        publish_dir=publish_dir,
        directory=os.path.join(application_files_dir, ordered[0]),
        project_name=project_name,
        marker_extension=marker_extension,
        installer=installer,
    )
    logger.info(f"Using target directory {target.directory}")
    return target
