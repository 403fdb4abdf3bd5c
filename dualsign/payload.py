#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.payload"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


"""
Payload files carry a marker extension (.deploy) which must be removed while mage
computes file hashes, and put back afterwards.

Before stripping, the list of files is written to a journal, so a run that was killed
midway can be repaired by the next one.
"""


from typing import Iterable, List, Optional
import os
import json
from contextlib import contextmanager
from datetime import datetime, timezone
from logging import getLogger
from dualsign.errors import ManifestSigningError


logger = getLogger()


class PayloadFileSet:
    """
    Files that had their marker extension stripped, as paths relative to directory, without marker
    """

    def __init__(self, directory: str, marker_extension: str, files: List[str] = None):
        self.directory = directory
        self.marker_extension = marker_extension
        self.files = files or []

    def stripped_path(self, relative_path: str) -> str:
        return os.path.join(self.directory, relative_path)

    def marked_path(self, relative_path: str) -> str:
        return self.stripped_path(relative_path) + self.marker_extension

    def __len__(self):
        return len(self.files)


def collect_marked_files(
    directory: str, marker_extension: str, excluded: Iterable[str] = None
) -> List[str]:
    """
    Recursively list files ending with marker extension
    Returns relative paths without marker extension, sorted
    Files which would become one of the excluded paths once stripped are left alone
    """
    excluded = {os.path.normcase(os.path.abspath(path)) for path in (excluded or [])}
    files = []
    for root, _, filenames in os.walk(directory):
        for filename in filenames:
            if not filename.endswith(marker_extension) or filename == marker_extension:
                continue
            stripped = os.path.join(root, filename[: -len(marker_extension)])
            if os.path.normcase(os.path.abspath(stripped)) in excluded:
                continue
            files.append(os.path.relpath(stripped, directory))
    return sorted(files)


def write_journal(journal_file: str, payload: PayloadFileSet) -> None:
    content = {
        "directory": os.path.abspath(payload.directory),
        "marker_extension": payload.marker_extension,
        "files": payload.files,
        "created": datetime.now(timezone.utc).isoformat(),
    }
    with open(journal_file, "w", encoding="utf-8") as file_handle:
        json.dump(content, file_handle, indent=2)


def read_journal(journal_file: str) -> Optional[PayloadFileSet]:
    if not os.path.isfile(journal_file):
        return None
    try:
        with open(journal_file, "r", encoding="utf-8") as file_handle:
            content = json.load(file_handle)
        return PayloadFileSet(
            content["directory"], content["marker_extension"], content["files"]
        )
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise ManifestSigningError(f"Journal file {journal_file} is unreadable: {exc}")


def strip_marker(
    payload: PayloadFileSet, stripped: List[str] = None, dry_run: bool = False
) -> List[str]:
    """
    Remove marker extension from every payload file
    Renamed files are appended to stripped as we go, so the caller knows what to restore
    even if we fail midway
    """
    if stripped is None:
        stripped = []
    for relative_path in payload.files:
        source = payload.marked_path(relative_path)
        destination = payload.stripped_path(relative_path)
        if dry_run:
            logger.debug(f"Would rename {source} to {destination}")
            stripped.append(relative_path)
            continue
        if os.path.exists(destination):
            raise ManifestSigningError(
                f"Cannot strip marker from {source}, {destination} already exists"
            )
        try:
            os.rename(source, destination)
        except OSError as exc:
            raise ManifestSigningError(f"Cannot rename {source}: {exc}")
        stripped.append(relative_path)
    logger.info(
        f"Stripped {payload.marker_extension} extension from {len(stripped)} files"
    )
    return stripped


def restore_marker(
    payload: PayloadFileSet, files: List[str] = None, dry_run: bool = False
) -> List[str]:
    """
    Put marker extension back on files, defaults to all payload files
    Files that are already marked or that vanished are skipped, conflicts and rename errors
    are reported but don't stop restoration
    Returns the files that could not be restored
    """
    failed = []
    restored = 0
    for relative_path in payload.files if files is None else files:
        source = payload.stripped_path(relative_path)
        destination = payload.marked_path(relative_path)
        if dry_run:
            logger.debug(f"Would rename {source} to {destination}")
            continue
        if not os.path.exists(source):
            if not os.path.exists(destination):
                logger.warning(f"{source} vanished, cannot restore {destination}")
            # Otherwise already restored
            continue
        if os.path.exists(destination):
            logger.error(f"Cannot restore {destination}, file already exists")
            failed.append(relative_path)
            continue
        try:
            os.rename(source, destination)
            restored += 1
        except OSError as exc:
            logger.error(f"Cannot restore {destination}: {exc}")
            failed.append(relative_path)
    logger.info(f"Restored {payload.marker_extension} extension on {restored} files")
    return failed


def repair_interrupted_run(journal_file: str) -> bool:
    """
    If a previous run got interrupted while payload files were stripped, restore them
    Returns True if a repair was done
    """
    payload = read_journal(journal_file)
    if payload is None:
        return False
    logger.warning(
        f"Previous run left {len(payload)} stripped files in {payload.directory}, restoring {payload.marker_extension} extension"
    )
    if os.path.isdir(payload.directory):
        failed = restore_marker(payload)
        if failed:
            raise ManifestSigningError(
                f"Cannot repair {len(failed)} files in {payload.directory}, manual intervention needed. See {journal_file}"
            )
    else:
        logger.warning(f"Directory {payload.directory} does not exist anymore")
    os.remove(journal_file)
    return True


def _restore_stripped(
    payload: PayloadFileSet, stripped: List[str], journal_file: str, dry_run: bool
) -> List[str]:
    failed = restore_marker(payload, stripped, dry_run=dry_run)
    if not dry_run:
        if failed:
            logger.error(
                f"{len(failed)} files could not be restored, keeping journal {journal_file}"
            )
        else:
            os.remove(journal_file)
    return failed


@contextmanager
def marker_extension_stripped(
    directory: str,
    marker_extension: str,
    journal_file: str,
    excluded: Iterable[str] = None,
    dry_run: bool = False,
):
    """
    Strip marker extension from payload files for the duration of the block
    Restoration happens on every exit path, including interruptions
    """
    payload = PayloadFileSet(
        directory,
        marker_extension,
        collect_marked_files(directory, marker_extension, excluded),
    )
    if not dry_run:
        write_journal(journal_file, payload)
    stripped = []
    try:
        strip_marker(payload, stripped, dry_run=dry_run)
        yield payload
    except BaseException:
        # Keep the original error, restoration failures are logged
        _restore_stripped(payload, stripped, journal_file, dry_run)
        raise
    failed = _restore_stripped(payload, stripped, journal_file, dry_run)
    if failed:
        raise ManifestSigningError(
            f"{len(failed)} files in {directory} could not get their {marker_extension} extension back, manual intervention needed. See {journal_file}"
        )
