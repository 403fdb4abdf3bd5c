#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.common"
__author__ = "Orsiris de Jong"
__description__ = "Dual algorithm ClickOnce signer"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import Iterable, List
from datetime import datetime, timezone
from logging import getLogger
import subprocess
import ofunctions.logger_utils
from dualsign.__env__ import HIDDEN_BY_DUALSIGN


logger = getLogger()


def hide_secrets(text: str, secrets: Iterable[str] = None) -> str:
    """
    Replace every occurence of given secrets in text
    Empty secrets are ignored, else we would replace every character boundary
    """
    if not text or not secrets:
        return text
    for secret in secrets:
        if secret:
            text = text.replace(secret, HIDDEN_BY_DUALSIGN)
    return text


def command_to_string(command: List[str], secrets: Iterable[str] = None) -> str:
    """
    Build a printable command line, quoted the way Windows would parse it
    """
    return hide_secrets(subprocess.list2cmdline(command), secrets)


def execution_logs(start_time: datetime) -> None:
    """
    Log execution time and the worst log level reached during the run

    ATTENTION: ofunctions.logger_utils.ContextFilterWorstLevel will only check current logger instance
    So using logger = getLogger("anotherinstance") will create a separate instance from the one we can inspect
    """

    end_time = datetime.now(timezone.utc)

    logger_worst_level = 0
    for flt in logger.filters:
        if isinstance(flt, ofunctions.logger_utils.ContextFilterWorstLevel):
            logger_worst_level = flt.worst_level

    log_level_reached = "success"
    if logger_worst_level >= 50:
        log_level_reached = "critical"
    elif logger_worst_level >= 40:
        log_level_reached = "errors"
    elif logger_worst_level >= 30:
        log_level_reached = "warnings"
    logger.info(
        f"ExecTime = {end_time - start_time}, finished, state is: {log_level_reached}."
    )
