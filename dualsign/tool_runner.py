#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.tool_runner"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"


from typing import List, Tuple, Type
import logging
from logging import getLogger
from command_runner import command_runner
from dualsign.__env__ import DEFAULT_TOOL_TIMEOUT
from dualsign.common import command_to_string, hide_secrets
from dualsign.errors import ToolError


logger = getLogger()


class ToolRunner:
    """
    Runs external tools as argument lists, never through a shell
    Every command is logged before execution, with secrets hidden
    """

    def __init__(
        self,
        timeout: int = DEFAULT_TOOL_TIMEOUT,
        dry_run: bool = False,
        live_output: bool = False,
    ):
        self.timeout = timeout
        self.dry_run = dry_run
        self.live_output = live_output

    def run(
        self, command: List[str], secrets: List[str] = None, read_only: bool = False
    ) -> Tuple[int, str]:
        """
        Execute command and return exit code and output
        read_only commands, like store lookups, are executed even in dry run mode
        """
        logger.info(f"Running {command_to_string(command, secrets)}")
        if self.dry_run and not read_only:
            logger.info("Dry run, command not executed")
            return 0, ""

        if secrets:
            # command_runner logs the commands it runs, don't let it write passwords to our logs
            cr_logger = logging.getLogger("command_runner")
            cr_loglevel = cr_logger.getEffectiveLevel()
            cr_logger.setLevel(logging.ERROR)
        try:
            exit_code, output = command_runner(
                command,
                shell=False,
                timeout=self.timeout,
                windows_no_window=True,
                live_output=self.live_output,
            )
        finally:
            if secrets:
                cr_logger.setLevel(cr_loglevel)
        output = hide_secrets(output or "", secrets)
        if output:
            logger.debug(f"Output:\n{output}")
        return exit_code, output

    def check(
        self,
        command: List[str],
        error_class: Type[ToolError] = ToolError,
        msg: str = "Command failed",
        secrets: List[str] = None,
        ignore_errors: bool = False,
    ) -> str:
        """
        Execute command and raise error_class on non zero exit code
        When ignore_errors is set, failures are only logged
        """
        exit_code, output = self.run(command, secrets=secrets)
        if exit_code == 0:
            return output
        error = f"{msg} (exit code {exit_code}):\n{output}"
        if ignore_errors:
            logger.error(error)
            logger.warning("Continuing since tool errors are ignored")
            return output
        raise error_class(error, tool_exit_code=exit_code)
