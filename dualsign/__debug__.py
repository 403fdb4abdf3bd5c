#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign.__debug__"
__author__ = "Orsiris de Jong"
__description__ = "Dual algorithm ClickOnce signer"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__build__ = "2025021901"


import sys
import os


# Debugging is enabled by either --debug argument or _DEBUG=True environment variable
__debug_os_env = os.environ.get("_DEBUG", "False").strip("'\"")


if "--debug" in sys.argv:
    _DEBUG = True
    sys.argv.pop(sys.argv.index("--debug"))


if "_DEBUG" not in globals():
    _DEBUG = False
    if __debug_os_env.lower().capitalize() == "True":
        _DEBUG = True
