#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign

__intname__ = "dualsign"
__author__ = "Orsiris de Jong"
__description__ = "Dual algorithm ClickOnce signer"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025062601"
__version__ = "1.0.0"


import sys
import psutil
from ofunctions.platform import python_arch, get_os


try:
    CURRENT_USER = psutil.Process().username()
except Exception:
    CURRENT_USER = "unknown"
version_dict = {
    "name": __intname__,
    "version": __version__,
    "os": get_os().lower(),
    "arch": python_arch(),
    "pv": sys.version_info,
    "build": __build__,
    "copyright": __copyright__,
}
version_string = f"{version_dict['name']} {version_dict['version']}-{version_dict['os']}-{version_dict['arch']}-{version_dict['pv'][0]}.{version_dict['pv'][1]} {version_dict['build']} - {version_dict['copyright']} running as {CURRENT_USER}"
