#! /usr/bin/env python
#  -*- coding: utf-8 -*-
#
# This file is part of dualsign package


__intname__ = "dualsign.setup"
__author__ = "Orsiris de Jong"
__copyright__ = "Copyright (C) 2024-2025 NetInvent"
__license__ = "GPL-3.0-only"
__build__ = "2025061001"
__setup_ver__ = "1.2.0"


PACKAGE_NAME = "dualsign"
DESCRIPTION = "Dual algorithm signer for ClickOnce deployments, using signtool, mage and openssl"

import os
import setuptools


def _read_file(filename):
    here = os.path.abspath(os.path.dirname(__file__))
    with open(os.path.join(here, filename), "r", encoding="utf-8") as file_handle:
        return file_handle.read()


def get_metadata(package_file):
    """
    Read metadata from package file
    """

    _metadata = {}

    for line in _read_file(package_file).splitlines():
        if line.startswith("__version__") or line.startswith("__description__"):
            delim = "="
            _metadata[line.split(delim)[0].strip().strip("__")] = (
                line.split(delim)[1].strip().strip("'\"")
            )
    return _metadata


def parse_requirements(filename):
    """
    There is a parse_requirements function in pip but it keeps changing import path
    Let's build a simple one
    """
    try:
        requirements_txt = _read_file(filename)
        install_requires = []
        for line in requirements_txt.splitlines():
            line = line.split("#")[0].strip()
            if line:
                install_requires.append(line)
        return install_requires
    except OSError:
        print(
            'WARNING: No requirements.txt file found as "{}". Please check path or create an empty one'.format(
                filename
            )
        )
        return []


package_path = os.path.abspath(PACKAGE_NAME)
package_file = os.path.join(package_path, "__version__.py")
metadata = get_metadata(package_file)
requirements = parse_requirements(os.path.join(package_path, "requirements.txt"))
long_description = _read_file("README.md")

package_data = {"": ["requirements.txt", "*.conf.dist"]}

setuptools.setup(
    name=PACKAGE_NAME,
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    version=metadata["version"],
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    package_data=package_data,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Topic :: Software Development :: Build Tools",
        "Topic :: Security :: Cryptography",
        "Topic :: Utilities",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Operating System :: Microsoft :: Windows",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
    ],
    description=DESCRIPTION,
    license="GPLv3",
    author="NetInvent - Orsiris de Jong",
    author_email="contact@netinvent.fr",
    keywords=[
        "signtool",
        "mage",
        "clickonce",
        "authenticode",
        "code signing",
        "windows",
        "cli",
    ],
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "dualsign = dualsign.__main__:main",
        ],
    },
)
