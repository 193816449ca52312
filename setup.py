###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

# Usage
# This should work with setup.py and pip:
# pip install .
# pip install -e .[dev]

import os
import re

from setuptools import find_packages
from setuptools import setup as _setup

# Metadata
package_name = "deadline"
package_description = "Run a command with a time limit and signal escalation"
package_keywords = "timeout, deadline, signal, process group, supervisor"

here = os.path.dirname(os.path.abspath(__file__))


def read_file(filename):
    """
    Read a filename into a text blob.
    """
    with open(filename, "r") as fd:
        data = fd.read()
    return data


def get_version():
    """
    Get __version__ from the package without importing it
    """
    data = read_file(os.path.join(here, package_name, "__init__.py"))
    match = re.search(r'^__version__ = "([^"]+)"', data, re.M)
    if not match:
        raise RuntimeError("unable to find __version__")
    return match.group(1)


def setup():
    _setup(
        name=package_name,
        version=get_version(),
        description=package_description,
        keywords=package_keywords,
        packages=find_packages(include=[package_name, f"{package_name}.*"]),
        include_package_data=True,
        zip_safe=False,
        python_requires=">=3.8",
        install_requires=[
            "pyyaml",
            "tomli; python_version < '3.11'",
        ],
        extras_require={"dev": ["pycotap", "pytest", "black"]},
        entry_points={
            "console_scripts": ["deadline = deadline.cli:main"],
        },
        classifiers=[
            "Intended Audience :: Developers",
            "Intended Audience :: System Administrators",
            "License :: OSI Approved :: GNU Lesser General Public License v3 or later (LGPLv3+)",
            "Programming Language :: Python",
            "Topic :: Software Development",
            "Topic :: System :: Systems Administration",
            "Operating System :: POSIX",
            "Programming Language :: Python :: 3.8",
        ],
    )


setup()
