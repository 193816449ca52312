###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""
deadline: run a command with a time limit, escalating through a list of
signals to its process group once the limit is exceeded
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "constants",
    "escalation",
    "process",
    "signals",
    "status",
    "supervisor",
    "util",
]
