###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import logging
import os

from deadline.constants import EXIT_FAILURE, EXIT_SIGNAL_BASE, EXIT_TIMEDOUT
from deadline.signals import signal_description

LOGGER = logging.getLogger("deadline")


def translate_status(status, timed_out=False, pid=None, command=None):
    """
    Translate the raw wait status of the child into an exit code.

    Args:
        status (int): wait status as returned by :func:`os.waitpid`
        timed_out (bool): True if the deadline expired at least once, in
            which case the result is always ``EXIT_TIMEDOUT``
        pid (int): pid of the child, for diagnostics
        command (str): command line of the child, for diagnostics
    """
    status = int(status)
    if timed_out:
        return EXIT_TIMEDOUT
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    if os.WIFSIGNALED(status):
        signum = os.WTERMSIG(status)
        LOGGER.info(
            "%s (%s) terminated by %s",
            pid if pid is not None else "child",
            command or "?",
            signal_description(signum),
        )
        return EXIT_SIGNAL_BASE + signum
    LOGGER.error("unexpected wait status %s for pid %s", hex(status), pid)
    return EXIT_FAILURE

