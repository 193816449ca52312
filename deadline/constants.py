###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""Exit codes and defaults shared by the deadline modules"""

import signal

#  Command timed out (the deadline sentinel)
EXIT_TIMEDOUT = 124

#  Internal error before exec was attempted
EXIT_CANCELED = 125

#  Command found but could not be executed
EXIT_CANNOT_INVOKE = 126

#  Command not found
EXIT_ENOENT = 127

#  Generic failure, e.g. an unrecognized wait status
EXIT_FAILURE = 1

#  Exit codes for signaled processes are 128 + signal number
EXIT_SIGNAL_BASE = 128

DEFAULT_SIGNAL = signal.SIGTERM
DEFAULT_INTERVAL = 1
DEFAULT_KILL_AFTER = 0

#  Signals which stop the supervisor before a child exists, and which
#   are forwarded to the child's process group once it does:
STOP_SIGNALS = (signal.SIGINT, signal.SIGQUIT, signal.SIGHUP, signal.SIGTERM)

#  Signals ignored by the supervisor so it may run in the background:
IGNORED_SIGNALS = (signal.SIGTTIN, signal.SIGTTOU)

#  Signals the Python runtime ignores at startup. Ignored dispositions
#   survive exec, so these are reset in the child as well:
RUNTIME_IGNORED_SIGNALS = (signal.SIGPIPE, signal.SIGXFSZ)

#  Signals which can be neither caught nor blocked
UNCATCHABLE_SIGNALS = (signal.SIGKILL, signal.SIGSTOP)

__all__ = [
    "EXIT_TIMEDOUT",
    "EXIT_CANCELED",
    "EXIT_CANNOT_INVOKE",
    "EXIT_ENOENT",
    "EXIT_FAILURE",
    "EXIT_SIGNAL_BASE",
    "DEFAULT_SIGNAL",
    "DEFAULT_INTERVAL",
    "DEFAULT_KILL_AFTER",
    "STOP_SIGNALS",
    "IGNORED_SIGNALS",
    "RUNTIME_IGNORED_SIGNALS",
    "UNCATCHABLE_SIGNALS",
]
