###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""Launch and signal a command in its own process group"""

import errno
import logging
import os
import shlex
import signal

from deadline.constants import (
    EXIT_CANCELED,
    EXIT_CANNOT_INVOKE,
    EXIT_ENOENT,
    RUNTIME_IGNORED_SIGNALS,
    UNCATCHABLE_SIGNALS,
)
from deadline.signals import signal_name

LOGGER = logging.getLogger("deadline")


class DeadlineError(OSError):
    """Base class for supervisor errors which carry an exit code"""

    exitcode = EXIT_CANCELED


class LaunchError(DeadlineError):
    """The child process could not be created"""


class WaitError(DeadlineError):
    """The status of the child process could not be determined"""


def exec_failure_exitcode(exc):
    """
    Return the exit code for a failed exec: EXIT_ENOENT if the command
    could not be found, EXIT_CANNOT_INVOKE for any other failure
    """
    if isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT:
        return EXIT_ENOENT
    return EXIT_CANNOT_INVOKE


class ProcessGroup:
    """
    A command run as the sole initial member of a new process group.

    Args:
        command (list): command line to execute, ``command[0]`` is looked
            up in PATH
        intercepted (iterable): signals the caller intercepts. These, and
            the signals the Python runtime ignores, are reset to their
            default disposition in the child before exec.
        sigmask (iterable): signal mask to restore in the child before
            exec. Default: an empty mask.
    """

    def __init__(self, command, intercepted=(), sigmask=None):
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.intercepted = [
            sig for sig in intercepted if sig not in UNCATCHABLE_SIGNALS
        ]
        self.sigmask = set(sigmask) if sigmask is not None else set()
        self.pid = None
        self.status = None

    def __str__(self):
        return " ".join(shlex.quote(arg) for arg in self.command)

    @property
    def pgid(self):
        return self.pid

    @property
    def reaped(self):
        return self.status is not None

    def spawn(self):
        """
        Fork and exec the command. Returns the pid of the new process,
        which is also its process group id.

        Raises:
            LaunchError: the process could not be created
        """
        if self.pid is not None:
            raise ValueError(f"{self} already started as pid {self.pid}")
        try:
            pid = os.fork()
        except OSError as exc:
            raise LaunchError(
                exc.errno, f"failed to create child process: {exc.strerror}"
            ) from exc
        if pid == 0:
            self._exec_child()

        #  Also set the process group from the parent, so that the group
        #   exists before any signal is delivered to it. EACCES means the
        #   child already called exec, ESRCH that it already exited.
        try:
            os.setpgid(pid, pid)
        except (PermissionError, ProcessLookupError):
            pass
        self.pid = pid
        LOGGER.debug("started pid %d: %s", pid, self)
        return pid

    def _exec_child(self):
        """
        In child: move to a new process group, restore signal dispositions
        and mask, then exec the command. Never returns.
        """
        try:
            os.setpgid(0, 0)
            for signum in self.intercepted + list(RUNTIME_IGNORED_SIGNALS):
                signal.signal(signum, signal.SIG_DFL)
            signal.pthread_sigmask(signal.SIG_SETMASK, self.sigmask)
            os.execvp(self.command[0], self.command)
        except OSError as exc:
            exitcode = exec_failure_exitcode(exc)
            LOGGER.error(
                "failed to run command '%s': %s",
                self.command[0],
                exc.strerror or exc,
            )
        except BaseException as exc:  # pylint: disable=broad-except
            exitcode = EXIT_CANCELED
            LOGGER.error("failed to run command '%s': %s", self.command[0], exc)
        logging.shutdown()
        os._exit(exitcode)

    def signal(self, signum):
        """
        Send signum to the entire process group. Returns False if the
        group no longer exists.
        """
        if self.pid is None:
            raise ValueError(f"{self}: not started")
        try:
            os.killpg(self.pid, signum)
        except ProcessLookupError:
            LOGGER.debug(
                "process group %d already gone, not sent SIG%s",
                self.pid,
                signal_name(signum),
            )
            return False
        return True

    def wait(self, block=False):
        """
        Reap the child if it has terminated.

        Args:
            block (bool): wait for the child to terminate

        Returns:
            The raw wait status if the child was reaped, None if it is
            still running (or only stopped).

        Raises:
            WaitError: the operating system could not report child status
        """
        if self.status is not None:
            return self.status
        flags = 0 if block else os.WNOHANG
        try:
            pid, status = os.waitpid(self.pid, flags)
        except ChildProcessError as exc:
            raise WaitError(
                exc.errno, f"error waiting for pid {self.pid}: {exc.strerror}"
            ) from exc
        if pid == 0:
            return None
        self.status = status
        return status
