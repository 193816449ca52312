###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""
Supervise a command under a deadline.

The supervisor blocks every signal it is interested in and consumes them
synchronously with :func:`signal.sigwaitinfo`, so no work is ever done in
an asynchronous signal handler. Each wakeup handles exactly one of:

 - SIGCHLD: the command may have terminated, try to reap it
 - SIGALRM: the timer expired, take the next escalation step
 - any other intercepted signal: forward it to the command's process
   group and restart escalation from there
"""

import enum
import logging
import signal

from deadline.constants import (
    EXIT_SIGNAL_BASE,
    IGNORED_SIGNALS,
    STOP_SIGNALS,
    UNCATCHABLE_SIGNALS,
)
from deadline.escalation import Escalation
from deadline.process import ProcessGroup, WaitError
from deadline.signals import signal_name
from deadline.status import translate_status
from deadline.util import fsd

LOGGER = logging.getLogger("deadline")


class SupervisorState(enum.Enum):
    LAUNCHING = 1
    RUNNING = 2
    REAPING = 3
    DONE = 4


class Timer:
    """
    One-shot ITIMER_REAL timer. Expiry is reported as SIGALRM, which the
    caller must keep blocked while the timer is in use.

    A timer armed with 0 seconds does not use the interval timer at all,
    instead ``due`` is set to indicate an expiry is owed immediately.
    Longer timeouts than ``max_seconds`` are clamped to it.
    """

    signum = signal.SIGALRM

    #  Largest value setitimer(2) accepts, even with a 32 bit time_t
    max_seconds = 2**31 - 1

    def __init__(self):
        self.due = False

    def arm(self, seconds):
        """Arm the timer for seconds, or disarm it if seconds is None"""
        self.disarm()
        if seconds is None:
            return
        if seconds == 0:
            self.due = True
            return
        if seconds > self.max_seconds:
            LOGGER.debug("clamping timeout of %ds to %ds", seconds, self.max_seconds)
            seconds = self.max_seconds
        signal.setitimer(signal.ITIMER_REAL, seconds)

    def disarm(self):
        signal.setitimer(signal.ITIMER_REAL, 0)
        self.due = False
        #  Discard an expiry which raced with disarming
        signal.sigtimedwait({self.signum}, 0)


class Supervisor:
    """
    Run one command to completion under a deadline.

    Args:
        config (:obj:`deadline.escalation.Configuration`): configuration
    """

    def __init__(self, config):
        self.config = config
        self.state = SupervisorState.LAUNCHING
        self.escalation = Escalation(config)
        self.timer = Timer()
        self.child = None

        self.stop_signals = set(STOP_SIGNALS) | set(config.signals)
        self.stop_signals -= set(UNCATCHABLE_SIGNALS)
        self.stop_signals -= {signal.SIGCHLD, Timer.signum}
        self.intercepted = self.stop_signals | {signal.SIGCHLD, Timer.signum}

    @property
    def timed_out(self):
        return self.escalation.timed_out

    def run(self):
        """
        Launch the command and wait for it to terminate, delivering
        signals as the deadline and any escalation expire.

        Returns:
            int: exit code for the supervisor

        Raises:
            LaunchError: the command could not be started
            WaitError: the command status could not be determined
        """
        handlers = {}
        for signum in IGNORED_SIGNALS:
            handlers[signum] = signal.signal(signum, signal.SIG_IGN)
        oldmask = signal.pthread_sigmask(signal.SIG_BLOCK, self.intercepted)
        try:
            return self._run(oldmask)
        except BaseException:
            self._kill_child()
            raise
        finally:
            self.timer.disarm()
            signal.sigtimedwait({signal.SIGCHLD}, 0)
            signal.pthread_sigmask(signal.SIG_SETMASK, oldmask)
            for signum, handler in handlers.items():
                if handler is not None:
                    signal.signal(signum, handler)

    def _run(self, oldmask):
        info = signal.sigtimedwait(self.stop_signals, 0)
        if info is not None:
            LOGGER.debug(
                "received SIG%s before command started", signal_name(info.si_signo)
            )
            self.state = SupervisorState.DONE
            return EXIT_SIGNAL_BASE + info.si_signo

        self.child = ProcessGroup(
            self.config.command,
            intercepted=self.intercepted | set(IGNORED_SIGNALS),
            sigmask=oldmask,
        )
        self.child.spawn()

        self.state = SupervisorState.RUNNING
        initial = self.escalation.initial()
        if initial is not None:
            LOGGER.debug("deadline for pid %d in %s", self.child.pid, fsd(initial))
        self.timer.arm(initial)

        status = self._wait()

        self.state = SupervisorState.REAPING
        exitcode = translate_status(
            status,
            self.escalation.timed_out,
            pid=self.child.pid,
            command=str(self.child),
        )
        self.state = SupervisorState.DONE
        return exitcode

    def _wait(self):
        """Handle one notification per wakeup until the child is reaped"""
        while True:
            if self.timer.due:
                #  An expiry is owed now, but a pending notification
                #   (e.g. child exit) is handled first:
                info = signal.sigtimedwait(self.intercepted, 0)
                if info is None:
                    self.timer.due = False
                    self._deliver(self.escalation.expire())
                    continue
            else:
                info = signal.sigwaitinfo(self.intercepted)

            signum = info.si_signo
            if signum == signal.SIGCHLD:
                status = self.child.wait()
                if status is not None:
                    return status
            elif signum == Timer.signum:
                LOGGER.debug("timer expired for pid %d", self.child.pid)
                self._deliver(self.escalation.expire())
            else:
                LOGGER.debug(
                    "received SIG%s, forwarding to process group %d",
                    signal_name(signum),
                    self.child.pgid,
                )
                self._deliver(self.escalation.interrupt(signum))

    def _deliver(self, step):
        LOGGER.debug(
            "sending SIG%s to process group %d",
            signal_name(step.signum),
            self.child.pgid,
        )
        self.child.signal(step.signum)
        if step.rearm is not None:
            LOGGER.debug("next signal in %s", fsd(step.rearm))
        self.timer.arm(step.rearm)

    def _kill_child(self):
        """Kill and reap the command when supervision fails"""
        if self.child is None or self.child.pid is None or self.child.reaped:
            return
        LOGGER.debug("killing process group %d after error", self.child.pgid)
        self.child.signal(signal.SIGKILL)
        try:
            self.child.wait(block=True)
        except WaitError as exc:
            LOGGER.debug("pid %d: %s", self.child.pid, exc.strerror)
