###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

"""
Signal escalation for a command which has outlived its deadline.

An :obj:`Escalation` is consulted each time the supervisor's timer
expires. It returns a :obj:`Step` naming the signal to deliver to the
command's process group and the number of seconds after which the timer
should be re-armed, or ``None`` if this is the final step.

For ``signals=(TERM, INT)``, ``interval=3`` and ``kill_after=10`` the
steps after the initial deadline are::

    TERM  (re-arm 3)
    INT   (re-arm 10)
    KILL  (final)
"""

import signal
from collections import namedtuple
from dataclasses import dataclass, field

from deadline.constants import DEFAULT_INTERVAL, DEFAULT_KILL_AFTER, DEFAULT_SIGNAL
from deadline.signals import decode_signal

Step = namedtuple("Step", ["signum", "rearm"])


def _seconds(name, value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Configuration:
    """Immutable supervisor configuration

    Attributes:
        duration (int): seconds before the first signal, 0 disables
            the deadline
        command (tuple): command line of the child
        signals (tuple): signals delivered in order after the deadline
        interval (int): seconds between successive signals
        kill_after (int): seconds after the last signal before SIGKILL,
            0 disables
    """

    duration: int
    command: tuple
    signals: tuple = (DEFAULT_SIGNAL,)
    interval: int = DEFAULT_INTERVAL
    kill_after: int = DEFAULT_KILL_AFTER

    def __post_init__(self):
        _seconds("duration", self.duration)
        _seconds("interval", self.interval)
        _seconds("kill_after", self.kill_after)
        if not self.command:
            raise ValueError("command must not be empty")
        if not self.signals:
            raise ValueError("at least one signal is required")
        #  Normalize to tuples (of Signals where possible) on a frozen
        #   dataclass:
        object.__setattr__(self, "command", tuple(self.command))
        object.__setattr__(
            self, "signals", tuple(decode_signal(sig) for sig in self.signals)
        )


@dataclass
class EscalationState:
    """Mutable cursor into the escalation plan"""

    plan: tuple
    index: int = 0
    timed_out: bool = False
    kill_armed: bool = False
    delivered: list = field(default_factory=list)


class Escalation:
    """
    Escalation state machine for one supervised command.

    Args:
        config (Configuration): supervisor configuration
    """

    def __init__(self, config):
        self.config = config
        self.state = EscalationState(plan=config.signals)

    @property
    def timed_out(self):
        return self.state.timed_out

    def initial(self):
        """Return seconds to the initial deadline, or None if disabled"""
        return self.config.duration or None

    def expire(self):
        """
        Handle expiry of the timer. Returns the next :obj:`Step`.
        """
        self.state.timed_out = True
        return self._advance()

    def interrupt(self, signum):
        """
        Handle signum delivered to the supervisor while the command runs.
        The received signal replaces the first signal of the plan, and
        escalation restarts from there.
        """
        self.state.plan = (decode_signal(signum),) + self.config.signals[1:]
        self.state.index = 0
        self.state.kill_armed = False
        return self._advance()

    def _advance(self):
        state = self.state
        nsignals = len(state.plan)
        index = state.index

        if index < nsignals:
            signum = state.plan[index]
            rearm = None
            if nsignals - index > 1:
                rearm = self.config.interval
            elif self.config.kill_after > 0:
                rearm = self.config.kill_after
                state.kill_armed = True
        else:
            #  One past the last signal: kill-after has elapsed. Anything
            #   further is treated the same way.
            signum = signal.SIGKILL
            rearm = None
            state.kill_armed = False

        state.index = index + 1
        state.delivered.append(signum)
        return Step(signum, rearm)
