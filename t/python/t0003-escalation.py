#!/usr/bin/env python3
###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import signal
import unittest

import testenv  # noqa: F401 - To set up PYTHONPATH
from deadline.escalation import Configuration, Escalation, Step
from pycotap import TAPTestRunner

TERM = signal.SIGTERM
INT = signal.SIGINT
USR1 = signal.SIGUSR1
KILL = signal.SIGKILL


def escalation(**kwargs):
    kwargs.setdefault("duration", 10)
    kwargs.setdefault("command", ["true"])
    return Escalation(Configuration(**kwargs))


class TestConfiguration(unittest.TestCase):
    def test_defaults(self):
        config = Configuration(duration=5, command=["sleep", "10"])
        self.assertEqual(config.signals, (TERM,))
        self.assertEqual(config.interval, 1)
        self.assertEqual(config.kill_after, 0)
        self.assertEqual(config.command, ("sleep", "10"))

    def test_signals_normalized(self):
        config = Configuration(duration=5, command=["true"], signals=["INT", 9])
        self.assertEqual(config.signals, (INT, KILL))

    def test_invalid(self):
        for kwargs in (
            {"duration": -1},
            {"duration": 1.5},
            {"duration": "5"},
            {"command": []},
            {"signals": ()},
            {"signals": ("FOO",)},
            {"interval": -1},
            {"kill_after": None},
        ):
            args = {"duration": 5, "command": ["true"], **kwargs}
            with self.assertRaises(ValueError, msg=f"{kwargs}"):
                Configuration(**args)

    def test_frozen(self):
        config = Configuration(duration=5, command=["true"])
        with self.assertRaises(AttributeError):
            config.duration = 6


class TestEscalation(unittest.TestCase):
    def test_initial(self):
        self.assertEqual(escalation(duration=7).initial(), 7)
        self.assertIsNone(escalation(duration=0).initial())

    def test_single_signal(self):
        esc = escalation()
        self.assertFalse(esc.timed_out)
        self.assertEqual(esc.expire(), Step(TERM, None))
        self.assertTrue(esc.timed_out)
        self.assertFalse(esc.state.kill_armed)

    def test_single_signal_kill_after(self):
        esc = escalation(kill_after=5)
        self.assertEqual(esc.expire(), Step(TERM, 5))
        self.assertTrue(esc.state.kill_armed)
        self.assertEqual(esc.expire(), Step(KILL, None))
        self.assertFalse(esc.state.kill_armed)

    def test_multiple_signals(self):
        esc = escalation(signals=(USR1, INT, TERM), interval=3)
        self.assertEqual(esc.expire(), Step(USR1, 3))
        self.assertEqual(esc.expire(), Step(INT, 3))
        self.assertEqual(esc.expire(), Step(TERM, None))
        self.assertEqual(esc.state.delivered, [USR1, INT, TERM])

    def test_multiple_signals_kill_after(self):
        esc = escalation(signals=(TERM, KILL), interval=3, kill_after=10)
        self.assertEqual(esc.expire(), Step(TERM, 3))
        self.assertEqual(esc.expire(), Step(KILL, 10))
        self.assertEqual(esc.expire(), Step(KILL, None))

    def test_zero_interval(self):
        esc = escalation(signals=(USR1, TERM), interval=0)
        self.assertEqual(esc.expire(), Step(USR1, 0))
        self.assertEqual(esc.expire(), Step(TERM, None))

    def test_past_end_is_kill(self):
        esc = escalation(signals=(TERM,))
        esc.expire()
        self.assertEqual(esc.expire(), Step(KILL, None))
        self.assertEqual(esc.expire(), Step(KILL, None))
        self.assertEqual(esc.state.index, 3)

    def test_interrupt(self):
        esc = escalation(signals=(TERM,), kill_after=4)
        self.assertEqual(esc.interrupt(INT), Step(INT, 4))
        self.assertFalse(esc.timed_out)
        self.assertEqual(esc.expire(), Step(KILL, None))
        self.assertTrue(esc.timed_out)

    def test_interrupt_continues_escalation(self):
        esc = escalation(signals=(USR1, TERM), interval=2)
        self.assertEqual(esc.interrupt(INT), Step(INT, 2))
        self.assertEqual(esc.expire(), Step(TERM, None))
        self.assertEqual(esc.state.delivered, [INT, TERM])

    def test_interrupt_restarts(self):
        esc = escalation(signals=(USR1, TERM), interval=2)
        esc.expire()
        esc.expire()
        self.assertEqual(esc.interrupt(signal.SIGHUP), Step(signal.SIGHUP, 2))
        self.assertEqual(esc.expire(), Step(TERM, None))


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
