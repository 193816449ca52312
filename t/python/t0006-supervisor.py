#!/usr/bin/env python3
###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################
#
# deadline.supervisor tests, run in-process
#

import os
import signal
import tempfile
import time
import unittest
from unittest import mock

import testenv  # noqa: F401 - To set up PYTHONPATH
from deadline.escalation import Configuration
from deadline.supervisor import Supervisor, SupervisorState, Timer
from pycotap import TAPTestRunner

TRAP_USR1 = "trap '' USR1; sleep 10"
TRAP_TERM = "trap '' TERM; sleep 10"


def supervise(duration, command, **kwargs):
    supervisor = Supervisor(Configuration(duration=duration, command=command, **kwargs))
    t0 = time.monotonic()
    exitcode = supervisor.run()
    return supervisor, exitcode, time.monotonic() - t0


class TestSupervisor(unittest.TestCase):
    def setUp(self):
        self.mask = signal.pthread_sigmask(signal.SIG_BLOCK, set())
        self.ttou = signal.getsignal(signal.SIGTTOU)

    def tearDown(self):
        #  The supervisor restores the signal mask and dispositions
        self.assertEqual(signal.pthread_sigmask(signal.SIG_BLOCK, set()), self.mask)
        self.assertEqual(signal.getsignal(signal.SIGTTOU), self.ttou)

    def test_exits_before_deadline(self):
        supervisor, exitcode, elapsed = supervise(5, ["sh", "-c", "exit 3"])
        self.assertEqual(exitcode, 3)
        self.assertFalse(supervisor.timed_out)
        self.assertEqual(supervisor.escalation.state.delivered, [])
        self.assertEqual(supervisor.state, SupervisorState.DONE)
        self.assertLess(elapsed, 5)

    def test_deadline_disabled(self):
        supervisor, exitcode, _ = supervise(0, ["true"])
        self.assertEqual(exitcode, 0)
        self.assertFalse(supervisor.timed_out)

    def test_timeout(self):
        supervisor, exitcode, elapsed = supervise(1, ["sleep", "10"])
        self.assertEqual(exitcode, 124)
        self.assertTrue(supervisor.timed_out)
        self.assertEqual(supervisor.escalation.state.delivered, [signal.SIGTERM])
        self.assertGreaterEqual(elapsed, 0.9)
        self.assertLess(elapsed, 5)

    def test_escalation_sequence(self):
        supervisor, exitcode, elapsed = supervise(
            1,
            ["sh", "-c", TRAP_USR1],
            signals=(signal.SIGUSR1, signal.SIGTERM),
            interval=1,
        )
        self.assertEqual(exitcode, 124)
        self.assertEqual(
            supervisor.escalation.state.delivered, [signal.SIGUSR1, signal.SIGTERM]
        )
        self.assertGreaterEqual(elapsed, 1.9)
        self.assertLess(elapsed, 6)

    def test_zero_interval(self):
        supervisor, exitcode, elapsed = supervise(
            1,
            ["sh", "-c", TRAP_USR1],
            signals=(signal.SIGUSR1, signal.SIGTERM),
            interval=0,
        )
        self.assertEqual(exitcode, 124)
        self.assertEqual(
            supervisor.escalation.state.delivered, [signal.SIGUSR1, signal.SIGTERM]
        )
        self.assertLess(elapsed, 5)

    def test_kill_after(self):
        supervisor, exitcode, elapsed = supervise(
            1, ["sh", "-c", TRAP_TERM], kill_after=1
        )
        self.assertEqual(exitcode, 124)
        self.assertEqual(
            supervisor.escalation.state.delivered, [signal.SIGTERM, signal.SIGKILL]
        )
        self.assertGreaterEqual(elapsed, 1.9)
        self.assertLess(elapsed, 6)

    def test_stop_signal_before_launch(self):
        #  A pending stop signal means no command is started
        signal.pthread_sigmask(signal.SIG_BLOCK, {signal.SIGUSR1})
        try:
            os.kill(os.getpid(), signal.SIGUSR1)
            supervisor = Supervisor(
                Configuration(duration=5, command=["true"], signals=["USR1"])
            )
            self.assertEqual(supervisor.run(), 128 + signal.SIGUSR1)
            self.assertIsNone(supervisor.child)
        finally:
            signal.pthread_sigmask(signal.SIG_SETMASK, self.mask)

    def test_child_signal_dispositions(self):
        if not os.path.exists("/proc/self/status"):
            self.skipTest("/proc not available")
        with tempfile.TemporaryDirectory() as tmpdir:
            outfile = os.path.join(tmpdir, "status")
            supervisor, exitcode, _ = supervise(
                5, testenv.proc_status_command(outfile), signals=["USR1"]
            )
            self.assertEqual(exitcode, 0)
            ignored = testenv.proc_status_signals(outfile)
            blocked = testenv.proc_status_signals(outfile, "SigBlk")
        #  Neither the supervisor's own TTIN/TTOU nor the interpreter's
        #   ignored signals are inherited by the command
        for signum in (signal.SIGTTIN, signal.SIGTTOU, signal.SIGPIPE):
            self.assertNotIn(signum, ignored)
        self.assertFalse(blocked & supervisor.intercepted)

    def test_error_after_launch_kills_group(self):
        supervisor = Supervisor(Configuration(duration=5, command=["sleep", "30"]))
        with mock.patch.object(Timer, "arm", side_effect=OverflowError("too big")):
            with self.assertRaises(OverflowError):
                supervisor.run()
        self.assertTrue(supervisor.child.reaped)
        self.assertEqual(os.WTERMSIG(supervisor.child.status), signal.SIGKILL)
        self.assertFalse(testenv.pid_alive(supervisor.child.pid))

    def test_huge_duration(self):
        supervisor, exitcode, _ = supervise(int("9" * 22), ["sh", "-c", "exit 3"])
        self.assertEqual(exitcode, 3)
        self.assertFalse(supervisor.timed_out)

    def test_intercepted(self):
        supervisor = Supervisor(
            Configuration(duration=5, command=["true"], signals=("USR2", "KILL"))
        )
        self.assertIn(signal.SIGUSR2, supervisor.stop_signals)
        self.assertIn(signal.SIGTERM, supervisor.stop_signals)
        self.assertNotIn(signal.SIGKILL, supervisor.intercepted)
        self.assertIn(signal.SIGCHLD, supervisor.intercepted)
        self.assertIn(signal.SIGALRM, supervisor.intercepted)
        self.assertNotIn(signal.SIGCHLD, supervisor.stop_signals)


class TestTimer(unittest.TestCase):
    def setUp(self):
        self.mask = signal.pthread_sigmask(signal.SIG_BLOCK, {Timer.signum})

    def tearDown(self):
        signal.setitimer(signal.ITIMER_REAL, 0)
        signal.sigtimedwait({Timer.signum}, 0)
        signal.pthread_sigmask(signal.SIG_SETMASK, self.mask)

    def test_expiry(self):
        timer = Timer()
        timer.arm(1)
        self.assertFalse(timer.due)
        info = signal.sigtimedwait({Timer.signum}, 5)
        self.assertIsNotNone(info)
        self.assertEqual(info.si_signo, signal.SIGALRM)

    def test_zero_is_due(self):
        timer = Timer()
        timer.arm(0)
        self.assertTrue(timer.due)
        self.assertEqual(signal.getitimer(signal.ITIMER_REAL), (0.0, 0.0))

    def test_disarm(self):
        timer = Timer()
        timer.arm(1)
        timer.arm(None)
        self.assertFalse(timer.due)
        self.assertEqual(signal.getitimer(signal.ITIMER_REAL), (0.0, 0.0))
        self.assertIsNone(signal.sigtimedwait({Timer.signum}, 1.5))

    def test_clamped(self):
        timer = Timer()
        with mock.patch("signal.setitimer") as setitimer:
            timer.arm(int("9" * 22))
        setitimer.assert_called_with(signal.ITIMER_REAL, Timer.max_seconds)
        timer.arm(Timer.max_seconds)
        self.assertGreater(signal.getitimer(signal.ITIMER_REAL)[0], 0)


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
