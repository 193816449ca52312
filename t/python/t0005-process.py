#!/usr/bin/env python3
###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################
#
# deadline.process module tests
#
# Tests launching a command in its own process group, signaling the
# group, and reaping with exec failures translated to exit codes.
#

import errno
import os
import signal
import tempfile
import unittest
from unittest import mock

import testenv  # noqa: F401 - To set up PYTHONPATH
from deadline.process import (
    LaunchError,
    ProcessGroup,
    WaitError,
    exec_failure_exitcode,
)
from pycotap import TAPTestRunner


class TestProcessGroup(unittest.TestCase):
    def test_empty_command(self):
        with self.assertRaises(ValueError):
            ProcessGroup([])

    def test_str(self):
        self.assertEqual(str(ProcessGroup(["echo", "a b"])), "echo 'a b'")

    def test_uncatchable_not_reset(self):
        group = ProcessGroup(["true"], intercepted=[signal.SIGTERM, signal.SIGKILL])
        self.assertEqual(group.intercepted, [signal.SIGTERM])

    def test_exit_status(self):
        group = ProcessGroup(["sh", "-c", "exit 3"])
        pid = group.spawn()
        self.assertEqual(group.pid, pid)
        status = group.wait(block=True)
        self.assertTrue(os.WIFEXITED(status))
        self.assertEqual(os.WEXITSTATUS(status), 3)
        self.assertTrue(group.reaped)
        #  Reaped status is remembered
        self.assertEqual(group.wait(), status)

    def test_own_process_group(self):
        group = ProcessGroup(["sleep", "30"])
        group.spawn()
        try:
            self.assertEqual(os.getpgid(group.pid), group.pid)
            self.assertNotEqual(os.getpgid(group.pid), os.getpgrp())
            self.assertIsNone(group.wait())
        finally:
            group.signal(signal.SIGKILL)
            status = group.wait(block=True)
        self.assertTrue(os.WIFSIGNALED(status))
        self.assertEqual(os.WTERMSIG(status), signal.SIGKILL)

    def test_signal_reaches_group(self):
        #  The signal is sent to the background sleep as well as the shell
        with tempfile.TemporaryDirectory() as tmpdir:
            pidfile = os.path.join(tmpdir, "pid")
            script = (
                f"sleep 30 & echo $! >{pidfile}.tmp; "
                f"mv {pidfile}.tmp {pidfile}; wait"
            )
            group = ProcessGroup(["sh", "-c", script])
            group.spawn()
            self.assertTrue(testenv.wait_until(lambda: os.path.exists(pidfile)))
            with open(pidfile) as fp:
                grandchild = int(fp.read())
        self.assertTrue(testenv.pid_alive(grandchild))
        self.assertTrue(group.signal(signal.SIGTERM))
        status = group.wait(block=True)
        self.assertEqual(os.WTERMSIG(status), signal.SIGTERM)
        self.assertTrue(
            testenv.wait_until(lambda: not testenv.pid_alive(grandchild))
        )

    def test_signal_vanished_group(self):
        group = ProcessGroup(["true"])
        group.spawn()
        group.wait(block=True)
        self.assertFalse(group.signal(signal.SIGTERM))

    def test_signal_not_started(self):
        with self.assertRaises(ValueError):
            ProcessGroup(["true"]).signal(signal.SIGTERM)

    def test_spawn_twice(self):
        group = ProcessGroup(["true"])
        group.spawn()
        try:
            with self.assertRaises(ValueError):
                group.spawn()
        finally:
            group.wait(block=True)

    def test_not_found(self):
        group = ProcessGroup(["/nonexistent/deadline-test-command"])
        group.spawn()
        status = group.wait(block=True)
        self.assertEqual(os.WEXITSTATUS(status), 127)

    def test_not_executable(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".sh") as tmp:
            tmp.write("#!/bin/sh\nexit 0\n")
            tmp.flush()
            os.chmod(tmp.name, 0o600)
            group = ProcessGroup([tmp.name])
            group.spawn()
            status = group.wait(block=True)
        self.assertEqual(os.WEXITSTATUS(status), 126)

    def test_sigmask_restored(self):
        if not os.path.exists("/proc/self/status"):
            self.skipTest("/proc not available")
        oldmask = signal.pthread_sigmask(signal.SIG_BLOCK, {signal.SIGUSR1})
        try:
            group = ProcessGroup(
                ["sh", "-c", "grep -q '^SigBlk:[[:space:]]*0*$' /proc/self/status"],
                sigmask=oldmask,
            )
            group.spawn()
            status = group.wait(block=True)
        finally:
            signal.pthread_sigmask(signal.SIG_SETMASK, oldmask)
        self.assertEqual(os.WEXITSTATUS(status), 0)

    def test_runtime_ignored_signals_reset(self):
        if not os.path.exists("/proc/self/status"):
            self.skipTest("/proc not available")
        #  The interpreter starts with SIGPIPE and SIGXFSZ ignored
        handlers = {
            signum: signal.signal(signum, signal.SIG_IGN)
            for signum in (signal.SIGPIPE, signal.SIGXFSZ)
        }
        try:
            with tempfile.TemporaryDirectory() as tmpdir:
                outfile = os.path.join(tmpdir, "status")
                group = ProcessGroup(testenv.proc_status_command(outfile))
                group.spawn()
                status = group.wait(block=True)
                self.assertEqual(os.WEXITSTATUS(status), 0)
                ignored = testenv.proc_status_signals(outfile)
        finally:
            for signum, handler in handlers.items():
                signal.signal(signum, handler)
        self.assertNotIn(signal.SIGPIPE, ignored)
        self.assertNotIn(signal.SIGXFSZ, ignored)

    def test_intercepted_signals_reset(self):
        if not os.path.exists("/proc/self/status"):
            self.skipTest("/proc not available")
        intercepted = [signal.SIGTTIN, signal.SIGTTOU, signal.SIGHUP, signal.SIGUSR1]
        handlers = {
            signum: signal.signal(signum, signal.SIG_IGN) for signum in intercepted
        }
        try:
            with tempfile.TemporaryDirectory() as tmpdir:
                outfile = os.path.join(tmpdir, "status")
                group = ProcessGroup(
                    testenv.proc_status_command(outfile), intercepted=intercepted
                )
                group.spawn()
                status = group.wait(block=True)
                self.assertEqual(os.WEXITSTATUS(status), 0)
                ignored = testenv.proc_status_signals(outfile)
        finally:
            for signum, handler in handlers.items():
                signal.signal(signum, handler)
        for signum in intercepted:
            self.assertNotIn(signum, ignored)

    def test_launch_error(self):
        group = ProcessGroup(["true"])
        with mock.patch("os.fork", side_effect=OSError(errno.EAGAIN, "no")):
            with self.assertRaises(LaunchError) as cm:
                group.spawn()
        self.assertEqual(cm.exception.exitcode, 125)
        self.assertIsNone(group.pid)

    def test_wait_error(self):
        group = ProcessGroup(["true"])
        group.spawn()
        os.waitpid(group.pid, 0)
        with self.assertRaises(WaitError) as cm:
            group.wait()
        self.assertEqual(cm.exception.exitcode, 125)

    def test_exec_failure_exitcode(self):
        self.assertEqual(exec_failure_exitcode(FileNotFoundError()), 127)
        self.assertEqual(exec_failure_exitcode(OSError(errno.ENOENT, "x")), 127)
        self.assertEqual(exec_failure_exitcode(PermissionError()), 126)
        self.assertEqual(exec_failure_exitcode(OSError(errno.ENOEXEC, "x")), 126)


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
