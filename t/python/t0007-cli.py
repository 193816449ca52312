#!/usr/bin/env python3
###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################
#
# deadline command line tests
#
# Option parsing is tested in-process, everything else by running
# `python -m deadline` with commands which exit, ignore signals, or
# spawn background processes.
#

import contextlib
import io
import os
import signal
import stat
import tempfile
import time
import unittest
from unittest import mock

import testenv
from deadline.cli import DeadlineCmd
from pycotap import TAPTestRunner


class TestParseArgs(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        os.makedirs(os.path.join(self.tmpdir.name, "deadline"))
        self.env = mock.patch.dict(
            os.environ,
            {"XDG_CONFIG_HOME": self.tmpdir.name, "XDG_CONFIG_DIRS": self.tmpdir.name},
        )
        self.env.start()
        self.cmd = DeadlineCmd()

    def tearDown(self):
        self.env.stop()
        self.tmpdir.cleanup()

    def write_config(self, name, content):
        with open(os.path.join(self.tmpdir.name, "deadline", name), "w") as fp:
            fp.write(content)

    def parse_error(self, *argv):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(SystemExit) as cm:
                self.cmd.parse_args(list(argv))
        self.assertEqual(cm.exception.code, 125)
        self.assertIn("Try 'deadline --help' for more information.", stderr.getvalue())
        return stderr.getvalue()

    def test_defaults(self):
        args = self.cmd.parse_args(["10", "sleep", "20"])
        self.assertEqual(args.duration, 10)
        self.assertEqual(args.command, ["sleep", "20"])
        self.assertEqual(args.signal, (signal.SIGTERM,))
        self.assertEqual(args.interval, 1)
        self.assertEqual(args.kill_after, 0)

    def test_options(self):
        args = self.cmd.parse_args(
            ["-s", "INT,TERM", "-i", "3", "-k", "1m", "2h", "ls", "-l", "--all"]
        )
        self.assertEqual(args.duration, 7200)
        self.assertEqual(args.signal, (signal.SIGINT, signal.SIGTERM))
        self.assertEqual(args.interval, 3)
        self.assertEqual(args.kill_after, 60)
        self.assertEqual(args.command, ["ls", "-l", "--all"])

    def test_long_options(self):
        args = self.cmd.parse_args(
            [
                "--signal=KILL",
                "--interval-between-signals=2",
                "--kill-after=5s",
                "1",
                "true",
            ]
        )
        self.assertEqual(args.signal, (signal.SIGKILL,))
        self.assertEqual(args.interval, 2)
        self.assertEqual(args.kill_after, 5)

    def test_configuration(self):
        args = self.cmd.parse_args(["-s", "USR1,TERM", "3", "sh", "-c", "exit 1"])
        config = self.cmd.configuration(args)
        self.assertEqual(config.duration, 3)
        self.assertEqual(config.signals, (signal.SIGUSR1, signal.SIGTERM))
        self.assertEqual(config.command, ("sh", "-c", "exit 1"))

    def test_invalid_duration(self):
        self.assertIn("invalid time interval '5x'", self.parse_error("5x", "true"))
        self.parse_error("-k", "1.5", "5", "true")
        self.parse_error("-i", "x", "5", "true")

    def test_duration_too_large(self):
        self.assertIn("too large", self.parse_error("99999999999d", "true"))
        self.parse_error("-k", "99999999999d", "5", "true")

    def test_invalid_signal(self):
        stderr = self.parse_error("-s", "FOO", "5", "true")
        self.assertIn("invalid signal 'FOO'", stderr)
        self.parse_error("-s", "TERM,", "5", "true")

    def test_missing_operands(self):
        self.parse_error()
        self.assertIn("COMMAND", self.parse_error("5"))

    def test_config_file(self):
        self.write_config(
            "deadline.toml", 'signal = "INT,KILL"\ninterval = 2\nkill-after = "1m"\n'
        )
        args = self.cmd.parse_args(["5", "true"])
        self.assertEqual(args.signal, (signal.SIGINT, signal.SIGKILL))
        self.assertEqual(args.interval, 2)
        self.assertEqual(args.kill_after, 60)

        #  Command line takes precedence over config
        args = self.cmd.parse_args(["-s", "TERM", "-k", "0", "5", "true"])
        self.assertEqual(args.signal, (signal.SIGTERM,))
        self.assertEqual(args.kill_after, 0)
        self.assertEqual(args.interval, 2)

    def test_config_file_yaml(self):
        self.write_config("deadline.yaml", "signal: [USR1, TERM]\n")
        args = self.cmd.parse_args(["5", "true"])
        self.assertEqual(args.signal, (signal.SIGUSR1, signal.SIGTERM))

    def test_config_file_invalid(self):
        self.write_config("deadline.toml", "timeout = 5\n")
        self.assertIn("unknown key 'timeout'", self.parse_error("5", "true"))
        self.write_config("deadline.toml", 'signal = "NOPE"\n')
        self.assertIn("signal: invalid signal", self.parse_error("5", "true"))

    def test_help(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            with self.assertRaises(SystemExit) as cm:
                self.cmd.parse_args(["--help"])
        self.assertEqual(cm.exception.code, 0)
        self.assertIn("-k, --kill-after=DURATION", stdout.getvalue())
        self.assertIn("-i, --interval-between-signals=SECONDS", stdout.getvalue())
        self.assertIn("124  if COMMAND times out", stdout.getvalue())


class TestDeadline(unittest.TestCase):
    def test_exit_code_passthrough(self):
        proc, elapsed = testenv.run_deadline("5", "sh", "-c", "exit 7")
        self.assertEqual(proc.returncode, 7)
        self.assertLess(elapsed, 5)
        proc, _ = testenv.run_deadline("5", "true")
        self.assertEqual(proc.returncode, 0)

    def test_output_passthrough(self):
        proc, _ = testenv.run_deadline("5", "echo", "hello")
        self.assertEqual(proc.returncode, 0)
        self.assertEqual(proc.stdout, "hello\n")

    def test_timeout(self):
        proc, elapsed = testenv.run_deadline("1", "sleep", "10")
        self.assertEqual(proc.returncode, 124)
        self.assertGreaterEqual(elapsed, 0.9)
        self.assertLess(elapsed, 8)

    def test_signal_list_with_interval(self):
        proc, elapsed = testenv.run_deadline(
            "-v",
            "-s",
            "TERM,KILL",
            "-i",
            "2",
            "1",
            "sh",
            "-c",
            "trap '' TERM; sleep 10",
        )
        self.assertEqual(proc.returncode, 124)
        self.assertGreaterEqual(elapsed, 2.9)
        self.assertLess(elapsed, 9)
        self.assertIn("sending SIGTERM", proc.stderr)
        self.assertIn("sending SIGKILL", proc.stderr)

    def test_kill_after(self):
        proc, elapsed = testenv.run_deadline(
            "-k", "1", "1", "sh", "-c", "trap '' TERM; sleep 10"
        )
        self.assertEqual(proc.returncode, 124)
        self.assertGreaterEqual(elapsed, 1.9)
        self.assertLess(elapsed, 8)

    def test_signaled_without_timeout(self):
        proc, _ = testenv.run_deadline("10", "sh", "-c", "kill -KILL $$")
        self.assertEqual(proc.returncode, 128 + signal.SIGKILL)
        self.assertIn("terminated by", proc.stderr)

    def test_sigpipe_default_in_command(self):
        proc, _ = testenv.run_deadline("5", "sh", "-c", "kill -PIPE $$; exit 0")
        self.assertEqual(proc.returncode, 128 + signal.SIGPIPE)

    def test_huge_duration(self):
        proc, _ = testenv.run_deadline("9" * 22, "sh", "-c", "exit 3")
        self.assertEqual(proc.returncode, 3)
        self.assertEqual(proc.stderr, "")

    def test_not_found(self):
        proc, _ = testenv.run_deadline("5", "/nonexistent/deadline-test-command")
        self.assertEqual(proc.returncode, 127)
        self.assertIn("/nonexistent/deadline-test-command", proc.stderr)

    def test_not_executable(self):
        with tempfile.NamedTemporaryFile(mode="w") as tmp:
            os.chmod(tmp.name, stat.S_IRUSR | stat.S_IWUSR)
            proc, _ = testenv.run_deadline("5", tmp.name)
        self.assertEqual(proc.returncode, 126)

    def test_usage_error(self):
        proc, _ = testenv.run_deadline("-s", "BOGUS", "5", "true")
        self.assertEqual(proc.returncode, 125)
        self.assertIn("--help", proc.stderr)

    def test_version(self):
        proc, _ = testenv.run_deadline("--version")
        self.assertEqual(proc.returncode, 0)
        self.assertTrue(proc.stdout.startswith("deadline "))

    def test_ignored_signal_waits(self):
        #  Without --kill-after, nothing is sent after the only signal
        proc = testenv.start_deadline(
            "1", "sh", "-c", "trap '' TERM; echo $$; sleep 30"
        )
        try:
            pgid = int(proc.stdout.readline())
            time.sleep(3)
            self.assertIsNone(proc.poll())
            self.assertTrue(testenv.pid_alive(pgid))
        finally:
            os.killpg(pgid, signal.SIGKILL)
            proc.wait(timeout=10)
            proc.stdout.close()
            proc.stderr.close()
        self.assertEqual(proc.returncode, 124)

    def test_interrupt_forwarded_to_group(self):
        proc = testenv.start_deadline(
            "60", "sh", "-c", "sleep 60 & echo $!; wait"
        )
        try:
            grandchild = int(proc.stdout.readline())
            self.assertTrue(testenv.pid_alive(grandchild))
            proc.send_signal(signal.SIGTERM)
            proc.wait(timeout=10)
        finally:
            proc.stdout.close()
            proc.stderr.close()
        self.assertEqual(proc.returncode, 128 + signal.SIGTERM)
        self.assertTrue(testenv.wait_until(lambda: not testenv.pid_alive(grandchild)))


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
