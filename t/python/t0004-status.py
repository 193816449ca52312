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
from deadline.status import translate_status
from pycotap import TAPTestRunner


#  Raw wait(2) status encodings as used by Linux and the BSDs
def exited(code):
    return (code & 0xFF) << 8


def signaled(signum):
    return signum & 0x7F


def stopped(signum):
    return (signum << 8) | 0x7F


class TestTranslateStatus(unittest.TestCase):
    def test_exited(self):
        self.assertEqual(translate_status(exited(0)), 0)
        self.assertEqual(translate_status(exited(3)), 3)
        self.assertEqual(translate_status(exited(255)), 255)

    def test_timed_out_takes_precedence(self):
        self.assertEqual(translate_status(exited(0), timed_out=True), 124)
        self.assertEqual(translate_status(exited(7), timed_out=True), 124)
        self.assertEqual(
            translate_status(signaled(signal.SIGKILL), timed_out=True), 124
        )

    def test_signaled(self):
        with self.assertLogs("deadline", level="INFO") as logs:
            code = translate_status(
                signaled(signal.SIGKILL), pid=1234, command="sleep 10"
            )
        self.assertEqual(code, 128 + signal.SIGKILL)
        self.assertIn("1234 (sleep 10) terminated by Killed", logs.output[0])

    def test_unrecognized(self):
        with self.assertLogs("deadline", level="ERROR"):
            self.assertEqual(translate_status(stopped(signal.SIGSTOP)), 1)


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
