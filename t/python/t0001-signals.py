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
from deadline.signals import (
    decode_signal,
    parse_signal_list,
    signal_description,
    signal_name,
)
from pycotap import TAPTestRunner


class TestDecodeSignal(unittest.TestCase):
    def test_names(self):
        self.assertEqual(decode_signal("TERM"), signal.SIGTERM)
        self.assertEqual(decode_signal("SIGTERM"), signal.SIGTERM)
        self.assertEqual(decode_signal("term"), signal.SIGTERM)
        self.assertEqual(decode_signal("sigkill"), signal.SIGKILL)
        self.assertEqual(decode_signal(" USR1 "), signal.SIGUSR1)

    def test_numbers(self):
        self.assertEqual(decode_signal("9"), signal.SIGKILL)
        self.assertEqual(decode_signal(15), signal.SIGTERM)
        self.assertIsInstance(decode_signal("15"), signal.Signals)

    def test_invalid(self):
        for arg in ("", "FOO", "SIG", "0", "-1", str(signal.NSIG), "1.0", 0):
            with self.assertRaises(ValueError, msg=f"{arg!r}"):
                decode_signal(arg)


class TestSignalList(unittest.TestCase):
    def test_single(self):
        self.assertEqual(parse_signal_list("TERM"), (signal.SIGTERM,))

    def test_order_preserved(self):
        self.assertEqual(
            parse_signal_list("INT,TERM,9"),
            (signal.SIGINT, signal.SIGTERM, signal.SIGKILL),
        )
        self.assertEqual(
            parse_signal_list(["KILL", 15]), (signal.SIGKILL, signal.SIGTERM)
        )

    def test_invalid(self):
        for arg in ("", ",", "TERM,", "TERM,,KILL", "TERM,FOO", []):
            with self.assertRaises(ValueError, msg=f"{arg!r}"):
                parse_signal_list(arg)


class TestSignalNames(unittest.TestCase):
    def test_name(self):
        self.assertEqual(signal_name(signal.SIGTERM), "TERM")
        self.assertEqual(signal_name(9), "KILL")

    def test_description(self):
        self.assertEqual(signal_description(signal.SIGKILL), "Killed")
        self.assertTrue(signal_description(signal.SIGTERM))


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
