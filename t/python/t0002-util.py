#!/usr/bin/env python3
###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import argparse
import errno
import logging
import os
import tempfile
import unittest
from unittest import mock

import testenv  # noqa: F401 - To set up PYTHONPATH
from deadline.constants import EXIT_CANCELED
from deadline.util import (
    CLIMain,
    UtilConfig,
    config_searchpath,
    fsd,
    help_formatter,
    parse_duration,
)
from pycotap import TAPTestRunner


class TestParseDuration(unittest.TestCase):
    def test_units(self):
        self.assertEqual(parse_duration("0"), 0)
        self.assertEqual(parse_duration("5"), 5)
        self.assertEqual(parse_duration("5s"), 5)
        self.assertEqual(parse_duration("2m"), 120)
        self.assertEqual(parse_duration("3h"), 3 * 3600)
        self.assertEqual(parse_duration("2d"), 2 * 86400)
        self.assertEqual(parse_duration("0d"), 0)
        self.assertEqual(parse_duration(17), 17)

    def test_unit_multipliers(self):
        multipliers = {"s": 1, "m": 60, "h": 3600, "d": 86400}
        for value in (1, 7, 90, 1000):
            for unit, mult in multipliers.items():
                self.assertEqual(parse_duration(f"{value}{unit}"), value * mult)

    def test_invalid(self):
        for arg in ("", "x", "1x", "-1", "1.5", "1ms", "s", "1 m", "inf", -3):
            with self.assertRaises(ValueError, msg=f"{arg!r}"):
                parse_duration(arg)

    def test_too_large(self):
        for arg in ("99999999999d", "999999999999999h", "99999999999999999m"):
            with self.assertRaisesRegex(ValueError, "too large", msg=arg):
                parse_duration(arg)
        #  Plain seconds have no upper bound here, the timer clamps them
        self.assertEqual(parse_duration("9" * 22), int("9" * 22))

    def test_fsd(self):
        self.assertEqual(fsd(0), "0s")
        self.assertEqual(fsd(59), "59s")
        self.assertEqual(fsd(90), "1.5m")
        self.assertEqual(fsd(7200), "2h")
        self.assertEqual(fsd(86400 * 3), "3d")


class TestUtilConfig(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.home = os.path.join(self.tmpdir.name, "home")
        self.system = os.path.join(self.tmpdir.name, "system")
        for path in (self.home, self.system):
            os.makedirs(os.path.join(path, "deadline"))
        self.env = mock.patch.dict(
            os.environ, {"XDG_CONFIG_HOME": self.home, "XDG_CONFIG_DIRS": self.system}
        )
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self.tmpdir.cleanup()

    def write(self, base, name, content):
        with open(os.path.join(base, "deadline", name), "w") as fp:
            fp.write(content)

    def test_no_config(self):
        config = UtilConfig("deadline", initial_dict={"a": 1}).load()
        self.assertEqual(config.config, {"a": 1})

    def test_initial_dict_not_modified(self):
        initial = {"a": 1}
        self.write(self.home, "deadline.toml", "a = 2\n")
        config = UtilConfig("deadline", initial_dict=initial).load()
        self.assertEqual(config.config["a"], 2)
        self.assertEqual(initial, {"a": 1})

    def test_searchpath(self):
        with mock.patch.dict(os.environ, {"XDG_CONFIG_DIRS": "/a:/b"}):
            self.assertEqual(
                [str(path) for path in config_searchpath()],
                ["/b/deadline", "/a/deadline", f"{self.home}/deadline"],
            )

    def test_precedence(self):
        self.write(self.system, "deadline.toml", 'a = 1\nb = "system"\n')
        self.write(self.home, "deadline.yaml", "b: home\nc: [1, 2]\n")
        config = UtilConfig("deadline").load()
        self.assertEqual(config.config, {"a": 1, "b": "home", "c": [1, 2]})

    def test_json_and_ignored_extension(self):
        self.write(self.home, "deadline.json", '{"a": 1}')
        self.write(self.home, "deadline.txt", "garbage")
        config = UtilConfig("deadline", initial_dict={"a": 0, "b": 2}).load()
        self.assertEqual(config.config, {"a": 1, "b": 2})

    def test_empty_yaml(self):
        self.write(self.home, "deadline.yaml", "")
        self.assertEqual(UtilConfig("deadline").load().config, {})

    def test_decode_error(self):
        self.write(self.home, "deadline.toml", "a = = 1\n")
        with self.assertRaisesRegex(ValueError, "deadline.toml"):
            UtilConfig("deadline").load()

    def test_not_a_mapping(self):
        self.write(self.home, "deadline.yaml", "- 1\n- 2\n")
        with self.assertRaisesRegex(ValueError, "must be a mapping"):
            UtilConfig("deadline").load()

    def test_validate(self):
        class StrictConfig(UtilConfig):
            def validate(self, path, conf):
                if "bad" in conf:
                    raise ValueError(f"{path}: bad key")

        self.write(self.home, "deadline.toml", "bad = 1\n")
        with self.assertRaisesRegex(ValueError, "bad key"):
            StrictConfig("deadline").load()


class TestCLIMain(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("deadline-test")

    def test_return_value(self):
        @CLIMain(self.logger)
        def main():
            return 3

        with self.assertRaises(SystemExit) as cm:
            main()
        self.assertEqual(cm.exception.code, 3)

    def test_sys_exit(self):
        @CLIMain(self.logger)
        def main():
            raise SystemExit(42)

        with self.assertRaises(SystemExit) as cm:
            main()
        self.assertEqual(cm.exception.code, 42)

    def test_exception(self):
        @CLIMain(self.logger)
        def main():
            raise OSError(errno.ENOENT, "No such file", "foo")

        with self.assertLogs(self.logger, level="ERROR") as logs:
            with self.assertRaises(SystemExit) as cm:
                main()
        self.assertEqual(cm.exception.code, EXIT_CANCELED)
        self.assertIn("No such file: 'foo'", logs.output[0])

    def test_exception_exitcode(self):
        class Failure(Exception):
            exitcode = 7

        @CLIMain(self.logger)
        def main():
            raise Failure("failed")

        with self.assertLogs(self.logger, level="ERROR"):
            with self.assertRaises(SystemExit) as cm:
                main()
        self.assertEqual(cm.exception.code, 7)


class TestHelpFormatter(unittest.TestCase):
    def test_format(self):
        parser = argparse.ArgumentParser(
            prog="test", formatter_class=help_formatter()
        )
        parser.add_argument("-k", "--kill-after", metavar="DURATION")
        parser.add_argument("--long-only", action="store_true")
        output = parser.format_help()
        self.assertIn("-k, --kill-after=DURATION", output)
        self.assertIn("    --long-only", output)


if __name__ == "__main__":
    unittest.main(testRunner=TAPTestRunner())
