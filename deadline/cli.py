###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import argparse
import logging

import deadline
from deadline import util
from deadline.constants import (
    DEFAULT_INTERVAL,
    DEFAULT_KILL_AFTER,
    DEFAULT_SIGNAL,
    EXIT_CANCELED,
)
from deadline.escalation import Configuration
from deadline.signals import parse_signal_list
from deadline.supervisor import Supervisor
from deadline.util import CLIMain, UtilConfig, parse_duration

LOGGER = logging.getLogger("deadline")

DESCRIPTION = """
Start COMMAND, and send it a signal if it is still running after DURATION.
DURATION is an integer with an optional suffix: 's' for seconds (the
default), 'm' for minutes, 'h' for hours or 'd' for days. A duration of
0 disables the associated timeout.
"""

EPILOG = """
Exit status:
  124  if COMMAND times out
  125  if deadline itself fails before running COMMAND
  126  if COMMAND is found but cannot be invoked
  127  if COMMAND cannot be found
  128+N if COMMAND (or deadline) is terminated by signal N
  otherwise, the exit status of COMMAND
"""


class DeadlineConfig(UtilConfig):
    """deadline specific configuration, providing option defaults"""

    parsers = {
        "signal": parse_signal_list,
        "interval": parse_duration,
        "kill-after": parse_duration,
    }

    def __init__(self):
        initial_dict = {
            "signal": [int(DEFAULT_SIGNAL)],
            "interval": DEFAULT_INTERVAL,
            "kill-after": DEFAULT_KILL_AFTER,
        }
        super().__init__(name="deadline", initial_dict=initial_dict)

    def validate(self, path, conf):
        for key, value in conf.items():
            if key not in self.parsers:
                raise ValueError(f"{path}: unknown key '{key}'")
            try:
                self.parsers[key](value)
            except ValueError as exc:
                raise ValueError(f"{path}: {key}: {exc}") from None

    def value(self, key):
        """Return the parsed value of key"""
        return self.parsers[key](self.config[key])


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser which exits with EXIT_CANCELED on usage errors"""

    def error(self, message):
        self.exit(
            EXIT_CANCELED,
            f"{self.prog}: {message}\n"
            + f"Try '{self.prog} --help' for more information.\n",
        )


def duration_type(value):
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def signals_type(value):
    try:
        return parse_signal_list(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


class DeadlineCmd:
    """
    Run a command with a time limit

    Usage: deadline [OPTIONS] DURATION COMMAND [ARG...]
    """

    def __init__(self, prog="deadline"):
        self.prog = prog
        self.parser = self.create_parser(prog)

    @staticmethod
    def create_parser(prog):
        parser = ArgumentParser(
            prog=prog,
            usage=f"{prog} [OPTIONS] DURATION COMMAND [ARG...]",
            description=DESCRIPTION,
            epilog=EPILOG,
            formatter_class=util.help_formatter(raw_description=True),
        )
        parser.add_argument(
            "-k",
            "--kill-after",
            type=duration_type,
            metavar="DURATION",
            help="also send KILL if COMMAND is still running this long "
            + "after the last signal was sent",
        )
        parser.add_argument(
            "-s",
            "--signal",
            type=signals_type,
            metavar="SIGLIST",
            help="comma separated list of signals to send on timeout, "
            + "by name or number (default: TERM)",
        )
        parser.add_argument(
            "-i",
            "--interval-between-signals",
            type=duration_type,
            dest="interval",
            metavar="SECONDS",
            help="time between successive signals in SIGLIST (default: 1)",
        )
        parser.add_argument(
            "-v",
            "--verbose",
            action="count",
            default=0,
            help="log signals sent to COMMAND",
        )
        parser.add_argument(
            "-V",
            "--version",
            action="version",
            version=f"%(prog)s {deadline.__version__}",
        )
        parser.add_argument("duration", type=duration_type, metavar="DURATION")
        parser.add_argument(
            "command", nargs=argparse.REMAINDER, help="command and arguments"
        )
        return parser

    def parse_args(self, argv=None):
        args = self.parser.parse_args(argv)
        if not args.command:
            self.parser.error("missing operand: COMMAND")

        #  Fill unset options from configuration files:
        try:
            config = DeadlineConfig().load()
            if args.signal is None:
                args.signal = config.value("signal")
            if args.interval is None:
                args.interval = config.value("interval")
            if args.kill_after is None:
                args.kill_after = config.value("kill-after")
        except ValueError as exc:
            self.parser.error(str(exc))
        return args

    def configuration(self, args):
        return Configuration(
            duration=args.duration,
            command=args.command,
            signals=args.signal,
            interval=args.interval,
            kill_after=args.kill_after,
        )

    def main(self, args):
        if args.verbose:
            LOGGER.setLevel(logging.DEBUG)
        return Supervisor(self.configuration(args)).run()


@CLIMain(LOGGER)
def main(argv=None):
    cmd = DeadlineCmd()
    return cmd.main(cmd.parse_args(argv))
