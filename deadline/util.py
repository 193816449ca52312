###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import argparse
import glob
import json
import logging
import os
import re
import sys
import traceback
from datetime import timedelta
from pathlib import Path, PurePosixPath

import yaml

# tomllib added to standard library in Python 3.11
try:
    import tomllib  # novermin
except ModuleNotFoundError:
    import tomli as tomllib

from deadline.constants import EXIT_CANCELED

__all__ = [
    "CLIMain",
    "UtilConfig",
    "config_searchpath",
    "help_formatter",
    "parse_duration",
    "fsd",
]


#  Column at which option help starts, wide enough for the longest
#   option, `-i, --interval-between-signals=SECONDS`
HELP_POSITION = 44


def help_formatter(raw_description=False):
    """
    Return a HelpFormatter class which lists options with their argument
    as `-k, --kill-after=DURATION`, and long-only options aligned with
    the long forms of the others.
    """

    class DeadlineHelpFormatter(argparse.HelpFormatter):
        def __init__(self, prog, **kwargs):
            kwargs.setdefault("max_help_position", HELP_POSITION)
            super().__init__(prog, **kwargs)

        def _format_action_invocation(self, action):
            if not action.option_strings:
                (metavar,) = self._metavar_formatter(action, action.dest)(1)
                return metavar

            opts = list(action.option_strings)
            if len(opts) == 1 and opts[0].startswith("--"):
                optstring = "    " + opts[0]
            else:
                optstring = ", ".join(opts)

            if action.nargs == 0:
                return optstring
            return optstring + "=" + self._format_args(action, action.dest.upper())

    if not raw_description:
        return DeadlineHelpFormatter

    class DeadlineRawDescriptionHelpFormatter(
        DeadlineHelpFormatter, argparse.RawDescriptionHelpFormatter
    ):
        pass

    return DeadlineRawDescriptionHelpFormatter


class CLIMain(object):
    """
    Decorator for command main functions. Sets up logging, and turns
    uncaught exceptions into a single error line and an exit code, which
    is the exception's ``exitcode`` attribute if it has one, otherwise
    ``EXIT_CANCELED``.
    """

    def __init__(self, logger=None):
        if logger is None:
            self.logger = logging.getLogger()
        else:
            self.logger = logger

    def __call__(self, main_func):
        def wrapper(*args, **kwargs):
            loglevel = int(os.environ.get("DEADLINE_PYCLI_LOGLEVEL", logging.INFO))
            logging.basicConfig(
                level=loglevel, format="%(name)s: %(levelname)s: %(message)s"
            )
            exit_code = 0
            try:
                exit_code = main_func(*args, **kwargs)
            except SystemExit as ex:  # don't intercept sys.exit calls
                exit_code = ex.code
            except Exception as ex:  # pylint: disable=broad-except
                exit_code = getattr(ex, "exitcode", EXIT_CANCELED)
                # Prefer '{strerror}: {filename}' error message over default
                # OSError string representation which includes useless
                # `[Error N]` prefix in output.
                errmsg = getattr(ex, "strerror", None) or str(ex)
                if getattr(ex, "filename", None):
                    errmsg += f": '{ex.filename}'"
                self.logger.error(errmsg)
                self.logger.debug(traceback.format_exc())
            finally:
                logging.shutdown()
            sys.exit(exit_code)

        wrapper.__name__ = main_func.__name__
        wrapper.__doc__ = main_func.__doc__
        return wrapper


def parse_duration(duration):
    """
    Parse a duration of the form N[s|m|h|d], where N is a non-negative
    integer and the optional suffix selects seconds (the default), minutes,
    hours or days.

    Returns:
        int: the duration in seconds

    Raises:
        ValueError: duration is not valid
    """
    if isinstance(duration, int) and not isinstance(duration, bool):
        if duration < 0:
            raise ValueError(f"invalid time interval '{duration}'")
        return duration

    match = re.match(r"^\s*(\d+)(s|m|h|d)?\s*$", str(duration))
    if not match:
        raise ValueError(f"invalid time interval '{duration}'")
    value = int(match.group(1))
    unit = match.group(2) or "s"

    try:
        if unit == "m":
            seconds = timedelta(minutes=value).total_seconds()
        elif unit == "h":
            seconds = timedelta(hours=value).total_seconds()
        elif unit == "d":
            seconds = timedelta(days=value).total_seconds()
        else:
            seconds = value
    except OverflowError:
        raise ValueError(f"time interval '{duration}' is too large") from None
    return int(seconds)


def fsd(secs):
    """Format secs as a short human readable duration, e.g. '1.5m'"""
    if secs < 60:
        strtmp = "%ds" % secs
    elif secs < (60 * 60):
        strtmp = "%.4gm" % (secs / 60.0)
    elif secs < (60 * 60 * 24):
        strtmp = "%.4gh" % (secs / (60.0 * 60.0))
    else:
        strtmp = "%.4gd" % (secs / (60.0 * 60.0 * 24.0))
    return strtmp


def config_searchpath():
    """
    Return the directories searched for deadline configuration, lowest
    precedence first: each of XDG_CONFIG_DIRS (default /etc/xdg) from
    last to first, then XDG_CONFIG_HOME (default ~/.config).
    """
    confdirs = (os.getenv("XDG_CONFIG_DIRS") or "/etc/xdg").split(":")
    confdirs.reverse()
    confdirs.append(os.getenv("XDG_CONFIG_HOME") or f"{Path.home()}/.config")
    return [Path(directory, "deadline") for directory in confdirs if directory]


class UtilConfig:
    """
    Option defaults for a command, read from <name>.toml, <name>.yaml or
    <name>.json in each directory of :func:`config_searchpath`. Files in
    higher precedence directories replace the values of earlier ones key
    by key. Within one directory files are processed in glob(3) order.

    Args:
        name: config name, used as the stem of config file to load
        initial_dict: default values (optional)
    """

    extension_handlers = {
        ".toml": tomllib.load,
        ".json": json.load,
        ".yaml": yaml.safe_load,
    }

    def __init__(self, name, initial_dict=None):
        self.name = name
        self.config = dict(initial_dict or {})
        self.searchpath = config_searchpath()

    def load(self):
        """Load configuration from current searchpath

        Returns self so that constructor and load() can be called like

        >>> config = UtilConfig("deadline").load()

        """

        for path in self.searchpath:
            for filepath in sorted(glob.glob(f"{path}/{self.name}.*")):
                ppath = PurePosixPath(filepath)

                # ignore files with unsupported extensions:
                if ppath.suffix not in self.extension_handlers:
                    continue

                try:
                    with open(filepath, "rb") as ofile:
                        conf = self.extension_handlers[ppath.suffix](ofile)
                except (
                    tomllib.TOMLDecodeError,
                    json.decoder.JSONDecodeError,
                    yaml.YAMLError,
                ) as exc:
                    #  prepend file path to decode exceptions in case it
                    #  it is missing (e.g. tomllib)
                    raise ValueError(f"{filepath}: {exc}") from exc

                #  An empty yaml file loads as None
                if conf is None:
                    conf = {}
                if not isinstance(conf, dict):
                    raise ValueError(f"{filepath}: config must be a mapping")

                self.validate(filepath, conf)
                self.config.update(conf)

        return self

    def validate(self, path, conf):
        """
        Validate config file as it is loaded before merging it with the
        configuration. This function does nothing in the base class, but
        subclasses may define it to implement higher level validation.
        """
