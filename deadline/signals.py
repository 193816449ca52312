###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import signal

__all__ = [
    "decode_signal",
    "parse_signal_list",
    "signal_name",
    "signal_description",
]


def decode_signal(val):
    """
    Decode a signal as string or number
    A string can be of the form 'SIGUSR1', 'USR1' or 'usr1'
    """
    if isinstance(val, int):
        signum = val
    else:
        val = val.strip()
        try:
            signum = int(val)
        except ValueError:
            name = val.upper()
            if not name.startswith("SIG"):
                name = "SIG" + name
            try:
                return signal.Signals[name]
            except KeyError:
                raise ValueError(f"invalid signal '{val}'") from None
    if signum <= 0 or signum >= signal.NSIG:
        raise ValueError(f"invalid signal '{val}'")
    try:
        return signal.Signals(signum)
    except ValueError:
        #  Valid but unnamed signal (e.g. a realtime signal)
        return signum


def parse_signal_list(arg):
    """
    Parse a comma-separated list of signal names or numbers, e.g.
    ``TERM,INT,9``. Returns a tuple of signals in the given order.
    """
    if isinstance(arg, (list, tuple)):
        items = arg
    else:
        items = str(arg).split(",")
    if not items or any(str(item).strip() == "" for item in items):
        raise ValueError(f"invalid signal list '{arg}'")
    return tuple(decode_signal(item) for item in items)


def signal_name(signum):
    """Return the short name of signum without SIG prefix, e.g. TERM"""
    try:
        return signal.Signals(signum).name[3:]
    except ValueError:
        return str(int(signum))


def signal_description(signum):
    """Return a human readable description of signum, e.g. 'Terminated'"""
    description = None
    try:
        description = signal.strsignal(signum)
    except ValueError:
        pass
    return description or f"signal {int(signum)}"
