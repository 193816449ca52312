###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

import os
import signal
import subprocess
import sys
import tempfile
import time

script_dir = os.path.dirname(os.path.abspath(__file__))

srcdir = os.path.abspath(
    os.environ["srcdir"] if "srcdir" in os.environ else f"{script_dir}/../.."
)

#  Allow tests to run from the source tree without installing
if srcdir not in sys.path:
    sys.path.insert(0, srcdir)


def sanitize_env(env):
    """Sanitize environment variables that may affect tests"""
    sanitize = ("DEADLINE_PYCLI_LOGLEVEL", "XDG_CONFIG_HOME", "XDG_CONFIG_DIRS")
    for var in list(env.keys()):
        if var in sanitize:
            del env[var]


_emptydir = tempfile.TemporaryDirectory(prefix="deadline-test-")


def deadline_env(**kwargs):
    """
    Return an environment for running deadline in which the source tree
    is importable and no configuration files are found
    """
    env = dict(**os.environ)
    sanitize_env(env)
    env["PYTHONPATH"] = os.pathsep.join(
        [srcdir] + ([env["PYTHONPATH"]] if env.get("PYTHONPATH") else [])
    )
    env["XDG_CONFIG_HOME"] = _emptydir.name
    env["XDG_CONFIG_DIRS"] = _emptydir.name
    env.update(kwargs)
    return env


def deadline_command(*args):
    return [sys.executable, "-m", "deadline", *args]


def run_deadline(*args, timeout=60):
    """
    Run deadline with args. Returns (CompletedProcess, elapsed seconds)
    """
    t0 = time.monotonic()
    proc = subprocess.run(
        deadline_command(*args),
        env=deadline_env(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        universal_newlines=True,
        timeout=timeout,
    )
    return proc, time.monotonic() - t0


def start_deadline(*args):
    """Start deadline in the background with stdout piped"""
    return subprocess.Popen(
        deadline_command(*args),
        env=deadline_env(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        universal_newlines=True,
    )


def pid_alive(pid):
    """Return True if pid exists and is not a zombie"""
    try:
        with open(f"/proc/{pid}/stat") as statfile:
            #  state follows the parenthesized command name
            return statfile.read().rsplit(")", 1)[1].split()[0] != "Z"
    except FileNotFoundError:
        return False
    except OSError:
        pass
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    return True


def wait_until(predicate, timeout=10):
    """Poll predicate until it is true or timeout expires"""
    end = time.monotonic() + timeout
    while time.monotonic() < end:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def proc_status_command(outfile):
    """Command which saves its own /proc/self/status to outfile"""
    return ["sh", "-c", f"cat /proc/self/status >{outfile}"]


def proc_status_signals(path, field="SigIgn"):
    """
    Return the set of signals in the mask ``field`` (e.g. SigIgn, SigBlk)
    of a /proc/PID/status file saved at path
    """
    with open(path) as fp:
        for line in fp:
            name, _, value = line.partition(":")
            if name == field:
                mask = int(value.strip(), 16)
                return {
                    signum
                    for signum in range(1, signal.NSIG)
                    if mask & (1 << (signum - 1))
                }
    raise ValueError(f"{path}: no {field} field")
