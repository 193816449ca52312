###############################################################
# Copyright 2026 The deadline developers
#
# This file is part of deadline, a process deadline supervisor.
#
# SPDX-License-Identifier: LGPL-3.0
###############################################################

from deadline.cli import main

if __name__ == "__main__":
    main()
