#!/usr/bin/env python3
"""Access Log Replayer entry point."""

import sys

from replayer.cli import main

if __name__ == "__main__":
    try:
        sys.exit(main())
    except BrokenPipeError:
        sys.exit(0)
