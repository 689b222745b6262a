#!/usr/bin/env python3
"""
Entry point for the Glass timeline tool.
"""

import sys

from cli_mirror.cli import main


if __name__ == "__main__":
    sys.exit(main())
