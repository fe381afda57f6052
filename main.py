#!/usr/bin/env python3
"""
TibetScribe entry point.

Usage:
    python main.py folio_1.png folio_2.png --explain "བཀྲ་ཤིས།"
    python main.py --text-file input.txt -q 80
"""

import sys

if sys.version_info < (3, 9):
    sys.stderr.write("TibetScribe requires Python 3.9 or later.\n")
    sys.exit(1)

from tibetscribe.cli import main

if __name__ == "__main__":
    main()
