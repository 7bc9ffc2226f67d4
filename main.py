"""
Main Entry Point (Root Level)

Alternative entry point at root level.
"""

import sys

from spendwise.cli import main

if __name__ == "__main__":
    sys.exit(main())
