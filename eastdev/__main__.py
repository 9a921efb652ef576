"""
Entry point for running eastdev as a module: python -m eastdev
"""

import sys

from eastdev.cli import main

if __name__ == "__main__":
    sys.exit(main())
