"""
Entry point for running memtracker as a module.

This allows running the CLI with: python -m memtracker
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
