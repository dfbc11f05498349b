#!/usr/bin/env python3
"""Main entry point for the stegascan command line."""

import sys

from stegascan.main import main

if __name__ == "__main__":
    sys.exit(main())
