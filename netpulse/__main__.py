"""Entry point for ``python -m netpulse``."""

import sys

from netpulse.cli import main

if __name__ == "__main__":
    sys.exit(main())
