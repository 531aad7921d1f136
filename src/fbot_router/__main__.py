# ABOUTME: Entry point for the F-Bot router CLI
# ABOUTME: Handles invocation via `fbot-router` or `python -m fbot_router`

"""
Entry point for the F-Bot router.

Usage:
    fbot-router route fascia_diagnosis "chronic neck tension"
    python -m fbot_router models
"""

import sys

from fbot_router.cli import main

if __name__ == "__main__":
    sys.exit(main())
