"""
Entry point for the pas-migration-toolkit package.

This module is called when the package is run as a script:
    python -m pas_migration_toolkit
"""

import sys
from pas_migration_toolkit.cli import main

if __name__ == '__main__':
    sys.exit(main())
