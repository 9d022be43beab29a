"""
Main entry point for Face Patch

Provides command-line access to the face patching tool.
"""

import sys
from .ui.cli import main

if __name__ == '__main__':
    sys.exit(main())
