"""
Entry point for running smbuilder as a module: python -m smbuilder
"""

import sys
from .cli import main

if __name__ == "__main__":
    sys.exit(main())
