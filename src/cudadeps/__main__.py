import sys

from .cli.diagnostics_handler import main

if __name__ == "__main__":
    sys.exit(main())
