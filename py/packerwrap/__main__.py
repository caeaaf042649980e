"""Main entry point for running packerwrap as a module.

Usage:
    python -m packerwrap [--packer PATH] [--cwd DIR] <subcommand> [args...]
    python -m packerwrap build --var region=us-west-2 image.pkr.hcl
    python -m packerwrap version

"""

import sys
from ._cli import main


if __name__ == '__main__':
    sys.exit(main())
