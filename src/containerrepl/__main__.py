"""`python -m containerrepl` runs the container-repl command line."""

import sys

from containerrepl.cli import run

if __name__ == "__main__":
    sys.exit(run(sys.argv[1:]))
