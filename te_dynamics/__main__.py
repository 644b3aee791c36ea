import sys

from te_dynamics.cli import main

sys.exit(main())
